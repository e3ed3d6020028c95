"""Meta keys: the prefixed control keys that turn a mapping into a service description."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

CANONICAL_KEYS = (
    "ref",
    "path",
    "method",
    "call",
    "args",
    "class",
    "extends",
    "value",
    "config",
    "env",
    "default",
    "with",
    "on",
    "lifecycle",
    "sub",
    "return",
)

CONSTRUCTION_KEYS = ("ref", "class", "extends", "config", "value", "env")

REFERENCE_KEYS = ("ref", "extends")

DEFAULT_META_PREFIX = "$"


class MetaKeys:
    def __init__(self, prefix: str = DEFAULT_META_PREFIX):
        self.prefix = prefix
        self._prefixed = {key: f"{prefix}{key}" for key in CANONICAL_KEYS}
        self._canonical = {prefixed: key for key, prefixed in self._prefixed.items()}

    def key(self, canonical: str) -> str:
        return self._prefixed[canonical]

    def canonical(self, key: Any) -> str | None:
        return self._canonical.get(key) if isinstance(key, str) else None

    def has_meta_keys(self, config: Mapping) -> bool:
        return any(self.canonical(key) for key in config)

    def is_legacy(self, config: Mapping) -> bool:
        """A root service written with bare canonical keys, e.g. ``{class: Foo, args: {...}}``."""
        return (
            not self.has_meta_keys(config)
            and all(key in CANONICAL_KEYS for key in config)
            and any(key in config for key in CONSTRUCTION_KEYS)
        )

    def is_meta(self, arg: Any, root: bool = False) -> bool:
        """
        Whether ``arg`` describes a service (a reference, an inline service or an override)
        rather than literal data.

        Args:
            arg: Any node of a configuration tree.
            root: True when ``arg`` is a whole service definition, which may also use bare keys.
        """
        if not isinstance(arg, Mapping) or not arg:
            return False
        if any(self.key(key) in arg for key in CONSTRUCTION_KEYS):
            return True
        if self.prefix:
            if all(isinstance(key, str) and key.startswith(self.prefix) for key in arg):
                return True
        elif all(self.canonical(key) for key in arg):
            return True
        return root and self.is_legacy(arg)

    def fix_refs(self, container_name: str, data: Any, root: bool = True, target: MetaKeys | None = None) -> Any:
        """
        Rewrite every ``ref`` and ``extends`` found in ``data`` so that it is addressed through
        ``container_name``. Used to read an inner container's config from the outer container.

        Args:
            container_name: The name of the inner container in the outer one.
            data: Configuration written with this prefix.
            root: True when ``data`` is a whole service definition, which may use bare keys.
            target: The outer container's meta keys, prefixed keys are rewritten to its prefix.
        """
        target = target or self
        if isinstance(data, (list, tuple)):
            return [self.fix_refs(container_name, item, root=False, target=target) for item in data]
        if not isinstance(data, Mapping):
            return data

        legacy = root and self.is_legacy(data)
        fixed = {}
        for key, value in data.items():
            canonical = key if legacy else self.canonical(key)
            fixed_key = target.key(canonical) if canonical and not legacy else key
            if canonical in REFERENCE_KEYS:
                fixed[fixed_key] = f"{container_name}/{value}"
            elif canonical in ("value", "class"):
                fixed[fixed_key] = value
            else:
                fixed[fixed_key] = self.fix_refs(container_name, value, root=False, target=target)
        return fixed
