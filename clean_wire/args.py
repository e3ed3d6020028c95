from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ArgKind(Enum):
    none = "none"
    sequence = "sequence"
    mapping = "mapping"
    scalar = "scalar"


@dataclass(frozen=True)
class ArgSpec:
    """
    The arguments of a service, classified once so that merging and calling
    do not have to keep inspecting the raw configuration value.
    """

    kind: ArgKind
    value: Any = None

    @classmethod
    def of(cls, value: Any) -> ArgSpec:
        if value is None:
            return cls(ArgKind.none)
        if isinstance(value, Mapping):
            return cls(ArgKind.mapping, dict(value))
        if isinstance(value, (list, tuple)):
            return cls(ArgKind.sequence, list(value))
        return cls(ArgKind.scalar, value)

    @property
    def is_wrapped_mapping(self) -> bool:
        """``[{...}]``: a single mapping passed as the only positional argument."""
        return self.kind is ArgKind.sequence and len(self.value) == 1 and isinstance(self.value[0], Mapping)

    def merged_with(self, child: ArgSpec) -> ArgSpec:
        """Inherit from ``self``: named arguments are merged key by key, anything else is replaced."""
        if self.kind is ArgKind.mapping and child.kind is ArgKind.mapping:
            return ArgSpec(ArgKind.mapping, {**self.value, **child.value})
        if self.is_wrapped_mapping and child.is_wrapped_mapping:
            return ArgSpec(ArgKind.sequence, [{**self.value[0], **child.value[0]}])
        return child

    def map(self, fn: Callable[[Any], Any]) -> ArgSpec:
        if self.kind is ArgKind.none:
            return self
        if self.kind is ArgKind.mapping:
            return ArgSpec(ArgKind.mapping, {key: fn(value) for key, value in self.value.items()})
        if self.kind is ArgKind.sequence:
            return ArgSpec(ArgKind.sequence, [fn(item) for item in self.value])
        return ArgSpec(ArgKind.scalar, fn(self.value))

    def call_args(self) -> tuple[list[Any], dict[str, Any]]:
        if self.kind is ArgKind.mapping:
            return [], dict(self.value)
        if self.kind is ArgKind.sequence:
            return list(self.value), {}
        if self.kind is ArgKind.scalar:
            return [self.value], {}
        return [], {}
