"""Configuration driven dependency injection container."""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable, Iterable, Mapping
from enum import Enum
from pathlib import Path
from typing import Any

from .args import ArgKind, ArgSpec
from .events import BuildServiceEvent, ConfigureServiceEvent, Emitter, Event
from .exceptions import (
    CircularReferenceError,
    ConfigError,
    ConstructorError,
    InvalidConfigError,
    NotFoundError,
)
from .loaders import compose_type, load_config, load_type
from .meta import CANONICAL_KEYS, CONSTRUCTION_KEYS, DEFAULT_META_PREFIX, MetaKeys
from .path_query import PathSyntaxError, select
from .type_filters import is_emitter_type, is_named_service, is_subclass_of
from .utils import DEPRECATIONS, DeprecationSink

logger = logging.getLogger(__name__)

PATH_ENV_VAR = "CLEAN_WIRE_PATH"
PATH_SEPARATOR = "/"
ANONYMOUS = "$anonymous"

_EXCLUSIVE_KEYS = ("value", "ref", "config", "env")


class Lifecycle(str, Enum):
    singleton = "singleton"
    factory = "factory"
    eager = "eager"


def _split_name(name: str) -> tuple[str, ...]:
    segments = tuple(name.split(PATH_SEPARATOR))
    if not all(segments):
        raise NotFoundError(name)
    return segments


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class Container(Emitter):
    """
    Builds services described by a configuration mapping.

    Args:
        file: A YAML or JSON file holding the service configuration.
        config: The service configuration, used instead of reading ``file``.
        services: Services that are already built, keyed by name.
        dir: Extra directories to search for relative ``config`` and container files.
        meta_prefix: The prefix marking meta keys such as ``$class`` and ``$ref``.
        deprecations: Where deprecation notices are recorded, defaults to the process wide sink.
    """

    def __init__(
        self,
        file: str | Path | None = None,
        config: Mapping[str, Any] | None = None,
        services: Mapping[str, Any] | None = None,
        dir: str | Path | Iterable[str | Path] | None = None,  # noqa: A002
        meta_prefix: str = DEFAULT_META_PREFIX,
        deprecations: DeprecationSink | None = None,
    ):
        if file is not None and not Path(file).exists():
            raise ConstructorError("file", f"Container file '{file}' does not exist")

        self.file = Path(file) if file is not None else None
        self.meta = MetaKeys(meta_prefix)
        self.deprecations = deprecations or DEPRECATIONS
        self.services: dict[str, Any] = dict(services or {})
        self._dirs = self._search_dirs(dir)
        self._lock = threading.RLock()
        self._resolving: list[str] = []

        if config is None and self.file is not None:
            config = load_config(self.file)
        if config is None:
            config = {}
        if not isinstance(config, Mapping):
            raise ConfigError(self.file, "top level of the configuration must be a mapping")
        self.config: dict[str, Any] = dict(config)

        self._build_eager_services()

    def _search_dirs(self, dir: str | Path | Iterable[str | Path] | None) -> list[Path]:  # noqa: A002
        dirs: list[Path] = []
        if self.file is not None:
            dirs.append(self.file.parent)
        if isinstance(dir, (str, Path)):
            dirs.append(Path(dir))
        elif dir is not None:
            dirs.extend(Path(d) for d in dir)
        env_path = os.environ.get(PATH_ENV_VAR)
        if env_path:
            dirs.extend(Path(d) for d in env_path.split(os.pathsep) if d)
        if not dirs:
            dirs.append(Path.cwd())
        return list(dict.fromkeys(dirs))

    def _build_eager_services(self):
        for name, config in self.config.items():
            if not isinstance(config, Mapping):
                continue
            lifecycle = config.get(self.meta.key("lifecycle"))
            if lifecycle is None and not self.meta.has_meta_keys(config):
                lifecycle = config.get("lifecycle")
            if lifecycle == Lifecycle.eager.value:
                logger.debug(f"building eager service {name}")
                self.get(name)

    @property
    def dir(self) -> list[Path]:
        """Directories searched, in order, for relative file paths."""
        return list(self._dirs)

    def fix_path(self, path: str | Path) -> Path:
        path = Path(path)
        if path.is_absolute():
            return path
        for directory in self._dirs:
            candidate = directory / path
            if candidate.exists():
                return candidate
        return path

    def get(self, name: str, **overrides: Any) -> Any:
        """
        Get the service called ``name``, building it if needed.
        A name like ``outer/inner`` gets ``inner`` from the container service ``outer``.

        Args:
            name: The service name.
            **overrides: Build a new, uncached service that extends ``name`` with these keys.
                Meta keys may be bare or prefixed (``args={...}``), any other key is a named argument.

        Raises:
            NotFoundError: No service is configured with that name.
            InvalidConfigError: The service configuration cannot be built.
        """
        return self._get(_split_name(name), overrides)

    def _get(self, segments: tuple[str, ...], overrides: Mapping[str, Any]) -> Any:
        if len(segments) > 1:
            head = segments[0]
            # forwarders stay attached only while this lock is held
            with self._lock:
                container = self._get_container(head)
                logger.debug(f"routing {'/'.join(segments[1:])} to container {head}")
                unsubscribe = self._forward_events(head, container)
                try:
                    return container._get(segments[1:], overrides)
                finally:
                    for unsubscribe_fn in unsubscribe:
                        unsubscribe_fn()

        name = segments[0]
        if overrides:
            override_info = self._normalize_overrides(name, overrides)
            return self.create_service(f"{ANONYMOUS} w/ {name}", **{**override_info, "extends": name})

        with self._lock:
            if name in self.services:
                logger.debug(f"using cached service {name}")
                return self.services[name]

            if name in self._resolving:
                chain = self._resolving[self._resolving.index(name) :]
                raise CircularReferenceError([*chain, name], self.file)

            config = self.get_config(name)
            if config is None:
                raise NotFoundError(name, self.file)

            self._resolving.append(name)
            try:
                service_info = self._prepare(name, self.normalize_config(name, config), chain=(name,))
                service = self._build(name, service_info)
            finally:
                self._resolving.pop()

            if self._lifecycle(name, service_info) is not Lifecycle.factory:
                self.services[name] = service
            return service

    def _get_container(self, name: str) -> Container:
        container = self._get((name,), {})
        if not isinstance(container, Container):
            raise InvalidConfigError(name, "service is not a container", self.file)
        return container

    def _forward_events(self, prefix: str, container: Container) -> list[Callable[[], None]]:
        def forward_configure(event: ConfigureServiceEvent):
            self.emit(
                "configure_service",
                ConfigureServiceEvent(service_name=f"{prefix}/{event.service_name}", config=event.config),
            )

        def forward_build(event: BuildServiceEvent):
            self.emit(
                "build_service",
                BuildServiceEvent(service_name=f"{prefix}/{event.service_name}", service=event.service),
            )

        return [
            container.on("configure_service", forward_configure),
            container.on("build_service", forward_build),
        ]

    def set(self, name: str, service: Any):
        """Put an already built service into the container, replacing any cached one."""
        self._set(_split_name(name), service)

    def _set(self, segments: tuple[str, ...], service: Any):
        if len(segments) > 1:
            self._get_container(segments[0])._set(segments[1:], service)
            return
        with self._lock:
            self.services[segments[0]] = service

    def get_config(self, name: str) -> Any:
        """
        The raw configuration of a service, or None if there is none.
        Configuration read from an inner container has its references rewritten
        to be relative to this container.
        """
        return self._get_config(_split_name(name))

    def _get_config(self, segments: tuple[str, ...]) -> Any:
        if len(segments) > 1:
            head = segments[0]
            container = self._get_container(head)
            config = container._get_config(segments[1:])
            if config is None:
                return None
            return container.meta.fix_refs(head, config, target=self.meta)
        return self.config.get(segments[0])

    def normalize_config(self, name: str, config: Any) -> dict[str, Any]:
        """
        Turn a service configuration into its canonical form: meta keys lose their prefix
        and every other key becomes a named argument.
        ``{$class: Foo, x: 1}`` becomes ``{class: Foo, args: {x: 1}}``.
        """
        if not isinstance(config, Mapping):
            raise InvalidConfigError(name, "service configuration must be a mapping", self.file)
        if not self.meta.has_meta_keys(config):
            return dict(config)
        return self._collect_args(name, config, self.meta.canonical)

    def _normalize_overrides(self, name: str, overrides: Mapping[str, Any]) -> dict[str, Any]:
        # keyword overrides may mix bare and prefixed meta keys, each key is read on its own
        def canonical(key: str) -> str | None:
            return self.meta.canonical(key) or (key if key in CANONICAL_KEYS else None)

        return self._collect_args(name, overrides, canonical)

    def _collect_args(
        self, name: str, config: Mapping[str, Any], canonical_key: Callable[[Any], str | None]
    ) -> dict[str, Any]:
        service_info: dict[str, Any] = {}
        named_args: dict[str, Any] = {}
        for key, value in config.items():
            canonical = canonical_key(key)
            if canonical:
                service_info[canonical] = value
            else:
                named_args[key] = value

        if named_args:
            args = service_info.get("args")
            if args is None:
                service_info["args"] = named_args
            elif isinstance(args, Mapping):
                service_info["args"] = {**args, **named_args}
            else:
                raise InvalidConfigError(
                    name,
                    f"cannot combine {self.meta.key('args')} that are not a mapping with named arguments",
                    self.file,
                )
        return service_info

    def merge_config(self, service_info: Mapping[str, Any], chain: tuple[str, ...] = ()) -> dict[str, Any]:
        """
        Follow ``extends`` and merge each parent's configuration under the child's.
        Named arguments (or a single wrapped mapping of them) are merged key by key,
        any other arguments from the child replace the parent's.
        """
        service_info = dict(service_info)
        if "extends" not in service_info:
            return service_info

        base_name = service_info.pop("extends")
        if base_name in chain:
            raise CircularReferenceError([*chain, base_name], self.file)

        base_config = self.get_config(base_name)
        if base_config is None:
            raise NotFoundError(base_name, self.file)
        base_info = self.merge_config(self.normalize_config(base_name, base_config), (*chain, base_name))

        merged = {**base_info, **service_info}
        if "args" in base_info and "args" in service_info:
            merged["args"] = ArgSpec.of(base_info["args"]).merged_with(ArgSpec.of(service_info["args"])).value
        return merged

    def _validate(self, name: str, service_info: Mapping[str, Any]):
        exclusive = [key for key in _EXCLUSIVE_KEYS if key in service_info]
        buildable = [key for key in ("class", "extends") if key in service_info]
        if len(exclusive) > 1:
            keys = ", ".join(self.meta.key(key) for key in exclusive)
            raise InvalidConfigError(name, f"use only one of {keys}", self.file)
        if exclusive and buildable:
            keys = ", ".join(self.meta.key(key) for key in (*exclusive, *buildable))
            raise InvalidConfigError(name, f"cannot combine {keys}", self.file)
        if not exclusive and not buildable:
            keys = ", ".join(self.meta.key(key) for key in CONSTRUCTION_KEYS)
            raise InvalidConfigError(name, f"service configuration incomplete, expected one of {keys}", self.file)

    def _prepare(self, name: str, service_info: Mapping[str, Any], chain: tuple[str, ...] = ()) -> dict[str, Any]:
        self._validate(name, service_info)
        merged = self.merge_config(service_info, chain)
        if "extends" in service_info:
            self._validate(name, merged)
        return merged

    def _lifecycle(self, name: str, service_info: Mapping[str, Any]) -> Lifecycle:
        lifecycle = service_info.get("lifecycle", Lifecycle.singleton.value)
        try:
            return Lifecycle(lifecycle)
        except ValueError:
            allowed = ", ".join(item.value for item in Lifecycle)
            raise InvalidConfigError(name, f"unknown lifecycle '{lifecycle}', expected one of {allowed}", self.file)

    def create_service(self, name: str, /, **service_info: Any) -> Any:
        """Build a service from its normalized configuration. The result is never cached."""
        return self._build(name, self._prepare(name, service_info))

    def _build(self, name: str, service_info: dict[str, Any]) -> Any:
        self._lifecycle(name, service_info)

        if "value" in service_info:
            return service_info["value"]

        if "env" in service_info:
            return os.environ.get(service_info["env"], service_info.get("default"))

        if "ref" in service_info:
            found = self.resolve_ref(name, service_info)
            return found[0] if found else None

        if "config" in service_info:
            return self._read_config_service(service_info)

        logger.debug(f"configuring service {name}")
        self.emit("configure_service", ConfigureServiceEvent(service_name=name, config=service_info))

        service_type = load_type(service_info["class"])
        roles = [load_type(role) for role in _as_list(service_info.get("with"))]
        service_type = compose_type(service_type, roles)

        method = service_info.get("method")
        if isinstance(method, (list, tuple)):
            service = self._call_method_chain(name, service_type, method)
        else:
            positional, named = self.parse_args(name, service_type, service_info.get("args"))
            if is_named_service(service_type):
                named.update(name=name, container=self)
            service = self._call(service_type, method, positional, named)

        if "on" in service_info:
            self._subscribe_listeners(name, service, service_info["on"])

        logger.debug(f"built service {name}")
        self.emit("build_service", BuildServiceEvent(service_name=name, service=service))
        return service

    def _read_config_service(self, service_info: Mapping[str, Any]) -> Any:
        file = self.fix_path(service_info["config"])
        if not file.exists() and "default" in service_info:
            return service_info["default"]
        return load_config(file)

    @staticmethod
    def _call(target: Any, method: str | None, positional: list[Any], named: dict[str, Any]) -> Any:
        factory = target if method is None else getattr(target, method)
        return factory(*positional, **named)

    def _call_method_chain(self, name: str, service_type: type, steps: Iterable[Any]) -> Any:
        service: Any = None
        for position, step in enumerate(steps):
            step_info = self.normalize_config(name, step)
            method = step_info.get("method")
            if method is None and position > 0:
                raise InvalidConfigError(name, f"step {position} of {self.meta.key('method')} has no method", self.file)

            positional, named = self.parse_args(name, service_type, step_info.get("args"))
            target = service_type if position == 0 else service
            result = self._call(target, method, positional, named)
            if position == 0 or step_info.get("return") == "chain":
                service = result
        return service

    def parse_args(self, for_name: str, service_type: type, args: Any) -> tuple[list[Any], dict[str, Any]]:
        """
        Resolve the references in ``args`` and split them into positional and named arguments.
        Arguments for an inner container are left as they are, so that it resolves its own
        references, but its ``file`` and ``dir`` are made relative to this container.
        """
        spec = ArgSpec.of(args)
        if is_container_type(service_type):
            if spec.kind is ArgKind.mapping:
                container_args = dict(spec.value)
                if container_args.get("file") is not None:
                    container_args["file"] = str(self.fix_path(container_args["file"]))
                container_args.setdefault("dir", [str(d) for d in self._dirs])
                spec = ArgSpec.of(container_args)
        else:
            spec = self._resolve_args(for_name, spec)
        return spec.call_args()

    def _resolve_args(self, for_name: str, spec: ArgSpec) -> ArgSpec:
        if spec.kind is ArgKind.mapping and self.meta.is_meta(spec.value):
            # the whole argument list comes from a reference or an inline service
            return ArgSpec.of(self.find_refs(for_name, spec.value))
        return spec.map(lambda arg: self.find_refs(for_name, arg))

    def find_refs(self, for_name: str, arg: Any) -> Any:
        """Replace every reference and inline service inside ``arg`` with its value."""
        if isinstance(arg, Mapping):
            if self.meta.is_meta(arg):
                ref_info = self.normalize_config(for_name, arg)
                if "ref" in ref_info:
                    found = self.resolve_ref(for_name, ref_info)
                    if len(found) == 1:
                        return found[0]
                    return found or None
                return self.create_service(ANONYMOUS, **ref_info)
            return {key: self.find_refs(for_name, value) for key, value in arg.items()}
        if isinstance(arg, (list, tuple)):
            return [self.find_refs(for_name, item) for item in arg]
        return arg

    def resolve_ref(self, for_name: str, ref_info: Mapping[str, Any]) -> list[Any]:
        """
        Get the referenced service, then optionally select values inside it with ``path``
        or call one of its methods with ``call``.

        Returns:
            list[Any]: Every value the reference produced.
        """
        service = self.get(ref_info["ref"])

        if "path" in ref_info:
            try:
                return select(service, ref_info["path"], opaque=lambda node: isinstance(node, Container))
            except PathSyntaxError as ex:
                raise InvalidConfigError(for_name, str(ex), self.file) from ex

        call = ref_info.get("call")
        if call is None and "method" in ref_info:
            self.deprecations.warn(
                f'warning: (deprecated) "{self.meta.key("method")}" in a reference is now "{self.meta.key("call")}"'
            )
            call = ref_info["method"]
        if call is None:
            return [service]

        positional, named = self._resolve_args(for_name, ArgSpec.of(ref_info.get("args"))).call_args()
        return [getattr(service, call)(*positional, **named)]

    def _listener_specs(self, name: str, on: Any) -> list[tuple[str, Any]]:
        if isinstance(on, Mapping):
            return [(event_name, spec) for event_name, specs in on.items() for spec in _as_list(specs)]
        if isinstance(on, (list, tuple)) and all(isinstance(item, Mapping) for item in on):
            return [pair for item in on for pair in self._listener_specs(name, item)]
        raise InvalidConfigError(name, f"{self.meta.key('on')} must be a mapping of event names", self.file)

    def _subscribe_listeners(self, name: str, service: Any, on: Any):
        if not is_emitter_type(type(service)):
            raise InvalidConfigError(name, f"{type(service).__name__} cannot emit events", self.file)

        for event_name, spec in self._listener_specs(name, on):
            listener_info = self.normalize_config(name, spec)
            if "ref" not in listener_info:
                raise InvalidConfigError(name, f"listener for '{event_name}' needs a {self.meta.key('ref')}", self.file)

            sub = listener_info.get("sub")
            if sub is None and "method" in listener_info:
                self.deprecations.warn(
                    f'warning: (deprecated) "{self.meta.key("method")}" in a listener is now "{self.meta.key("sub")}"'
                )
                sub = listener_info["method"]
            if sub is None:
                raise InvalidConfigError(name, f"listener for '{event_name}' needs a {self.meta.key('sub')}", self.file)

            listener = self.get(listener_info["ref"])
            extra_args, _ = self._resolve_args(name, ArgSpec.of(listener_info.get("args"))).call_args()
            service.on(event_name, self._listener_handler(listener, sub, extra_args))

    @staticmethod
    def _listener_handler(listener: Any, sub: str, extra_args: list[Any]) -> Callable[[Event], Any]:
        def handler(event: Event):
            return getattr(listener, sub)(event, *extra_args)

        return handler


is_container_type = is_subclass_of(Container)
