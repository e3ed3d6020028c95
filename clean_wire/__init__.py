"""Configuration driven dependency injection container."""

from .args import ArgKind, ArgSpec
from .core import ANONYMOUS, PATH_ENV_VAR, Container, Lifecycle, is_container_type
from .events import BuildServiceEvent, ConfigureServiceEvent, Emitter, Event
from .exceptions import (
    CircularReferenceError,
    ConfigError,
    ConstructorError,
    InvalidConfigError,
    NotFoundError,
    WireError,
)
from .meta import MetaKeys
from .service import NamedService
from .utils import DEPRECATIONS, DeprecationSink

__all__ = [
    "ANONYMOUS",
    "PATH_ENV_VAR",
    "ArgKind",
    "ArgSpec",
    "BuildServiceEvent",
    "CircularReferenceError",
    "ConfigError",
    "ConfigureServiceEvent",
    "ConstructorError",
    "Container",
    "DEPRECATIONS",
    "DeprecationSink",
    "Emitter",
    "Event",
    "InvalidConfigError",
    "Lifecycle",
    "MetaKeys",
    "NamedService",
    "NotFoundError",
    "WireError",
    "is_container_type",
]
