"""Reading config files, importing types by name and composing roles onto types."""

from __future__ import annotations

import importlib
import json
import logging
import types
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError

logger = logging.getLogger(__name__)


def _load_yaml(file: Path) -> Any:
    with open(file, encoding="utf-8") as f:
        return yaml.safe_load(f)


def _load_json(file: Path) -> Any:
    with open(file, encoding="utf-8") as f:
        return json.load(f)


CONFIG_LOADERS: dict[str, Callable[[Path], Any]] = {
    ".yml": _load_yaml,
    ".yaml": _load_yaml,
    ".json": _load_json,
}


def load_config(file: str | Path) -> Any:
    """
    Load a configuration file into plain mappings, lists and scalars.

    Args:
        file: A ``.yml``, ``.yaml`` or ``.json`` file.

    Raises:
        ConfigError: The file is missing, has an unknown extension, or does not parse.
    """
    file = Path(file)
    loader = CONFIG_LOADERS.get(file.suffix.lower())
    if loader is None:
        raise ConfigError(file, f"unsupported configuration file format '{file.suffix}'")
    if not file.is_file():
        raise ConfigError(file, "file does not exist")

    logger.debug(f"loading config file {file}")
    try:
        return loader(file)
    except (yaml.YAMLError, json.JSONDecodeError, UnicodeDecodeError) as ex:
        raise ConfigError(file, str(ex)) from ex


def load_type(name: str | Callable) -> Callable:
    """
    Find a type (or any other callable) from its import path.
    ``package.module.Name`` and ``package.module:Name.Inner`` are both accepted,
    a type or callable is returned as it is.
    """
    if not isinstance(name, str):
        if not callable(name):
            raise TypeError(f"Expected a type or an import path, got {name!r}")
        return name

    if ":" in name:
        module_name, _, attr_path = name.partition(":")
    else:
        module_name, _, attr_path = name.rpartition(".")
    if not module_name or not attr_path:
        raise ImportError(f"Cannot import '{name}': expected 'module.Name' or 'module:Name'")

    try:
        target: Any = importlib.import_module(module_name)
        for attr in attr_path.split("."):
            target = getattr(target, attr)
    except (ImportError, AttributeError) as ex:
        raise ImportError(f"Cannot import '{name}': {ex}") from ex

    if not callable(target):
        raise TypeError(f"'{name}' is not a type or callable")
    return target


def compose_type(base: type, roles: Sequence[type]) -> type:
    if not roles:
        return base
    return types.new_class(
        f"__With__{base.__name__}",
        (base, *roles),
        {},
    )
