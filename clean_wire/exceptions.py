from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class WireError(Exception):
    """Base class for every error raised by the container."""


def _in_file(file: str | Path | None) -> str:
    return f" in file '{file}'" if file else ""


class ConstructorError(WireError):
    def __init__(self, attr: str, error: str):
        self.attr = attr
        self.error = error
        super().__init__(str(self))

    def __str__(self):
        return f"Could not create container: {self.attr}: {self.error}"


class NotFoundError(WireError):
    def __init__(self, name: str, file: str | Path | None = None):
        self.name = name
        self.file = file
        super().__init__(str(self))

    def __str__(self):
        return f"Service '{self.name}' not found{_in_file(self.file)}"


class InvalidConfigError(WireError):
    def __init__(self, name: str, error: str, file: str | Path | None = None):
        self.name = name
        self.error = error
        self.file = file
        super().__init__(str(self))

    def __str__(self):
        return f"Invalid config for service '{self.name}'{_in_file(self.file)}: {self.error}"


class ConfigError(WireError):
    def __init__(self, file: str | Path | None, error: str):
        self.file = file
        self.error = error
        super().__init__(str(self))

    def __str__(self):
        return f"Could not load config{_in_file(self.file)}: {self.error}"


class CircularReferenceError(WireError):
    def __init__(self, chain: Sequence[str], file: str | Path | None = None):
        self.chain = list(chain)
        self.file = file
        super().__init__(str(self))

    @staticmethod
    def print_step(name: str):
        width = len(name)
        top_border = "┌" + "─" * (width + 2) + "┐"
        bottom_border = "└" + "─" * (width + 2) + "┘"
        return f"{top_border}\n│ {name} │\n{bottom_border}"

    @property
    def message(self):
        return f"Service '{self.chain[0]}' depends on itself{_in_file(self.file)}"

    @property
    def reference_chain(self):
        arrow = "↓\n"
        return arrow.join(f"{CircularReferenceError.print_step(name)}\n" for name in self.chain)

    def __str__(self):
        return f"\n{self.message}\n\nReference chain:\n{self.reference_chain}"
