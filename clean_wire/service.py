from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .core import Container


class NamedService:
    """
    Services inheriting from this are told their own name and the container that built them.
    The container passes them as the ``name`` and ``container`` keyword arguments.
    """

    name: str
    container: Container

    def __init__(self, *args: Any, name: str, container: Container, **kwargs: Any):
        self.name = name
        self.container = container
        super().__init__(*args, **kwargs)
