from .core import Resolve, add_container_to_app, get_container, get_container_from_app

__all__ = ["Resolve", "add_container_to_app", "get_container", "get_container_from_app"]
