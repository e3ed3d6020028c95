import logging
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Depends, FastAPI, Request, params

from clean_wire.core import Container

logger = logging.getLogger(__name__)


@asynccontextmanager
async def add_container_to_app(app: FastAPI, container: Container):
    """
    Adds a container to the given FastAPI app for the lifetime of the app.

    Args:
        app (FastAPI): The FastAPI app to add the container to.
        container (Container): The container to be added.
    """
    logger.debug("adding container to the fast api app")
    app.state.wire_container = container
    try:
        yield
    finally:
        logger.debug("releasing container from the fast api app")
        del app.state.wire_container


def get_container_from_app(app: FastAPI) -> Container:
    return app.state.wire_container


def get_container(request: Request) -> Container:
    return get_container_from_app(request.app)


def Resolve(  # noqa: N802
    name: str,
    **overrides: Any,
) -> Annotated[Any, params.Depends]:
    """
    Get a service from the clean_wire container, acts as a FastAPI dependency.
    This can be used as a drop in replacement for Depends in FastAPI routes.

    Args:
        name: The name of the service, ``outer/inner`` for services of inner containers.
        **overrides: Build a fresh service extending ``name`` with these keys on every request.

    Returns:
        Annotated[Any, params.Depends]: A dependency getting the named service.
    """

    def resolver(container: Annotated[Container, Depends(get_container)]):
        return container.get(name, **overrides)

    return Depends(resolver)
