from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(kw_only=True)
class Event:
    name: str = ""
    emitter: Any = None
    is_stopped: bool = field(default=False, init=False)

    def stop(self):
        """Do not call any further listeners for this event."""
        self.is_stopped = True


@dataclass(kw_only=True)
class ConfigureServiceEvent(Event):
    service_name: str
    config: dict[str, Any]


@dataclass(kw_only=True)
class BuildServiceEvent(Event):
    service_name: str
    service: Any


EventHandler = Callable[[Event], Any]


class Emitter:
    """
    Lets other objects subscribe to named events.
    Services must inherit from this to be configured with an ``on`` block.
    """

    @property
    def _event_listeners(self) -> defaultdict[str, list[EventHandler]]:
        listeners = self.__dict__.get("_listeners_by_event")
        if listeners is None:
            listeners = self.__dict__["_listeners_by_event"] = defaultdict(list)
        return listeners

    def on(self, event_name: str, handler: EventHandler) -> Callable[[], None]:
        """
        Subscribe ``handler`` to ``event_name``.

        Returns:
            Callable[[], None]: Removes this subscription when called.
        """
        self._event_listeners[event_name].append(handler)

        def unsubscribe():
            self.un(event_name, handler)

        return unsubscribe

    def un(self, event_name: str, handler: EventHandler | None = None):
        listeners = self._event_listeners
        if handler is None:
            listeners.pop(event_name, None)
        elif handler in listeners[event_name]:
            listeners[event_name].remove(handler)

    def emit(self, event_name: str, event: Event | None = None) -> Event:
        event = event if event is not None else Event()
        event.name = event_name
        if event.emitter is None:
            event.emitter = self
        for handler in list(self._event_listeners.get(event_name, ())):
            handler(event)
            if event.is_stopped:
                logger.debug(f"event {event_name} stopped by {handler}")
                break
        return event
