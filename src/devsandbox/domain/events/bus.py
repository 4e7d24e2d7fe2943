"""Event bus used by the registry to announce connection changes.

Handler contract:
    Handlers MUST be synchronous. The bus runs on the reconciler's event
    loop, between suspension points, so a handler that needs to do I/O
    schedules it with asyncio.create_task() instead of awaiting it.
"""

import asyncio
from typing import Callable, Type, TypeVar

from devsandbox.logger import get_logger

from .types import Event

logger = get_logger("events.bus")

T = TypeVar("T", bound=Event)

EventHandler = Callable[[Event], None]


class EventBus:
    """Publish/subscribe by event type.

    Example:
        ```python
        bus = EventBus()
        bus.subscribe(ConnectionUnregistered, lambda e: print(f"{e.name} removed"))
        bus.publish(ConnectionUnregistered(name="ctx1"))
        ```

    Not thread-safe: publishers and subscribers share one event loop.
    """

    def __init__(self):
        self._handlers: dict[Type[Event], list[EventHandler]] = {}

    def subscribe(self, event_type: Type[T], handler: Callable[[T], None]) -> None:
        """
        Register a handler for one event type.

        Subscribing the same handler twice is a no-op.

        Raises:
            TypeError: If handler is a coroutine function
        """
        if asyncio.iscoroutinefunction(handler):
            raise TypeError(
                f"Event handlers must be synchronous functions, got coroutine function "
                f"{getattr(handler, '__name__', handler)!r}. Schedule async work with asyncio.create_task()."
            )

        handlers = self._handlers.setdefault(event_type, [])
        if handler in handlers:
            logger.debug(f"Handler already subscribed for {event_type.__name__}, skipping")
            return
        handlers.append(handler)  # type: ignore[arg-type]
        logger.debug(f"Subscribed handler for {event_type.__name__}")

    def unsubscribe(self, event_type: Type[T], handler: Callable[[T], None]) -> None:
        """Remove a handler; unknown handlers are ignored."""
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)  # type: ignore[arg-type]
            logger.debug(f"Unsubscribed handler for {event_type.__name__}")

    def publish(self, event: Event) -> None:
        """
        Deliver an event to the handlers of its exact type, in subscription order.

        A failing handler is logged and does not stop delivery to the others.
        """
        event_type = type(event)
        handlers = list(self._handlers.get(event_type, []))
        if not handlers:
            return

        logger.debug(f"Publishing {event_type.__name__} to {len(handlers)} handler(s)")
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event_type.__name__}: {e}")

    def has_subscribers(self, event_type: Type[Event]) -> bool:
        return bool(self._handlers.get(event_type))

    def clear(self) -> None:
        """Drop every subscription."""
        self._handlers.clear()
