"""Event system for decoupled component communication.

The registry publishes connection events and the host side subscribes to
them.

Example:
    ```python
    from devsandbox.domain.events import EventBus, ConnectionStatusChanged

    event_bus = EventBus()

    def handle_status(event: ConnectionStatusChanged):
        print(f"{event.name} is {event.status.value}")

    event_bus.subscribe(ConnectionStatusChanged, handle_status)
    ```
"""

from .bus import EventBus
from .types import (
    ConnectionRegistered,
    ConnectionStatusChanged,
    ConnectionUnregistered,
    Event,
    ProgressAdvanced,
    ProgressFinished,
    ProgressStarted,
)

__all__ = [
    "EventBus",
    "Event",
    "ConnectionRegistered",
    "ConnectionStatusChanged",
    "ConnectionUnregistered",
    "ProgressStarted",
    "ProgressAdvanced",
    "ProgressFinished",
]
