"""Event types for the event bus system.

Registry changes and progress reporting are published as events so the host
side (CLI, UI) can follow them without the core knowing who is listening.
"""

import time
from dataclasses import dataclass, field
from typing import Optional

from devsandbox.domain.types import ConnectionStatus


@dataclass
class Event:
    """Base class for all events.

    The timestamp field is automatically set when the event is created.
    """

    timestamp: float = field(default_factory=time.time, init=False)
    """Timestamp when the event was created (Unix timestamp)."""


@dataclass
class ConnectionRegistered(Event):
    """Published when a sandbox context gets a registered connection."""

    name: str
    """Context name."""
    api_url: str
    """Server URL of the context's cluster."""
    status: ConnectionStatus = ConnectionStatus.UNKNOWN


@dataclass
class ConnectionStatusChanged(Event):
    """Published when the status of a registered connection changes.

    Attributes:
        name: Context name of the connection
        status: New connection status
        previous_status: Previous connection status
    """

    name: str
    status: ConnectionStatus
    previous_status: Optional[ConnectionStatus] = None


@dataclass
class ConnectionUnregistered(Event):
    """Published after a registered connection was disposed."""

    name: str


@dataclass
class ProgressStarted(Event):
    """First event of a progress channel."""

    title: str


@dataclass
class ProgressAdvanced(Event):
    """A unit of work inside a progress channel completed."""

    increment: int
    """Percentage points to add to the progress bar."""
    message: Optional[str] = None


@dataclass
class ProgressFinished(Event):
    """Terminal event of a progress channel; nothing follows it."""

    error: Optional[str] = None
    """Error message when the task failed, None on success."""

    @property
    def succeeded(self) -> bool:
        return self.error is None
