"""Connection-related domain types."""

from enum import Enum

__all__ = ["ConnectionStatus", "ProbeResult"]


class ConnectionStatus(Enum):
    """Status reported for a registered sandbox connection."""

    STARTED = "started"
    UNKNOWN = "unknown"


class ProbeResult(Enum):
    """Outcome of a single reachability probe."""

    REACHABLE = "reachable"
    UNREACHABLE = "unreachable"

    def to_status(self) -> ConnectionStatus:
        """Map the probe outcome onto a connection status."""
        if self is ProbeResult.REACHABLE:
            return ConnectionStatus.STARTED
        return ConnectionStatus.UNKNOWN
