"""Capabilities the host application offers to devsandbox.

The core never talks to a UI directly. It registers connections, reads the
kubeconfig location, and reports messages and progress through this
protocol, so a terminal front-end, a desktop plugin or a test fake can all
drive the same reconciler.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterable, Awaitable, Callable, Optional, Protocol, runtime_checkable

from devsandbox.domain.events import Event
from devsandbox.domain.types import ConnectionStatus

__all__ = ["Disposable", "ConnectionDescriptor", "HostCapabilities"]


@runtime_checkable
class Disposable(Protocol):
    """Handle returned by the host; disposing it undoes the registration."""

    def dispose(self) -> None:
        ...


@dataclass
class ConnectionDescriptor:
    """What the host needs to show a sandbox connection.

    ``status`` is a callable rather than a value: the host calls it whenever
    it renders the connection and always gets the registry's latest status.
    ``delete`` is wired to the host's "delete connection" action.
    """

    name: str
    api_url: str
    kubeconfig_path: Path
    status: Callable[[], ConnectionStatus]
    delete: Optional[Callable[[], Awaitable[None]]] = None


class HostCapabilities(Protocol):
    """Protocol for the host application.

    Example implementations:
    - ConsoleHost: terminal front-end used by the ``devsandbox`` CLI
    - FakeHost: records calls in tests
    """

    def register_connection(self, descriptor: ConnectionDescriptor) -> Disposable:
        """Show a connection; the returned handle removes it again."""
        ...

    def get_kubeconfig_path(self) -> Path:
        """Location of the kubeconfig file the host works with."""
        ...

    def show_message(self, text: str) -> None:
        """Display a one-off informational message."""
        ...

    async def show_progress(self, title: str, events: AsyncIterable[Event]) -> None:
        """Render progress events until the terminal ProgressFinished event."""
        ...

    def register_command(self, command_id: str, callback: Callable[..., Awaitable[Any]]) -> Disposable:
        """Expose a command (palette entry, menu item, CLI verb)."""
        ...
