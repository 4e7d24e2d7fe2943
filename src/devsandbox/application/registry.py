"""Registry of sandbox connections shown by the host.

The registry is the only component that registers and disposes connection
handles with the host. Each entry moves through

    absent -> unknown <-> started -> absent

where ``absent`` is terminal for that handle (a later registration under the
same name creates a new handle).
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Optional

from devsandbox.domain.errors import AlreadyRegisteredError
from devsandbox.domain.events import (
    ConnectionRegistered,
    ConnectionStatusChanged,
    ConnectionUnregistered,
    EventBus,
)
from devsandbox.domain.protocols import ConnectionDescriptor, Disposable, HostCapabilities
from devsandbox.domain.types import ConnectionStatus
from devsandbox.logger import get_logger

logger = get_logger("registry")

DeleteHandler = Callable[[str], Awaitable[object]]


@dataclass
class RegisteredConnection:
    """A connection currently registered with the host."""

    name: str
    api_url: str
    handle: Disposable
    status: ConnectionStatus = ConnectionStatus.UNKNOWN


class ConnectionRegistry:
    """In-memory map from context name to registered connection."""

    def __init__(
        self,
        host: HostCapabilities,
        event_bus: Optional[EventBus] = None,
        kubeconfig_path: Optional[Path] = None,
    ):
        """
        Initialize the registry.

        Args:
            host: Host that receives the connection descriptors
            event_bus: Bus for registration and status events (a private one if omitted)
            kubeconfig_path: Path advertised in descriptors (defaults to the host's)
        """
        self._host = host
        self._event_bus = event_bus or EventBus()
        self._kubeconfig_path = kubeconfig_path
        self._connections: dict[str, RegisteredConnection] = {}
        self.delete_handler: Optional[DeleteHandler] = None
        """Called when the host asks to delete a connection (set by the extension)."""

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    def __contains__(self, name: object) -> bool:
        return name in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    def names(self) -> list[str]:
        """Names of all registered connections, in registration order."""
        return list(self._connections)

    def get(self, name: str) -> Optional[RegisteredConnection]:
        return self._connections.get(name)

    def status(self, name: str) -> ConnectionStatus:
        """Latest status of a connection; UNKNOWN once it is gone."""
        connection = self._connections.get(name)
        return connection.status if connection else ConnectionStatus.UNKNOWN

    def register(
        self,
        name: str,
        api_url: str,
        status: ConnectionStatus = ConnectionStatus.UNKNOWN,
    ) -> Disposable:
        """
        Register a connection with the host.

        Args:
            name: Context name
            api_url: Server URL of the context's cluster
            status: Initial status

        Returns:
            The host's handle for the connection

        Raises:
            AlreadyRegisteredError: If the name is already registered
        """
        if name in self._connections:
            raise AlreadyRegisteredError(name)

        descriptor = ConnectionDescriptor(
            name=name,
            api_url=api_url,
            kubeconfig_path=self._kubeconfig_path or self._host.get_kubeconfig_path(),
            status=lambda: self.status(name),
            delete=self._delete_callback(name),
        )
        handle = self._host.register_connection(descriptor)
        self._connections[name] = RegisteredConnection(name=name, api_url=api_url, handle=handle, status=status)

        logger.info(f"Registered connection '{name}' ({api_url}) as {status.value}")
        self._event_bus.publish(ConnectionRegistered(name=name, api_url=api_url, status=status))
        return handle

    def set_status(self, name: str, status: ConnectionStatus) -> None:
        """Update the status of a connection; ignored if it is not registered."""
        connection = self._connections.get(name)
        if connection is None:
            logger.debug(f"Status update for unregistered connection '{name}' ignored")
            return

        previous = connection.status
        connection.status = status
        if previous != status:
            logger.info(f"Connection '{name}': {previous.value} -> {status.value}")
            self._event_bus.publish(ConnectionStatusChanged(name=name, status=status, previous_status=previous))

    def unregister(self, name: str) -> bool:
        """
        Dispose a connection's handle and forget it.

        Returns:
            True if the connection was registered, False if there was nothing to do
        """
        connection = self._connections.pop(name, None)
        if connection is None:
            return False

        try:
            connection.handle.dispose()
        except Exception as e:
            logger.error(f"Error disposing connection '{name}': {e}")

        logger.info(f"Unregistered connection '{name}'")
        self._event_bus.publish(ConnectionUnregistered(name=name))
        return True

    def clear(self) -> None:
        """Unregister every connection."""
        for name in self.names():
            self.unregister(name)

    def _delete_callback(self, name: str) -> Callable[[], Awaitable[None]]:
        async def delete() -> None:
            if self.delete_handler is None:
                logger.warning(f"No delete handler configured, cannot delete '{name}'")
                return
            await self.delete_handler(name)

        return delete
