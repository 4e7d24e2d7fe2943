"""Terminal implementation of the host capabilities, rendered with rich."""

from pathlib import Path
from typing import Any, AsyncIterable, Awaitable, Callable, Optional

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from devsandbox.domain.events import Event, ProgressAdvanced, ProgressFinished
from devsandbox.domain.protocols import ConnectionDescriptor
from devsandbox.domain.types import ConnectionStatus
from devsandbox.logger import get_logger

logger = get_logger("console_host")

STATUS_STYLES = {
    ConnectionStatus.STARTED: "green",
    ConnectionStatus.UNKNOWN: "yellow",
}


class _Handle:
    """Disposable that runs a callback once."""

    def __init__(self, on_dispose: Callable[[], None]):
        self._on_dispose: Optional[Callable[[], None]] = on_dispose

    def dispose(self) -> None:
        if self._on_dispose is not None:
            on_dispose, self._on_dispose = self._on_dispose, None
            on_dispose()


class ConsoleHost:
    """Host for the ``devsandbox`` CLI.

    Connections are kept in a dict and rendered as a table on demand;
    commands are kept so the CLI can invoke them by id.
    """

    def __init__(self, kubeconfig_path: Path, console: Optional[Console] = None):
        self._kubeconfig_path = Path(kubeconfig_path)
        self.console = console or Console()
        self._connections: dict[str, ConnectionDescriptor] = {}
        self._commands: dict[str, Callable[..., Awaitable[Any]]] = {}

    # HostCapabilities

    def register_connection(self, descriptor: ConnectionDescriptor) -> _Handle:
        self._connections[descriptor.name] = descriptor
        logger.debug(f"Host registered connection '{descriptor.name}'")

        def remove() -> None:
            if self._connections.get(descriptor.name) is descriptor:
                del self._connections[descriptor.name]

        return _Handle(remove)

    def get_kubeconfig_path(self) -> Path:
        return self._kubeconfig_path

    def show_message(self, text: str) -> None:
        self.console.print(text)

    async def show_progress(self, title: str, events: AsyncIterable[Event]) -> None:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            console=self.console,
            transient=True,
        ) as progress:
            task_id = progress.add_task(title, total=100)
            async for event in events:
                if isinstance(event, ProgressAdvanced):
                    description = f"{title}: {event.message}" if event.message else title
                    progress.update(task_id, advance=event.increment, description=description)
                elif isinstance(event, ProgressFinished):
                    progress.update(task_id, completed=100)
                    if event.error:
                        logger.debug(f"Progress '{title}' finished with error: {event.error}")

    def register_command(self, command_id: str, callback: Callable[..., Awaitable[Any]]) -> _Handle:
        self._commands[command_id] = callback

        def remove() -> None:
            self._commands.pop(command_id, None)

        return _Handle(remove)

    # CLI helpers

    @property
    def connections(self) -> list[ConnectionDescriptor]:
        return list(self._connections.values())

    async def execute_command(self, command_id: str, *args: Any, **kwargs: Any) -> Any:
        """Invoke a registered command.

        Raises:
            KeyError: If no command with that id is registered
        """
        callback = self._commands[command_id]
        return await callback(*args, **kwargs)

    def render_connections(self) -> Table:
        table = Table(title=f"Sandbox connections ({self._kubeconfig_path})")
        table.add_column("Context", style="cyan")
        table.add_column("API URL")
        table.add_column("Status")
        for descriptor in self.connections:
            status = descriptor.status()
            style = STATUS_STYLES.get(status, "white")
            table.add_row(descriptor.name, descriptor.api_url, f"[{style}]{status.value}[/{style}]")
        return table
