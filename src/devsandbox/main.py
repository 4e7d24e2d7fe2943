import asyncio
from pathlib import Path
from typing import Optional

import typer

from devsandbox.application.extension import SandboxExtension
from devsandbox.config import SandboxConfig
from devsandbox.domain.errors import SandboxError
from devsandbox.domain.events import ConnectionRegistered, ConnectionStatusChanged, ConnectionUnregistered
from devsandbox.logger import get_logger, setup_logger
from devsandbox.presentation import ConsoleHost

logger = get_logger("main")

cli = typer.Typer(
    name="devsandbox",
    help="Keep Developer Sandbox cluster connections in sync with your kubeconfig",
    epilog="""
    Examples:
    $ devsandbox create my-sandbox --login-command "oc login --token=sha256~... --server=https://api.sandbox.example.com:6443"
    $ devsandbox watch
    """,
    add_completion=False,
)


class _State:
    config: SandboxConfig = SandboxConfig()


state = _State()


@cli.callback()
def configure(
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging on stderr"),
    kubeconfig: Optional[Path] = typer.Option(None, "--kubeconfig", help="kubeconfig file to manage"),
):
    """Load configuration and set up logging."""
    config = SandboxConfig.from_env()
    if kubeconfig is not None:
        config.kubeconfig_path = kubeconfig.expanduser()
    if debug:
        config.log_level = "DEBUG"
    setup_logger(log_file=config.log_file, log_level=config.log_level, console_output=debug)
    state.config = config


def _build() -> tuple[ConsoleHost, SandboxExtension]:
    host = ConsoleHost(state.config.kubeconfig_path)
    return host, SandboxExtension(host, config=state.config)


def _fail(error: Exception) -> None:
    typer.secho(f"❌ {error}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@cli.command()
def watch():
    """Reconcile continuously and print connection changes until interrupted."""
    host, extension = _build()

    def on_registered(event: ConnectionRegistered) -> None:
        host.show_message(f"[cyan]+[/cyan] {event.name} ({event.api_url})")

    def on_status(event: ConnectionStatusChanged) -> None:
        host.show_message(f"[yellow]~[/yellow] {event.name}: {event.status.value}")

    def on_unregistered(event: ConnectionUnregistered) -> None:
        host.show_message(f"[red]-[/red] {event.name}")

    bus = extension.registry.event_bus
    bus.subscribe(ConnectionRegistered, on_registered)
    bus.subscribe(ConnectionStatusChanged, on_status)
    bus.subscribe(ConnectionUnregistered, on_unregistered)

    async def run_forever() -> None:
        await extension.activate()
        try:
            await asyncio.Event().wait()
        finally:
            await extension.deactivate()

    host.show_message(f"Watching {state.config.kubeconfig_path} (Ctrl-C to stop)")
    try:
        asyncio.run(run_forever())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")


@cli.command()
def status():
    """Show sandbox connections and whether their clusters answer."""
    host, extension = _build()

    async def reconcile_twice() -> bool:
        # the first tick registers, the second probes
        first = await extension.reconciler.tick()
        second = await extension.reconciler.tick()
        return first and second

    if not asyncio.run(reconcile_twice()):
        _fail(SandboxError(f"Could not read {state.config.kubeconfig_path}, see the log for details"))
    host.console.print(host.render_connections())


@cli.command()
def create(
    context_name: str = typer.Argument(..., help="Name of the new kubeconfig context"),
    login_command: str = typer.Option(..., "--login-command", "-l", help="'oc login --server=... --token=...' command"),
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Default namespace for the context"),
    set_as_default: bool = typer.Option(False, "--default", help="Make it the current context"),
):
    """Add a sandbox context to the kubeconfig."""
    host, extension = _build()

    try:
        asyncio.run(
            extension.create_connection(
                context_name,
                login_command,
                namespace=namespace,
                set_as_default=set_as_default,
            )
        )
    except SandboxError as e:
        _fail(e)


@cli.command()
def delete(context_name: str = typer.Argument(..., help="Context to remove")):
    """Remove a sandbox context from the kubeconfig."""
    host, extension = _build()

    try:
        removed = asyncio.run(extension.delete_connection(context_name))
    except SandboxError as e:
        _fail(e)
        return
    if not removed:
        host.show_message(f"No context named '{context_name}'.")


def run():
    """Entry point for the devsandbox CLI."""
    cli()


if __name__ == "__main__":
    run()
