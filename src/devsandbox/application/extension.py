"""Wires devsandbox into a host application.

`SandboxExtension` owns one registry, reconciler and lifecycle API. Nothing
is kept in module globals, so several instances can live side by side (one
per host, or one per test).
"""

from typing import Optional

from devsandbox.application.lifecycle import ConnectionLifecycle
from devsandbox.application.progress import ProgressChannel, run_with_progress
from devsandbox.application.reconciler import Reconciler
from devsandbox.application.registry import ConnectionRegistry
from devsandbox.config import SandboxConfig
from devsandbox.domain.events import EventBus
from devsandbox.domain.protocols import Disposable, HostCapabilities
from devsandbox.domain.types import Context
from devsandbox.infrastructure.kubeconfig import KubeconfigStore
from devsandbox.infrastructure.openshift import ReachabilityProber
from devsandbox.logger import get_logger

logger = get_logger("extension")

CREATE_COMMAND = "devsandbox.create"
DELETE_COMMAND = "devsandbox.delete"


class SandboxExtension:
    """Activation/deactivation and user-facing commands."""

    def __init__(
        self,
        host: HostCapabilities,
        config: Optional[SandboxConfig] = None,
        store: Optional[KubeconfigStore] = None,
        prober: Optional[ReachabilityProber] = None,
        event_bus: Optional[EventBus] = None,
    ):
        """
        Build the components for a host.

        Args:
            host: Host capabilities
            config: Timing settings (defaults to SandboxConfig())
            store: Kubeconfig store (defaults to KubeconfigStore())
            prober: Reachability prober (defaults to one using config.probe_timeout)
            event_bus: Bus for connection events (a private one if omitted)
        """
        self.host = host
        self.config = config or SandboxConfig()
        kubeconfig_path = host.get_kubeconfig_path()

        store = store or KubeconfigStore()
        prober = prober or ReachabilityProber(timeout=self.config.probe_timeout)

        self.registry = ConnectionRegistry(host, event_bus=event_bus, kubeconfig_path=kubeconfig_path)
        self.lifecycle = ConnectionLifecycle(self.registry, store, kubeconfig_path)
        self.reconciler = Reconciler(
            self.registry,
            store,
            prober,
            kubeconfig_path,
            interval=self.config.reconcile_interval,
            load_attempts=self.config.load_attempts,
            load_retry_delay=self.config.load_retry_delay,
        )
        self.registry.delete_handler = self.delete_connection

        self._commands: list[Disposable] = []
        self._active = False

    @property
    def is_active(self) -> bool:
        return self._active

    async def activate(self) -> None:
        """Register commands and start reconciling."""
        if self._active:
            logger.warning("Extension already active")
            return

        logger.info("Activating devsandbox")
        self._commands = [
            self.host.register_command(CREATE_COMMAND, self.create_connection),
            self.host.register_command(DELETE_COMMAND, self.delete_connection),
        ]
        self.reconciler.start()
        self._active = True

    async def deactivate(self) -> None:
        """Stop reconciling, drop commands and unregister every connection."""
        if not self._active:
            return

        logger.info("Deactivating devsandbox")
        await self.reconciler.stop()
        for command in self._commands:
            try:
                command.dispose()
            except Exception as e:
                logger.error(f"Error disposing command: {e}")
        self._commands = []
        self.registry.clear()
        self._active = False

    async def create_connection(
        self,
        context_name: str,
        login_command: str,
        namespace: Optional[str] = None,
        set_as_default: bool = False,
    ) -> Context:
        """
        Create a connection from an ``oc login`` command, with progress shown by the host.

        Errors propagate to the caller, which is responsible for showing them.
        """

        async def task(progress: ProgressChannel) -> Context:
            return await self.lifecycle.create_from_login_command(
                context_name,
                login_command,
                namespace=namespace,
                set_as_default=set_as_default,
                progress=progress,
            )

        context = await run_with_progress(self.host, f"Creating sandbox connection '{context_name}'", task)
        self.host.show_message(f"Sandbox connection '{context.name}' created.")
        return context

    async def delete_connection(self, context_name: str) -> bool:
        """Delete a connection, with progress shown by the host."""

        async def task(progress: ProgressChannel) -> bool:
            return await self.lifecycle.delete(context_name, progress=progress)

        removed = await run_with_progress(self.host, f"Deleting sandbox connection '{context_name}'", task)
        if removed:
            self.host.show_message(f"Sandbox connection '{context_name}' deleted.")
        return removed
