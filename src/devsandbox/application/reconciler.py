"""Reconciliation loop keeping the registry in step with the kubeconfig.

Each tick loads the kubeconfig fresh and converges the registry to it:

1. load (retried; a tick whose load keeps failing is skipped entirely)
2. removal pass - unregister connections whose sandbox context is gone, and
   re-register those whose context now points at a different server
3. status pass - probe every remaining connection concurrently
4. addition pass - register new sandbox contexts as UNKNOWN, except names
   that were unregistered elsewhere while the tick was suspended

New connections get their real status on the following tick, which keeps
the latency of a single tick bounded by one round of probes.
"""

import asyncio
from pathlib import Path
from typing import Optional

from devsandbox.application.registry import ConnectionRegistry
from devsandbox.config import SANDBOX_CLUSTER_PREFIX
from devsandbox.domain.errors import ParseError
from devsandbox.domain.events import ConnectionUnregistered
from devsandbox.domain.types import ConnectionStatus, Context, KubeConfig, ProbeResult
from devsandbox.infrastructure.kubeconfig import KubeconfigStore
from devsandbox.infrastructure.openshift import ReachabilityProber
from devsandbox.logger import get_logger

logger = get_logger("reconciler")


def is_sandbox_context(context: Context) -> bool:
    """True when the context points at a cluster this project manages."""
    return context.context.cluster.startswith(SANDBOX_CLUSTER_PREFIX)


def sandbox_contexts(document: KubeConfig) -> dict[str, Context]:
    """Sandbox contexts of a document, keyed by context name."""
    return {context.name: context for context in document.contexts if is_sandbox_context(context)}


class Reconciler:
    """
    Periodically converges a ConnectionRegistry to the kubeconfig on disk.

    The scheduler runs one tick immediately, then waits ``interval`` seconds
    after each tick finishes before starting the next, so ticks never
    overlap. ``stop()`` cancels the pending wait but lets an in-flight tick
    finish. Errors never escape a tick; they are logged.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        store: KubeconfigStore,
        prober: ReachabilityProber,
        kubeconfig_path: Path,
        interval: float = 2.0,
        load_attempts: int = 5,
        load_retry_delay: float = 0.5,
    ):
        """
        Initialize the reconciler.

        Args:
            registry: Registry to converge
            store: Kubeconfig store used to load the document
            prober: Prober used for the status pass
            kubeconfig_path: kubeconfig file to watch
            interval: Seconds between the end of one tick and the start of the next
            load_attempts: Load attempts per tick before the tick is skipped
            load_retry_delay: Seconds between load attempts
        """
        self._registry = registry
        self._store = store
        self._prober = prober
        self._kubeconfig_path = Path(kubeconfig_path)
        self._interval = interval
        self._load_attempts = max(1, load_attempts)
        self._load_retry_delay = load_retry_delay

        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._ticks_applied = 0
        self._ticks_skipped = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def ticks_applied(self) -> int:
        return self._ticks_applied

    @property
    def ticks_skipped(self) -> int:
        return self._ticks_skipped

    def start(self) -> None:
        """Start the scheduler task; the first tick runs right away."""
        if self.is_running:
            logger.warning("Reconciler already running")
            return

        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(self._stop_event))
        logger.info(f"Reconciler started (interval={self._interval}s, kubeconfig={self._kubeconfig_path})")

    async def stop(self) -> None:
        """Stop scheduling ticks and wait for an in-flight tick to complete."""
        if self._task is None:
            return

        logger.info("Stopping reconciler")
        if self._stop_event is not None:
            self._stop_event.set()
        try:
            await self._task
        finally:
            self._task = None
            self._stop_event = None
        logger.info("Reconciler stopped")

    async def _run(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await self.tick()
            except Exception as e:
                # tick() handles its own errors; keep scheduling regardless
                logger.exception(f"Unexpected error in reconciliation tick: {e}")
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
        logger.debug("Reconciler loop exiting")

    async def tick(self) -> bool:
        """
        Run one reconciliation tick.

        Returns:
            True if the registry was reconciled, False if the tick was skipped
        """
        # Names registered before the load; anything registered while the
        # load is in flight (e.g. by a concurrent create) is left alone.
        known_before_load = set(self._registry.names())
        # Names unregistered by someone else (e.g. a concurrent delete) while
        # this tick is suspended; the tick's document is stale for them.
        unregistered: set[str] = set()

        def on_unregistered(event: ConnectionUnregistered) -> None:
            unregistered.add(event.name)

        bus = self._registry.event_bus
        bus.subscribe(ConnectionUnregistered, on_unregistered)
        try:
            document = await self._load_with_retry()
            if document is None:
                self._ticks_skipped += 1
                return False

            contexts = sandbox_contexts(document)
            self._remove_missing(contexts, known_before_load)
            self._follow_server_changes(document, contexts)
            await self._refresh_statuses(document, contexts)
            self._add_new(document, contexts, skip=unregistered)
        except Exception as e:
            logger.error(f"Reconciliation tick failed: {e}")
            self._ticks_skipped += 1
            return False
        finally:
            bus.unsubscribe(ConnectionUnregistered, on_unregistered)

        self._ticks_applied += 1
        return True

    async def _load_with_retry(self) -> Optional[KubeConfig]:
        for attempt in range(1, self._load_attempts + 1):
            try:
                return await self._store.load(self._kubeconfig_path)
            except (ParseError, OSError) as e:
                if attempt == self._load_attempts:
                    logger.error(
                        f"Failed to load kubeconfig after {self._load_attempts} attempts, skipping tick: {e}"
                    )
                    return None
                logger.warning(
                    f"Failed to load kubeconfig (attempt {attempt}/{self._load_attempts}), "
                    f"retrying in {self._load_retry_delay}s: {e}"
                )
                await asyncio.sleep(self._load_retry_delay)
        return None

    def _remove_missing(self, contexts: dict[str, Context], candidates: set[str]) -> None:
        for name in self._registry.names():
            if name in candidates and name not in contexts:
                logger.info(f"Context '{name}' is gone from the kubeconfig")
                self._registry.unregister(name)

    def _follow_server_changes(self, document: KubeConfig, contexts: dict[str, Context]) -> None:
        for name in self._registry.names():
            context = contexts.get(name)
            connection = self._registry.get(name)
            if context is None or connection is None:
                continue
            server = document.get_cluster(context.context.cluster).server
            if server != connection.api_url:
                logger.info(f"Context '{name}' moved from {connection.api_url} to {server}")
                self._registry.unregister(name)
                self._registry.register(name, server, ConnectionStatus.UNKNOWN)

    async def _refresh_statuses(self, document: KubeConfig, contexts: dict[str, Context]) -> None:
        targets = []
        for name in self._registry.names():
            context = contexts.get(name)
            if context is None:
                # registered after this tick's load; next tick will see it
                continue
            cluster = document.get_cluster(context.context.cluster)
            user = document.get_user(context.context.user)
            targets.append((name, cluster, user))

        if not targets:
            return

        results = await asyncio.gather(
            *(
                self._prober.probe(cluster.server, user.token, verify_tls=cluster.verify_tls)
                for _, cluster, user in targets
            ),
            return_exceptions=True,
        )

        for (name, _, _), result in zip(targets, results):
            if isinstance(result, ProbeResult):
                status = result.to_status()
            else:
                logger.error(f"Probe for '{name}' raised: {result}")
                status = ConnectionStatus.UNKNOWN
            self._registry.set_status(name, status)

    def _add_new(self, document: KubeConfig, contexts: dict[str, Context], skip: set[str]) -> None:
        for name, context in contexts.items():
            if name in self._registry:
                continue
            if name in skip:
                logger.debug(f"Context '{name}' was unregistered during this tick, not re-adding")
                continue
            cluster = document.get_cluster(context.context.cluster)
            logger.info(f"New sandbox context '{name}' found in the kubeconfig")
            self._registry.register(name, cluster.server, ConnectionStatus.UNKNOWN)
