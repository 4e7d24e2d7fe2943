"""Create and delete sandbox connections.

Both operations load the kubeconfig fresh, change it in memory and
overwrite the file. They are not serialised against the reconciler; the
registry is updated directly so callers see the result immediately instead
of one tick later.
"""

import uuid
from pathlib import Path
from typing import Callable, Optional

from devsandbox.application.login_command import parse_login_command
from devsandbox.application.progress import ProgressChannel
from devsandbox.application.reconciler import is_sandbox_context
from devsandbox.application.registry import ConnectionRegistry
from devsandbox.config import SANDBOX_CLUSTER_PREFIX, SANDBOX_USER_PREFIX
from devsandbox.domain.errors import DuplicateContextError, ValidationError
from devsandbox.domain.types import ConnectionStatus, Context, KubeConfig
from devsandbox.infrastructure.kubeconfig import KubeconfigStore
from devsandbox.logger import get_logger

logger = get_logger("lifecycle")


def _random_suffix() -> str:
    return uuid.uuid4().hex[:8]


class ConnectionLifecycle:
    """Lifecycle operations invoked by users (commands, CLI, host UI)."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        store: KubeconfigStore,
        kubeconfig_path: Path,
        suffix_factory: Callable[[], str] = _random_suffix,
    ):
        """
        Initialize the lifecycle API.

        Args:
            registry: Registry updated by create/delete
            store: Kubeconfig store
            kubeconfig_path: kubeconfig file to modify
            suffix_factory: Generates the id shared by a cluster/user pair
        """
        self._registry = registry
        self._store = store
        self._kubeconfig_path = Path(kubeconfig_path)
        self._suffix_factory = suffix_factory

    async def create(
        self,
        context_name: str,
        server_url: str,
        token: str,
        namespace: Optional[str] = None,
        set_as_default: bool = False,
        progress: Optional[ProgressChannel] = None,
    ) -> Context:
        """
        Add a sandbox cluster, user and context to the kubeconfig and register it.

        Args:
            context_name: Name of the new context
            server_url: API server URL
            token: Bearer token
            namespace: Default namespace of the context
            set_as_default: Make the new context the current context
            progress: Optional channel for progress events

        Returns:
            The new context entry

        Raises:
            ValidationError: If the context name, server URL or token is missing
            DuplicateContextError: If the context name already exists
            ParseError: If the existing kubeconfig cannot be parsed
        """
        context_name = self._require_context_name(context_name)
        if not server_url or not server_url.strip():
            raise ValidationError("Server URL is required.")
        if not token or not token.strip():
            raise ValidationError("Token is required.")
        server_url = server_url.strip()
        _advance(progress, 10, "Validated connection details")

        document = await self._store.load(self._kubeconfig_path)
        if document.get_context(context_name) is not None:
            raise DuplicateContextError(context_name)

        suffix = self._unused_suffix(document)
        cluster_name = f"{SANDBOX_CLUSTER_PREFIX}{suffix}"
        user_name = f"{SANDBOX_USER_PREFIX}{suffix}"
        document.add_cluster(cluster_name, server_url)
        document.add_user(user_name, token.strip())
        context = document.add_context(context_name, cluster=cluster_name, user=user_name, namespace=namespace or None)
        if set_as_default:
            document.current_context = context_name

        await self._store.save(document, self._kubeconfig_path)
        logger.info(f"Added context '{context_name}' ({cluster_name}, {user_name}) to {self._kubeconfig_path}")
        _advance(progress, 60, "Updated kubeconfig")

        if context_name in self._registry:
            # left over from a context that was removed outside devsandbox
            logger.warning(f"Replacing stale registration for '{context_name}'")
            self._registry.unregister(context_name)
        self._registry.register(context_name, server_url, ConnectionStatus.UNKNOWN)
        _advance(progress, 30, "Registered connection")
        return context

    async def create_from_login_command(
        self,
        context_name: str,
        login_command: str,
        namespace: Optional[str] = None,
        set_as_default: bool = False,
        progress: Optional[ProgressChannel] = None,
    ) -> Context:
        """
        Same as `create`, taking the server URL and token from an ``oc login`` command.

        Raises:
            ValidationError: If the context name is missing or the command lacks --server/--token
        """
        context_name = self._require_context_name(context_name)
        credentials = parse_login_command(login_command)
        return await self.create(
            context_name,
            credentials.server,
            credentials.token,
            namespace=namespace,
            set_as_default=set_as_default,
            progress=progress,
        )

    async def delete(self, context_name: str, progress: Optional[ProgressChannel] = None) -> bool:
        """
        Unregister a connection and remove its context from the kubeconfig.

        The registry entry is removed before the file is written. The context's
        cluster and user go too unless another context still uses them.
        Deleting a name that does not exist changes nothing.

        Returns:
            True if anything was removed

        Raises:
            ValidationError: If the context belongs to a cluster devsandbox does not manage
        """
        unregistered = self._registry.unregister(context_name)
        _advance(progress, 30, "Unregistered connection")

        document = await self._store.load(self._kubeconfig_path)
        context = document.get_context(context_name)
        if context is not None and not is_sandbox_context(context):
            raise ValidationError(f"Context '{context_name}' is not a sandbox context.")
        context = document.remove_context(context_name)
        if context is None:
            logger.debug(f"Context '{context_name}' not in kubeconfig, nothing to delete")
            _advance(progress, 70)
            return unregistered

        cluster_name = context.context.cluster
        user_name = context.context.user
        if not document.is_cluster_referenced(cluster_name):
            document.remove_cluster(cluster_name)
        if not document.is_user_referenced(user_name):
            document.remove_user(user_name)

        await self._store.save(document, self._kubeconfig_path)
        logger.info(f"Removed context '{context_name}' from {self._kubeconfig_path}")
        _advance(progress, 70, "Updated kubeconfig")
        return True

    def _require_context_name(self, context_name: str) -> str:
        if not context_name or not context_name.strip():
            raise ValidationError("Context name is required.")
        return context_name.strip()

    def _unused_suffix(self, document: KubeConfig) -> str:
        while True:
            suffix = self._suffix_factory()
            cluster_taken = document.get_cluster(f"{SANDBOX_CLUSTER_PREFIX}{suffix}") is not None
            user_taken = document.get_user(f"{SANDBOX_USER_PREFIX}{suffix}") is not None
            if not cluster_taken and not user_taken:
                return suffix


def _advance(progress: Optional[ProgressChannel], increment: int, message: Optional[str] = None) -> None:
    if progress is not None:
        progress.advance(increment, message)
