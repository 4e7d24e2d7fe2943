"""Shared domain types."""

from devsandbox.domain.types.connection import ConnectionStatus, ProbeResult
from devsandbox.domain.types.kubeconfig import (
    Cluster,
    ClusterInfo,
    Context,
    ContextInfo,
    KubeConfig,
    User,
    UserInfo,
)

__all__ = [
    "ConnectionStatus",
    "ProbeResult",
    "Cluster",
    "ClusterInfo",
    "Context",
    "ContextInfo",
    "KubeConfig",
    "User",
    "UserInfo",
]
