"""Domain protocols - interfaces implemented outside the core."""

from devsandbox.domain.protocols.host import ConnectionDescriptor, Disposable, HostCapabilities

__all__ = [
    "ConnectionDescriptor",
    "Disposable",
    "HostCapabilities",
]
