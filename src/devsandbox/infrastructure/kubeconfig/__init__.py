"""Kubeconfig file access."""

from devsandbox.infrastructure.kubeconfig.store import KubeconfigStore, dump_document, load_document

__all__ = ["KubeconfigStore", "dump_document", "load_document"]
