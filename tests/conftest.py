"""Shared fixtures and fakes for devsandbox tests."""

import os
import tempfile
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import pytest

# Keep the import-time log file out of the user's home directory
os.environ.setdefault("DEVSANDBOX_HOME", tempfile.mkdtemp(prefix="devsandbox-tests-"))

from devsandbox.domain.protocols import ConnectionDescriptor  # noqa: E402
from devsandbox.domain.types import ProbeResult  # noqa: E402
from devsandbox.infrastructure.kubeconfig import KubeconfigStore  # noqa: E402


class FakeHandle:
    """Disposable that counts how often it was disposed."""

    def __init__(self):
        self.dispose_count = 0

    def dispose(self) -> None:
        self.dispose_count += 1


class FakeHost:
    """Records everything the core asks the host to do."""

    def __init__(self, kubeconfig_path: Path):
        self.kubeconfig_path = kubeconfig_path
        self.descriptors: dict[str, ConnectionDescriptor] = {}
        self.handles: dict[str, list[FakeHandle]] = {}
        self.messages: list[str] = []
        self.progress: list[tuple[str, list[Any]]] = []
        self.commands: dict[str, Callable[..., Awaitable[Any]]] = {}
        self.command_handles: dict[str, FakeHandle] = {}

    def register_connection(self, descriptor: ConnectionDescriptor) -> FakeHandle:
        handle = FakeHandle()
        self.descriptors[descriptor.name] = descriptor
        self.handles.setdefault(descriptor.name, []).append(handle)
        return handle

    def get_kubeconfig_path(self) -> Path:
        return self.kubeconfig_path

    def show_message(self, text: str) -> None:
        self.messages.append(text)

    async def show_progress(self, title, events) -> None:
        collected = []
        async for event in events:
            collected.append(event)
        self.progress.append((title, collected))

    def register_command(self, command_id: str, callback) -> FakeHandle:
        handle = FakeHandle()
        self.commands[command_id] = callback
        self.command_handles[command_id] = handle
        return handle


class FakeProber:
    """Prober answering from a set of reachable server URLs."""

    def __init__(self, reachable: Optional[set[str]] = None):
        self.reachable = set(reachable or ())
        self.calls: list[tuple[str, Optional[str]]] = []

    async def probe(self, server_url: str, token: Optional[str], verify_tls: bool = True) -> ProbeResult:
        self.calls.append((server_url, token))
        if server_url in self.reachable:
            return ProbeResult.REACHABLE
        return ProbeResult.UNREACHABLE


class FlakyStore(KubeconfigStore):
    """Store whose first ``failures`` loads raise OSError."""

    def __init__(self, failures: int):
        self.failures = failures
        self.load_calls = 0

    async def load(self, path):
        self.load_calls += 1
        if self.load_calls <= self.failures:
            raise OSError("kubeconfig is locked")
        return await super().load(path)


def sandbox_entry(context: str, suffix: str, server: str, token: str = "token", namespace: str = "dev") -> dict:
    """Cluster/user/context triple following the sandbox naming convention."""
    return {
        "cluster": {"name": f"sandbox-cluster-{suffix}", "cluster": {"server": server}},
        "user": {"name": f"sandbox-user-{suffix}", "user": {"token": token}},
        "context": {
            "name": context,
            "context": {
                "cluster": f"sandbox-cluster-{suffix}",
                "user": f"sandbox-user-{suffix}",
                "namespace": namespace,
            },
        },
    }


def build_kubeconfig(*entries: dict, current_context: str = "") -> dict:
    """Assemble kubeconfig data from entries made by `sandbox_entry` (or similar)."""
    return {
        "apiVersion": "v1",
        "kind": "Config",
        "clusters": [entry["cluster"] for entry in entries],
        "users": [entry["user"] for entry in entries],
        "contexts": [entry["context"] for entry in entries],
        "current-context": current_context,
        "preferences": {},
    }


def write_kubeconfig(path: Path, data: dict) -> None:
    import yaml

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")


@pytest.fixture
def kubeconfig_path(tmp_path) -> Path:
    """Path of a kubeconfig that does not exist yet."""
    return tmp_path / ".kube" / "config"


@pytest.fixture
def host(kubeconfig_path) -> FakeHost:
    return FakeHost(kubeconfig_path)


@pytest.fixture
def prober() -> FakeProber:
    return FakeProber()


@pytest.fixture
def store() -> KubeconfigStore:
    return KubeconfigStore()
