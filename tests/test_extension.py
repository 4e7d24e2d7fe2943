"""Tests for the extension wiring."""

import asyncio

import pytest

from conftest import FakeProber, build_kubeconfig, sandbox_entry, write_kubeconfig
from devsandbox.application.extension import CREATE_COMMAND, DELETE_COMMAND, SandboxExtension
from devsandbox.config import SandboxConfig
from devsandbox.domain.errors import DuplicateContextError
from devsandbox.domain.events import ProgressFinished, ProgressStarted
from devsandbox.domain.types import ConnectionStatus


@pytest.fixture
def config(kubeconfig_path):
    return SandboxConfig(reconcile_interval=0.01, load_retry_delay=0, kubeconfig_path=kubeconfig_path)


@pytest.fixture
def extension(host, config):
    return SandboxExtension(host, config=config, prober=FakeProber(reachable={"https://h1"}))


class TestActivation:
    """Tests for activate/deactivate."""

    @pytest.mark.asyncio
    async def test_activate_registers_commands(self, extension, host):
        await extension.activate()

        assert set(host.commands) == {CREATE_COMMAND, DELETE_COMMAND}
        assert extension.is_active
        assert extension.reconciler.is_running
        await extension.deactivate()

    @pytest.mark.asyncio
    async def test_activation_reconciles(self, extension, host, kubeconfig_path):
        """Existing sandbox contexts show up shortly after activation."""
        write_kubeconfig(kubeconfig_path, build_kubeconfig(sandbox_entry("ctx1", "ab12", "https://h1")))

        await extension.activate()
        await asyncio.sleep(0.1)

        assert host.descriptors["ctx1"].status() is ConnectionStatus.STARTED
        await extension.deactivate()

    @pytest.mark.asyncio
    async def test_deactivate_disposes_everything(self, extension, host, kubeconfig_path):
        write_kubeconfig(kubeconfig_path, build_kubeconfig(sandbox_entry("ctx1", "ab12", "https://h1")))
        await extension.activate()
        await asyncio.sleep(0.05)

        await extension.deactivate()

        assert not extension.is_active
        assert not extension.reconciler.is_running
        assert all(handle.dispose_count == 1 for handle in host.command_handles.values())
        assert host.handles["ctx1"][0].dispose_count == 1
        assert len(extension.registry) == 0

    @pytest.mark.asyncio
    async def test_activate_twice(self, extension, host):
        await extension.activate()
        handles = dict(host.command_handles)

        await extension.activate()

        assert host.command_handles == handles
        await extension.deactivate()

    @pytest.mark.asyncio
    async def test_deactivate_when_inactive(self, extension):
        await extension.deactivate()

        assert not extension.is_active

    def test_instances_are_independent(self, host, config):
        """Nothing is shared between extension instances."""
        first = SandboxExtension(host, config=config)
        second = SandboxExtension(host, config=config)

        first.registry.register("ctx1", "https://h1")

        assert "ctx1" not in second.registry


class TestCommands:
    """Tests for create_connection/delete_connection."""

    @pytest.mark.asyncio
    async def test_create_connection(self, extension, host):
        """Create shows progress, then a confirmation message."""
        context = await extension.create_connection(
            "ctx1", "oc login --token=abc --server=https://h1", namespace="dev"
        )

        assert context.name == "ctx1"
        assert "ctx1" in extension.registry
        title, events = host.progress[0]
        assert "ctx1" in title
        assert isinstance(events[0], ProgressStarted)
        assert isinstance(events[-1], ProgressFinished)
        assert events[-1].succeeded
        assert host.messages == ["Sandbox connection 'ctx1' created."]

    @pytest.mark.asyncio
    async def test_create_connection_failure(self, extension, host, kubeconfig_path):
        """Errors propagate and the progress stream still finishes."""
        write_kubeconfig(kubeconfig_path, build_kubeconfig(sandbox_entry("ctx1", "ab12", "https://h1")))

        with pytest.raises(DuplicateContextError):
            await extension.create_connection("ctx1", "oc login --token=abc --server=https://h1")

        _, events = host.progress[0]
        assert events[-1].error == "Context 'ctx1' already exists."
        assert host.messages == []

    @pytest.mark.asyncio
    async def test_commands_through_host(self, extension, host, kubeconfig_path):
        """The registered commands create and delete connections."""
        await extension.activate()

        await host.commands[CREATE_COMMAND]("ctx1", "oc login --token=abc --server=https://h1")
        assert "ctx1" in extension.registry

        assert await host.commands[DELETE_COMMAND]("ctx1") is True
        assert "ctx1" not in extension.registry
        await extension.deactivate()

    @pytest.mark.asyncio
    async def test_descriptor_delete_action(self, extension, host, store, kubeconfig_path):
        """Deleting from the host's connection view removes the context."""
        write_kubeconfig(kubeconfig_path, build_kubeconfig(sandbox_entry("ctx1", "ab12", "https://h1")))
        await extension.reconciler.tick()

        await host.descriptors["ctx1"].delete()

        document = await store.load(kubeconfig_path)
        assert document.contexts == []
        assert "ctx1" not in extension.registry
        assert host.messages == ["Sandbox connection 'ctx1' deleted."]

    @pytest.mark.asyncio
    async def test_delete_missing(self, extension, host):
        """Deleting an unknown name shows no confirmation."""
        assert await extension.delete_connection("missing") is False

        assert host.messages == []
