"""Tests for the kubeconfig store."""

import pytest
import yaml

from conftest import build_kubeconfig, sandbox_entry, write_kubeconfig
from devsandbox.domain.errors import ParseError
from devsandbox.domain.types import KubeConfig
from devsandbox.infrastructure.kubeconfig import KubeconfigStore, dump_document, load_document


class TestLoadDocument:
    """Tests for parsing kubeconfig text."""

    def test_blank_text_is_empty_document(self):
        """Blank files load as an empty document."""
        document = load_document("")

        assert document.clusters == []
        assert document.users == []
        assert document.contexts == []
        assert document.current_context == ""

    def test_null_collections(self):
        """kubectl's 'clusters: null' style is accepted."""
        document = load_document("apiVersion: v1\nkind: Config\nclusters: null\nusers: null\ncontexts: null\n")

        assert document.contexts == []

    def test_parses_entries(self):
        """Clusters, users and contexts are read with kubeconfig field names."""
        data = build_kubeconfig(sandbox_entry("ctx1", "ab12", "https://api.example.com:6443", token="t0k"), current_context="ctx1")
        data["clusters"][0]["cluster"]["insecure-skip-tls-verify"] = True

        document = load_document(yaml.safe_dump(data))

        cluster = document.get_cluster("sandbox-cluster-ab12")
        assert cluster.server == "https://api.example.com:6443"
        assert cluster.verify_tls is False
        assert document.get_user("sandbox-user-ab12").token == "t0k"
        context = document.get_context("ctx1")
        assert context.context.cluster == "sandbox-cluster-ab12"
        assert context.context.namespace == "dev"
        assert document.current_context == "ctx1"

    def test_invalid_yaml(self):
        """Malformed YAML raises ParseError."""
        with pytest.raises(ParseError):
            load_document("clusters: [unclosed")

    def test_top_level_must_be_mapping(self):
        """A YAML list is not a kubeconfig."""
        with pytest.raises(ParseError, match="mapping"):
            load_document("- a\n- b\n")

    def test_schema_mismatch(self):
        """A cluster without a server is rejected."""
        with pytest.raises(ParseError):
            load_document("clusters:\n- name: c1\n  cluster: {}\n")

    def test_dangling_cluster_reference(self):
        """Contexts pointing at missing clusters are rejected at load time."""
        data = build_kubeconfig(sandbox_entry("ctx1", "ab12", "https://h"))
        data["clusters"] = []

        with pytest.raises(ParseError, match="unknown cluster"):
            load_document(yaml.safe_dump(data))

    def test_dangling_user_reference(self):
        """Contexts pointing at missing users are rejected at load time."""
        data = build_kubeconfig(sandbox_entry("ctx1", "ab12", "https://h"))
        data["users"] = []

        with pytest.raises(ParseError, match="unknown user"):
            load_document(yaml.safe_dump(data))

    def test_duplicate_context_names(self):
        """Context names must be unique."""
        data = build_kubeconfig(sandbox_entry("ctx1", "ab12", "https://h"), sandbox_entry("ctx1", "cd34", "https://h2"))

        with pytest.raises(ParseError, match="duplicate context"):
            load_document(yaml.safe_dump(data))


class TestDumpDocument:
    """Tests for serialising documents."""

    def test_uses_kubeconfig_field_names(self):
        """Output follows the kubeconfig schema."""
        document = KubeConfig()
        document.add_cluster("sandbox-cluster-ab12", "https://h", skip_tls_verify=True)
        document.add_user("sandbox-user-ab12", "abc")
        document.add_context("ctx1", cluster="sandbox-cluster-ab12", user="sandbox-user-ab12", namespace="ns")
        document.current_context = "ctx1"

        data = yaml.safe_load(dump_document(document))

        assert data["apiVersion"] == "v1"
        assert data["kind"] == "Config"
        assert data["current-context"] == "ctx1"
        assert data["clusters"] == [
            {"name": "sandbox-cluster-ab12", "cluster": {"server": "https://h", "insecure-skip-tls-verify": True}}
        ]
        assert data["users"] == [{"name": "sandbox-user-ab12", "user": {"token": "abc"}}]
        assert data["contexts"] == [
            {"name": "ctx1", "context": {"cluster": "sandbox-cluster-ab12", "user": "sandbox-user-ab12", "namespace": "ns"}}
        ]

    def test_round_trip(self):
        """save(load(save(D))) equals save(D)."""
        data = build_kubeconfig(
            sandbox_entry("ctx1", "ab12", "https://h1"),
            sandbox_entry("ctx2", "cd34", "https://h2", namespace="other"),
            current_context="ctx2",
        )
        document = load_document(yaml.safe_dump(data))

        first = dump_document(document)
        second = dump_document(load_document(first))

        assert first == second
        assert load_document(second) == document

    def test_preserves_unknown_fields(self):
        """Fields written by other tools survive a load/save cycle."""
        data = {
            "apiVersion": "v1",
            "kind": "Config",
            "clusters": [
                {
                    "name": "kind-local",
                    "cluster": {"server": "https://127.0.0.1:6443", "certificate-authority-data": "Q0E="},
                }
            ],
            "users": [{"name": "kind-user", "user": {"client-certificate-data": "Q0VSVA==", "client-key-data": "S0VZ"}}],
            "contexts": [{"name": "kind", "context": {"cluster": "kind-local", "user": "kind-user"}}],
            "current-context": "kind",
            "preferences": {"colors": True},
        }

        saved = yaml.safe_load(dump_document(load_document(yaml.safe_dump(data))))

        assert saved["clusters"][0]["cluster"]["certificate-authority-data"] == "Q0E="
        assert saved["users"][0]["user"]["client-key-data"] == "S0VZ"
        assert saved["preferences"] == {"colors": True}


class TestKubeconfigStore:
    """Tests for file access."""

    @pytest.mark.asyncio
    async def test_missing_file_is_empty_document(self, kubeconfig_path):
        """Loading a file that does not exist gives an empty document."""
        document = await KubeconfigStore().load(kubeconfig_path)

        assert document.contexts == []
        assert not kubeconfig_path.exists()

    @pytest.mark.asyncio
    async def test_save_creates_parent_directories(self, kubeconfig_path):
        """Saving writes the file, creating ~/.kube if needed."""
        document = KubeConfig()
        document.add_cluster("sandbox-cluster-ab12", "https://h")

        await KubeconfigStore().save(document, kubeconfig_path)

        assert kubeconfig_path.exists()
        assert "sandbox-cluster-ab12" in kubeconfig_path.read_text()

    @pytest.mark.asyncio
    async def test_save_then_load(self, kubeconfig_path):
        """A saved document loads back unchanged."""
        store = KubeconfigStore()
        write_kubeconfig(kubeconfig_path, build_kubeconfig(sandbox_entry("ctx1", "ab12", "https://h")))
        document = await store.load(kubeconfig_path)

        await store.save(document, kubeconfig_path)

        assert await store.load(kubeconfig_path) == document

    @pytest.mark.asyncio
    async def test_corrupt_file(self, kubeconfig_path):
        """A corrupt file raises ParseError naming the file."""
        kubeconfig_path.parent.mkdir(parents=True)
        kubeconfig_path.write_text("{not: valid", encoding="utf-8")

        with pytest.raises(ParseError) as exc_info:
            await KubeconfigStore().load(kubeconfig_path)

        assert str(kubeconfig_path) in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_invalid_utf8(self, kubeconfig_path):
        """Bytes that are not UTF-8 raise ParseError, not UnicodeDecodeError."""
        kubeconfig_path.parent.mkdir(parents=True)
        kubeconfig_path.write_bytes(b"clusters: \xff\xfe\n")

        with pytest.raises(ParseError, match="UTF-8"):
            await KubeconfigStore().load(kubeconfig_path)
