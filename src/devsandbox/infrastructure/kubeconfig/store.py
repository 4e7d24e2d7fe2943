"""File-based kubeconfig store.

Reads and writes the kubeconfig as YAML. The store is a pure transform
between the file and a `KubeConfig` document: it does not retry, lock, or
merge. Callers load fresh, mutate in memory, and overwrite the whole file.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from devsandbox.domain.errors import ParseError
from devsandbox.domain.types import KubeConfig
from devsandbox.logger import get_logger

logger = get_logger("kubeconfig.store")


def load_document(text: str, path: str | Path | None = None) -> KubeConfig:
    """Parse kubeconfig YAML into a document.

    Args:
        text: File contents. Blank text yields an empty document.
        path: Only used in error messages.

    Raises:
        ParseError: If the text is not YAML, is not a mapping, does not match
            the kubeconfig schema, or has dangling/duplicate context entries
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ParseError(f"invalid YAML: {e}", path) from e

    if data is None:
        return KubeConfig()
    if not isinstance(data, dict):
        raise ParseError(f"expected a mapping at the top level, got {type(data).__name__}", path)

    try:
        return KubeConfig.model_validate(data)
    except ValidationError as e:
        raise ParseError(f"invalid kubeconfig: {e}", path) from e


def dump_document(document: KubeConfig) -> str:
    """Serialise a document to kubeconfig YAML."""
    data: dict[str, Any] = document.to_dict()
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False, width=float("inf"))


class KubeconfigStore:
    """Loads and saves kubeconfig files.

    Example:
        >>> store = KubeconfigStore()
        >>> document = await store.load(Path("~/.kube/config").expanduser())
        >>> document.add_context("ctx1", cluster="sandbox-cluster-ab12", user="sandbox-user-ab12")
        >>> await store.save(document, path)
    """

    async def load(self, path: str | Path) -> KubeConfig:
        """Load a kubeconfig file.

        Returns:
            The parsed document, or an empty document if the file does not exist

        Raises:
            ParseError: If the file exists but is not a valid (UTF-8) kubeconfig
            OSError: If the file exists but cannot be read
        """
        filepath = Path(path)
        if not filepath.exists():
            logger.debug(f"Kubeconfig not found, using empty document: {filepath}")
            return KubeConfig()

        try:
            with open(filepath, "r", encoding="utf-8") as f:
                text = f.read()
        except UnicodeDecodeError as e:
            raise ParseError(f"not valid UTF-8: {e}", filepath) from e

        document = load_document(text, filepath)
        logger.debug(
            f"Loaded kubeconfig {filepath}: {len(document.clusters)} cluster(s), "
            f"{len(document.users)} user(s), {len(document.contexts)} context(s)"
        )
        return document

    async def save(self, document: KubeConfig, path: str | Path) -> None:
        """Overwrite a kubeconfig file with the document.

        Parent directories are created when missing.

        Raises:
            OSError: If the file cannot be written
        """
        filepath = Path(path)
        text = dump_document(document)

        filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(text)

        logger.debug(f"Saved kubeconfig {filepath} ({len(text)} bytes)")
