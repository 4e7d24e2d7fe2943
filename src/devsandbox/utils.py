"""
Utility functions for devsandbox.
"""

import os
from pathlib import Path


def get_state_dir() -> str:
    """
    Get the directory devsandbox keeps its own files in (logs).

    Honours ``DEVSANDBOX_HOME`` and falls back to ``~/.devsandbox``. The
    directory is created if needed.

    Returns:
        Absolute path to the state directory
    """
    state_dir = os.getenv("DEVSANDBOX_HOME") or os.path.join(Path.home(), ".devsandbox")
    state_dir = os.path.abspath(os.path.expanduser(state_dir))
    os.makedirs(state_dir, exist_ok=True)
    return state_dir


def default_kubeconfig_path() -> Path:
    """
    Resolve the kubeconfig file the same way kubectl does.

    The first entry of ``$KUBECONFIG`` wins; otherwise ``~/.kube/config``.

    Returns:
        Path to the kubeconfig file (it may not exist yet)
    """
    env_value = os.getenv("KUBECONFIG", "")
    for entry in env_value.split(os.pathsep):
        if entry.strip():
            return Path(entry.strip()).expanduser()
    return Path.home() / ".kube" / "config"
