"""Runtime configuration for devsandbox."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from devsandbox.utils import default_kubeconfig_path

SANDBOX_CLUSTER_PREFIX = "sandbox-cluster-"
SANDBOX_USER_PREFIX = "sandbox-user-"


@dataclass
class SandboxConfig:
    """Configuration for the reconciler, prober and CLI."""

    # Reconciliation
    reconcile_interval: float = 2.0
    load_attempts: int = 5
    load_retry_delay: float = 0.5

    # Probing
    probe_timeout: float = 10.0

    # Credentials file
    kubeconfig_path: Path = field(default_factory=default_kubeconfig_path)

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "SandboxConfig":
        """Build a config from ``DEVSANDBOX_*`` environment variables (and a .env file)."""
        load_dotenv()

        defaults = cls()
        kubeconfig = os.getenv("DEVSANDBOX_KUBECONFIG")
        return cls(
            reconcile_interval=float(os.getenv("DEVSANDBOX_RECONCILE_INTERVAL", defaults.reconcile_interval)),
            load_attempts=int(os.getenv("DEVSANDBOX_LOAD_ATTEMPTS", defaults.load_attempts)),
            load_retry_delay=float(os.getenv("DEVSANDBOX_LOAD_RETRY_DELAY", defaults.load_retry_delay)),
            probe_timeout=float(os.getenv("DEVSANDBOX_PROBE_TIMEOUT", defaults.probe_timeout)),
            kubeconfig_path=Path(kubeconfig).expanduser() if kubeconfig else defaults.kubeconfig_path,
            log_level=os.getenv("DEVSANDBOX_LOG_LEVEL", defaults.log_level).upper(),
            log_file=os.getenv("DEVSANDBOX_LOG_FILE") or None,
        )
