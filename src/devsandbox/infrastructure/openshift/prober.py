"""Reachability checks against an OpenShift API server."""

import asyncio
from typing import Any, Optional

import requests

from devsandbox.domain.types import ProbeResult
from devsandbox.logger import get_logger

logger = get_logger("openshift.prober")

WHOAMI_PATH = "/apis/user.openshift.io/v1/users/~"
USER_KIND = "User"


class ReachabilityProber:
    """Checks that a cluster answers and accepts a bearer token.

    A probe is one identity lookup (the API behind ``oc whoami``). It never
    raises and never retries: every failure becomes ``UNREACHABLE`` and the
    reconciler's next tick is the retry.
    """

    def __init__(self, timeout: float = 10.0, session: Optional[requests.Session] = None):
        """
        Initialize the prober.

        Args:
            timeout: Per-request timeout (seconds)
            session: Optional requests session (connection pooling, tests)
        """
        self._timeout = timeout
        self._session = session

    async def probe(self, server_url: str, token: Optional[str], verify_tls: bool = True) -> ProbeResult:
        """
        Probe a cluster.

        Args:
            server_url: API server URL of the cluster
            token: Bearer token of the user
            verify_tls: Whether to verify the server certificate

        Returns:
            REACHABLE for a 200 response describing a User, UNREACHABLE otherwise
        """
        identity = await self._lookup_identity(server_url, token, verify_tls)
        return ProbeResult.REACHABLE if identity is not None else ProbeResult.UNREACHABLE

    async def whoami(self, server_url: str, token: Optional[str], verify_tls: bool = True) -> Optional[str]:
        """
        Get the user name the token belongs to.

        Returns:
            ``metadata.name`` of the identity, or None when the lookup fails
        """
        identity = await self._lookup_identity(server_url, token, verify_tls)
        if identity is None:
            return None
        metadata = identity.get("metadata")
        if isinstance(metadata, dict) and isinstance(metadata.get("name"), str):
            return metadata["name"]
        return None

    async def _lookup_identity(
        self, server_url: str, token: Optional[str], verify_tls: bool
    ) -> Optional[dict[str, Any]]:
        if not server_url or not token:
            logger.debug("Probe skipped: missing server URL or token")
            return None

        url = f"{server_url.rstrip('/')}{WHOAMI_PATH}"
        try:
            # requests is blocking; run it off the loop so probes overlap
            return await asyncio.to_thread(self._get_identity, url, token, verify_tls)
        except Exception as e:
            logger.debug(f"Identity lookup failed for {server_url}: {e}")
            return None

    def _get_identity(self, url: str, token: str, verify_tls: bool) -> Optional[dict[str, Any]]:
        get = self._session.get if self._session is not None else requests.get
        response = get(
            url,
            headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
            timeout=self._timeout,
            verify=verify_tls,
        )
        if response.status_code != 200:
            logger.debug(f"Identity lookup {url} returned HTTP {response.status_code}")
            return None

        try:
            payload = response.json()
        except ValueError:
            logger.debug(f"Identity lookup {url} returned a non-JSON body")
            return None

        if not isinstance(payload, dict) or payload.get("kind") != USER_KIND:
            logger.debug(f"Identity lookup {url} returned an unexpected payload")
            return None
        return payload
