"""OpenShift API access."""

from devsandbox.infrastructure.openshift.prober import ReachabilityProber

__all__ = ["ReachabilityProber"]
