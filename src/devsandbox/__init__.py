"""devsandbox - keeps Developer Sandbox connections in sync with the kubeconfig."""

__version__ = "0.1.0"
