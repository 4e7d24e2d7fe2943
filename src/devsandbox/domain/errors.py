"""Errors raised by devsandbox."""

__all__ = [
    "SandboxError",
    "ValidationError",
    "DuplicateContextError",
    "ParseError",
    "AlreadyRegisteredError",
]


class SandboxError(Exception):
    """Base class for every devsandbox error."""


class ValidationError(SandboxError):
    """Bad or missing user input. Shown to the user as-is."""


class DuplicateContextError(SandboxError):
    """A context with the requested name already exists in the kubeconfig."""

    def __init__(self, context_name: str):
        super().__init__(f"Context '{context_name}' already exists.")
        self.context_name = context_name


class ParseError(SandboxError):
    """The kubeconfig file exists but is not a valid document."""

    def __init__(self, message: str, path=None):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


class AlreadyRegisteredError(SandboxError):
    """A connection was registered twice under the same name.

    Only a bug in the caller can cause this: the reconciler registers names
    that are absent from the registry.
    """

    def __init__(self, name: str):
        super().__init__(f"Connection '{name}' is already registered")
        self.name = name
