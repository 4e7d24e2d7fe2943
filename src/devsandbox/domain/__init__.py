"""Domain layer - errors, types, events and protocols shared by every other layer.

This layer contains:
- errors: the error taxonomy raised by the store and the lifecycle API
- types: connection status, probe outcome and the kubeconfig document model
- events: domain events and the event bus
- protocols: the host capabilities the core consumes

The domain layer has NO dependencies on application, infrastructure, or presentation layers.
"""
