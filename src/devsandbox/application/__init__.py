"""Application layer - registry, reconciler and lifecycle operations."""
