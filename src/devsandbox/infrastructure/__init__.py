"""Infrastructure layer - file and network adapters."""
