"""Presentation layer - terminal front-end."""

from devsandbox.presentation.console_host import ConsoleHost

__all__ = ["ConsoleHost"]
