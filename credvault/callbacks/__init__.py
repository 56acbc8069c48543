"""Callback/hook system for vault lifecycle events."""

from credvault.callbacks.base import BaseCallback, VaultCallback
from credvault.callbacks.logging import LoggingCallback

__all__ = ["BaseCallback", "VaultCallback", "LoggingCallback"]
