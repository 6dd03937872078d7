"""Custom exceptions used across routeguard."""
from __future__ import annotations


class RouteGuardError(Exception):
    """Base exception for all routeguard errors."""


class ConfigurationError(RouteGuardError):
    """Raised when resources, behaviours or settings are misconfigured."""


class DecisionError(RouteGuardError):
    """Raised when a repeated decision has no usable error behaviour."""


class StorageError(RouteGuardError):
    """Raised when a storage backend cannot read or write its document."""


class NavigationLoopError(RouteGuardError):
    """Raised when one navigation event chains too many follow-up navigations."""


__all__ = [
    "RouteGuardError",
    "ConfigurationError",
    "DecisionError",
    "StorageError",
    "NavigationLoopError",
]
