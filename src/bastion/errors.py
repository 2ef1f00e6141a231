"""Exceptions raised while building roles and permissions."""

from __future__ import annotations


class BastionError(Exception):
    """Base class for Bastion errors."""


class ConfigurationError(BastionError, ValueError):
    """Raised when a descriptor, catalog or pattern is malformed."""


class InvariantViolation(BastionError, TypeError):
    """Raised when a required argument is missing."""
