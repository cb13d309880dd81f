"""
Exception hierarchy for coinguard.

Typed exceptions let validation code tell a curated-data defect (fatal, the
node must not keep running on a partially trusted registry) apart from
ordinary rejections, which are plain ``False`` results and never raised.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class CoinGuardError(Exception):
    """Base exception for all coinguard errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the operation can be retried
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable


# ==================== Configuration Errors ====================


class ConfigurationError(CoinGuardError):
    """Raised when required configuration is missing or invalid."""
    pass


class FatalConfigurationError(ConfigurationError):
    """Raised when trusted, build-time data is defective.

    The process must not continue with the affected component.
    """
    pass


class InfractionFormatError(FatalConfigurationError):
    """Raised when an infraction dataset line cannot be parsed exactly."""

    def __init__(
        self,
        message: str,
        line: Optional[str] = None,
        line_number: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.line = line
        self.line_number = line_number


# ==================== Registry State Errors ====================


class RegistryNotLoadedError(CoinGuardError):
    """Raised in fail-closed mode when a check runs before the registry was loaded."""
    pass
