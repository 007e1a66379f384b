"""
Infrastructure exceptions for the Beacon bot.

Purpose
-------
Define the structured exception hierarchy for engineering-level failures:
missing credentials, broken command modules, failed command registration and
programming errors in the gateway log bridge.

Design Notes
------------
- All infrastructure exceptions inherit from `BeaconInfrastructureException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict)
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `error_code`: short, stable identifier for programmatic use
- Only `MissingSecretError` and `UnknownSeverityError` are allowed to end the
  process. Everything else is logged and recovered where it is raised.
- `PreconditionFailed` is not infrastructure: command checks raise it to
  refuse an interaction, and the command service turns it into a
  dispatch failure.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class BeaconInfrastructureException(Exception):
    """
    Base exception for all Beacon infrastructure-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        error_code: Optional code for programmatic handling

    Example:
        >>> raise BeaconInfrastructureException(
        ...     "Guild registration failed",
        ...     {"guild_id": 1234},
        ... )
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}"
            ")"
        )


class MissingSecretError(BeaconInfrastructureException):
    """
    Raised when a required secret cannot be found.

    The bot cannot authenticate without its token, so this propagates out of
    the startup path and terminates the process.

    Args:
        secret_name: Name of the secret that was looked up
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self, secret_name: str) -> None:
        self.secret_name = secret_name
        super().__init__(
            f"Failed to find secret with name:'{secret_name}'",
            details={"secret_name": secret_name},
            error_code="MISSING_SECRET",
        )


class UnknownSeverityError(BeaconInfrastructureException, ValueError):
    """
    Raised when a gateway log severity falls outside the known set.

    The severity set is closed, so reaching this is a programming error.

    Args:
        severity: The unrecognized value
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self, severity: Any) -> None:
        self.severity_value = severity
        super().__init__(
            f"Unhandled gateway log severity: {severity!r}",
            details={"severity": repr(severity)},
            error_code="UNKNOWN_SEVERITY",
        )


class ModuleLoadError(BeaconInfrastructureException):
    """
    Raised when a command module file cannot be loaded.

    Args:
        module_path: Dotted path of the module file
        reason: Description of the problem
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR

    def __init__(self, module_path: str, reason: str) -> None:
        self.module_path = module_path
        self.reason = reason
        super().__init__(
            f"Cannot load command module {module_path}: {reason}",
            details={"module_path": module_path, "reason": reason},
            error_code="MODULE_LOAD_ERROR",
        )


class RegistrationError(BeaconInfrastructureException):
    """
    Raised when pushing commands to the platform fails.

    Args:
        scope: "global" or "guild:<id>"
        original_error: The underlying exception
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR

    def __init__(self, scope: str, original_error: Exception) -> None:
        self.scope = scope
        self.original_error = original_error
        super().__init__(
            f"Command registration failed for {scope}: {original_error}",
            details={
                "scope": scope,
                "error": str(original_error),
                "error_type": type(original_error).__name__,
            },
            error_code="REGISTRATION_ERROR",
        )


class PreconditionFailed(Exception):
    """
    Raised by a command check to refuse an interaction.

    Args:
        reason: Explanation logged alongside the failure
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)
