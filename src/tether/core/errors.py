"""
Unified error handling for Tether.

Errors carry two classifications:

- ``exit_code``: the process exit code used by CLI commands
- ``code``: the RPC status name used on the wire error envelope

Exit Codes:
- 0: Success
- 1: Warning (advisory, operation succeeded with warnings)
- 10: Configuration error
- 11: Provider error (provider or backing system failure)
- 12: Validation error
- 13: Transport error (provider unreachable or returned an error status)
- 127: Unknown/internal error
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum, StrEnum
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    WARNING = 1
    CONFIG_ERROR = 10
    PROVIDER_ERROR = 11
    VALIDATION_ERROR = 12
    TRANSPORT_ERROR = 13
    UNKNOWN_ERROR = 127


class StatusCode(StrEnum):
    """RPC status names carried in the wire error envelope."""

    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    FAILED_PRECONDITION = "FAILED_PRECONDITION"
    NOT_FOUND = "NOT_FOUND"
    UNAVAILABLE = "UNAVAILABLE"
    INTERNAL = "INTERNAL"


HTTP_STATUS: dict[StatusCode, int] = {
    StatusCode.INVALID_ARGUMENT: 400,
    StatusCode.NOT_FOUND: 404,
    StatusCode.FAILED_PRECONDITION: 412,
    StatusCode.INTERNAL: 500,
    StatusCode.UNAVAILABLE: 503,
}


class TetherError(Exception):
    """Base exception for Tether errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    code: StatusCode = StatusCode.INTERNAL
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def wire_details(self) -> list[dict[str, Any]]:
        """Structured detail payloads attached to the wire error envelope."""
        return []


class ConfigurationError(TetherError):
    """Raised for configuration-related errors."""

    exit_code = ExitCode.CONFIG_ERROR
    code = StatusCode.FAILED_PRECONDITION


class NotConfiguredError(ConfigurationError):
    """Raised when a provider method is called before a successful Configure."""

    def __init__(self, message: str = "provider has not been configured", details=None):
        super().__init__(message, details)

    def wire_details(self) -> list[dict[str, Any]]:
        return [{"@type": "ProviderNotConfigured"}]


class MissingConfigKeysError(ConfigurationError):
    """Raised by Configure when required configuration keys were not supplied."""

    def __init__(self, missing_keys: list[dict[str, str]], message: str | None = None):
        names = ", ".join(key["name"] for key in missing_keys)
        super().__init__(
            message or f"required configuration keys were missing: {names}",
            {"missing": names},
        )
        self.missing_keys = [
            {"name": key["name"], "description": key.get("description", "")}
            for key in missing_keys
        ]

    def wire_details(self) -> list[dict[str, Any]]:
        return [{"@type": "ConfigureErrorMissingKeys", "missingKeys": self.missing_keys}]


class ValidationError(TetherError):
    """Raised for malformed requests."""

    exit_code = ExitCode.VALIDATION_ERROR
    code = StatusCode.INVALID_ARGUMENT


class PropertyError(ValidationError):
    """Raised when a property bag contains a value that cannot cross the wire."""


class UnknownFunctionError(ValidationError):
    """Raised by Invoke for a function token the provider does not export."""

    def __init__(self, token: str):
        super().__init__(f"unknown function '{token}'", {"tok": token})
        self.token = token


class CheckFailedError(ValidationError):
    """Raised by the engine when Check returned validation failures."""

    def __init__(self, urn: str, failures: list[Any]):
        reasons = "; ".join(f"{f.property}: {f.reason}" for f in failures)
        super().__init__(f"{urn} failed validation: {reasons}", {"urn": urn})
        self.urn = urn
        self.failures = failures


class ProviderError(TetherError):
    """Raised when a provider or its backing system fails."""

    exit_code = ExitCode.PROVIDER_ERROR


class ResourceNotFoundError(ProviderError):
    """Raised by provider code when the live object does not exist."""

    code = StatusCode.NOT_FOUND

    def __init__(self, resource_id: str, message: str | None = None):
        super().__init__(message or f"resource '{resource_id}' not found", {"id": resource_id})
        self.resource_id = resource_id


class TransientProviderError(ProviderError):
    """Raised by provider code for backing-system failures worth retrying."""

    code = StatusCode.UNAVAILABLE


class ProtocolViolation(ProviderError):
    """Raised when a provider response breaks a protocol invariant."""


class ProviderVersionMismatch(ProviderError):
    """Raised when a provider reports a version other than the pinned one."""

    exit_code = ExitCode.CONFIG_ERROR


class RPCError(TetherError):
    """Raised on the engine side when an RPC did not complete successfully."""

    exit_code = ExitCode.TRANSPORT_ERROR

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        *,
        method: str | None = None,
        code: StatusCode | None = None,
    ):
        super().__init__(message, details)
        self.method = method
        if code is not None:
            self.code = code


class TransientRPCError(RPCError):
    """The call failed in a way that may succeed if retried."""

    code = StatusCode.UNAVAILABLE


class ProviderUnavailableError(TransientRPCError):
    """Raised while the client circuit breaker is open."""


class IndeterminateStateError(TransientRPCError):
    """A mutating call may or may not have been applied; reconcile with Read."""


class PermanentRPCError(RPCError):
    """The provider rejected the call; retrying will not help."""


# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI main functions that provides unified error handling.

    Catches exceptions and converts them to appropriate exit codes with
    consistent error reporting.

    Exit codes:
        - TetherError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except TetherError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=e.exit_code,
                        **e.details,
                    )
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return 130
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=ExitCode.UNKNOWN_ERROR,
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: TetherError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg
