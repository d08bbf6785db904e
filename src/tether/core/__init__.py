"""Core modules for Tether - centralized error definitions."""

from tether.core.errors import (
    CheckFailedError,
    ConfigurationError,
    ExitCode,
    IndeterminateStateError,
    MissingConfigKeysError,
    NotConfiguredError,
    PermanentRPCError,
    PropertyError,
    ProtocolViolation,
    ProviderError,
    ProviderUnavailableError,
    ProviderVersionMismatch,
    ResourceNotFoundError,
    RPCError,
    StatusCode,
    TetherError,
    TransientProviderError,
    TransientRPCError,
    UnknownFunctionError,
    ValidationError,
    format_error_message,
    main_with_error_handling,
)

__all__ = [
    "ExitCode",
    "StatusCode",
    "TetherError",
    # Provider side
    "ConfigurationError",
    "NotConfiguredError",
    "MissingConfigKeysError",
    "ValidationError",
    "PropertyError",
    "UnknownFunctionError",
    "CheckFailedError",
    "ProviderError",
    "ResourceNotFoundError",
    "TransientProviderError",
    "ProtocolViolation",
    "ProviderVersionMismatch",
    # Transport side
    "RPCError",
    "TransientRPCError",
    "ProviderUnavailableError",
    "IndeterminateStateError",
    "PermanentRPCError",
    # Helpers
    "format_error_message",
    "main_with_error_handling",
]
