"""Custom exception classes for chdfs-adapter.

This module provides specific exception types so callers can tell a bad
endpoint address from a bad configuration, an exhausted backend load, or a
call made outside the adapter's lifecycle.
"""

from enum import Enum
from typing import Optional, Dict, Any, Sequence


class ChdfsError(Exception):
    """Base exception for all chdfs-adapter errors."""

    error_code: str = "OFS000"  # Override in subclasses

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, error_code: Optional[str] = None):
        """
        Initialize chdfs-adapter exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context
            error_code: Optional error code override
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def __str__(self) -> str:
        """Return string representation with error code and details."""
        parts = [f"[{self.error_code}] {self.message}"]
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"({detail_str})")
        return " ".join(parts)


class AddressValidationError(ChdfsError):
    """Raised when the mount point address does not look like a CHDFS endpoint.

    Example of a valid address: f4mabcdefgh-xyzw.chdfs.ap-guangzhou.myqcloud.com
    """

    error_code = "ADDR001"

    def __init__(self, message: str, address: Optional[str] = None, uri: Optional[str] = None):
        details = {}
        if address is not None:
            details['address'] = address
        if uri is not None:
            details['uri'] = uri
        super().__init__(message, details)
        self.address = address


class ConfigErrorReason(str, Enum):
    """Why a configuration value (or the cache directory it names) was rejected."""

    INVALID_NUMBER = "invalid_number"
    MISSING_OR_INVALID = "missing_or_invalid"
    MISSING = "missing"
    NOT_ABSOLUTE = "not_absolute"
    CREATE_FAILED = "create_failed"
    NOT_A_DIRECTORY = "not_a_directory"
    NOT_READABLE = "not_readable"
    NOT_WRITABLE = "not_writable"
    UNKNOWN_BACKEND = "unknown_backend"
    INVALID_SOURCE = "invalid_source"


class ConfigError(ChdfsError):
    """Raised when bootstrap configuration validation fails.

    Examples:
        - Missing or non-numeric account id
        - Missing or relative cache directory path
        - Cache directory that cannot be created, read or written
        - Unknown backend implementation name
    """

    error_code = "CFG001"

    def __init__(
        self,
        message: str,
        reason: ConfigErrorReason,
        key: Optional[str] = None,
        path: Optional[str] = None,
        additional_errors: Sequence["ConfigError"] = (),
    ):
        """
        Initialize configuration error.

        Args:
            message: Description of validation failure
            reason: Machine-readable failure category
            key: Configuration key that caused the error
            path: Filesystem path involved, if any
            additional_errors: Other failures found in the same resolution pass
        """
        details: Dict[str, Any] = {'reason': reason.value}
        if key:
            details['config_key'] = key
        if path:
            details['path'] = path
        super().__init__(message, details)
        self.reason = reason
        self.key = key
        self.path = path
        self.additional_errors = tuple(additional_errors)


class BackendAcquisitionError(ChdfsError):
    """Raised by plugin fetchers for a transient failure to load the backend.

    The backend loader retries this error (and any OSError) before giving up.
    """

    error_code = "LOAD001"

    def __init__(self, message: str, address: Optional[str] = None, original_error: Optional[Exception] = None):
        details = {}
        if address:
            details['address'] = address
        if original_error:
            details['original_error'] = str(original_error)
            details['error_type'] = type(original_error).__name__
        super().__init__(message, details)
        self.original_error = original_error


class InitializationError(ChdfsError):
    """Raised when the backend could not be acquired after all retry attempts."""

    error_code = "INIT001"

    def __init__(
        self,
        message: str,
        attempts: Optional[int] = None,
        last_error: Optional[Exception] = None
    ):
        """
        Initialize initialization error.

        Args:
            message: Description of failure
            attempts: Number of acquisition attempts made
            last_error: Last exception before giving up
        """
        details = {}
        if attempts is not None:
            details['attempts'] = attempts
        if last_error:
            details['last_error'] = str(last_error)
            details['error_type'] = type(last_error).__name__

        super().__init__(message, details)
        self.attempts = attempts
        self.last_error = last_error


class NotInitializedError(ChdfsError):
    """Raised when an operation is invoked on an adapter that is not ready."""

    error_code = "STATE001"

    def __init__(self, operation: Optional[str] = None, state: Optional[str] = None):
        details = {}
        if operation:
            details['operation'] = operation
        if state:
            details['state'] = state
        super().__init__("please init the filesystem first!", details)
        self.operation = operation


class UnexpectedError(ChdfsError):
    """Raised when a backend fails with an exception outside the known hierarchy."""

    error_code = "IO001"

    def __init__(self, operation: str, original_error: Exception):
        message = f"{operation} failed! a unexpected exception occur! {original_error}"
        details = {
            'operation': operation,
            'error_type': type(original_error).__name__,
        }
        super().__init__(message, details)
        self.operation = operation
        self.original_error = original_error


class UnsupportedOperationError(ChdfsError):
    """Raised by a backend that does not implement the requested capability."""

    error_code = "OP001"

    def __init__(self, operation: str, backend_type: Optional[str] = None):
        details = {'operation': operation}
        if backend_type:
            details['backend_type'] = backend_type
        super().__init__(f"{operation} is not supported by this backend", details)
        self.operation = operation
