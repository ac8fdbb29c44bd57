"""Centralized error handling module."""

from enum import Enum
from typing import Any, Dict, Optional

from mail_extractor.utils.logging import get_logger

_logger = None


def _get_logger():
    """Get logger with lazy initialisation."""
    global _logger
    if _logger is None:
        _logger = get_logger(__name__)
    return _logger


## Error Categories


class ErrorCategory(Enum):
    """Categories of errors for better handling."""

    DATABASE = "database"
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    FILE_SYSTEM = "file_system"
    CONFIGURATION = "configuration"
    CONCURRENCY = "concurrency"
    UNKNOWN = "unknown"


## Custom Exceptions


class MailExtractorError(Exception):
    """Base exception for all mail extractor errors."""

    category = ErrorCategory.UNKNOWN
    user_message = "An error occurred"

    def __init__(
        self, message: str | None = None, details: Dict[str, Any] | None = None
    ):
        """Initialise MailExtractorError with optional message and details."""
        self.message = message or self.user_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error details to a dictionary."""
        return {
            "error_type": self.__class__.__name__,
            "category": self.category.value,
            "message": self.message,
            "details": self.details,
        }


## Database Errors


class DatabaseError(MailExtractorError):
    """Base exception for database-related errors."""

    category = ErrorCategory.DATABASE
    user_message = "A database error occurred"


class DatabaseConnectionError(DatabaseError):
    """Exception for database connection failures."""

    user_message = "Failed to connect to the database"


class StoreError(DatabaseError):
    """Exception for a failed read or write against the record store."""

    user_message = "Failed to store data"


## Network Errors


class NetworkError(MailExtractorError):
    """Base exception for network-related errors."""

    category = ErrorCategory.NETWORK
    user_message = "A network error occurred"


class NetworkTimeoutError(NetworkError):
    """Exception for network timeout errors."""

    user_message = "The connection timed out"


class Pop3Error(NetworkError):
    """Base exception for POP3 protocol errors."""

    user_message = "Failed to talk to the POP3 server"


class Pop3TransportError(Pop3Error):
    """Exception for a broken socket in the middle of a POP3 session."""

    user_message = "The connection to the POP3 server was lost"


class ConnectErrorKind(Enum):
    """Reasons a POP3 session could not be established."""

    TIMEOUT = "timeout"
    REFUSED = "refused"
    DNS_FAILURE = "dns_failure"
    GREETING_INVALID = "greeting_invalid"
    USER_REJECTED = "user_rejected"
    AUTH_FAILED = "auth_failed"


class ConnectError(Pop3Error):
    """Exception for a failed connect or login handshake.

    Fatal to the current session. ``kind`` tells the caller why, so a
    connection test can report timeout vs. auth vs. greeting failures.
    """

    MESSAGES = {
        ConnectErrorKind.TIMEOUT: "Connection failed: timed out",
        ConnectErrorKind.REFUSED: "Connection failed",
        ConnectErrorKind.DNS_FAILURE: "Connection failed: could not resolve host",
        ConnectErrorKind.GREETING_INVALID: "Invalid server greeting",
        ConnectErrorKind.USER_REJECTED: "Username not accepted",
        ConnectErrorKind.AUTH_FAILED: "Authentication failed. Check password/app password.",
    }

    def __init__(
        self,
        kind: ConnectErrorKind,
        detail: str = "",
        details: Dict[str, Any] | None = None,
    ):
        self.kind = kind
        self.detail = detail
        message = self.MESSAGES[kind]
        if detail and kind in (
            ConnectErrorKind.TIMEOUT,
            ConnectErrorKind.REFUSED,
            ConnectErrorKind.DNS_FAILURE,
        ):
            message = f"{message} ({detail})"
        details = dict(details or {})
        details["kind"] = kind.value
        super().__init__(message, details)

    @property
    def category(self) -> ErrorCategory:
        if self.kind in (ConnectErrorKind.USER_REJECTED, ConnectErrorKind.AUTH_FAILED):
            return ErrorCategory.AUTHENTICATION
        return ErrorCategory.NETWORK


class FetchErrorKind(Enum):
    """Reasons a single message could not be fetched."""

    UID_UNAVAILABLE = "uid_unavailable"
    RETRIEVAL_FAILED = "retrieval_failed"


class FetchError(Pop3Error):
    """Per-message fetch failure. The batch skips the message and continues."""

    MESSAGES = {
        FetchErrorKind.UID_UNAVAILABLE: "Failed to get email UID",
        FetchErrorKind.RETRIEVAL_FAILED: "Failed to retrieve email",
    }

    def __init__(self, kind: FetchErrorKind, index: int):
        self.kind = kind
        self.index = index
        super().__init__(
            self.MESSAGES[kind], details={"kind": kind.value, "index": index}
        )


## Validation Errors


class ValidationError(MailExtractorError):
    """Base exception for validation-related errors."""

    category = ErrorCategory.VALIDATION
    user_message = "Invalid input"


## File System Errors


class FileSystemError(MailExtractorError):
    """Base exception for file system-related errors."""

    category = ErrorCategory.FILE_SYSTEM
    user_message = "A file system error occurred"


## Configuration Errors


class ConfigurationError(MailExtractorError):
    """Base exception for configuration-related errors."""

    category = ErrorCategory.CONFIGURATION
    user_message = "A configuration error occurred"


class MissingConfigError(ConfigurationError):
    """Exception for missing configuration settings."""

    user_message = "Please configure POP3 settings first."


class InvalidConfigError(ConfigurationError):
    """Exception for invalid configuration settings."""

    user_message = "Invalid configuration settings"


## Concurrency Errors


class SessionBusyError(MailExtractorError):
    """Another import session already holds the mailbox."""

    category = ErrorCategory.CONCURRENCY
    user_message = "An import is already running for this mailbox."


## Error Handler


class ErrorHandler:
    """Centralized error handling and logging."""

    @staticmethod
    def handle(
        error: Exception, context: str = "", log_traceback: bool = True
    ) -> Dict[str, Any]:
        """Handle errors with logging and user-friendly message."""
        if isinstance(error, MailExtractorError):
            _get_logger().error(f"{context}: {error.message}", extra={"details": error.details})
            if log_traceback:
                _get_logger().exception(error)
            return error.to_dict()
        else:
            _get_logger().error(f"{context}: {str(error)}")
            if log_traceback:
                _get_logger().exception(error)
            return {
                "error_type": "UnknownError",
                "category": ErrorCategory.UNKNOWN.value,
                "message": str(error),
                "details": {"context": context},
            }


## Utility Functions


def format_error_message(error: Optional[Exception]) -> str:
    """Format an error message for display."""
    if isinstance(error, MailExtractorError):
        return error.message
    else:
        return "An unexpected error occurred - check logs for details."
