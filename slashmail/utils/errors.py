"""Centralized error handling module."""

from enum import Enum
from typing import Any, Dict


## Error Categories


class ErrorCategory(Enum):
    """Categories of errors for better handling."""

    NETWORK = "network"
    PROTOCOL = "protocol"
    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    FILE_SYSTEM = "file_system"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


## Custom Exceptions


class SlashmailError(Exception):
    """Base exception for all slashmail errors."""

    category = ErrorCategory.UNKNOWN
    user_message = "An error occurred"
    # True once at least one server-side change was made before the failure
    mutations_applied = False

    def __init__(
        self, message: str | None = None, details: Dict[str, Any] | None = None
    ):
        """Initialise SlashmailError with optional message and details."""
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
            "mutations_applied": self.mutations_applied,
        }


## Network Errors


class NetworkError(SlashmailError):
    """Base exception for network-related errors."""

    category = ErrorCategory.NETWORK
    user_message = "A network error occurred"


class NetworkTimeoutError(NetworkError):
    """Exception for network timeout errors."""

    user_message = "The connection timed out"


## Protocol Errors


class ProtocolError(SlashmailError):
    """Server rejected a well-formed command or sent an unparsable reply."""

    category = ErrorCategory.PROTOCOL
    user_message = "The mail server rejected the request"


class CommandRejectedError(ProtocolError):
    """Server answered a command with NO or BAD."""

    user_message = "The mail server rejected the command"


class PartialMutationError(ProtocolError):
    """A multi-step mutation failed after some steps were already applied.

    Raised by the COPY/STORE/EXPUNGE move fallback when a step after COPY
    fails: the destination may already hold copies of the messages.
    """

    user_message = "The operation stopped part-way; some changes were applied"
    mutations_applied = True


class CapabilityUnsupportedError(SlashmailError):
    """Server does not advertise an extension the operation needs."""

    category = ErrorCategory.PROTOCOL
    user_message = "The mail server does not support this operation"


## Authentication Errors


class AuthenticationError(SlashmailError):
    """Base exception for authentication-related errors."""

    category = ErrorCategory.AUTHENTICATION
    user_message = "An authentication error occurred"


class InvalidCredentialsError(AuthenticationError):
    """Exception for invalid login credentials."""

    user_message = "Invalid username or password"


class MissingCredentialsError(AuthenticationError):
    """Exception for missing login credentials."""

    user_message = "IMAP credentials not configured"


## Validation Errors


class ValidationError(SlashmailError):
    """Base exception for validation-related errors."""

    category = ErrorCategory.VALIDATION
    user_message = "Invalid input"


## File System Errors


class FileSystemError(SlashmailError):
    """Base exception for file system-related errors."""

    category = ErrorCategory.FILE_SYSTEM
    user_message = "A file system error occurred"


class ExportError(FileSystemError):
    """Exception for failures while writing exported messages."""

    user_message = "Failed to export messages"


## Configuration Errors


class ConfigurationError(SlashmailError):
    """Base exception for configuration-related errors."""

    category = ErrorCategory.CONFIGURATION
    user_message = "A configuration error occurred"


class MissingConfigError(ConfigurationError):
    """Exception for a configuration file that does not exist."""

    user_message = "Missing configuration file"


class InvalidConfigError(ConfigurationError):
    """Exception for invalid configuration settings."""

    user_message = "Invalid configuration settings"


## Utility Functions


def format_error_message(error: Exception, mutating: bool = False) -> str:
    """Format an error message for display.

    For commands that change the mailbox, the message also says whether the
    server was already modified, since only an unmodified mailbox is safe
    to retry against.
    """
    if isinstance(error, SlashmailError):
        if error.mutations_applied:
            return (
                f"{error.message} (some changes were already applied on the "
                "server; check the source and destination folders)"
            )
        if mutating:
            return f"{error.message} (nothing was changed)"
        return error.message
    else:
        return "An unexpected error occurred - check logs for details."
