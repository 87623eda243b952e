"""
Error hierarchy for mpv-session.

Every error raised by the package derives from MpvSessionError, which
carries a stable code, a severity and category for classification, and a
to_dict() rendering suitable for structured logs.
"""

from typing import Optional, Dict, Any, List, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class ErrorSeverity(Enum):
    """Error severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification."""
    PROCESS = "process"
    CONNECTION = "connection"
    PROTOCOL = "protocol"
    COMMAND = "command"
    LIFECYCLE = "lifecycle"
    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Context information for an error."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    request_id: Optional[int] = None
    component: Optional[str] = None
    operation: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class MpvSessionError(Exception):
    """Base exception for all mpv-session errors."""

    code: str = "MPV_SESSION_ERROR"
    default_message: str = "An error occurred in the player session"
    severity: ErrorSeverity = ErrorSeverity.ERROR
    category: ErrorCategory = ErrorCategory.UNKNOWN
    is_retryable: bool = False

    def __init__(
        self,
        message: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[BaseException] = None,
    ):
        self.message = message or self.default_message
        self.context = context or ErrorContext()
        self.cause = cause
        super().__init__(self.message)
        if cause is not None:
            self.__cause__ = cause

    def get_suggestions(self) -> List[str]:
        """Get error resolution suggestions."""
        return []

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "severity": self.severity.value,
                "category": self.category.value,
                "is_retryable": self.is_retryable,
                "suggestions": self.get_suggestions(),
                "cause": repr(self.cause) if self.cause else None,
                "context": {
                    "timestamp": self.context.timestamp.isoformat(),
                    "request_id": self.context.request_id,
                    "component": self.context.component,
                    "operation": self.context.operation,
                    "metadata": self.context.metadata
                }
            }
        }


class ConfigurationError(MpvSessionError):
    """Configuration errors."""
    code = "CONFIG_ERROR"
    default_message = "Configuration error"
    category = ErrorCategory.CONFIGURATION

    def get_suggestions(self) -> List[str]:
        return [
            "Check your configuration file syntax",
            "Verify MPV_SESSION_* environment variables"
        ]


# Process errors

class SpawnError(MpvSessionError):
    """The player failed to launch or exited before its IPC socket was ready."""
    code = "SPAWN_ERROR"
    default_message = "closed"
    category = ErrorCategory.PROCESS
    severity = ErrorSeverity.CRITICAL
    is_retryable = True

    def __init__(
        self,
        message: Optional[str] = None,
        stderr: str = "",
        exit_code: Optional[int] = None,
        signal: Optional[str] = None,
        **kwargs
    ):
        self.stderr = stderr
        self.exit_code = exit_code
        self.signal = signal
        super().__init__(message or stderr.strip() or None, **kwargs)
        self.context.metadata.update(exit_code=exit_code, signal=signal)

    def get_suggestions(self) -> List[str]:
        return [
            "Check that the player executable exists and is runnable",
            "Inspect the captured stderr for rejected options"
        ]


# Connection errors

class TransportError(MpvSessionError):
    """Misuse or failure of the IPC connection."""
    code = "TRANSPORT_ERROR"
    default_message = "IPC transport error"
    category = ErrorCategory.CONNECTION


class ConnectTimeout(TransportError):
    """The IPC endpoint could not be reached within the timeout window."""
    code = "CONNECT_TIMEOUT"
    default_message = "Timed out"
    is_retryable = True

    def __init__(
        self,
        message: Optional[str] = None,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        **kwargs
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        cause = kwargs.get("cause")
        if message is None and cause is not None:
            message = str(cause) or None
        super().__init__(message, **kwargs)
        self.context.metadata.update(endpoint=endpoint, timeout=timeout)


class ConnectionLost(TransportError):
    """The connection dropped while a request was awaiting its reply."""
    code = "CONNECTION_LOST"
    default_message = "Connection to the player was lost"
    is_retryable = True


# Protocol errors

class ProtocolError(MpvSessionError):
    """An inbound line could not be decoded as a JSON object."""
    code = "PROTOCOL_ERROR"
    default_message = "Malformed frame"
    category = ErrorCategory.PROTOCOL
    severity = ErrorSeverity.WARNING

    def __init__(self, message: Optional[str] = None, line: str = "", **kwargs):
        self.line = line
        super().__init__(message, **kwargs)


class UnexpectedReplyError(MpvSessionError):
    """A failing reply arrived for a request id that is not pending."""
    code = "UNEXPECTED_REPLY"
    default_message = "Unexpected reply"
    category = ErrorCategory.PROTOCOL
    severity = ErrorSeverity.WARNING

    def __init__(self, reply: Dict[str, Any], **kwargs):
        self.reply = reply
        self.request_id = reply.get("request_id")
        self.error = reply.get("error")
        self.data = reply.get("data")
        super().__init__(str(self.error), **kwargs)
        self.context.request_id = self.request_id if isinstance(self.request_id, int) else None


# Command errors

class InvalidCommandError(MpvSessionError):
    """Unknown command kind or arguments not matching its signature."""
    code = "INVALID_COMMAND"
    default_message = "Invalid command"
    category = ErrorCategory.VALIDATION
    severity = ErrorSeverity.WARNING


class CommandError(MpvSessionError):
    """The player answered a command with a non-success status."""
    code = "COMMAND_ERROR"
    default_message = "Command failed"
    category = ErrorCategory.COMMAND

    def __init__(self, command: Sequence[Any], reported_error: str, **kwargs):
        self.command = list(command)
        self.reported_error = reported_error
        message = " ".join(str(part) for part in self.command) + " - failed with error: " + str(reported_error)
        super().__init__(message, **kwargs)


class CommandTimeout(CommandError):
    """No reply arrived within the configured command timeout."""
    code = "COMMAND_TIMEOUT"
    is_retryable = True

    def __init__(self, command: Sequence[Any], timeout: float, **kwargs):
        self.timeout = timeout
        super().__init__(command, f"no reply within {timeout}s", **kwargs)


class SessionClosed(MpvSessionError):
    """The session was torn down while the request was outstanding."""
    code = "SESSION_CLOSED"
    default_message = "Session closed"
    category = ErrorCategory.LIFECYCLE
    severity = ErrorSeverity.INFO


__all__ = [
    'MpvSessionError',
    'ErrorContext',
    'ErrorSeverity',
    'ErrorCategory',
    'ConfigurationError',
    'SpawnError',
    'TransportError',
    'ConnectTimeout',
    'ConnectionLost',
    'ProtocolError',
    'UnexpectedReplyError',
    'InvalidCommandError',
    'CommandError',
    'CommandTimeout',
    'SessionClosed',
]
