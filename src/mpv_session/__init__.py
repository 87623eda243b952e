"""
mpv-session - supervised mpv player sessions over JSON IPC.

This package runs an mpv subprocess and talks to it through its
newline-delimited JSON IPC socket, providing:
- Process supervision with automatic restart
- Request/reply correlation with queued sends before the socket is ready
- Property observation that survives player restarts
- Pass-through of player events
"""

__version__ = "0.1.0"

from .client import MpvSession, open_session
from .managers.observers import Subscription
from .managers.process import SessionState
from .models.commands import Command, CommandKind
from .utils.config import PlayerConfig, SessionConfig, load_config
from .utils.errors import (
    MpvSessionError,
    SpawnError,
    ConnectTimeout,
    ConnectionLost,
    CommandError,
    CommandTimeout,
    SessionClosed,
    ProtocolError,
    InvalidCommandError,
    UnexpectedReplyError,
    TransportError,
    ConfigurationError,
)

__all__ = [
    'MpvSession',
    'open_session',
    'Subscription',
    'SessionState',
    'Command',
    'CommandKind',
    'PlayerConfig',
    'SessionConfig',
    'load_config',
    'MpvSessionError',
    'SpawnError',
    'ConnectTimeout',
    'ConnectionLost',
    'CommandError',
    'CommandTimeout',
    'SessionClosed',
    'ProtocolError',
    'InvalidCommandError',
    'UnexpectedReplyError',
    'TransportError',
    'ConfigurationError',
]
