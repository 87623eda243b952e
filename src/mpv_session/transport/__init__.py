"""IPC transport for mpv-session"""

from .base import ConnectionState, ConnectionStats
from .ipc import IPCConnection

__all__ = [
    "ConnectionState",
    "ConnectionStats",
    "IPCConnection",
]
