"""Connection state and statistics shared by IPC transports"""

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


class ConnectionState(enum.Enum):
    """Connection state for transport"""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"
    CLOSING = "closing"


@dataclass
class ConnectionStats:
    """Counters kept by a connection across reconnects"""
    messages_sent: int = 0
    messages_received: int = 0
    bytes_sent: int = 0
    bytes_received: int = 0
    errors: int = 0
    connects: int = 0
    connect_attempts: int = 0
    connected_at: Optional[datetime] = None
    disconnected_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "messages_sent": self.messages_sent,
            "messages_received": self.messages_received,
            "bytes_sent": self.bytes_sent,
            "bytes_received": self.bytes_received,
            "errors": self.errors,
            "connects": self.connects,
            "connect_attempts": self.connect_attempts,
            "connected_at": self.connected_at.isoformat() if self.connected_at else None,
            "disconnected_at": self.disconnected_at.isoformat() if self.disconnected_at else None,
        }
