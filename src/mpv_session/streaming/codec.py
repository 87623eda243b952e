"""
JSON IPC wire codec for mpv-session.

Outbound frames are compact JSON objects terminated by a newline. Inbound
bytes are buffered across chunks, split on LF/CRLF and parsed one line at a
time; a malformed line is reported and skipped without affecting the lines
around it.
"""

import codecs
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from ..models.commands import Command
from ..utils.errors import ProtocolError
from ..utils.logging import get_logger


logger = get_logger("mpv-session.codec")

PROPERTY_CHANGE = "property-change"
SUCCESS = "success"


@dataclass
class EventFrame:
    """Asynchronous player event, e.g. {"event": "file-loaded"}."""
    event: str
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PropertyChangeFrame:
    """Observed property notification."""
    name: str
    data: Any = None
    id: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ReplyFrame:
    """Reply to a command carrying request_id."""
    request_id: Any
    error: Any
    data: Any = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error == SUCCESS


Frame = Union[EventFrame, PropertyChangeFrame, ReplyFrame]


def encode_command(request_id: int, command: Command) -> bytes:
    """Serialize one command as a newline terminated frame."""
    message = {"request_id": request_id, "command": command.to_wire()}
    return (json.dumps(message, separators=(',', ':')) + "\n").encode("utf-8")


def classify(message: Dict[str, Any]) -> Frame:
    """Turn a decoded JSON object into a typed frame."""
    event = message.get("event")
    if event:
        if event == PROPERTY_CHANGE:
            return PropertyChangeFrame(
                name=message.get("name"),
                data=message.get("data"),
                id=message.get("id"),
                raw=message,
            )
        return EventFrame(event=event, raw=message)

    return ReplyFrame(
        request_id=message.get("request_id"),
        error=message.get("error"),
        data=message.get("data"),
        raw=message,
    )


class FrameDecoder:
    """Incremental newline-delimited JSON decoder."""

    def __init__(self, on_error: Optional[Callable[[ProtocolError], Any]] = None):
        self.on_error = on_error
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.line_count = 0
        self.error_count = 0

    @property
    def pending(self) -> str:
        """Text of an incomplete trailing line, if any."""
        return self._buffer

    def feed(self, chunk: bytes) -> List[Frame]:
        """
        Consume a chunk of bytes.

        Returns:
            Frames for every complete, well-formed line in the chunk
        """
        self._buffer += self._decoder.decode(chunk)
        if "\n" not in self._buffer:
            return []

        *lines, self._buffer = self._buffer.split("\n")
        frames = []
        for line in lines:
            frame = self._parse_line(line)
            if frame is not None:
                frames.append(frame)
        return frames

    def _parse_line(self, line: str) -> Optional[Frame]:
        line = line.strip()
        if not line:
            return None

        self.line_count += 1
        try:
            message = json.loads(line)
        except json.JSONDecodeError as e:
            return self._reject(ProtocolError(f"Invalid JSON: {e}", line=line, cause=e))

        if not isinstance(message, dict):
            return self._reject(ProtocolError(
                f"Expected JSON object, got {type(message).__name__}", line=line
            ))

        return classify(message)

    def _reject(self, error: ProtocolError) -> None:
        self.error_count += 1
        logger.warning("malformed_frame", error=error.message, line=error.line[:200])
        if self.on_error is not None:
            self.on_error(error)
        return None

    def reset(self) -> None:
        """Drop buffered partial input, e.g. after a reconnect."""
        self._decoder.reset()
        self._buffer = ""


__all__ = [
    'EventFrame',
    'PropertyChangeFrame',
    'ReplyFrame',
    'Frame',
    'FrameDecoder',
    'encode_command',
    'classify',
    'PROPERTY_CHANGE',
    'SUCCESS',
]
