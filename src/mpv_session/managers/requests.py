"""
Request correlation for mpv-session.

Every outbound command gets a session-unique, strictly increasing request id
and a future. Commands issued while the connection is not ready wait in an
ordered outbound queue that is flushed once the connection comes up. Replies
complete the matching future exactly once.
"""

import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, List, Optional

from ..models.commands import Command
from ..streaming.codec import ReplyFrame, encode_command
from ..transport.ipc import IPCConnection
from ..utils.errors import CommandError, ConnectionLost, SessionClosed
from ..utils.logging import get_logger


logger = get_logger("mpv-session.requests")


@dataclass
class PendingRequest:
    """A command awaiting its reply."""
    id: int
    command: Command
    payload: bytes
    future: asyncio.Future


class RequestCorrelator:
    """Pairs outbound commands with their replies across reconnects."""

    def __init__(self, connection: IPCConnection, resend_pending: bool = False):
        self.connection = connection
        self.resend_pending = resend_pending
        self._next_id = 0
        self._pending: Dict[int, PendingRequest] = {}
        self._queue: Deque[PendingRequest] = deque()
        self._closed: Optional[Exception] = None

        connection.on_ready(self.flush)
        connection.on_lost(self.handle_disconnect)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def queued_count(self) -> int:
        return len(self._queue)

    @property
    def pending_ids(self) -> List[int]:
        return sorted(self._pending)

    @property
    def closed(self) -> bool:
        return self._closed is not None

    def issue(self, command: Command) -> asyncio.Future:
        """
        Send a command, or queue it until the connection is ready.

        Returns:
            Future resolved with the reply data

        Raises:
            SessionClosed: the correlator was closed
        """
        if self._closed is not None:
            raise SessionClosed(f"Cannot send '{command.name}': {self._closed}")

        self._next_id += 1
        request_id = self._next_id
        future = asyncio.get_running_loop().create_future()
        request = PendingRequest(
            id=request_id,
            command=command,
            payload=encode_command(request_id, command),
            future=future,
        )
        future.add_done_callback(lambda f: self._forget_cancelled(request, f))

        if self.connection.is_ready:
            self._write(request)
        else:
            self._queue.append(request)
            logger.debug("request_queued", request_id=request_id, command=command.name,
                         queued=len(self._queue))
        return future

    def _write(self, request: PendingRequest) -> None:
        self.connection.write(request.payload)
        self._pending[request.id] = request
        logger.debug("request_sent", request_id=request.id, command=request.command.name)

    def flush(self) -> None:
        """Write every queued request in submission order."""
        if not self._queue:
            return
        logger.debug("flushing_queue", count=len(self._queue))
        while self._queue and self.connection.is_ready:
            request = self._queue.popleft()
            if request.future.done():
                continue
            self._write(request)

    def handle_reply(self, frame: ReplyFrame) -> bool:
        """
        Complete the request matching frame.request_id.

        Returns:
            False if no pending request has that id
        """
        request = self._pending.pop(frame.request_id, None) if _hashable(frame.request_id) else None
        if request is None:
            logger.debug("unmatched_reply", request_id=frame.request_id, error=frame.error)
            return False

        if request.future.done():
            return True

        if frame.ok:
            request.future.set_result(frame.data)
        else:
            logger.debug("request_failed", request_id=request.id, command=request.command.name,
                         error=frame.error)
            request.future.set_exception(CommandError(request.command.to_wire(), frame.error))
        return True

    def handle_disconnect(self, error: Exception) -> None:
        """
        Deal with requests written on a connection that is now gone.

        Their replies will never arrive. They are either re-queued ahead of
        unsent requests (resend_pending) or failed with ConnectionLost.
        """
        if not self._pending:
            return

        in_flight = [self._pending[request_id] for request_id in sorted(self._pending)]
        self._pending.clear()

        if self.resend_pending:
            logger.info("requeueing_in_flight_requests", count=len(in_flight))
            self._queue.extendleft(reversed(in_flight))
            return

        logger.info("failing_in_flight_requests", count=len(in_flight))
        for request in in_flight:
            if not request.future.done():
                request.future.set_exception(ConnectionLost(
                    f"{request.command} - connection lost before reply: {error}",
                    cause=error,
                ))

    def close(self, error: Optional[Exception] = None) -> int:
        """
        Reject every queued and pending request and refuse new ones.

        Returns:
            Number of requests rejected
        """
        if self._closed is None:
            self._closed = error or SessionClosed()

        requests = list(self._queue) + [self._pending[request_id] for request_id in sorted(self._pending)]
        self._queue.clear()
        self._pending.clear()

        rejected = 0
        for request in requests:
            if not request.future.done():
                request.future.set_exception(SessionClosed(
                    f"{request.command} - session closed before reply",
                    cause=error,
                ))
                rejected += 1

        if rejected:
            logger.info("rejected_outstanding_requests", count=rejected)
        return rejected

    def _forget_cancelled(self, request: PendingRequest, future: asyncio.Future) -> None:
        if not future.cancelled():
            return
        if self._pending.get(request.id) is request:
            del self._pending[request.id]
        else:
            try:
                self._queue.remove(request)
            except ValueError:
                pass
        logger.debug("request_cancelled", request_id=request.id, command=request.command.name)


def _hashable(value: Any) -> bool:
    try:
        hash(value)
    except TypeError:
        return False
    return True


__all__ = [
    'PendingRequest',
    'RequestCorrelator',
]
