"""Socket / named-pipe transport for the player's JSON IPC server"""

import asyncio
import sys
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from .base import ConnectionState, ConnectionStats
from ..streaming.codec import Frame, FrameDecoder
from ..utils.errors import ConnectTimeout, ConnectionLost, ProtocolError, TransportError
from ..utils.logging import get_logger
from ..utils.notifications import call_handler

logger = get_logger("mpv-session.connection")

DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_RETRY_INTERVAL = 0.02


class IPCConnection:
    """Connection to the IPC endpoint of one player process.

    The connection does not reconnect by itself. It reports readiness and
    loss through two explicit hook lists; whoever owns the player process
    decides what a lost connection means.
    """

    def __init__(self, endpoint: str, retry_interval: float = DEFAULT_RETRY_INTERVAL,
                 read_size: int = 64 * 1024):
        self.endpoint = endpoint
        self.retry_interval = retry_interval
        self.read_size = read_size
        self.state = ConnectionState.DISCONNECTED
        self.stats = ConnectionStats()
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._read_task: Optional[asyncio.Task] = None
        self._decoder = FrameDecoder(on_error=self._handle_protocol_error)
        self._frame_handlers: List[Callable[[Frame], Any]] = []
        self._ready_hooks: List[Callable[[], Any]] = []
        self._lost_hooks: List[Callable[[Exception], Any]] = []
        self._error_handlers: List[Callable[[Exception], Any]] = []
        self._disconnected = asyncio.Event()
        self._disconnected.set()

    @property
    def is_ready(self) -> bool:
        return self.state == ConnectionState.READY

    @property
    def writer(self) -> Optional[asyncio.StreamWriter]:
        """Raw stream writer of the current connection, if any"""
        return self._writer

    def on_frame(self, handler: Callable[[Frame], Any]) -> None:
        """Register a handler for every decoded inbound frame"""
        self._frame_handlers.append(handler)

    def on_ready(self, hook: Callable[[], Any], first: bool = False) -> None:
        """Register a hook run, in registration order, after each successful connect"""
        if first:
            self._ready_hooks.insert(0, hook)
        else:
            self._ready_hooks.append(hook)

    def on_lost(self, hook: Callable[[Exception], Any]) -> None:
        """Register a hook run when an established connection drops unexpectedly"""
        self._lost_hooks.append(hook)

    def on_error(self, handler: Callable[[Exception], Any]) -> None:
        """Register a handler for errors not tied to a request"""
        self._error_handlers.append(handler)

    async def connect(self, timeout: float = DEFAULT_CONNECT_TIMEOUT) -> None:
        """Open the endpoint, retrying until it exists or timeout elapses"""
        if self.state != ConnectionState.DISCONNECTED:
            raise TransportError(f"Cannot connect in state: {self.state.value}")

        self.state = ConnectionState.CONNECTING
        loop = asyncio.get_running_loop()
        started = loop.time()
        last_error: Optional[Exception] = None

        try:
            while True:
                self.stats.connect_attempts += 1
                try:
                    reader, writer = await self._open()
                    break
                except OSError as e:
                    last_error = e

                if loop.time() - started > timeout:
                    logger.warning(
                        "connect_timed_out",
                        endpoint=self.endpoint,
                        timeout=timeout,
                        last_error=str(last_error) if last_error else None
                    )
                    raise ConnectTimeout(
                        endpoint=self.endpoint,
                        timeout=timeout,
                        cause=last_error
                    )
                await asyncio.sleep(self.retry_interval)
        except BaseException:
            self.state = ConnectionState.DISCONNECTED
            raise

        self._reader = reader
        self._writer = writer
        self._decoder.reset()
        self.state = ConnectionState.READY
        self.stats.connects += 1
        self.stats.connected_at = datetime.now()
        self._read_task = loop.create_task(self._read_loop(reader))
        logger.info(
            "connected",
            endpoint=self.endpoint,
            attempts=self.stats.connect_attempts,
            elapsed_ms=round((loop.time() - started) * 1000, 1)
        )

        for hook in list(self._ready_hooks):
            call_handler(hook)

    async def _open(self) -> Tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        if sys.platform == "win32":
            loop = asyncio.get_running_loop()
            reader = asyncio.StreamReader()
            protocol = asyncio.StreamReaderProtocol(reader)
            transport, _ = await loop.create_pipe_connection(lambda: protocol, self.endpoint)
            writer = asyncio.StreamWriter(transport, protocol, reader, loop)
            return reader, writer
        return await asyncio.open_unix_connection(self.endpoint)

    def write(self, payload: bytes) -> None:
        """Write one encoded frame; only valid while ready"""
        if self.state != ConnectionState.READY or self._writer is None:
            raise TransportError(f"Cannot write in state: {self.state.value}")
        self._writer.write(payload)
        self.stats.messages_sent += 1
        self.stats.bytes_sent += len(payload)

    async def drain(self) -> None:
        if self._writer is not None and self.state == ConnectionState.READY:
            await self._writer.drain()

    async def close(self, error: Optional[Exception] = None) -> None:
        """Close the connection.

        An explicit close is silent. Passing error marks the close as a
        connection loss and runs the lost hooks with it.
        """
        if self.state == ConnectionState.DISCONNECTED:
            return
        if self.state == ConnectionState.CLOSING:
            await self._disconnected.wait()
            return
        if self.state == ConnectionState.CONNECTING:
            logger.debug("close_while_connecting", endpoint=self.endpoint)
            return

        self.state = ConnectionState.CLOSING
        self._disconnected.clear()
        task = self._read_task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        await self._release_writer()
        self._mark_disconnected(error)

    async def _read_loop(self, reader: asyncio.StreamReader) -> None:
        """Feed socket bytes to the decoder until EOF or error"""
        error: Optional[Exception] = None
        try:
            while True:
                chunk = await reader.read(self.read_size)
                if not chunk:
                    logger.info("connection_eof", endpoint=self.endpoint)
                    break
                self.stats.bytes_received += len(chunk)
                for frame in self._decoder.feed(chunk):
                    self.stats.messages_received += 1
                    for handler in list(self._frame_handlers):
                        call_handler(handler, frame)
        except asyncio.CancelledError:
            raise
        except OSError as e:
            self.stats.errors += 1
            logger.warning("connection_error", endpoint=self.endpoint, error=str(e))
            error = e

        if self.state == ConnectionState.READY:
            self.state = ConnectionState.CLOSING
            self._disconnected.clear()
            await self._release_writer()
            self._mark_disconnected(
                ConnectionLost(str(error) if error else "Connection closed by player", cause=error)
            )

    async def _release_writer(self) -> None:
        writer = self._writer
        self._writer = None
        self._reader = None
        self._read_task = None
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass

    def _mark_disconnected(self, error: Optional[Exception]) -> None:
        self.state = ConnectionState.DISCONNECTED
        self._disconnected.set()
        self.stats.disconnected_at = datetime.now()
        if error is None:
            logger.info("disconnected", endpoint=self.endpoint)
            return
        logger.warning("connection_lost", endpoint=self.endpoint, error=str(error))
        for hook in list(self._lost_hooks):
            call_handler(hook, error)

    def _handle_protocol_error(self, error: ProtocolError) -> None:
        self.stats.errors += 1
        for handler in list(self._error_handlers):
            call_handler(handler, error)

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self.stats.to_dict(),
            "state": self.state.value,
            "endpoint": self.endpoint,
        }

    def __repr__(self) -> str:
        return f"IPCConnection(endpoint={self.endpoint!r}, state={self.state.value})"
