"""
Player session façade for mpv-session.

MpvSession composes the process supervisor, IPC connection, request
correlator and observation registry behind a small surface:

    async with MpvSession(args=["--no-video"]) as mpv:
        mpv.on("file-loaded", lambda event: print(event))
        await mpv.command("loadfile", "song.flac")
        unsubscribe = await mpv.observe("volume", print)
        await mpv.set("volume", 50)

Player events are re-emitted under their own names; `restarted` follows an
automatic respawn and `error` carries problems that no single command owns.
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence

from .managers.binary import build_arguments, endpoint_from_args, resolve_executable
from .managers.observers import ObservationRegistry, PropertyCallback, Subscription
from .managers.process import ProcessSupervisor, SessionState
from .managers.requests import RequestCorrelator
from .models.commands import Command, CommandKind
from .streaming.codec import EventFrame, Frame, PropertyChangeFrame, ReplyFrame
from .transport.ipc import IPCConnection
from .utils.config import PlayerConfig
from .utils.errors import CommandTimeout, SessionClosed, UnexpectedReplyError
from .utils.logging import get_logger
from .utils.notifications import EventEmitter


logger = get_logger("mpv-session.session")


class MpvSession(EventEmitter):
    """One supervised player process and its IPC session."""

    def __init__(
        self,
        config: Optional[PlayerConfig] = None,
        *,
        path: Optional[str] = None,
        args: Optional[Sequence[str]] = None,
        **overrides: Any,
    ):
        super().__init__()
        config = config or PlayerConfig()
        updates: Dict[str, Any] = dict(overrides)
        if path is not None:
            updates["path"] = path
        if args is not None:
            updates["args"] = list(args)
        if updates:
            config = config.model_copy(update=updates)
        self.config = config

        self.executable = resolve_executable(config.path)
        self.args = build_arguments(config.args)
        self.endpoint = endpoint_from_args(self.args)
        self._closed = False

        self._connection = IPCConnection(self.endpoint, retry_interval=config.connect_retry_interval)
        self._requests = RequestCorrelator(self._connection, resend_pending=config.resend_pending)
        self._observers = ObservationRegistry(self._requests, on_error=self._emit_error)
        self._supervisor = ProcessSupervisor(
            self.executable,
            self.args,
            self._connection,
            self,
            env=config.env,
            cwd=config.cwd,
            connect_timeout=config.connect_timeout,
            auto_restart=config.auto_restart,
            terminate_timeout=config.terminate_timeout,
        )

        self._connection.on_frame(self._dispatch)
        self._connection.on_error(self._emit_error)

    # Lifecycle

    @property
    def state(self) -> SessionState:
        return self._supervisor.state

    @property
    def status(self) -> str:
        return self._supervisor.state.value

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def process(self) -> Optional[asyncio.subprocess.Process]:
        """Live subprocess handle (read-only use)."""
        return self._supervisor.process

    @property
    def connection(self) -> Optional[asyncio.StreamWriter]:
        """Raw stream writer of the IPC connection (read-only use)."""
        return self._connection.writer

    @property
    def stderr(self) -> str:
        """Captured stderr of the current player process."""
        return self._supervisor.stderr

    async def start(self) -> "MpvSession":
        """
        Spawn the player and connect to it.

        Raises:
            SessionClosed: the session was already ended
            SpawnError: the player could not start
            ConnectTimeout: the IPC endpoint never became reachable
        """
        if self._closed:
            raise SessionClosed("Cannot start a session that was ended")
        await self._supervisor.start()
        return self

    async def end(self) -> None:
        """Tear the session down; every outstanding command fails with SessionClosed."""
        if self._closed:
            return
        self._closed = True
        rejected = self._requests.close(SessionClosed())
        await self._connection.close()
        await self._supervisor.end()
        self._observers.clear()
        logger.info("session_ended", endpoint=self.endpoint, rejected=rejected)

    async def __aenter__(self) -> "MpvSession":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.end()

    # Commands

    async def command(self, name: str, *args: Any) -> Any:
        """
        Send a command and wait for its reply data.

        Raises:
            InvalidCommandError: unknown command or bad arguments
            CommandError: the player reported a failure
            CommandTimeout: command_timeout elapsed without a reply
            SessionClosed: the session ended first
        """
        command = Command.build(name, *args)
        future = self._requests.issue(command)
        timeout = self.config.command_timeout
        if timeout is None:
            return await future
        try:
            return await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError:
            raise CommandTimeout(command.to_wire(), timeout) from None

    async def get(self, name: str) -> Any:
        return await self.command(CommandKind.GET_PROPERTY, name)

    async def set(self, name: str, value: Any) -> Any:
        return await self.command(CommandKind.SET_PROPERTY, name, value)

    async def observe(self, name: str, callback: PropertyCallback) -> Subscription:
        """Call callback with every new value of property name; returns the unsubscribe handle."""
        if self._closed:
            raise SessionClosed(f"Cannot observe '{name}' on an ended session")
        return await self._observers.observe(name, callback)

    def unobserve(self, name: str, callback: PropertyCallback) -> None:
        self._observers.unobserve(name, callback)

    # Inbound

    def _dispatch(self, frame: Frame) -> None:
        if isinstance(frame, PropertyChangeFrame):
            self._observers.dispatch(frame.name, frame.data)
        elif isinstance(frame, EventFrame):
            self.emit(frame.event, frame.raw)
        elif isinstance(frame, ReplyFrame):
            if not self._requests.handle_reply(frame) and not frame.ok:
                self._emit_error(UnexpectedReplyError(frame.raw))

    def _emit_error(self, error: Exception) -> None:
        self.emit("error", error)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "state": self.status,
            "process": self._supervisor.get_process_info(),
            "connection": self._connection.get_stats(),
            "pending_requests": self._requests.pending_count,
            "queued_requests": self._requests.queued_count,
            "observed_properties": self._observers.keys,
        }

    def __repr__(self) -> str:
        return f"MpvSession(endpoint={self.endpoint!r}, state={self.status})"


async def open_session(
    config: Optional[PlayerConfig] = None,
    *,
    path: Optional[str] = None,
    args: Optional[List[str]] = None,
    **overrides: Any,
) -> MpvSession:
    """Create a session and wait until the player is connected."""
    session = MpvSession(config, path=path, args=args, **overrides)
    await session.start()
    return session


__all__ = [
    'MpvSession',
    'open_session',
]
