"""
Process supervision for mpv-session.

This module owns the player subprocess:
- Spawning it and racing its IPC connection against an early exit
- Capturing stderr for diagnostics
- Restarting it once when it dies unexpectedly
- Terminating it on shutdown
"""

import asyncio
import os
import signal
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..transport.ipc import IPCConnection
from ..utils.errors import ConnectionLost, SpawnError
from ..utils.logging import get_logger
from ..utils.notifications import EventEmitter
from ..utils.shutdown import register_exit_cleanup, unregister_exit_cleanup


logger = get_logger("mpv-session.process")

STDERR_LIMIT = 64 * 1024


class SessionState(Enum):
    """Player session lifecycle states."""
    STOPPED = "stopped"
    STARTING = "starting"
    STARTED = "started"
    ERRORED = "errored"


def _signal_name(returncode: Optional[int]) -> Optional[str]:
    if returncode is None or returncode >= 0:
        return None
    try:
        return signal.Signals(-returncode).name
    except ValueError:
        return str(-returncode)


class ProcessSupervisor:
    """Spawns the player, connects to it, and restarts it when it dies."""

    def __init__(
        self,
        executable: str,
        args: List[str],
        connection: IPCConnection,
        events: EventEmitter,
        env: Optional[Dict[str, str]] = None,
        cwd: Optional[Path] = None,
        connect_timeout: float = 5.0,
        auto_restart: bool = True,
        terminate_timeout: float = 2.0,
    ):
        self.executable = executable
        self.args = list(args)
        self.connection = connection
        self.events = events
        self.env = env or {}
        self.cwd = cwd
        self.connect_timeout = connect_timeout
        self.auto_restart = auto_restart
        self.terminate_timeout = terminate_timeout

        self.state = SessionState.STOPPED
        self.process: Optional[asyncio.subprocess.Process] = None
        self.stderr = ""
        self.starts = 0
        self._stderr_task: Optional[asyncio.Task] = None
        self._watch_task: Optional[asyncio.Task] = None

        connection.on_lost(self._handle_connection_lost)

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process else None

    @property
    def is_alive(self) -> bool:
        return self.process is not None and self.process.returncode is None

    async def start(self, restarted: bool = False) -> None:
        """
        Spawn the player and wait for its IPC connection.

        No-op unless the supervisor is stopped.

        Raises:
            SpawnError: the player could not be launched or exited early
            ConnectTimeout: the IPC endpoint never became reachable
        """
        if self.state != SessionState.STOPPED:
            return

        self.state = SessionState.STARTING
        try:
            await self._spawn_and_connect()
        except BaseException as e:
            self.state = SessionState.ERRORED
            logger.error("start_failed", error=str(e), error_type=type(e).__name__,
                         stderr=self.stderr[-2000:])
            await self._release()
            raise

        self.state = SessionState.STARTED
        self.starts += 1
        self._watch_task = asyncio.get_running_loop().create_task(self._watch(self.process))
        logger.info("player_started", pid=self.pid, endpoint=self.connection.endpoint,
                    restarted=restarted)
        if restarted:
            self.events.emit("restarted")

    async def _spawn_and_connect(self) -> None:
        if self.process is not None:
            await self._release()

        self.stderr = ""
        env = {**os.environ, **self.env} if self.env else None

        try:
            process = await asyncio.create_subprocess_exec(
                self.executable,
                *self.args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                cwd=str(self.cwd) if self.cwd else None,
            )
        except OSError as e:
            raise SpawnError(str(e), cause=e) from e

        self.process = process
        register_exit_cleanup(process.pid, name=os.path.basename(self.executable))
        logger.info("player_spawned", pid=process.pid, executable=self.executable,
                    endpoint=self.connection.endpoint)

        loop = asyncio.get_running_loop()
        self._stderr_task = loop.create_task(self._collect_stderr(process))
        exited = loop.create_task(process.wait())
        connecting = loop.create_task(self.connection.connect(self.connect_timeout))

        try:
            done, _ = await asyncio.wait({exited, connecting}, return_when=asyncio.FIRST_COMPLETED)
        except BaseException:
            for task in (exited, connecting):
                task.cancel()
            await asyncio.gather(exited, connecting, return_exceptions=True)
            raise

        if exited not in done:
            exited.cancel()
            await asyncio.gather(exited, return_exceptions=True)
            connecting.result()
            return

        connecting.cancel()
        await asyncio.gather(connecting, return_exceptions=True)
        await self._drain_stderr()
        error = SpawnError(
            stderr=self.stderr,
            exit_code=process.returncode if process.returncode >= 0 else None,
            signal=_signal_name(process.returncode),
        )
        if self.connection.is_ready:
            await self.connection.close(error)
        raise error

    async def _collect_stderr(self, process: asyncio.subprocess.Process) -> None:
        """Accumulate player stderr as text."""
        stream = process.stderr
        if stream is None:
            return
        while True:
            data = await stream.read(4096)
            if not data:
                break
            text = data.decode("utf-8", errors="replace")
            self.stderr = (self.stderr + text)[-STDERR_LIMIT:]
            for line in text.splitlines():
                if line.strip():
                    logger.debug("player_stderr", pid=process.pid, line=line)

    async def _drain_stderr(self, timeout: float = 1.0) -> None:
        task = self._stderr_task
        if task is not None and not task.done():
            await asyncio.wait({task}, timeout=timeout)

    async def _watch(self, process: asyncio.subprocess.Process) -> None:
        """Wait for the player to exit and restart it if that was unexpected."""
        returncode = await process.wait()
        unregister_exit_cleanup(process.pid)
        if self.process is not process or self.state != SessionState.STARTED:
            return

        await self._drain_stderr()
        logger.warning("player_exited", pid=process.pid, returncode=returncode,
                       signal=_signal_name(returncode))

        await self.connection.close(ConnectionLost(f"Player exited with code {returncode}"))
        self.state = SessionState.STOPPED

        if not self.auto_restart:
            logger.info("auto_restart_disabled", pid=process.pid)
            return

        try:
            await self.start(restarted=True)
        except Exception as e:
            self.events.emit("error", e)

    def _handle_connection_lost(self, error: Exception) -> None:
        """A dropped socket with a live player: stop it and let the watcher restart."""
        if self.state != SessionState.STARTED or not self.is_alive:
            return
        logger.warning("terminating_unreachable_player", pid=self.pid, error=str(error))
        try:
            self.process.terminate()
        except ProcessLookupError:
            pass

    async def _release(self) -> None:
        """Terminate the current process (if alive) and forget it."""
        process = self.process
        self.process = None
        if process is None:
            return

        if process.returncode is None:
            try:
                process.terminate()
            except ProcessLookupError:
                pass
            try:
                await asyncio.wait_for(process.wait(), timeout=self.terminate_timeout)
            except asyncio.TimeoutError:
                logger.warning("player_did_not_terminate", pid=process.pid)
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()

        unregister_exit_cleanup(process.pid)
        await self._drain_stderr()
        if self._stderr_task is not None and not self._stderr_task.done():
            self._stderr_task.cancel()
        self._stderr_task = None
        logger.debug("player_released", pid=process.pid, returncode=process.returncode)

    async def end(self) -> None:
        """Stop supervising and terminate the player. Idempotent."""
        watch = self._watch_task
        self._watch_task = None
        if watch is not None and watch is not asyncio.current_task() and not watch.done():
            watch.cancel()
            await asyncio.gather(watch, return_exceptions=True)

        await self._release()
        if self.state != SessionState.STOPPED:
            logger.info("supervisor_ended", state=self.state.value)
        self.state = SessionState.STOPPED

    def get_process_info(self) -> Dict[str, Any]:
        return {
            "executable": self.executable,
            "args": self.args,
            "state": self.state.value,
            "pid": self.pid,
            "returncode": self.process.returncode if self.process else None,
            "starts": self.starts,
        }
