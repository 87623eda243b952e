"""
Interpreter-exit cleanup for player processes.

Sessions register their live subprocess here; an atexit hook terminates any
player still running when the interpreter exits, so an abandoned session
never leaves an orphaned mpv behind.
"""

import atexit
import os
import signal
from typing import Dict

from .logging import get_logger


logger = get_logger("mpv-session.shutdown")


class ExitRegistry:
    """Tracks player pids that must not outlive the interpreter."""

    def __init__(self):
        self._pids: Dict[int, str] = {}
        self._installed = False

    def register(self, pid: int, name: str = "player") -> None:
        if not self._installed:
            atexit.register(self.terminate_all)
            self._installed = True
        self._pids[pid] = name

    def unregister(self, pid: int) -> None:
        self._pids.pop(pid, None)

    def __contains__(self, pid: int) -> bool:
        return pid in self._pids

    def terminate_all(self) -> None:
        """Send SIGTERM to every registered process that is still alive."""
        for pid, name in list(self._pids.items()):
            try:
                os.kill(pid, signal.SIGTERM)
                logger.debug("terminated_at_exit", pid=pid, name=name)
            except (ProcessLookupError, PermissionError):
                pass
            except OSError as e:
                logger.warning("terminate_at_exit_failed", pid=pid, error=str(e))
        self._pids.clear()


_exit_registry = ExitRegistry()


def get_exit_registry() -> ExitRegistry:
    return _exit_registry


def register_exit_cleanup(pid: int, name: str = "player") -> None:
    """Terminate pid when the interpreter exits, unless unregistered first."""
    _exit_registry.register(pid, name)


def unregister_exit_cleanup(pid: int) -> None:
    _exit_registry.unregister(pid)


__all__ = [
    'ExitRegistry',
    'get_exit_registry',
    'register_exit_cleanup',
    'unregister_exit_cleanup',
]
