"""
Player binary resolution and launch arguments for mpv-session.

This module covers everything decided before the process is spawned:
- Which executable to run
- The unique IPC endpoint the player should listen on
- Default options merged with the caller's own
"""

import os
import shutil
import sys
import tempfile
import uuid
from pathlib import Path
from typing import List, Optional, Sequence

from ..utils.errors import ConfigurationError
from ..utils.logging import get_logger


logger = get_logger("mpv-session.binary")

IPC_SERVER_OPTION = "--input-ipc-server"

DEFAULT_OPTIONS = (
    "--audio-fallback-to-null=yes",
    "--no-config",
    "--idle",
    "--msg-level=all=warn",
)


def _binary_names() -> List[str]:
    """Get platform-specific binary names."""
    if sys.platform == "win32":
        return ["mpv.exe", "mpv.com", "mpv"]
    return ["mpv"]


def resolve_executable(path: Optional[str] = None) -> str:
    """
    Pick the player executable.

    An explicit path wins. Otherwise a player binary in the current working
    directory is preferred over whatever PATH provides, and the bare name is
    the last resort so the spawn error names what was tried.
    """
    if path:
        return path

    for name in _binary_names():
        local = Path.cwd() / name
        if local.is_file() and os.access(local, os.X_OK):
            logger.debug("executable_found", path=str(local), method="cwd")
            return str(local)

    for name in _binary_names():
        found = shutil.which(name)
        if found:
            logger.debug("executable_found", path=found, method="which")
            return found

    return _binary_names()[-1]


def random_endpoint() -> str:
    """Unique IPC endpoint: a named pipe on Windows, a socket path elsewhere."""
    token = uuid.uuid4().hex[:12]
    if sys.platform == "win32":
        return "\\\\.\\pipe\\mpvsocket" + token
    return os.path.join(tempfile.gettempdir(), "mpvsocket" + token)


def option_key(arg: str) -> str:
    """'--msg-level=all=warn' -> '--msg-level'."""
    return arg.split("=", 1)[0]


def build_arguments(args: Optional[Sequence[str]] = None, endpoint: Optional[str] = None) -> List[str]:
    """
    Merge caller arguments with the defaults.

    Each default (including the IPC endpoint option) is appended only when the
    caller has not already passed an option with the same key.
    """
    merged = list(args or [])
    supplied = {option_key(arg) for arg in merged if arg.startswith("--")}

    defaults = [f"{IPC_SERVER_OPTION}={endpoint or random_endpoint()}", *DEFAULT_OPTIONS]
    for default in defaults:
        if option_key(default) not in supplied:
            merged.append(default)

    return merged


def endpoint_from_args(args: Sequence[str]) -> str:
    """
    Extract the IPC endpoint from a merged argument list.

    Raises:
        ConfigurationError: no usable --input-ipc-server option
    """
    for arg in args:
        if option_key(arg) == IPC_SERVER_OPTION:
            endpoint = arg[len(IPC_SERVER_OPTION) + 1:]
            if endpoint:
                return endpoint
    raise ConfigurationError("Invalid socket path.")


__all__ = [
    'IPC_SERVER_OPTION',
    'DEFAULT_OPTIONS',
    'resolve_executable',
    'random_endpoint',
    'option_key',
    'build_arguments',
    'endpoint_from_args',
]
