"""
Pytest configuration and shared fixtures for mpv-session tests.
"""

import os
import shutil
import sys
import tempfile
from pathlib import Path
from typing import AsyncGenerator, Generator

import pytest

from mpv_session import MpvSession, PlayerConfig
from tests.fixtures import FAKE_MPV
from tests.utils.mock_helpers import FakeConnection


requires_unix_socket = pytest.mark.skipif(
    sys.platform == "win32",
    reason="the fake player only serves Unix domain sockets"
)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def socket_path() -> Generator[str, None, None]:
    """Short Unix socket path; pytest's tmp_path can exceed the sun_path limit."""
    directory = tempfile.mkdtemp(prefix="mpvs")
    yield os.path.join(directory, "sock")
    shutil.rmtree(directory, ignore_errors=True)


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def player_config() -> PlayerConfig:
    """Config that runs the fake player with the current interpreter."""
    return PlayerConfig(
        path=sys.executable,
        args=[str(FAKE_MPV)],
        connect_timeout=10.0,
        terminate_timeout=2.0,
    )


@pytest.fixture
async def session(player_config: PlayerConfig) -> AsyncGenerator[MpvSession, None]:
    """A started session against the fake player."""
    mpv = MpvSession(player_config)
    await mpv.start()
    yield mpv
    await mpv.end()
