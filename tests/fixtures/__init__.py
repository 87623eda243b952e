"""
Test fixtures for mpv-session.

FAKE_MPV is a standalone script that speaks the player's JSON IPC protocol;
sessions under test run it with the current interpreter.
"""

from pathlib import Path

FAKE_MPV = Path(__file__).parent / "fake_mpv.py"

__all__ = [
    "FAKE_MPV",
]
