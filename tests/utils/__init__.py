"""
Test utilities for mpv-session.
"""

from .async_helpers import wait_for_condition, wait_for_event
from .mock_helpers import FakeConnection, reply_to

__all__ = [
    "wait_for_condition",
    "wait_for_event",
    "FakeConnection",
    "reply_to",
]
