"""
Managers package for mpv-session.
"""

from .binary import build_arguments, endpoint_from_args, random_endpoint, resolve_executable
from .observers import Observation, ObservationRegistry, Subscription
from .process import ProcessSupervisor, SessionState
from .requests import PendingRequest, RequestCorrelator

__all__ = [
    # Launch
    'build_arguments',
    'endpoint_from_args',
    'random_endpoint',
    'resolve_executable',

    # Process
    'ProcessSupervisor',
    'SessionState',

    # Requests
    'PendingRequest',
    'RequestCorrelator',

    # Observers
    'Observation',
    'ObservationRegistry',
    'Subscription',
]
