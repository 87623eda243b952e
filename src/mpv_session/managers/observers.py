"""
Property observation registry for mpv-session.

One observe_property registration is kept per property name, shared by every
callback interested in it. Registrations keep their subscription id for
their whole life and are re-sent to the player after each reconnect, since a
restarted player has forgotten them.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..models.commands import Command, CommandKind
from ..utils.errors import SessionClosed
from ..utils.logging import get_logger
from ..utils.notifications import call_handler
from .requests import RequestCorrelator


logger = get_logger("mpv-session.observers")

PropertyCallback = Callable[[Any], Any]


@dataclass
class Observation:
    """Registry entry for one observed property."""
    key: str
    subscription_id: int
    callbacks: Dict[PropertyCallback, None] = field(default_factory=dict)
    registration: Optional[asyncio.Future] = None

    @property
    def registered(self) -> bool:
        """True once the player acknowledged the observe_property command."""
        return (
            self.registration is not None
            and self.registration.done()
            and not self.registration.cancelled()
            and self.registration.exception() is None
        )

    @property
    def failed(self) -> bool:
        """True once the observe_property command failed or was cancelled."""
        registration = self.registration
        if registration is None or not registration.done():
            return False
        return registration.cancelled() or registration.exception() is not None


class Subscription:
    """Handle returned by observe(); calling it unsubscribes once."""

    def __init__(self, registry: "ObservationRegistry", key: str, callback: PropertyCallback):
        self._registry = registry
        self.key = key
        self.callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._registry.unobserve(self.key, self.callback)

    __call__ = unsubscribe

    def __repr__(self) -> str:
        return f"Subscription(key={self.key!r}, active={self._active})"


class ObservationRegistry:
    """Deduplicated, reconnect-surviving property subscriptions."""

    def __init__(self, correlator: RequestCorrelator,
                 on_error: Optional[Callable[[Exception], Any]] = None):
        self.correlator = correlator
        self.on_error = on_error
        self._next_id = 0
        self._entries: Dict[str, Observation] = {}

        # Re-observe before the queued commands are flushed
        correlator.connection.on_ready(self.replay, first=True)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[Observation]:
        return self._entries.get(key)

    @property
    def keys(self) -> List[str]:
        return list(self._entries)

    async def observe(self, key: str, callback: PropertyCallback) -> Subscription:
        """
        Subscribe callback to changes of property key.

        Concurrent calls for the same new key share a single observe_property
        command. Raises whatever the registration command failed with.
        """
        entry = self._entries.get(key)
        if entry is not None and entry.failed:
            # Rejected registration whose cleanup callback has not run yet
            del self._entries[key]
            entry = None

        if entry is not None:
            entry.callbacks[callback] = None
            logger.debug("observer_added", key=key, subscription_id=entry.subscription_id,
                         callbacks=len(entry.callbacks))
            if entry.registration is not None and not entry.registration.done():
                try:
                    await asyncio.shield(entry.registration)
                except Exception:
                    entry.callbacks.pop(callback, None)
                    raise
            return Subscription(self, key, callback)

        self._next_id += 1
        entry = Observation(key=key, subscription_id=self._next_id, callbacks={callback: None})
        entry.registration = self.correlator.issue(
            Command.build(CommandKind.OBSERVE_PROPERTY, entry.subscription_id, key)
        )
        # Cleanup must not depend on any awaiting caller surviving
        entry.registration.add_done_callback(lambda _: self._registration_settled(entry))
        self._entries[key] = entry
        logger.debug("observing", key=key, subscription_id=entry.subscription_id)

        await asyncio.shield(entry.registration)
        return Subscription(self, key, callback)

    def _registration_settled(self, entry: Observation) -> None:
        """Forget an entry whose observe_property command did not succeed."""
        if not entry.failed:
            return
        if self._entries.get(entry.key) is entry:
            del self._entries[entry.key]
        registration = entry.registration
        error = "cancelled" if registration.cancelled() else str(registration.exception())
        logger.warning("observe_failed", key=entry.key, subscription_id=entry.subscription_id,
                       error=error)

    def unobserve(self, key: str, callback: PropertyCallback) -> None:
        """Remove callback; drop the player-side registration with the last one."""
        entry = self._entries.get(key)
        if entry is None or callback not in entry.callbacks:
            return

        del entry.callbacks[callback]
        if entry.callbacks:
            return

        del self._entries[key]
        logger.debug("unobserving", key=key, subscription_id=entry.subscription_id)

        registration = entry.registration
        if registration is not None and not registration.done():
            # Still registering: drop it on the player once it is acknowledged
            registration.add_done_callback(lambda _: self._send_unobserve(entry))
        else:
            self._send_unobserve(entry)

    def _send_unobserve(self, entry: Observation) -> None:
        if not entry.registered:
            return
        self._send_best_effort(Command.build(CommandKind.UNOBSERVE_PROPERTY, entry.subscription_id))

    def replay(self) -> None:
        """Re-register every acknowledged observation on a fresh connection."""
        for entry in self._entries.values():
            if not entry.registered:
                continue
            logger.debug("reobserving", key=entry.key, subscription_id=entry.subscription_id)
            self._send_best_effort(
                Command.build(CommandKind.OBSERVE_PROPERTY, entry.subscription_id, entry.key)
            )

    def dispatch(self, key: str, data: Any) -> int:
        """
        Deliver a property value to every callback observing key.

        Returns:
            Number of callbacks invoked
        """
        entry = self._entries.get(key)
        if entry is None:
            return 0
        callbacks = list(entry.callbacks)
        for callback in callbacks:
            call_handler(callback, data)
        return len(callbacks)

    def clear(self) -> None:
        self._entries.clear()

    def _send_best_effort(self, command: Command) -> None:
        if self.correlator.closed:
            return
        future = self.correlator.issue(command)
        future.add_done_callback(self._report_failure)

    def _report_failure(self, future: asyncio.Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is None or isinstance(error, SessionClosed):
            return
        logger.warning("observation_command_failed", error=str(error))
        if self.on_error is not None:
            self.on_error(error)


__all__ = [
    'Observation',
    'Subscription',
    'ObservationRegistry',
    'PropertyCallback',
]
