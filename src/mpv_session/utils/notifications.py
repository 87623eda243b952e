"""
Notification system for mpv-session.

A small publish/subscribe emitter keyed by event name. Handlers may be plain
callables (called inline) or coroutine functions (scheduled on the running
loop). Handler failures are logged and never propagate to the emitter.
"""

from typing import Any, Callable, Dict, List, Optional
from dataclasses import dataclass
import asyncio

from .logging import get_logger


logger = get_logger("mpv-session.notifications")


def call_handler(handler: Callable[..., Any], *args: Any) -> Optional[asyncio.Task]:
    """Invoke a sync or async handler, isolating the caller from its errors."""
    name = getattr(handler, '__name__', repr(handler))
    try:
        result = handler(*args)
    except Exception as e:
        logger.error(
            "handler_error",
            handler=name,
            error=str(e),
            exc_info=True
        )
        return None

    if asyncio.iscoroutine(result):
        task = asyncio.ensure_future(result)
        task.add_done_callback(lambda t: _log_task_failure(t, name))
        return task
    return None


def _log_task_failure(task: asyncio.Future, name: str) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(
            "async_handler_error",
            handler=name,
            error=str(error),
            exc_info=error
        )


@dataclass
class Listener:
    """Registered event listener."""
    handler: Callable[..., Any]
    once: bool = False


class EventEmitter:
    """Named-event emitter used for session lifecycle and player events."""

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = {}

    def on(self, event: str, handler: Optional[Callable[..., Any]] = None) -> Callable[..., Any]:
        """Register a handler. Without one, returns a decorator that registers it."""
        if handler is None:
            return lambda fn: self.on(event, fn)
        self._listeners.setdefault(event, []).append(Listener(handler))
        logger.debug("listener_added", event_name=event)
        return handler

    def once(self, event: str, handler: Callable[..., Any]) -> Callable[..., Any]:
        """Register a handler that is removed after its first call."""
        self._listeners.setdefault(event, []).append(Listener(handler, once=True))
        return handler

    def off(self, event: str, handler: Callable[..., Any]) -> bool:
        """Remove the first registration of handler for event."""
        # Equality, not identity: bound methods are new objects on every access
        for listener in self._listeners.get(event, []):
            if listener.handler == handler:
                self._discard(event, listener)
                return True
        return False

    def _discard(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(event, [])
        for index, candidate in enumerate(listeners):
            if candidate is listener:
                del listeners[index]
                break
        if not listeners:
            self._listeners.pop(event, None)

    def remove_all_listeners(self, event: Optional[str] = None) -> None:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> bool:
        """
        Emit an event to every registered handler.

        Returns:
            True if at least one handler was registered
        """
        listeners = list(self._listeners.get(event, []))
        if not listeners:
            if event == "error":
                error = args[0] if args else None
                logger.error(
                    "unhandled_error_event",
                    error=str(error),
                    error_type=type(error).__name__
                )
            return False

        for listener in listeners:
            if listener.once:
                self._discard(event, listener)
            call_handler(listener.handler, *args)
        return True


__all__ = [
    'EventEmitter',
    'Listener',
    'call_handler',
]
