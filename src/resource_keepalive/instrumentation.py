"""In-process event notifications for observing requests.

Subscribers receive ``(name, payload, duration)`` after the instrumented
block finishes. With no subscribers, instrumenting is a no-op apart from
building the payload dict.
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)

Subscriber = Callable[[str, Dict[str, Any], float], None]


class Notifier:
    """Dispatches named events to subscribed callbacks."""

    def __init__(self):
        self._subscribers: Dict[str, List[Subscriber]] = {}
        self._lock = threading.Lock()

    def subscribe(self, name: str, callback: Subscriber) -> Callable[[], None]:
        """Subscribe to an event. Returns a function that unsubscribes."""
        with self._lock:
            self._subscribers.setdefault(name, []).append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(name, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    def has_subscribers(self, name: str) -> bool:
        with self._lock:
            return bool(self._subscribers.get(name))

    @contextmanager
    def instrument(self, name: str, payload: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
        """
        Time a block and publish its payload.

        The block fills in the yielded payload. If it raises, the payload
        gets an ``exception`` entry, subscribers are notified, and the
        exception propagates.
        """
        payload = {} if payload is None else payload
        started = time.monotonic()
        try:
            yield payload
        except Exception as e:
            payload["exception"] = e
            raise
        finally:
            self._publish(name, payload, time.monotonic() - started)

    def _publish(self, name: str, payload: Dict[str, Any], duration: float) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(name, []))
        for callback in callbacks:
            try:
                callback(name, payload, duration)
            except Exception as e:
                logger.warning(f"Subscriber for {name} failed: {e}")


_default_notifier = Notifier()


def get_notifier() -> Notifier:
    """Return the process-wide notifier used when none is given explicitly."""
    return _default_notifier


def subscribe(name: str, callback: Subscriber) -> Callable[[], None]:
    """Subscribe to an event on the process-wide notifier."""
    return _default_notifier.subscribe(name, callback)
