"""Process lifecycle notifications."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Generator

logger = logging.getLogger(__name__)

PROFILE_TEARDOWN = "profile-change-teardown"

Handler = Callable[[], None]


class EventSource:
    """Topic-keyed observer registry.

    Handlers run on the notifying thread, outside the registry lock, so a
    handler may unsubscribe itself. A failing handler is logged and does not
    stop the others.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: dict[str, list[Handler]] = {}

    def subscribe(self, topic: str, handler: Handler) -> None:
        with self._lock:
            self._handlers.setdefault(topic, []).append(handler)

    def unsubscribe(self, topic: str, handler: Handler) -> None:
        with self._lock:
            handlers = self._handlers.get(topic, [])
            if handler in handlers:
                handlers.remove(handler)

    @contextmanager
    def subscription(self, topic: str, handler: Handler) -> Generator[None, None, None]:
        """Keep ``handler`` subscribed for the duration of the block."""
        self.subscribe(topic, handler)
        try:
            yield
        finally:
            self.unsubscribe(topic, handler)

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._handlers.get(topic, []))

    def notify(self, topic: str) -> int:
        """Call every handler subscribed to ``topic``. Returns how many ran."""
        with self._lock:
            handlers = list(self._handlers.get(topic, []))
        for handler in handlers:
            try:
                handler()
            except Exception:
                logger.exception("Handler for '%s' failed", topic)
        return len(handlers)
