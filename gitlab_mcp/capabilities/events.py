"""``tools/list_changed`` notification fan-out.

Listeners take no arguments; they re-fetch the tool list themselves. A
listener that raises is logged and skipped so the others still run.
"""

from __future__ import annotations

import inspect
import logging
import threading
from typing import Any, Awaitable, Callable, List, Union

logger = logging.getLogger(__name__)

Listener = Callable[[], Union[Awaitable[Any], Any]]


class ChangeNotifier:
    """Broadcast "capabilities changed" to subscribed listeners."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: List[Listener] = []
        self.sent = 0

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; the returned callable unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    async def notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
            self.sent += 1
        logger.debug(f"Sending tools/list_changed to {len(listeners)} listener(s)")
        for listener in listeners:
            try:
                result = listener()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(f"tools/list_changed listener {listener!r} failed: {e}")
