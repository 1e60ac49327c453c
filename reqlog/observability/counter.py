from __future__ import annotations

from threading import Lock
from typing import Any, Callable

from reqlog.observability.fields import set_log_field


class RequestCounter:
    """Thread-safe, process-local request tally (resets on restart)."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._value = 0

    def increment(self) -> int:
        """Increment and return the new value. No two callers see the same value."""

        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def reset(self) -> None:
        with self._lock:
            self._value = 0


_COUNTER: RequestCounter | None = None
_COUNTER_LOCK = Lock()


def get_request_counter() -> RequestCounter:
    global _COUNTER
    if _COUNTER is None:
        with _COUNTER_LOCK:
            if _COUNTER is None:
                _COUNTER = RequestCounter()
    return _COUNTER


def reset_request_counter() -> None:
    """Reset the shared counter (used by tests)."""

    get_request_counter().reset()


class RequestCounterMiddleware:
    """Counts HTTP requests and logs the running total as ``count``."""

    def __init__(self, app: Callable[..., Any], counter: RequestCounter | None = None) -> None:
        self.app = app
        self.counter = counter or get_request_counter()

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") == "http":
            set_log_field("count", self.counter.increment())
        await self.app(scope, receive, send)
