from __future__ import annotations

from contextvars import ContextVar, Token
from typing import TYPE_CHECKING, Any

from starlette.requests import Request

if TYPE_CHECKING:
    from reqlog.observability.entry import RequestLogEntry


class LoggerNotConfiguredError(RuntimeError):
    """Raised when neither a request log entry nor a fallback logger is installed."""


_log_entry_var: ContextVar[RequestLogEntry | None] = ContextVar("reqlog_log_entry", default=None)


# Process-wide fallback for code outside a request (boot, background tasks and threads).
_logger: Any | None = None


def install_logger(logger: Any) -> None:
    """Install the process-wide fallback logger. Call once at boot."""

    global _logger
    _logger = logger


def with_log_entry(entry: RequestLogEntry) -> Token:
    return _log_entry_var.set(entry)


def reset_log_entry(token: Token) -> None:
    _log_entry_var.reset(token)


def get_log_entry() -> RequestLogEntry | None:
    return _log_entry_var.get()


def get_request_log_entry(request: Request) -> RequestLogEntry | None:
    entry = request.scope.get("state", {}).get("log_entry")
    if entry is not None:
        return entry
    return get_log_entry()


def _resolve(entry: RequestLogEntry | None) -> Any:
    if entry is not None:
        return entry.logger
    if _logger is None:
        raise LoggerNotConfiguredError("reqlog: logger backend has not been set")
    return _logger


def log() -> Any:
    """Return the current request's logger, or the fallback process logger."""

    return _resolve(get_log_entry())


def request_log(request: Request) -> Any:
    """Like ``log()``, but looks the entry up on the request first.

    Works as a FastAPI dependency: ``logger = Depends(request_log)``.
    """

    return _resolve(get_request_log_entry(request))
