"""Add fields to the current request's log entry.

All functions are no-ops outside of a request handled by ``RequestLoggerMiddleware``,
so library code can call them without knowing whether it runs in request scope.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from starlette.requests import Request

from reqlog.observability.context import get_log_entry, get_request_log_entry


def set_log_field(key: str, value: Any) -> None:
    entry = get_log_entry()
    if entry is not None:
        entry.add_field(key, value)


def set_log_fields(fields: Mapping[str, Any]) -> None:
    entry = get_log_entry()
    if entry is not None:
        entry.add_fields(fields)


def set_request_log_field(request: Request, key: str, value: Any) -> None:
    entry = get_request_log_entry(request)
    if entry is not None:
        entry.add_field(key, value)


def set_request_log_fields(request: Request, fields: Mapping[str, Any]) -> None:
    entry = get_request_log_entry(request)
    if entry is not None:
        entry.add_fields(fields)
