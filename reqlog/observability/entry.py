from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any


_LEVELS = ("debug", "info", "warning", "error", "critical")

PANIC_LEVEL = "critical"

_fallback = logging.getLogger("reqlog")


def _level_rank(level: str | None) -> int:
    return _LEVELS.index(level or "info")


class RequestLogEntry:
    """Fields accumulated for one request, written once as the "completed" line."""

    def __init__(self, logger: Any) -> None:
        self.logger = logger
        # Pending completion level; None means info.
        self.level: str | None = None
        self.completed = False

    def add_field(self, key: str, value: Any) -> None:
        self.logger = self.logger.bind(**{key: value})

    def add_fields(self, fields: Mapping[str, Any]) -> None:
        if fields:
            self.logger = self.logger.bind(**dict(fields))

    def escalate(self, level: str) -> None:
        """Raise the completion level. Never lowers it."""

        level = level.lower()
        if level == "warn":
            level = "warning"
        if level not in _LEVELS:
            raise ValueError(f"unknown log level: {level!r}")
        if _level_rank(level) > _level_rank(self.level):
            self.level = level

    def panic(self, exc: BaseException, stack: str) -> None:
        """Record a recovered exception. Takes effect on the next ``write``."""

        self.escalate(PANIC_LEVEL)
        self.add_fields({"stack": stack, "panic": describe_exception(exc)})

    def write(self, status: int, nbytes: int, elapsed_s: float) -> None:
        if self.completed:
            return
        self.completed = True

        self.add_fields(
            {
                "status": status,
                "bytes": nbytes,
                "res_ms": max(elapsed_s, 0.0) * 1000.0,
            }
        )

        level = self.level
        if level is None:
            self.logger.info("completed")
            return

        # Escalated lines are best effort: a sink that treats these levels as
        # fatal must not take the process down with the request.
        try:
            getattr(self.logger, level)("completed")
        except (Exception, SystemExit) as exc:
            try:
                _fallback.error("failed to write %s completion line: %r", level, exc)
            except Exception:
                # Nothing left to report to.
                pass


def describe_exception(exc: BaseException) -> str:
    try:
        text = str(exc)
    except Exception:
        return f"<unprintable {type(exc).__name__}>"
    return text or type(exc).__name__


class RequestLogger:
    """Builds a ``RequestLogEntry`` from an ASGI HTTP scope."""

    def __init__(
        self,
        logger: Any,
        write_request_started_line: bool = True,
        log_scheme_fields: bool = False,
    ) -> None:
        self.logger = logger
        self.write_request_started_line = write_request_started_line
        self.log_scheme_fields = log_scheme_fields

    def new_log_entry(self, scope: dict[str, Any]) -> RequestLogEntry:
        fields: dict[str, Any] = {}

        request_id = scope.get("state", {}).get("request_id")
        if request_id:
            fields["req_id"] = request_id

        if self.log_scheme_fields:
            fields["http_scheme"] = scope.get("scheme", "http")
            fields["http_proto"] = f"HTTP/{scope.get('http_version', '1.1')}"

        fields["method"] = scope.get("method")
        fields["ip"] = _client_addr(scope)
        fields["ua"] = _header(scope, b"user-agent")
        fields["uri"] = scope.get("path")

        entry = RequestLogEntry(self.logger.bind(**fields))
        if self.write_request_started_line:
            entry.logger.info("request started")
        return entry


def _client_addr(scope: dict[str, Any]) -> str:
    client = scope.get("client")
    if not client:
        return ""
    host, port = client
    return f"{host}:{port}"


def _header(scope: dict[str, Any], name: bytes) -> str:
    for key, value in scope.get("headers", []):
        if key.lower() == name:
            return value.decode("latin-1")
    return ""

