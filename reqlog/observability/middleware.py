from __future__ import annotations

import asyncio
import traceback
import uuid
from dataclasses import dataclass
from time import perf_counter
from typing import Any, Callable

from starlette.datastructures import MutableHeaders
from starlette.responses import PlainTextResponse

from reqlog.observability.context import reset_log_entry, with_log_entry
from reqlog.observability.entry import RequestLogEntry, RequestLogger, describe_exception


@dataclass
class RequestLoggerConfig:
    # Backing structlog logger that every request entry is bound from.
    logger: Any
    # If false, only the "completed" line is written.
    write_request_started_line: bool = True
    # Adds http_scheme/http_proto to the request fields.
    log_scheme_fields: bool = False


class ResponseRecorder:
    """Pass-through ``send`` that remembers the response status and body size."""

    def __init__(self, send: Callable[..., Any]) -> None:
        self._send = send
        self.started = False
        # 0 until a response has been started.
        self.status = 0
        self.bytes_written = 0

    async def send(self, message: dict[str, Any]) -> None:
        message_type = message.get("type")
        if message_type == "http.response.start":
            self.started = True
            self.status = int(message.get("status", 200))
        elif message_type == "http.response.body":
            self.bytes_written += len(message.get("body", b""))
        await self._send(message)


class RequestLoggerMiddleware:
    """Per-request log entry, panic recovery and a single completion line.

    Exceptions escaping the downstream app are recorded on the entry (``panic`` and
    ``stack`` fields, critical level) and answered with a plain 500, unless a
    response was already started. They are not re-raised.
    """

    def __init__(
        self,
        app: Callable[..., Any],
        config: RequestLoggerConfig | None = None,
        *,
        logger: Any = None,
        write_request_started_line: bool = True,
        log_scheme_fields: bool = False,
    ) -> None:
        if config is None:
            if logger is None:
                raise ValueError("RequestLoggerMiddleware requires a logger")
            config = RequestLoggerConfig(
                logger=logger,
                write_request_started_line=write_request_started_line,
                log_scheme_fields=log_scheme_fields,
            )
        self.app = app
        self.config = config
        self.http_logger = RequestLogger(
            config.logger,
            write_request_started_line=config.write_request_started_line,
            log_scheme_fields=config.log_scheme_fields,
        )

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        entry = self.http_logger.new_log_entry(scope)
        scope.setdefault("state", {})["log_entry"] = entry
        token = with_log_entry(entry)
        recorder = ResponseRecorder(send)

        start = perf_counter()
        try:
            await self.app(scope, receive, recorder.send)
        except asyncio.CancelledError:
            # Client went away or the server gave up on the request.
            entry.add_field("cancelled", True)
            entry.escalate("warning")
            raise
        except Exception as exc:
            try:
                entry.panic(exc, traceback.format_exc())
            except Exception:
                # The level is already escalated; the 500 below must still go out.
                pass
            if not recorder.started:
                await self._send_server_error(scope, receive, recorder, entry)
        finally:
            try:
                entry.write(recorder.status, recorder.bytes_written, perf_counter() - start)
            finally:
                reset_log_entry(token)

    @staticmethod
    async def _send_server_error(
        scope: dict[str, Any],
        receive: Callable[..., Any],
        recorder: ResponseRecorder,
        entry: RequestLogEntry,
    ) -> None:
        response = PlainTextResponse("Internal Server Error", status_code=500)
        try:
            await response(scope, receive, recorder.send)
        except Exception as exc:
            # The connection is unusable; the completion line still records the panic.
            entry.add_field("send_error", describe_exception(exc))


class RequestIDMiddleware:
    """Assigns a correlation id to each request and echoes it in a response header.

    An id supplied by the client (or a gateway) in the same header is reused.
    """

    def __init__(self, app: Callable[..., Any], header_name: str = "X-Request-ID") -> None:
        self.app = app
        self.header_name = header_name
        self._header_key = header_name.lower().encode("latin-1")

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = ""
        for key, value in scope.get("headers", []):
            if key.lower() == self._header_key:
                request_id = value.decode("latin-1").strip()
                break
        if not request_id:
            request_id = str(uuid.uuid4())

        scope.setdefault("state", {})["request_id"] = request_id

        async def send_wrapper(message: dict[str, Any]) -> None:
            if message.get("type") == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers[self.header_name] = request_id
            await send(message)

        await self.app(scope, receive, send_wrapper)


class PrintPanicsMiddleware:
    """Development helper: print exceptions and their traceback to stdout, then re-raise.

    Install it inside ``RequestLoggerMiddleware`` so the request logger still answers
    with a 500 and writes the completion line.
    """

    def __init__(self, app: Callable[..., Any]) -> None:
        self.app = app

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        try:
            await self.app(scope, receive, send)
        except Exception as exc:
            print(f"\nPANIC: {exc!r}")
            print(traceback.format_exc())
            raise
