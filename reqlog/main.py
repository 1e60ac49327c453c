from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

import structlog
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from reqlog import __version__
from reqlog.api.articles import router as articles_router
from reqlog.config import get_settings
from reqlog.observability.context import install_logger, log
from reqlog.observability.counter import RequestCounterMiddleware
from reqlog.observability.logging import configure_logging
from reqlog.observability.middleware import RequestIDMiddleware, RequestLoggerMiddleware


settings = get_settings()
configure_logging(settings)

logger = structlog.get_logger("reqlog")
install_logger(logger)
log().info("booting up server", version=__version__)


async def _tick(interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        log().info("tick")


@contextlib.asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    interval = get_settings().tick_interval_seconds
    ticker = asyncio.create_task(_tick(interval)) if interval > 0 else None
    try:
        yield
    finally:
        if ticker is not None:
            ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await ticker


app = FastAPI(title="reqlog example", version=__version__, lifespan=lifespan)
# Last added runs first: RequestID -> RequestLogger -> RequestCounter -> routes.
app.add_middleware(RequestCounterMiddleware)
app.add_middleware(
    RequestLoggerMiddleware,
    logger=logger,
    write_request_started_line=settings.log_request_started_line,
    log_scheme_fields=settings.log_scheme_fields,
)
app.add_middleware(RequestIDMiddleware, header_name=settings.request_id_header)
app.include_router(articles_router)


@app.get("/", response_class=PlainTextResponse)
async def index() -> str:
    log().info("index")
    return "index"


@app.get("/stdlog", response_class=PlainTextResponse)
async def stdlog() -> str:
    logging.getLogger("reqlog.stdlog").info("logging from stdlib logging to structlog")
    return "piping from the stdlib logging module"


@app.get("/panic")
async def panic() -> None:
    raise RuntimeError("boom")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
