from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from reqlog.observability.context import log, request_log
from reqlog.observability.fields import set_log_field, set_request_log_field


async def article_ctx(request: Request) -> None:
    request_log(request).warning("inside article_ctx dependency")
    set_request_log_field(request, "article", 123)


def paginate_ctx() -> None:
    # Sync dependency: runs in the threadpool, entry is reached through the copied context.
    log().warning("inside paginate_ctx dependency")
    set_log_field("paginate", True)


router = APIRouter(prefix="/articles", tags=["articles"], dependencies=[Depends(article_ctx)])


@router.get("/", response_class=PlainTextResponse, dependencies=[Depends(paginate_ctx)])
async def list_articles(request: Request) -> str:
    request_log(request).info("articles list")
    return "list"


@router.get("/search", response_class=PlainTextResponse)
async def search_articles(request: Request) -> str:
    request_log(request).info("articles search")
    return "search"
