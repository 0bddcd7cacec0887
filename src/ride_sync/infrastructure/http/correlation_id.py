from __future__ import annotations

import uuid
from contextvars import ContextVar

import httpx

correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="")

HEADER = "X-Request-ID"


async def attach_correlation_id(request: httpx.Request) -> None:
    """httpx request hook: tag every outgoing call with a request id."""
    if HEADER not in request.headers:
        request.headers[HEADER] = correlation_id_ctx.get() or uuid.uuid4().hex
