"""FastAPI 用の共通ミドルウェア群。"""

from __future__ import annotations

import time
import uuid
from typing import Awaitable, Callable

from fastapi import Request, Response

from mail_table_sync.core.logging import log_error, log_request


RequestHandler = Callable[[Request], Awaitable[Response]]


async def request_id_middleware(request: Request, call_next: RequestHandler) -> Response:
    """X-Request-Id を受理・生成しレスポンスヘッダへ付与する。"""

    request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
    request.state.request_id = request_id

    started = time.perf_counter()
    request.state.request_started = started
    try:
        response = await call_next(request)
    except Exception as exc:
        log_error(
            path=request.url.path,
            status=500,
            request_id=request_id,
            latency_ms=int((time.perf_counter() - started) * 1000),
            error=exc,
        )
        raise

    latency_ms = int((time.perf_counter() - started) * 1000)
    response.headers["X-Request-Id"] = request_id
    response.headers["X-Response-Time-Ms"] = str(latency_ms)
    log_request(
        path=request.url.path,
        status=response.status_code,
        request_id=request_id,
        latency_ms=latency_ms,
    )
    return response
