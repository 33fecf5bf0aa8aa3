"""httpx クライアントの共通設定。"""

from __future__ import annotations

import httpx

from mail_table_sync.core.constants import HTTP_TIMEOUT_S

DEFAULT_TIMEOUT = httpx.Timeout(HTTP_TIMEOUT_S, connect=5.0)


def create_sync_client(
    *, base_url: str = "", timeout: httpx.Timeout | None = None
) -> httpx.Client:
    """共通タイムアウト付きの同期 Client を生成する。"""

    return httpx.Client(base_url=base_url, timeout=timeout or DEFAULT_TIMEOUT)
