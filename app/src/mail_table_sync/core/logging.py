"""JSONロギングの共通ヘルパー。

HTTP リクエスト単位のログと、同期パイプライン内のイベントログを
どちらも 1 行 1 JSON で `mail_table_sync` ロガーへ出力する。
"""

from __future__ import annotations

import json
import logging
import traceback
from typing import Any

_LOGGER = logging.getLogger("mail_table_sync")


def log_request(*, path: str, status: int, request_id: str, latency_ms: int) -> None:
    _emit(
        logging.INFO,
        {"path": path, "status": status, "request_id": request_id, "latency_ms": latency_ms},
    )


def log_error(
    *,
    path: str,
    status: int,
    request_id: str,
    latency_ms: int,
    error: Any,
) -> None:
    _emit(
        logging.ERROR,
        {
            "path": path,
            "status": status,
            "request_id": request_id,
            "latency_ms": latency_ms,
            "error_json": _to_error_json(error),
            "traceback": traceback.format_exc(),
        },
    )


def log_event(level: int, event: str, **fields: Any) -> None:
    """パイプライン内のイベントを 1 行の JSON として出力する。"""

    _emit(level, {"event": event, **fields})


def _emit(level: int, fields: dict[str, Any]) -> None:
    payload = {"level": logging.getLevelName(level), **fields}
    _LOGGER.log(level, json.dumps(payload, ensure_ascii=False, default=str))


def _to_error_json(error: Any) -> str:
    if isinstance(error, (dict, list)):
        return json.dumps(error, ensure_ascii=False)
    return json.dumps({"message": str(error)}, ensure_ascii=False)
