"""メール取得サービスのクライアント。"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from mail_table_sync.clients.http_client import create_sync_client
from mail_table_sync.core.logging import log_event
from mail_table_sync.core.models import SourceRecord

STATUS_PATH = "/api/status"
SYNC_PATH = "/api/sync/email"


class MailApiError(RuntimeError):
    """メール取得サービスのエラーを表す例外。"""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True, frozen=True)
class MailCredentials:
    username: str
    password: str = field(repr=False)


@dataclass(slots=True)
class StatusResult:
    ok: bool
    detail: Any = None
    error: str | None = None


@dataclass(slots=True)
class FetchResult:
    ok: bool
    records: list[SourceRecord] = field(default_factory=list)
    error: str | None = None


def check_status(*, base_url: str, timeout: httpx.Timeout | None = None) -> StatusResult:
    """取得サービスの稼働状況を確認する。"""

    try:
        with create_sync_client(base_url=base_url, timeout=timeout) as client:
            response = client.get(STATUS_PATH)
    except httpx.HTTPError as exc:
        return StatusResult(ok=False, error=str(exc) or "サービス状態の確認に失敗しました")

    if response.status_code != 200:
        return StatusResult(ok=False, error=_build_error_message(response))
    return StatusResult(ok=True, detail=_json_or_none(response))


def fetch_records(
    credentials: MailCredentials,
    provider: str,
    count: int,
    *,
    base_url: str,
    timeout: httpx.Timeout | None = None,
) -> FetchResult:
    """メールを取得して `SourceRecord` の一覧に変換する。"""

    payload = {
        "email_username": credentials.username,
        "email_password": credentials.password,
        "email_provider": provider,
        "email_count": count,
    }

    try:
        with create_sync_client(base_url=base_url, timeout=timeout) as client:
            response = client.post(SYNC_PATH, json=payload)
    except httpx.HTTPError as exc:
        log_event(logging.ERROR, "mail_fetch_failed", provider=provider, error=str(exc))
        return FetchResult(ok=False, error=str(exc) or "メール同期に失敗しました")

    if response.status_code != 200:
        message = _build_error_message(response)
        log_event(logging.ERROR, "mail_fetch_failed", provider=provider, error=message)
        return FetchResult(ok=False, error=message)

    items = _extract_email_items(_json_or_none(response))
    if items is None:
        return FetchResult(ok=False, error="メールデータの形式が不正です")

    records = [SourceRecord.from_payload(item) for item in items if isinstance(item, dict)]
    log_event(logging.INFO, "mail_fetched", provider=provider, count=len(records))
    return FetchResult(ok=True, records=records)


def _extract_email_items(body: Any) -> list[Any] | None:
    if not isinstance(body, dict) or not body.get("success"):
        return None
    data = body.get("data")
    if isinstance(data, dict) and isinstance(data.get("emails"), list):
        return data["emails"]
    if isinstance(data, list):
        return data
    return None


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except json.JSONDecodeError:
        return None


def _build_error_message(response: httpx.Response) -> str:
    body = _json_or_none(response)
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"メール取得サービスの呼び出しが失敗しました (Status: {response.status_code})"
