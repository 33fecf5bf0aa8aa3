"""メール取得からテーブル書き込みまでを通しで行うユースケース。"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from mail_table_sync.clients import mail_api_client
from mail_table_sync.clients.bitable_client import table_from_settings
from mail_table_sync.clients.mail_api_client import MailApiError, MailCredentials
from mail_table_sync.core.constants import EMAIL_PROVIDERS, MAX_SYNC_COUNT, MIN_SYNC_COUNT
from mail_table_sync.core.logging import log_event
from mail_table_sync.core.models import WriteOutcome
from mail_table_sync.core.settings import Settings
from mail_table_sync.features.mail_sync.schemas_mail_sync import MailSyncRequest
from mail_table_sync.features.records_write.usecase_records_write import BatchWriter
from mail_table_sync.features.table_schema.usecase_table_schema import current_table_name


@dataclass(slots=True)
class SyncReport:
    fetched: int
    table_name: str
    outcome: WriteOutcome

    @property
    def message(self) -> str:
        return f"同期完了: {self.outcome.summary()}"


def validate_sync_request(request: MailSyncRequest) -> None:
    if not request.email.strip():
        raise ValueError("メールアドレスを入力してください。")
    if not request.password.strip():
        raise ValueError("メールの認証コードを入力してください。")
    if request.provider not in EMAIL_PROVIDERS:
        raise ValueError(f"未対応のメールプロバイダです: {request.provider}")
    if not MIN_SYNC_COUNT <= request.count <= MAX_SYNC_COUNT:
        raise ValueError(f"同期件数は {MIN_SYNC_COUNT}-{MAX_SYNC_COUNT} の範囲で指定してください。")


def sync_mail(request: MailSyncRequest, *, settings: Settings) -> SyncReport:
    """メールを取得してテーブルへ書き込む。

    Raises:
        ValueError: 入力値または接続設定が不正な場合
        MailApiError: メール取得サービスの呼び出しに失敗した場合
        FatalSyncError: フィールド整備に失敗した場合
    """

    validate_sync_request(request)
    table = table_from_settings(settings)

    with table:
        status = mail_api_client.check_status(base_url=settings.mail_api_base_url)
        if not status.ok:
            raise MailApiError(f"メール取得サービスに接続できません: {status.error}", 503)

        credentials = MailCredentials(username=request.email.strip(), password=request.password)
        result = mail_api_client.fetch_records(
            credentials,
            request.provider,
            request.count,
            base_url=settings.mail_api_base_url,
        )
        if not result.ok:
            raise MailApiError(result.error or "メールデータの取得に失敗しました", 502)

        log_event(logging.INFO, "mail_sync_fetched", count=len(result.records))
        outcome = BatchWriter(table).write_records(result.records)
        name = current_table_name(table)

    return SyncReport(fetched=len(result.records), table_name=name, outcome=outcome)
