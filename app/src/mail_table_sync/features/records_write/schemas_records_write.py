"""`/records` のリクエスト/レスポンススキーマ。"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from mail_table_sync.shared.schemas.records import SourceRecordModel, WriteOutcomeModel


class RecordsWriteRequest(BaseModel):
    """テーブルへ書き込むメールの一覧。"""

    records: list[SourceRecordModel] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


__all__ = [
    "RecordsWriteRequest",
    "SourceRecordModel",
    "WriteOutcomeModel",
]
