"""メールレコードと書き込み結果の共有スキーマ。"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from mail_table_sync.core.models import WriteOutcome


class AttachmentModel(BaseModel):
    filename: str
    size: int = 0
    content_type: str | None = None
    content: str | None = Field(None, description="base64 エンコードされたファイル内容")


class SourceRecordModel(BaseModel):
    """取得サービスと同じ形のメール 1 件。"""

    id: str | int | None = None
    subject: Any = None
    sender: Any = None
    date: Any = Field(None, description="送信日時（ISO8601 / RFC2822 / エポックミリ秒）")
    body: Any = None
    attachments: list[AttachmentModel] | None = None
    has_attachments: bool = False


class RecordErrorModel(BaseModel):
    index: int
    reason: str


class WriteOutcomeModel(BaseModel):
    """バッチ書き込みの結果。"""

    total_requested: int
    succeeded: int
    failed: int
    mode: Literal["bulk", "fallback"]
    per_record_errors: list[RecordErrorModel] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_outcome(cls, outcome: WriteOutcome) -> "WriteOutcomeModel":
        return cls(
            total_requested=outcome.total_requested,
            succeeded=outcome.succeeded,
            failed=outcome.failed,
            mode=outcome.mode.value,
            per_record_errors=[
                RecordErrorModel(index=error.index, reason=error.reason)
                for error in outcome.per_record_errors
            ],
        )
