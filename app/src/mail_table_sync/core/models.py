"""ユースケース間で共有するデータモデル。"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from mail_table_sync.core.logging import log_event


class LogicalField(str, Enum):
    """レコードモデル上の論理フィールド名。"""

    SUBJECT = "subject"
    SENDER = "sender"
    DATE = "date"
    CONTENT = "content"
    ATTACHMENTS = "attachments"


class FieldKind(str, Enum):
    """テーブル側フィールドの値の種類。"""

    TEXT = "text"
    DATETIME = "datetime"
    ATTACHMENT_LIST = "attachment_list"


class WriteMode(str, Enum):
    BULK = "bulk"
    FALLBACK = "fallback"


class WriteState(str, Enum):
    """バッチ書き込みの状態遷移。"""

    IDLE = "idle"
    SCHEMA_READY = "schema_ready"
    ROWS_BUILT = "rows_built"
    BULK_ATTEMPTED = "bulk_attempted"
    FALLBACK_IN_PROGRESS = "fallback_in_progress"
    DONE = "done"


@dataclass(slots=True, frozen=True)
class AttachmentRef:
    """取得サービスが返す添付ファイル情報。`raw_content` は base64 文字列。"""

    filename: str
    size_bytes: int
    content_type: str | None = None
    raw_content: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "AttachmentRef":
        """
        Raises:
            ValueError: size が整数として解釈できない場合
        """

        return cls(
            filename=str(payload.get("filename") or ""),
            size_bytes=_parse_size(payload.get("size")),
            content_type=payload.get("content_type"),
            raw_content=payload.get("content"),
        )


def _parse_size(value: Any) -> int:
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ValueError(f"不正なサイズです: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"不正なサイズです: {value!r}") from exc


@dataclass(slots=True, frozen=True)
class SourceRecord:
    """取得サービスが返すメール 1 件。値は型変換せず受信したまま保持する。"""

    id: Any = None
    subject: Any = None
    sender: Any = None
    timestamp: Any = None
    body: Any = None
    attachments: tuple[AttachmentRef, ...] | None = None
    has_attachments: bool = False

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "SourceRecord":
        raw_attachments = payload.get("attachments")
        attachments: tuple[AttachmentRef, ...] | None = None
        if isinstance(raw_attachments, list):
            refs: list[AttachmentRef] = []
            for item in raw_attachments:
                if not isinstance(item, dict):
                    continue
                try:
                    refs.append(AttachmentRef.from_payload(item))
                except ValueError as exc:
                    # 壊れた添付だけを落とし、メール本体は残す
                    log_event(
                        logging.WARNING,
                        "attachment_dropped",
                        record_id=payload.get("id"),
                        filename=item.get("filename"),
                        error=str(exc),
                    )
            attachments = tuple(refs)
        return cls(
            id=payload.get("id"),
            subject=payload.get("subject"),
            sender=payload.get("sender"),
            timestamp=payload.get("date"),
            body=payload.get("body"),
            attachments=attachments,
            has_attachments=bool(payload.get("has_attachments")),
        )


@dataclass(slots=True, frozen=True)
class AttachmentDescriptor:
    """テーブルへアップロード済みの添付ファイル。"""

    name: str
    size_bytes: int
    content_type: str
    store_token: str
    uploaded_at_millis: int


@dataclass(slots=True, frozen=True)
class FieldSpec:
    logical_name: LogicalField
    value_kind: FieldKind
    display_name: str


@dataclass(slots=True, frozen=True)
class FieldMeta:
    """テーブルから取得したフィールドのメタ情報。"""

    field_id: str
    name: str
    kind: FieldKind | None = None


FieldMapping = dict[LogicalField, str]
StoreValue = Union[str, int, list[AttachmentDescriptor]]
StoreRow = dict[str, StoreValue]


@dataclass(slots=True, frozen=True)
class RecordError:
    index: int
    reason: str


@dataclass(slots=True)
class WriteOutcome:
    """バッチ書き込みの最終結果。"""

    total_requested: int
    succeeded: int
    failed: int
    mode: WriteMode
    per_record_errors: list[RecordError] = field(default_factory=list)

    def summary(self) -> str:
        label = "一括" if self.mode is WriteMode.BULK else "1件ずつ"
        return (
            f"{label}登録: 成功 {self.succeeded}件 / 失敗 {self.failed}件"
            f" (全 {self.total_requested}件)"
        )


@dataclass(slots=True, frozen=True)
class SchemaStatus:
    ok: bool
    message: str
    created_fields: tuple[str, ...] = ()
