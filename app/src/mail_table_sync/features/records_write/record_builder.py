"""メール 1 件をテーブルの行データへ変換する。"""

from __future__ import annotations

import email.utils
import logging
import math
import re
from datetime import datetime
from typing import Any, Callable

from mail_table_sync.core.clock import now_millis, to_epoch_millis
from mail_table_sync.core.constants import PipelineConfig
from mail_table_sync.core.errors import RecordValidationError
from mail_table_sync.core.logging import log_event
from mail_table_sync.core.models import (
    AttachmentDescriptor,
    FieldMapping,
    LogicalField,
    SourceRecord,
    StoreRow,
)
from mail_table_sync.features.records_write.attachment_uploader import AttachmentUploader

# テーブル側のテキストエンコードを壊す制御文字（改行・タブは残す）
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def build_row(
    record: SourceRecord,
    mapping: FieldMapping,
    *,
    index: int,
    uploader: AttachmentUploader,
    config: PipelineConfig | None = None,
    clock: Callable[[], int] = now_millis,
) -> StoreRow:
    """対応表にあるフィールドだけを埋めた行データを返す。

    送信日時は常に埋まるため、それ以外に値が 1 つも無いレコードは登録しない。

    Raises:
        RecordValidationError: 件名・差出人が文字列でない、または登録できる値が無い場合
    """

    config = config or PipelineConfig()
    row: StoreRow = {}
    populated = False

    subject_id = mapping.get(LogicalField.SUBJECT)
    if subject_id:
        subject = _text_value(record.subject, index=index, field="subject")
        row[subject_id] = subject
        populated = populated or bool(subject)

    sender_id = mapping.get(LogicalField.SENDER)
    if sender_id:
        sender = _text_value(record.sender, index=index, field="sender")
        row[sender_id] = sender
        populated = populated or bool(sender)

    date_id = mapping.get(LogicalField.DATE)
    if date_id:
        millis = parse_timestamp_millis(record.timestamp)
        if millis is None:
            log_event(logging.WARNING, "date_parse_fallback", index=index, raw=record.timestamp)
            millis = clock()
        row[date_id] = millis

    content_id = mapping.get(LogicalField.CONTENT)
    if content_id:
        content = sanitize_content(
            record.body,
            max_length=config.max_content_length,
            marker=config.truncation_marker,
        )
        row[content_id] = content
        populated = populated or bool(content)

    attachments_id = mapping.get(LogicalField.ATTACHMENTS)
    if attachments_id:
        descriptors = _attachment_value(record, uploader)
        row[attachments_id] = descriptors
        populated = populated or bool(descriptors)

    if not populated:
        raise RecordValidationError(index, "fields", "登録できる値がありません")
    return row


def sanitize_content(value: Any, *, max_length: int, marker: str) -> str:
    """本文の制御文字除去・改行統一・前後空白除去・長さ制限を行う。"""

    if value is None:
        return ""
    text = value if isinstance(value, str) else str(value)
    text = _CONTROL_CHARS.sub("", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n").strip()
    if len(text) > max_length:
        text = text[:max_length] + marker
    return text


def parse_timestamp_millis(value: Any) -> int | None:
    """ISO 8601 / RFC 2822 の文字列、またはエポックミリ秒を解釈する。"""

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value) if math.isfinite(value) else None
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    parsed = _parse_iso(text) or _parse_rfc2822(text)
    if parsed is None:
        return None
    return to_epoch_millis(parsed)


def _parse_iso(value: str) -> datetime | None:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _parse_rfc2822(value: str) -> datetime | None:
    try:
        return email.utils.parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None


def _text_value(value: Any, *, index: int, field: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise RecordValidationError(
            index, field, f"文字列である必要があります (型: {type(value).__name__})"
        )
    return value


def _attachment_value(
    record: SourceRecord,
    uploader: AttachmentUploader,
) -> list[AttachmentDescriptor]:
    # 添付フィールドには真偽値や文字列を入れず、必ずリストを渡す
    if record.attachments and any(ref.raw_content for ref in record.attachments):
        return uploader.upload(record.attachments)
    if record.has_attachments:
        log_event(logging.DEBUG, "attachment_detail_missing", record_id=record.id)
    return []
