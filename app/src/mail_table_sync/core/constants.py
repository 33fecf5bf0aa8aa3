"""同期パイプラインの固定設定値。"""

from __future__ import annotations

from dataclasses import dataclass

from mail_table_sync.core.models import FieldKind, FieldSpec, LogicalField

# テーブルに保証するフィールド一覧。作成順もこの順序に従う。
FIELD_CATALOG: tuple[FieldSpec, ...] = (
    FieldSpec(LogicalField.SUBJECT, FieldKind.TEXT, "邮件主题"),
    FieldSpec(LogicalField.SENDER, FieldKind.TEXT, "发件人"),
    FieldSpec(LogicalField.DATE, FieldKind.DATETIME, "发送时间"),
    FieldSpec(LogicalField.CONTENT, FieldKind.TEXT, "邮件内容"),
    FieldSpec(LogicalField.ATTACHMENTS, FieldKind.ATTACHMENT_LIST, "附件"),
)

MAX_CONTENT_LENGTH = 10_000
TRUNCATION_MARKER = "..."

MAX_ATTACHMENT_SIZE = 2 * 1024 * 1024 * 1024
MAX_FILENAME_LENGTH = 250
DEFAULT_CONTENT_TYPE = "application/octet-stream"

FALLBACK_INSERT_DELAY_S = 0.2
HTTP_TIMEOUT_S = 30.0

DEFAULT_SYNC_COUNT = 10
MIN_SYNC_COUNT = 1
MAX_SYNC_COUNT = 100

UNKNOWN_TABLE_NAME = "不明なテーブル"

EMAIL_PROVIDERS: dict[str, str] = {
    "lark": "Lark メール",
    "gmail": "Gmail",
    "qq": "QQ メール",
    "163": "163 メール",
    "outlook": "Outlook",
}


@dataclass(slots=True, frozen=True)
class PipelineConfig:
    """書き込みパイプラインへ構築時に渡す設定値の束。"""

    catalog: tuple[FieldSpec, ...] = FIELD_CATALOG
    max_content_length: int = MAX_CONTENT_LENGTH
    truncation_marker: str = TRUNCATION_MARKER
    max_attachment_size: int = MAX_ATTACHMENT_SIZE
    max_filename_length: int = MAX_FILENAME_LENGTH
    default_content_type: str = DEFAULT_CONTENT_TYPE
    fallback_delay_s: float = FALLBACK_INSERT_DELAY_S
