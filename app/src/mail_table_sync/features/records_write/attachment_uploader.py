"""添付ファイルをテーブルのストレージへアップロードする。"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Callable, Sequence

from mail_table_sync.clients.bitable_client import BitableApiError, BitableTable
from mail_table_sync.core.clock import now_millis
from mail_table_sync.core.constants import PipelineConfig
from mail_table_sync.core.errors import AttachmentUploadError
from mail_table_sync.core.logging import log_event
from mail_table_sync.core.models import AttachmentDescriptor, AttachmentRef

_SIZE_UNITS = ("B", "KB", "MB", "GB")


class AttachmentUploader:
    """添付ファイルを 1 件ずつ順番にアップロードする。

    失敗した添付はログに残してスキップし、残りの処理は続行する。
    """

    def __init__(
        self,
        table: BitableTable,
        *,
        config: PipelineConfig | None = None,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self._table = table
        self._config = config or PipelineConfig()
        self._clock = clock

    def upload(self, refs: Sequence[AttachmentRef]) -> list[AttachmentDescriptor]:
        """アップロードに成功した添付だけを、入力順のまま返す。"""

        descriptors: list[AttachmentDescriptor] = []
        for ref in refs:
            reason = self._skip_reason(ref)
            if reason:
                log_event(logging.WARNING, "attachment_skipped", filename=ref.filename, reason=reason)
                continue
            try:
                descriptors.append(self._upload_one(ref))
            except AttachmentUploadError as exc:
                log_event(logging.ERROR, "attachment_upload_failed", filename=ref.filename, error=str(exc))
        return descriptors

    def _skip_reason(self, ref: AttachmentRef) -> str | None:
        if not ref.raw_content:
            return "内容がありません"
        if ref.size_bytes > self._config.max_attachment_size:
            return f"サイズ {ref.size_bytes} が上限を超えています"
        if len(ref.filename) > self._config.max_filename_length:
            return "ファイル名が長すぎます"
        return None

    def _upload_one(self, ref: AttachmentRef) -> AttachmentDescriptor:
        content_type = ref.content_type or self._config.default_content_type
        # MIME 由来の改行は許容し、それ以外の base64 外の文字はエラーにする
        compact = "".join(str(ref.raw_content).split())
        try:
            data = base64.b64decode(compact, validate=True)
        except (binascii.Error, TypeError, ValueError) as exc:
            raise AttachmentUploadError(ref.filename, "base64 のデコードに失敗しました") from exc

        log_event(
            logging.INFO,
            "attachment_uploading",
            filename=ref.filename,
            size=format_file_size(ref.size_bytes),
        )
        try:
            token = self._table.upload_blob(data, ref.filename, content_type)
        except BitableApiError as exc:
            raise AttachmentUploadError(ref.filename, str(exc)) from exc

        return AttachmentDescriptor(
            name=ref.filename,
            size_bytes=ref.size_bytes,
            content_type=content_type,
            store_token=token,
            uploaded_at_millis=self._clock(),
        )


def format_file_size(size: int) -> str:
    """バイト数を `1.5 MB` のような表記にする。"""

    if size <= 0:
        return "0 B"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{round(value, 1):g} {_SIZE_UNITS[unit]}"
