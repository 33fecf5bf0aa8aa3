"""メールレコードをテーブルへ書き込むユースケース。

流れ:
  1. フィールド整備と対応表の構築（実行ごとに 1 回）
  2. 全レコードの行データ化（失敗したレコードは除外して失敗として数える）
  3. 一括登録
  4. 一括登録が失敗したら 1 件ずつ登録（基本フィールド → 添付の 2 段階）
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Sequence

from mail_table_sync.clients.bitable_client import BitableApiError, BitableTable, table_from_settings
from mail_table_sync.core.clock import now_millis
from mail_table_sync.core.constants import PipelineConfig
from mail_table_sync.core.errors import (
    AttachmentAttachError,
    BulkWriteError,
    RecordValidationError,
    RowInsertError,
)
from mail_table_sync.core.logging import log_event
from mail_table_sync.core.models import (
    AttachmentDescriptor,
    FieldMapping,
    LogicalField,
    RecordError,
    SourceRecord,
    StoreRow,
    WriteMode,
    WriteOutcome,
    WriteState,
)
from mail_table_sync.core.settings import Settings
from mail_table_sync.features.records_write.attachment_uploader import AttachmentUploader
from mail_table_sync.features.records_write.record_builder import build_row
from mail_table_sync.features.table_schema.usecase_table_schema import (
    build_field_mapping,
    reconcile_fields,
)

BuiltRow = tuple[int, StoreRow]


class BatchWriter:
    """1 回の同期でテーブルへレコードを書き込む。

    `SchemaError` / `MappingEmptyError` 以外の失敗は外へ投げず、
    `WriteOutcome` の失敗件数とエラー一覧にまとめて返す。
    """

    def __init__(
        self,
        table: BitableTable,
        *,
        config: PipelineConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self._table = table
        self._config = config or PipelineConfig()
        self._sleep = sleep
        self._clock = clock
        self.state = WriteState.IDLE

    def write_records(self, records: Sequence[SourceRecord]) -> WriteOutcome:
        self.state = WriteState.IDLE
        total = len(records)
        if total == 0:
            return self._finish(WriteOutcome(0, 0, 0, WriteMode.BULK))

        log_event(logging.INFO, "write_started", total=total)
        reconcile_fields(self._table, self._config.catalog)
        mapping = build_field_mapping(self._table, self._config.catalog)
        self.state = WriteState.SCHEMA_READY

        built, errors = self._build_rows(records, mapping)
        self.state = WriteState.ROWS_BUILT

        if not built:
            return self._finish(WriteOutcome(total, 0, total, WriteMode.BULK, errors))

        bulk_ok = self._try_bulk([row for _, row in built])
        self.state = WriteState.BULK_ATTEMPTED
        if bulk_ok:
            succeeded = len(built)
            return self._finish(
                WriteOutcome(total, succeeded, total - succeeded, WriteMode.BULK, errors)
            )

        self.state = WriteState.FALLBACK_IN_PROGRESS
        succeeded = self._write_one_by_one(built, mapping.get(LogicalField.ATTACHMENTS), errors)
        errors.sort(key=lambda error: error.index)
        return self._finish(
            WriteOutcome(total, succeeded, total - succeeded, WriteMode.FALLBACK, errors)
        )

    def _build_rows(
        self,
        records: Sequence[SourceRecord],
        mapping: FieldMapping,
    ) -> tuple[list[BuiltRow], list[RecordError]]:
        uploader = AttachmentUploader(self._table, config=self._config, clock=self._clock)
        built: list[BuiltRow] = []
        errors: list[RecordError] = []
        for index, record in enumerate(records):
            try:
                row = build_row(
                    record,
                    mapping,
                    index=index,
                    uploader=uploader,
                    config=self._config,
                    clock=self._clock,
                )
            except RecordValidationError as exc:
                log_event(logging.WARNING, "record_rejected", index=index, error=str(exc))
                errors.append(RecordError(index=index, reason=str(exc)))
                continue
            built.append((index, row))
        return built, errors

    def _try_bulk(self, rows: list[StoreRow]) -> bool:
        try:
            self._bulk_insert(rows)
        except BulkWriteError as exc:
            log_event(logging.WARNING, "bulk_write_failed", rows=len(rows), error=str(exc))
            return False
        log_event(logging.INFO, "bulk_write_succeeded", rows=len(rows))
        return True

    def _bulk_insert(self, rows: list[StoreRow]) -> None:
        try:
            self._table.bulk_insert(rows)
        except BitableApiError as exc:
            raise BulkWriteError(str(exc)) from exc

    def _write_one_by_one(
        self,
        built: list[BuiltRow],
        attachments_id: str | None,
        errors: list[RecordError],
    ) -> int:
        succeeded = 0
        for position, (index, row) in enumerate(built):
            if position > 0:
                self._sleep(self._config.fallback_delay_s)

            base_fields = {key: value for key, value in row.items() if key != attachments_id}
            descriptors = row.get(attachments_id) if attachments_id else None

            try:
                record_id = self._insert_one(index, base_fields)
            except RowInsertError as exc:
                log_event(logging.ERROR, "row_insert_failed", index=index, error=str(exc))
                errors.append(RecordError(index=index, reason=str(exc)))
                continue
            succeeded += 1

            if attachments_id and isinstance(descriptors, list) and descriptors:
                try:
                    self._attach(record_id, attachments_id, descriptors)
                except AttachmentAttachError as exc:
                    log_event(logging.WARNING, "attachment_attach_failed", index=index, error=str(exc))

            log_event(
                logging.INFO,
                "fallback_progress",
                index=index,
                record_id=record_id,
                done=position + 1,
                total=len(built),
            )
        return succeeded

    def _insert_one(self, index: int, fields: StoreRow) -> str:
        try:
            return self._table.insert_one(fields)
        except BitableApiError as exc:
            raise RowInsertError(index, str(exc)) from exc

    def _attach(
        self,
        record_id: str,
        field_id: str,
        descriptors: list[AttachmentDescriptor],
    ) -> None:
        try:
            self._table.set_attachment_value(record_id, field_id, descriptors)
        except BitableApiError as exc:
            raise AttachmentAttachError(record_id, str(exc)) from exc

    def _finish(self, outcome: WriteOutcome) -> WriteOutcome:
        self.state = WriteState.DONE
        log_event(
            logging.INFO,
            "write_finished",
            mode=outcome.mode.value,
            total=outcome.total_requested,
            succeeded=outcome.succeeded,
            failed=outcome.failed,
        )
        return outcome


def write_records(records: Sequence[SourceRecord], *, settings: Settings) -> WriteOutcome:
    """設定からテーブルセッションを作り、レコードを書き込む。"""

    with table_from_settings(settings) as table:
        return BatchWriter(table).write_records(records)
