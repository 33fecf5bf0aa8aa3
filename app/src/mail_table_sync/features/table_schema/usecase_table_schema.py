"""テーブルのフィールド構成を整えるユースケース。"""

from __future__ import annotations

import logging
from typing import Iterable

from mail_table_sync.clients.bitable_client import BitableApiError, BitableTable
from mail_table_sync.core.constants import FIELD_CATALOG, UNKNOWN_TABLE_NAME
from mail_table_sync.core.errors import MappingEmptyError, SchemaError
from mail_table_sync.core.logging import log_event
from mail_table_sync.core.models import FieldMapping, FieldMeta, FieldSpec, LogicalField, SchemaStatus


def reconcile_fields(
    table: BitableTable,
    catalog: Iterable[FieldSpec] = FIELD_CATALOG,
) -> list[str]:
    """カタログにあってテーブルに無いフィールドを、カタログ順に作成する。

    判定は名前ベースなので、途中で失敗しても次回の実行で残りが作られる。

    Returns:
        作成したフィールド名の一覧（既に揃っていれば空）

    Raises:
        SchemaError: フィールド一覧の取得または作成に失敗した場合
    """

    existing = {meta.name for meta in _list_fields(table)}
    created: list[str] = []
    for spec in catalog:
        if spec.display_name in existing:
            continue
        try:
            table.create_field(spec.display_name, spec.value_kind)
        except BitableApiError as exc:
            raise SchemaError(f"フィールド {spec.display_name} の作成に失敗しました: {exc}") from exc
        existing.add(spec.display_name)
        created.append(spec.display_name)
        log_event(logging.INFO, "field_created", field=spec.display_name, kind=spec.value_kind.value)
    return created


def build_field_mapping(
    table: BitableTable,
    catalog: Iterable[FieldSpec] = FIELD_CATALOG,
) -> FieldMapping:
    """最新のフィールド一覧から論理名 → フィールドID の対応を作る。

    見つからないフィールドは対応表に含めない。1 つも無ければ致命的エラー。
    """

    ids_by_name = {meta.name: meta.field_id for meta in _list_fields(table)}
    mapping: FieldMapping = {
        spec.logical_name: ids_by_name[spec.display_name]
        for spec in catalog
        if spec.display_name in ids_by_name
    }
    if not mapping:
        raise MappingEmptyError()
    log_event(
        logging.INFO,
        "field_mapping_built",
        mapping={name.value: field_id for name, field_id in mapping.items()},
    )
    return mapping


def ensure_schema(
    table: BitableTable,
    catalog: Iterable[FieldSpec] = FIELD_CATALOG,
) -> SchemaStatus:
    """呼び出し元向けにフィールド整備の結果を ok/message 形式で返す。"""

    try:
        created = reconcile_fields(table, catalog)
    except SchemaError as exc:
        log_event(logging.ERROR, "schema_reconcile_failed", error=str(exc))
        return SchemaStatus(ok=False, message=str(exc))
    return SchemaStatus(ok=True, message="メールテーブルの準備が完了しました", created_fields=tuple(created))


def has_email_fields(table: BitableTable, catalog: Iterable[FieldSpec] = FIELD_CATALOG) -> bool:
    """件名と差出人のフィールドが揃っているかを返す。"""

    required = {
        spec.display_name
        for spec in catalog
        if spec.logical_name in (LogicalField.SUBJECT, LogicalField.SENDER)
    }
    try:
        names = {meta.name for meta in table.list_fields()}
    except BitableApiError as exc:
        log_event(logging.WARNING, "field_check_failed", error=str(exc))
        return False
    return required <= names


def current_table_name(table: BitableTable) -> str:
    try:
        meta = table.get_meta()
    except BitableApiError as exc:
        log_event(logging.WARNING, "table_name_lookup_failed", error=str(exc))
        return UNKNOWN_TABLE_NAME
    return meta.get("display_name") or UNKNOWN_TABLE_NAME


def _list_fields(table: BitableTable) -> list[FieldMeta]:
    try:
        return table.list_fields()
    except BitableApiError as exc:
        raise SchemaError(f"フィールド一覧の取得に失敗しました: {exc}") from exc
