"""テーブル情報・フィールド整備エンドポイント。"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from mail_table_sync.clients.bitable_client import table_from_settings
from mail_table_sync.core.settings import Settings
from mail_table_sync.features.table_schema.schemas_table_schema import (
    TableNameResponse,
    TableSchemaResponse,
)
from mail_table_sync.features.table_schema.usecase_table_schema import (
    current_table_name,
    ensure_schema,
)

router = APIRouter(prefix="/table", tags=["table"])


async def get_settings(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[attr-defined]


@router.get("", response_model=TableNameResponse)
def table_name(settings: Settings = Depends(get_settings)) -> TableNameResponse:
    try:
        table = table_from_settings(settings)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    with table:
        return TableNameResponse(name=current_table_name(table))


@router.post("/schema", response_model=TableSchemaResponse)
def table_schema(settings: Settings = Depends(get_settings)) -> TableSchemaResponse:
    try:
        table = table_from_settings(settings)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    with table:
        status = ensure_schema(table)
    return TableSchemaResponse(
        ok=status.ok,
        message=status.message,
        created_fields=list(status.created_fields),
    )
