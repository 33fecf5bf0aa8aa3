"""レコード書き込みエンドポイント。"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from mail_table_sync.core.errors import FatalSyncError
from mail_table_sync.core.models import SourceRecord
from mail_table_sync.core.settings import Settings
from mail_table_sync.features.records_write.schemas_records_write import (
    RecordsWriteRequest,
    WriteOutcomeModel,
)
from mail_table_sync.features.records_write.usecase_records_write import write_records
from mail_table_sync.shared.schemas.errors import ErrorModel, ErrorResponse

router = APIRouter(prefix="/records", tags=["records"])


async def get_settings(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[attr-defined]


@router.post(
    "",
    response_model=WriteOutcomeModel,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def records_write(
    payload: RecordsWriteRequest,
    settings: Settings = Depends(get_settings),
) -> WriteOutcomeModel:
    records = [SourceRecord.from_payload(item.model_dump()) for item in payload.records]
    try:
        outcome = write_records(records, settings=settings)
    except ValueError as exc:
        error = ErrorModel(code="INVALID_REQUEST", message=str(exc), retryable=False)
        raise HTTPException(status_code=400, detail={"error": error.model_dump()}) from exc
    except FatalSyncError as exc:
        error = ErrorModel(code=exc.code, message=str(exc), retryable=True)
        raise HTTPException(status_code=502, detail={"error": error.model_dump()}) from exc
    return WriteOutcomeModel.from_outcome(outcome)
