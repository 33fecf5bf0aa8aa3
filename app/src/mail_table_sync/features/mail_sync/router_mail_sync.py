"""メール同期エンドポイント。"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from mail_table_sync.clients.mail_api_client import MailApiError
from mail_table_sync.core.constants import EMAIL_PROVIDERS
from mail_table_sync.core.errors import FatalSyncError
from mail_table_sync.core.settings import Settings
from mail_table_sync.features.mail_sync.schemas_mail_sync import (
    MailSyncRequest,
    MailSyncResponse,
    ProviderModel,
    ProvidersResponse,
)
from mail_table_sync.features.mail_sync.usecase_mail_sync import sync_mail
from mail_table_sync.shared.schemas.errors import ErrorModel, ErrorResponse
from mail_table_sync.shared.schemas.records import WriteOutcomeModel

router = APIRouter(prefix="/mail", tags=["mail"])


async def get_settings(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[attr-defined]


@router.get("/providers", response_model=ProvidersResponse)
async def mail_providers() -> ProvidersResponse:
    return ProvidersResponse(
        providers=[ProviderModel(value=value, label=label) for value, label in EMAIL_PROVIDERS.items()]
    )


@router.post(
    "/sync",
    response_model=MailSyncResponse,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def mail_sync(
    payload: MailSyncRequest,
    settings: Settings = Depends(get_settings),
) -> MailSyncResponse:
    try:
        report = sync_mail(payload, settings=settings)
    except ValueError as exc:
        error = ErrorModel(code="INVALID_REQUEST", message=str(exc), retryable=False)
        raise HTTPException(status_code=400, detail={"error": error.model_dump()}) from exc
    except MailApiError as exc:
        retryable = exc.status_code >= 500 or exc.status_code in {0, 408, 429}
        error = ErrorModel(code="MAIL_API_ERROR", message=str(exc), retryable=retryable)
        raise HTTPException(status_code=502, detail={"error": error.model_dump()}) from exc
    except FatalSyncError as exc:
        error = ErrorModel(code=exc.code, message=str(exc), retryable=True)
        raise HTTPException(status_code=502, detail={"error": error.model_dump()}) from exc

    return MailSyncResponse(
        fetched=report.fetched,
        table_name=report.table_name,
        message=report.message,
        outcome=WriteOutcomeModel.from_outcome(report.outcome),
    )
