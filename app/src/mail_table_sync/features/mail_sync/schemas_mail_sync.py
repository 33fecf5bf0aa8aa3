"""`/mail/sync` のリクエスト/レスポンススキーマ。"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from mail_table_sync.core.constants import DEFAULT_SYNC_COUNT
from mail_table_sync.shared.schemas.records import WriteOutcomeModel


class MailSyncRequest(BaseModel):
    """メール取得に必要な接続情報と件数。"""

    email: str = Field(..., description="メールアドレス")
    password: str = Field(..., description="メールの認証コード", repr=False)
    provider: str = Field("lark", description="メールプロバイダ")
    count: int = Field(DEFAULT_SYNC_COUNT, description="取得件数")

    model_config = ConfigDict(extra="forbid")


class MailSyncResponse(BaseModel):
    fetched: int
    table_name: str
    message: str
    outcome: WriteOutcomeModel

    model_config = ConfigDict(extra="forbid")


class ProviderModel(BaseModel):
    value: str
    label: str


class ProvidersResponse(BaseModel):
    providers: list[ProviderModel] = Field(default_factory=list)
