"""`/table` のレスポンススキーマ。"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TableNameResponse(BaseModel):
    name: str

    model_config = ConfigDict(extra="forbid")


class TableSchemaResponse(BaseModel):
    """フィールド整備の結果。"""

    ok: bool
    message: str
    created_fields: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")
