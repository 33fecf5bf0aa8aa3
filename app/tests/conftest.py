from __future__ import annotations

import os

os.environ.setdefault("APP_ENV", "local")
os.environ.setdefault("BITABLE_APP_TOKEN", "app-token")
os.environ.setdefault("BITABLE_TABLE_ID", "tbl-mail")
os.environ.setdefault("BITABLE_ACCESS_TOKEN", "t-access")

from typing import Any, Sequence

import pytest

from mail_table_sync.clients.bitable_client import BitableApiError
from mail_table_sync.core import settings as core_settings
from mail_table_sync.core.models import AttachmentDescriptor, FieldKind, FieldMeta, StoreRow


@pytest.fixture(autouse=True)
def basic_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """アプリ初期化に必要な環境変数をテスト時にセットする。"""

    monkeypatch.setenv("BITABLE_APP_TOKEN", "app-token")
    monkeypatch.setenv("BITABLE_TABLE_ID", "tbl-mail")
    monkeypatch.setenv("BITABLE_ACCESS_TOKEN", "t-access")
    monkeypatch.setenv("MAIL_API_BASE_URL", "https://mail.example.com")
    monkeypatch.delenv("APP_ENV", raising=False)
    core_settings.load_settings.cache_clear()


class FakeTable:
    """呼び出しを記録するインメモリのテーブル。"""

    def __init__(self, fields: Sequence[FieldMeta] = ()) -> None:
        self.fields: list[FieldMeta] = list(fields)
        self.calls: list[tuple[Any, ...]] = []
        self.name = "受信メール"
        self.fail_create: set[str] = set()
        self.fail_bulk = False
        self.fail_insert_calls: set[int] = set()
        self.fail_attach = False
        self.fail_upload: set[str] = set()
        self.fail_meta = False
        self.bulk_batches: list[list[StoreRow]] = []
        self.insert_attempts: list[StoreRow] = []
        self.inserted: list[StoreRow] = []
        self.attached: list[tuple[str, str, list[AttachmentDescriptor]]] = []
        self.uploads: list[tuple[bytes, str, str]] = []
        self.closed = False

    def __enter__(self) -> "FakeTable":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self.closed = True

    def list_fields(self) -> list[FieldMeta]:
        self.calls.append(("list_fields",))
        return list(self.fields)

    def create_field(self, name: str, kind: FieldKind) -> FieldMeta:
        self.calls.append(("create_field", name, kind))
        if name in self.fail_create:
            raise BitableApiError("field create failed", 500, 1254000)
        meta = FieldMeta(field_id=f"fld{len(self.fields) + 1}", name=name, kind=kind)
        self.fields.append(meta)
        return meta

    def bulk_insert(self, rows: Sequence[StoreRow]) -> list[str]:
        self.calls.append(("bulk_insert", len(rows)))
        if self.fail_bulk:
            raise BitableApiError("batch create failed", 400, 1254001)
        self.bulk_batches.append(list(rows))
        return [f"rec-bulk-{i}" for i in range(len(rows))]

    def insert_one(self, row: StoreRow) -> str:
        attempt = len(self.insert_attempts)
        self.calls.append(("insert_one", attempt))
        self.insert_attempts.append(dict(row))
        if attempt in self.fail_insert_calls:
            raise BitableApiError("record create failed", 400, 1254002)
        self.inserted.append(dict(row))
        return f"rec{attempt}"

    def set_attachment_value(
        self, record_id: str, field_id: str, descriptors: Sequence[AttachmentDescriptor]
    ) -> None:
        self.calls.append(("set_attachment_value", record_id))
        if self.fail_attach:
            raise BitableApiError("attachment update failed", 500)
        self.attached.append((record_id, field_id, list(descriptors)))

    def upload_blob(self, data: bytes, filename: str, content_type: str) -> str:
        self.calls.append(("upload_blob", filename))
        if filename in self.fail_upload:
            raise BitableApiError("upload failed", 500)
        self.uploads.append((data, filename, content_type))
        return f"tok-{filename}"

    def get_meta(self) -> dict[str, str]:
        self.calls.append(("get_meta",))
        if self.fail_meta:
            raise BitableApiError("meta failed", 500)
        return {"display_name": self.name}

    def store_calls(self) -> list[str]:
        return [call[0] for call in self.calls]


CATALOG_FIELDS = (
    FieldMeta("fld_subject", "邮件主题", FieldKind.TEXT),
    FieldMeta("fld_sender", "发件人", FieldKind.TEXT),
    FieldMeta("fld_date", "发送时间", FieldKind.DATETIME),
    FieldMeta("fld_content", "邮件内容", FieldKind.TEXT),
    FieldMeta("fld_attach", "附件", FieldKind.ATTACHMENT_LIST),
)


@pytest.fixture
def empty_table() -> FakeTable:
    return FakeTable()


@pytest.fixture
def fake_table() -> FakeTable:
    """メール用フィールドが揃ったテーブル。"""

    return FakeTable(CATALOG_FIELDS)
