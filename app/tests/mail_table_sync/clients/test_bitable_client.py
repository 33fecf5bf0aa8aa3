from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from mail_table_sync.clients.bitable_client import BitableApiError, BitableTable, table_from_settings
from mail_table_sync.core.models import AttachmentDescriptor, FieldKind
from mail_table_sync.core.settings import load_settings

BASE_URL = "https://bitable.example.com/open-apis"
TABLE_PATH = "/open-apis/bitable/v1/apps/app-token/tables/tbl-mail"


def _ok(data: dict[str, Any]) -> httpx.Response:
    return httpx.Response(200, json={"code": 0, "msg": "success", "data": data})


def _table(handler: Callable[[httpx.Request], httpx.Response], **kwargs: Any) -> BitableTable:
    client = httpx.Client(transport=httpx.MockTransport(handler), base_url=BASE_URL)
    return BitableTable(
        app_token="app-token",
        table_id="tbl-mail",
        access_token="t-access",
        client=client,
        **kwargs,
    )


FIELDS_PAGE = {
    "items": [
        {"field_id": "fld_subject", "field_name": "邮件主题", "type": 1},
        {"field_id": "fld_date", "field_name": "发送时间", "type": 5},
        {"field_id": "fld_attach", "field_name": "附件", "type": 17},
    ],
    "has_more": False,
}


def test_フィールド一覧をページングして取得する() -> None:
    seen_tokens: list[str | None] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer t-access"
        token = request.url.params.get("page_token")
        seen_tokens.append(token)
        if token is None:
            return _ok({"items": FIELDS_PAGE["items"][:2], "has_more": True, "page_token": "p2"})
        return _ok({"items": FIELDS_PAGE["items"][2:], "has_more": False})

    with _table(handler, page_size=2) as table:
        fields = table.list_fields()

    assert seen_tokens == [None, "p2"]
    assert [(meta.field_id, meta.name, meta.kind) for meta in fields] == [
        ("fld_subject", "邮件主题", FieldKind.TEXT),
        ("fld_date", "发送时间", FieldKind.DATETIME),
        ("fld_attach", "附件", FieldKind.ATTACHMENT_LIST),
    ]


def test_フィールド作成で種別コードを送る() -> None:
    captured: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return _ok({"field": {"field_id": "fld_new", "field_name": "附件", "type": 17}})

    meta = _table(handler).create_field("附件", FieldKind.ATTACHMENT_LIST)

    assert captured["path"] == f"{TABLE_PATH}/fields"
    assert captured["body"] == {"field_name": "附件", "type": 17}
    assert meta.field_id == "fld_new"


def test_一括登録はフィールド名と添付トークンに変換して送る() -> None:
    captured: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return _ok(FIELDS_PAGE)
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return _ok({"records": [{"record_id": "rec1"}]})

    table = _table(handler)
    table.list_fields()
    descriptor = AttachmentDescriptor("a.txt", 5, "text/plain", "tok-a", 1)

    ids = table.bulk_insert(
        [{"fld_subject": "週次レポート", "fld_date": 1704164645000, "fld_attach": [descriptor]}]
    )

    assert ids == ["rec1"]
    assert captured["path"] == f"{TABLE_PATH}/records/batch_create"
    assert captured["body"] == {
        "records": [
            {
                "fields": {
                    "邮件主题": "週次レポート",
                    "发送时间": 1704164645000,
                    "附件": [{"file_token": "tok-a"}],
                }
            }
        ]
    }


def test_未知のフィールドIDは送信前にエラー() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        return _ok({})

    with pytest.raises(BitableApiError):
        _table(handler).insert_one({"fld_unknown": "x"})

    assert calls == []


def test_1件登録はレコードIDを返す() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return _ok(FIELDS_PAGE)
        return _ok({"record": {"record_id": "rec42", "fields": {}}})

    table = _table(handler)
    table.list_fields()

    assert table.insert_one({"fld_subject": "s"}) == "rec42"


def test_添付の設定はPUTで更新する() -> None:
    captured: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return _ok(FIELDS_PAGE)
        captured["method"] = request.method
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return _ok({"record": {"record_id": "rec1"}})

    table = _table(handler)
    table.list_fields()
    table.set_attachment_value("rec1", "fld_attach", [AttachmentDescriptor("a", 1, "x/y", "tok", 1)])

    assert captured["method"] == "PUT"
    assert captured["path"] == f"{TABLE_PATH}/records/rec1"
    assert captured["body"] == {"fields": {"附件": [{"file_token": "tok"}]}}


def test_アップロードはmultipartでfile_tokenを返す() -> None:
    captured: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["content_type"] = request.headers["Content-Type"]
        captured["body"] = request.read()
        return _ok({"file_token": "boxtok"})

    token = _table(handler).upload_blob(b"hello", "a.txt", "text/plain")

    assert token == "boxtok"
    assert captured["path"] == "/open-apis/drive/v1/medias/upload_all"
    assert captured["content_type"].startswith("multipart/form-data")
    assert b"bitable_file" in captured["body"]
    assert b"hello" in captured["body"]


def test_テーブル名を一覧から探す() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return _ok(
            {
                "items": [
                    {"table_id": "tbl-other", "name": "別テーブル"},
                    {"table_id": "tbl-mail", "name": "受信メール"},
                ],
                "has_more": False,
            }
        )

    assert _table(handler).get_meta() == {"display_name": "受信メール"}


def test_業務エラーコードは例外にする() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"code": 1254045, "msg": "FieldNameNotFound"})

    with pytest.raises(BitableApiError) as excinfo:
        _table(handler).list_fields()

    assert excinfo.value.code == 1254045
    assert "FieldNameNotFound" in str(excinfo.value)


def test_HTTPエラーは例外にする() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="unavailable")

    with pytest.raises(BitableApiError) as excinfo:
        _table(handler).list_fields()

    assert excinfo.value.status_code == 503


def test_接続失敗は例外にする() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    with pytest.raises(BitableApiError) as excinfo:
        _table(handler).list_fields()

    assert excinfo.value.status_code == 0


def test_設定から生成できる() -> None:
    table = table_from_settings(load_settings())

    assert isinstance(table, BitableTable)
    table.close()


def test_接続情報が不足していれば生成しない(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("BITABLE_TABLE_ID")

    with pytest.raises(ValueError):
        table_from_settings(load_settings())
