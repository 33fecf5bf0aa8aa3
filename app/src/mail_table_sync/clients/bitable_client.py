"""多維表格 (Bitable) Open API のテーブル操作クライアント。

パイプライン内ではレコードをフィールド ID で扱うが、API はフィールド名で
値を受け取るため、直近の `list_fields` の結果を使って送信時に名前へ変換する。
"""

from __future__ import annotations

import json
from typing import Any, Iterable, Sequence

import httpx

from mail_table_sync.clients.http_client import create_sync_client
from mail_table_sync.core.models import AttachmentDescriptor, FieldKind, FieldMeta, StoreRow
from mail_table_sync.core.settings import Settings

FIELD_TYPE_CODES: dict[FieldKind, int] = {
    FieldKind.TEXT: 1,
    FieldKind.DATETIME: 5,
    FieldKind.ATTACHMENT_LIST: 17,
}
_KIND_BY_CODE = {code: kind for kind, code in FIELD_TYPE_CODES.items()}


class BitableApiError(RuntimeError):
    """Bitable API のエラーを表す例外。"""

    def __init__(self, message: str, status_code: int, code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class BitableTable:
    """1 つのテーブルに対するセッション。同期 1 回の間だけ使う。"""

    def __init__(
        self,
        *,
        app_token: str,
        table_id: str,
        access_token: str,
        client: httpx.Client | None = None,
        base_url: str = "https://open.feishu.cn/open-apis",
        page_size: int = 100,
    ) -> None:
        self._app_token = app_token
        self._table_id = table_id
        self._access_token = access_token
        self._client = client or create_sync_client(base_url=base_url)
        self._page_size = page_size
        self._field_names: dict[str, str] = {}

    def __enter__(self) -> "BitableTable":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    @property
    def _table_path(self) -> str:
        return f"/bitable/v1/apps/{self._app_token}/tables/{self._table_id}"

    def list_fields(self) -> list[FieldMeta]:
        fields = [
            FieldMeta(
                field_id=item["field_id"],
                name=item["field_name"],
                kind=_KIND_BY_CODE.get(item.get("type")),
            )
            for item in self._paginate(f"{self._table_path}/fields")
        ]
        self._field_names = {meta.field_id: meta.name for meta in fields}
        return fields

    def create_field(self, name: str, kind: FieldKind) -> FieldMeta:
        data = self._request(
            "POST",
            f"{self._table_path}/fields",
            json={"field_name": name, "type": FIELD_TYPE_CODES[kind]},
        )
        created = data.get("field") or {}
        meta = FieldMeta(field_id=created.get("field_id", ""), name=name, kind=kind)
        if meta.field_id:
            self._field_names[meta.field_id] = name
        return meta

    def bulk_insert(self, rows: Sequence[StoreRow]) -> list[str]:
        data = self._request(
            "POST",
            f"{self._table_path}/records/batch_create",
            json={"records": [{"fields": self._encode_row(row)} for row in rows]},
        )
        return [record.get("record_id", "") for record in data.get("records") or []]

    def insert_one(self, row: StoreRow) -> str:
        data = self._request(
            "POST",
            f"{self._table_path}/records",
            json={"fields": self._encode_row(row)},
        )
        record_id = (data.get("record") or {}).get("record_id")
        if not record_id:
            raise BitableApiError("登録結果にレコードIDが含まれていません。", 200)
        return record_id

    def set_attachment_value(
        self,
        record_id: str,
        field_id: str,
        descriptors: Sequence[AttachmentDescriptor],
    ) -> None:
        self._request(
            "PUT",
            f"{self._table_path}/records/{record_id}",
            json={"fields": self._encode_row({field_id: list(descriptors)})},
        )

    def upload_blob(self, data: bytes, filename: str, content_type: str) -> str:
        result = self._request(
            "POST",
            "/drive/v1/medias/upload_all",
            data={
                "file_name": filename,
                "parent_type": "bitable_file",
                "parent_node": self._app_token,
                "size": str(len(data)),
            },
            files={"file": (filename, data, content_type)},
        )
        token = result.get("file_token")
        if not token:
            raise BitableApiError("アップロード結果に file_token が含まれていません。", 200)
        return token

    def get_meta(self) -> dict[str, str]:
        for item in self._paginate(f"/bitable/v1/apps/{self._app_token}/tables"):
            if item.get("table_id") == self._table_id:
                return {"display_name": item.get("name") or ""}
        raise BitableApiError(f"テーブル {self._table_id} が見つかりません。", 404)

    def _paginate(self, path: str) -> Iterable[dict[str, Any]]:
        page_token: str | None = None
        while True:
            params: dict[str, Any] = {"page_size": self._page_size}
            if page_token:
                params["page_token"] = page_token
            data = self._request("GET", path, params=params)
            yield from data.get("items") or []
            page_token = data.get("page_token")
            if not data.get("has_more") or not page_token:
                break

    def _encode_row(self, row: StoreRow) -> dict[str, Any]:
        encoded: dict[str, Any] = {}
        for field_id, value in row.items():
            name = self._field_names.get(field_id)
            if name is None:
                raise BitableApiError(f"不明なフィールドID: {field_id}", 0)
            if isinstance(value, list):
                encoded[name] = [{"file_token": item.store_token} for item in value]
            else:
                encoded[name] = value
        return encoded

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self._access_token}"}
        try:
            response = self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise BitableApiError(f"Bitable API への接続に失敗しました: {exc}", 0) from exc

        try:
            body: dict[str, Any] = response.json()
        except json.JSONDecodeError:
            body = {}

        code = body.get("code")
        if response.status_code != 200 or code not in (0, None):
            message = body.get("msg") or response.text
            raise BitableApiError(
                f"Bitable API呼び出しが失敗しました (Status: {response.status_code}, code: {code}): {message}",
                response.status_code,
                code,
            )
        return body.get("data") or {}


def table_from_settings(settings: Settings) -> BitableTable:
    """Settings から必要情報を取り出してテーブルセッションを生成する。"""

    if not (
        settings.bitable_app_token
        and settings.bitable_table_id
        and settings.bitable_access_token
    ):
        raise ValueError("Bitable API 用の接続情報が不足しています。")

    return BitableTable(
        app_token=settings.bitable_app_token,
        table_id=settings.bitable_table_id,
        access_token=settings.bitable_access_token,
        base_url=settings.bitable_base_url,
    )
