"""アプリ全体で共有する設定読み込みロジック。"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable

import boto3
from botocore.exceptions import ClientError


_DEFAULT_REGION = "ap-northeast-1"
_DEFAULT_BITABLE_BASE_URL = "https://open.feishu.cn/open-apis"
_DEFAULT_MAIL_API_BASE_URL = "https://sorry-marylinda-miaomiaocompany-32548e63.koyeb.app"
_LOCAL_ENV = "local"


@dataclass(slots=True)
class Settings:
    """環境非依存で参照できる設定値の集合。"""

    app_env: str
    region: str
    bitable_base_url: str
    bitable_app_token: str | None
    bitable_table_id: str | None
    bitable_access_token: str | None
    mail_api_base_url: str
    ssm_path_prefix: str | None = None

    @property
    def is_local(self) -> bool:
        return self.app_env == _LOCAL_ENV


def _fetch_ssm_parameters(
    region: str, names: Iterable[str], prefix: str
) -> dict[str, str]:
    name_list = [f"{prefix}/{name}" for name in names]
    client = boto3.client("ssm", region_name=region)
    try:
        resp = client.get_parameters(Names=name_list, WithDecryption=True)
    except ClientError as exc:  # pragma: no cover - boto3 例外ラップ
        raise RuntimeError("SSM パラメータ取得に失敗しました。") from exc

    found = {item["Name"]: item["Value"] for item in resp.get("Parameters", [])}
    missing = {name for name in name_list if name not in found}
    if missing:
        raise ValueError(f"SSM パラメータ未設定: {', '.join(sorted(missing))}")
    return found


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """環境に応じて環境変数または SSM から設定を構築する。"""

    app_env = os.getenv("APP_ENV", _LOCAL_ENV)
    region = os.getenv("REGION", _DEFAULT_REGION)
    bitable_base_url = os.getenv("BITABLE_BASE_URL", _DEFAULT_BITABLE_BASE_URL)

    if app_env == _LOCAL_ENV:
        return Settings(
            app_env=app_env,
            region=region,
            bitable_base_url=bitable_base_url,
            bitable_app_token=os.getenv("BITABLE_APP_TOKEN"),
            bitable_table_id=os.getenv("BITABLE_TABLE_ID"),
            bitable_access_token=os.getenv("BITABLE_ACCESS_TOKEN"),
            mail_api_base_url=os.getenv("MAIL_API_BASE_URL", _DEFAULT_MAIL_API_BASE_URL),
            ssm_path_prefix=None,
        )

    prefix = os.getenv("SSM_PATH_PREFIX", "/app/prod")
    required_keys = [
        "bitable/app_token",
        "bitable/table_id",
        "bitable/access_token",
        "mail_api/base_url",
    ]
    values = _fetch_ssm_parameters(region=region, names=required_keys, prefix=prefix)

    def from_ssm(key: str) -> str:
        return values[f"{prefix}/{key}"]

    return Settings(
        app_env=app_env,
        region=region,
        bitable_base_url=bitable_base_url,
        bitable_app_token=from_ssm("bitable/app_token"),
        bitable_table_id=from_ssm("bitable/table_id"),
        bitable_access_token=from_ssm("bitable/access_token"),
        mail_api_base_url=from_ssm("mail_api/base_url"),
        ssm_path_prefix=prefix,
    )
