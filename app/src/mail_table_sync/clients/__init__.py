"""外部サービスへの接続ヘルパーをまとめたパッケージ。"""

from __future__ import annotations

__all__ = [
    "bitable_client",
    "http_client",
    "mail_api_client",
]
