"""FastAPI アプリケーションの組み立てを担当するモジュール。"""

from __future__ import annotations

from fastapi import FastAPI

from .core.middleware import request_id_middleware
from .core.settings import load_settings
from .features.mail_sync.router_mail_sync import router as mail_router
from .features.records_write.router_records_write import router as records_router
from .features.table_schema.router_table_schema import router as table_router


def create_app() -> FastAPI:
    """コア設定や共通ミドルウェアを組み込んだ FastAPI アプリを返す。"""

    settings = load_settings()
    app = FastAPI(title="mail-table-sync", version="0.1.0")
    app.state.settings = settings  # type: ignore[attr-defined]
    app.middleware("http")(request_id_middleware)

    @app.get("/healthz", tags=["health"])
    def healthz() -> dict[str, str]:
        return {"status": "ok", "env": settings.app_env}

    app.include_router(table_router)
    app.include_router(records_router)
    app.include_router(mail_router)

    return app
