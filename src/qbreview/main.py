from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from .config import Settings, settings
from .errors import InternalConsistencyError, RecordNotFoundError, SnapshotDecodeError
from .logging import configure_logging, logger
from .middleware import AccessLogMiddleware, RequestIDMiddleware
from .routers import answers, backup, health, review
from .store import ReviewStore, create_store


def _register_exception_handlers(app: FastAPI) -> None:
    async def _not_found(_request: Request, exc: RecordNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    async def _bad_snapshot(_request: Request, exc: SnapshotDecodeError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": "invalid snapshot"})

    async def _inconsistent(_request: Request, exc: InternalConsistencyError) -> JSONResponse:
        logger.error("store_inconsistent", error=str(exc))
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    app.add_exception_handler(RecordNotFoundError, _not_found)  # type: ignore[arg-type]
    app.add_exception_handler(SnapshotDecodeError, _bad_snapshot)  # type: ignore[arg-type]
    app.add_exception_handler(InternalConsistencyError, _inconsistent)  # type: ignore[arg-type]


def create_app(config: Settings | None = None, store: ReviewStore | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    store を渡さない場合は設定に従って起動時に生成する。いずれの場合も
    起動時に `validate_version` を実行し、既定値の投入や V1 → V2 移行を済ませる。
    """
    cfg = config or settings
    configure_logging(cfg.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if app.state.review_store is None:
            app.state.review_store = create_store(cfg)
        await app.state.review_store.validate_version()
        logger.info("app_started", environment=cfg.environment, storage_backend=cfg.storage_backend)
        yield

    app = FastAPI(title="QB Review API", version="0.2.0", lifespan=lifespan)
    app.state.settings = cfg
    app.state.review_store = store
    # ストアは内部でロックを持たないため、API からの呼び出しはここで直列化する
    app.state.store_lock = asyncio.Lock()

    configured_origins = list(cfg.allowed_cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=configured_origins or ["*"],
        allow_credentials=bool(configured_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Starlette では後から追加したミドルウェアが外側で実行される（RequestID → AccessLog の順）
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIDMiddleware)
    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(answers.router, prefix="/api/answers")
    app.include_router(review.router, prefix="/api/review")
    app.include_router(backup.router, prefix="/api/backup")
    return app


app = create_app()
