"""
PharmaLedger HTTP API.

Exposes every ledger operation as a JSON endpoint under /v1.

Invariants:
    - One store and one ledger per application, opened in the lifespan
    - Domain errors map to 400 / 403 / 404, oversized records to 413,
      other storage errors to 500
    - Error bodies are {"error": message, "error_code": code}

Usage:
    uvicorn pharmaledger.api.app:app --port 8080
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .._version import __version__
from ..config import ServerConfig
from ..errors import InvalidInputError, LedgerError, NotFoundError, UnauthorizedError
from ..ledger import SupplyChainLedger
from ..store import RecordTooLargeError, SegmentStore, StoreError
from .config import Settings
from .routes import router

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[LedgerError], int] = {
    InvalidInputError: 400,
    UnauthorizedError: 403,
    NotFoundError: 404,
}


def create_app(
    config: ServerConfig | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Create the PharmaLedger FastAPI app.

    Args:
        config: Server configuration (loaded from env if not provided)
        settings: HTTP settings (loaded from env if not provided)
    """
    config = config or ServerConfig.from_env()
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Manage store lifecycle."""
        store = SegmentStore.from_config(config.storage)
        store.open()
        try:
            app.state.ledger = SupplyChainLedger(store)
            app.state.settings = settings
            logger.info(
                "Ledger ready",
                extra={"db_path": config.storage.db_path, "last_id": app.state.ledger.last_id},
            )

            yield
        finally:
            store.close()

    app = FastAPI(
        title="PharmaLedger",
        description="Pharmaceutical supply-chain records: users, batches, events and rewards.",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        status = ERROR_STATUS.get(type(exc), 400)
        logger.info(
            f"{request.method} {request.url.path} rejected: {exc.message}",
            extra={"error_code": exc.code},
        )
        return JSONResponse(exc.to_dict(), status_code=status)

    @app.exception_handler(RecordTooLargeError)
    async def record_too_large_handler(
        request: Request, exc: RecordTooLargeError
    ) -> JSONResponse:
        logger.info(f"{request.method} {request.url.path} rejected: {exc}")
        return JSONResponse({"error": str(exc), "error_code": "RECORD_TOO_LARGE"}, status_code=413)

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        logger.error(f"Store error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse({"error": str(exc), "error_code": "STORE_ERROR"}, status_code=500)

    app.include_router(router, prefix="/v1")

    @app.get("/health")
    async def health(request: Request):
        ledger: SupplyChainLedger = request.app.state.ledger
        return {
            "status": "healthy",
            "service": "pharmaledger",
            "version": __version__,
            "last_id": ledger.last_id,
        }

    return app


app = create_app()
