"""FastAPI application factory for the store service.

Run with ``uvicorn store_service.app:create_app --factory``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from fastapi import FastAPI, HTTPException, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from mdbench.config import AppConfig
from mdbench.store import (
    AlreadyExistsError,
    InvalidArgumentError,
    MetadataStore,
    NotFoundError,
    SqliteMetadataStore,
    StoreError,
)

from .metrics import METRICS, MetricsMiddleware
from .routes import router

logger = logging.getLogger(__name__)

# Most specific first; StoreError itself is the fallback.
STORE_ERROR_RESPONSES: tuple[tuple[type[StoreError], int, str], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND, "not_found"),
    (AlreadyExistsError, status.HTTP_409_CONFLICT, "already_exists"),
    (InvalidArgumentError, status.HTTP_400_BAD_REQUEST, "invalid_argument"),
    (StoreError, status.HTTP_500_INTERNAL_SERVER_ERROR, "store_error"),
)


def _error_response(
    status_code: int, error: str, hint: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"error": error, "hint": hint}, headers=headers
    )


def _describe_validation_errors(errors: Sequence[Any]) -> str:
    parts = []
    for err in errors:
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        message = err.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "invalid request body"


def create_app(store: MetadataStore | None = None, config: AppConfig | None = None) -> FastAPI:
    config = config or AppConfig.from_env()
    app = FastAPI(
        title="Metadata Store Service",
        description="Artifacts, executions and events behind a benchmarkable HTTP API.",
        version="0.1.0",
    )
    app.state.config = config
    app.state.store = store or SqliteMetadataStore(config.storage.database_path)
    app.add_middleware(MetricsMiddleware)

    @app.exception_handler(StoreError)
    async def _store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        status_code, error = next(
            (code, name) for error_type, code, name in STORE_ERROR_RESPONSES
            if isinstance(exc, error_type)
        )
        if isinstance(exc, AlreadyExistsError):
            METRICS.record_conflict()
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return _error_response(status_code, error, str(exc))

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(
        request: Request,
        exc: RequestValidationError,  # noqa: ARG001
    ) -> JSONResponse:
        return _error_response(
            status.HTTP_400_BAD_REQUEST,
            "invalid_request",
            _describe_validation_errors(exc.errors()),
        )

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(
        request: Request,
        exc: HTTPException,  # noqa: ARG001
    ) -> JSONResponse:
        detail = exc.detail if isinstance(exc.detail, dict) else {"hint": str(exc.detail)}
        return _error_response(
            exc.status_code,
            str(detail.get("error", "request_failed")),
            str(detail.get("hint", "")),
            headers=exc.headers,
        )

    app.include_router(router)
    return app
