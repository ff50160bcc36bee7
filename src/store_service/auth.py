"""Simple API key authentication dependency."""

from __future__ import annotations

import logging

from fastapi import Header, HTTPException, Request, status

logger = logging.getLogger(__name__)


async def require_api_key(
    request: Request,
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> None:
    config = request.app.state.config  # type: ignore[attr-defined]
    required_key = config.service.api_key
    if not required_key:
        return
    if x_api_key != required_key:
        client_ip = request.client.host if request.client else "unknown"
        logger.warning(
            f"Rejected request to {request.url.path} from {client_ip} "
            f"(api key provided: {'yes' if x_api_key else 'no'})"
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "unauthorized",
                "hint": "Provide X-API-Key header with the configured SERVICE_API_KEY value.",
            },
            headers={"WWW-Authenticate": "API-Key"},
        )
