"""Map service errors to JSON responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from gamify.errors import GamifyError

logger = logging.getLogger(__name__)


def setup_error_handlers(app: FastAPI) -> None:
    """Register the handler that renders :class:`GamifyError` as ``{"detail": ...}``."""

    @app.exception_handler(GamifyError)
    async def gamify_error_handler(request: Request, exc: GamifyError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "%s %s failed: %s", request.method, request.url.path, exc.message,
            )
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
