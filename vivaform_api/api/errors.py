from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from vivaform_api.core.logging import correlation_id_var, user_id_var
from vivaform_api.schemas.common import ErrorInfo, ErrorResponse

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


async def correlation_middleware(request: Request, call_next):
    """
    Bind a correlation id (client supplied X-Correlation-ID / X-Request-ID, or a new uuid4)
    to the logging context and echo it on the response.
    """
    corr = request.headers.get(CORRELATION_HEADER) or request.headers.get("X-Request-ID") or str(uuid4())
    request.state.correlation_id = corr
    corr_token = correlation_id_var.set(corr)
    user_token = user_id_var.set(None)
    logger.info("%s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(corr_token)
        user_id_var.reset(user_token)
    response.headers[CORRELATION_HEADER] = corr
    return response


def error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=details),
        correlation_id=getattr(request.state, "correlation_id", None),
        path=request.url.path,
        method=request.method,
        timestamp=datetime.now(tz=timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"), headers=headers)


def _validation_details(exc: RequestValidationError) -> List[Dict[str, Any]]:
    # ctx may hold the raised ValueError itself
    details = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        details.append(error)
    return details


async def _on_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc.detail, str):
        message, details = exc.detail, None
    else:
        message, details = "HTTP Error", exc.detail
    return error_response(request, exc.status_code, "http_error", message, details, getattr(exc, "headers", None))


async def _on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(request, 422, "validation_error", "Request validation failed", _validation_details(exc))


async def _on_unhandled(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(request, 500, "internal_error", "An unexpected error occurred")


# PUBLIC_INTERFACE
def install_error_handling(app: FastAPI) -> None:
    """Register the correlation middleware and the handlers producing the JSON error envelope."""
    app.middleware("http")(correlation_middleware)
    app.add_exception_handler(StarletteHTTPException, _on_http_error)
    app.add_exception_handler(RequestValidationError, _on_validation_error)
    app.add_exception_handler(Exception, _on_unhandled)
