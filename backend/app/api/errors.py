"""Global error handlers ensuring request_id is included in JSON responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.feeds.domain.exceptions import FeedError
from app.obs import logging as obs_logging

_LOG = logging.getLogger(__name__)


def _request_id(request: Request) -> str:
	return obs_logging.current_request_id() or getattr(request.state, "request_id", None) or "unknown"


def install_error_handlers(app: FastAPI) -> None:
	@app.exception_handler(StarletteHTTPException)
	async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
		payload = {"detail": exc.detail, "request_id": _request_id(request)}
		return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

	@app.exception_handler(FeedError)
	async def feed_exc_handler(request: Request, exc: FeedError):  # type: ignore[override]
		payload = {"detail": exc.detail, "request_id": _request_id(request)}
		return JSONResponse(status_code=exc.status_code, content=payload)

	@app.exception_handler(RequestValidationError)
	async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
		payload = {"detail": "validation_error", "errors": exc.errors(), "request_id": _request_id(request)}
		return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=payload)

	@app.exception_handler(Exception)
	async def unhandled_exc_handler(request: Request, exc: Exception):  # type: ignore[override]
		_LOG.exception("http.unhandled_exception", extra={"path": request.url.path})
		payload = {"detail": "internal_error", "request_id": _request_id(request)}
		return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=payload)
