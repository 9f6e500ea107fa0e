"""Error translation helpers for the feeds API."""

from __future__ import annotations

import logging

from fastapi import HTTPException, status
from pydantic import ValidationError

from app.feeds.domain import exceptions
from app.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)


def to_http_error(exc: Exception) -> HTTPException:
	"""Translate domain exceptions to FastAPI HTTP errors."""
	if isinstance(exc, HTTPException):
		return exc
	if isinstance(exc, exceptions.FeedError):
		obs_metrics.inc_feed_rejection(exc.detail)
		return HTTPException(status_code=exc.status_code, detail=exc.detail)
	if isinstance(exc, ValidationError):
		obs_metrics.inc_feed_rejection("invalid_request")
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_request")
	_LOG.exception("feeds.api.unhandled", exc_info=exc)
	return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="internal_error")
