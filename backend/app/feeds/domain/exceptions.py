"""Custom exceptions for feed services."""

from __future__ import annotations

from fastapi import status


class FeedError(Exception):
	"""Base class for feed related errors."""

	status_code: int = status.HTTP_400_BAD_REQUEST
	detail: str = "feed_error"

	def __init__(self, detail: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail


class InvalidArgumentError(FeedError):
	"""Raised when a request is well-formed but its content is not acceptable."""

	status_code = status.HTTP_400_BAD_REQUEST
	detail = "invalid_argument"


class ForbiddenError(FeedError):
	"""Raised when authorization fails."""

	status_code = status.HTTP_403_FORBIDDEN
	detail = "forbidden"


class NotFoundError(FeedError):
	"""Thrown when a feed, comment or notification id does not resolve."""

	status_code = status.HTTP_404_NOT_FOUND
	detail = "not_found"
