"""Real-time event names and payload builders for feed propagation."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from app.feeds.schemas import dto

FEED_CREATED = "feedCreated"
FEED_UPDATED = "feedUpdated"
FEED_DELETED = "feedDeleted"
FEED_LIKED = "feedLiked"
FEED_PINNED = "feedPinned"
FEED_UNPINNED = "feedUnpinned"
COMMENT_ADDED = "commentAdded"
COMMENT_DELETED = "commentDeleted"
NEW_NOTIFICATION = "newNotification"

FEED_EVENTS = (
	FEED_CREATED,
	FEED_UPDATED,
	FEED_DELETED,
	FEED_LIKED,
	FEED_PINNED,
	FEED_UNPINNED,
	COMMENT_ADDED,
	COMMENT_DELETED,
)


def feed_payload(view: dto.FeedView) -> dict[str, Any]:
	return view.to_payload()


def feed_deleted_payload(feed_id: UUID) -> str:
	return str(feed_id)


def feed_liked_payload(feed_id: UUID, like_count: int) -> dict[str, Any]:
	return dto.FeedLikedEvent(feed_id=feed_id, like_count=like_count).to_payload()


def comment_added_payload(feed_id: UUID, comment: dto.CommentView) -> dict[str, Any]:
	return dto.CommentAddedEvent(feed_id=feed_id, comment=comment).to_payload()


def comment_deleted_payload(feed_id: UUID, comment_id: UUID) -> dict[str, Any]:
	return dto.CommentDeletedEvent(feed_id=feed_id, comment_id=comment_id).to_payload()


def pin_event(view: dto.FeedView) -> str:
	return FEED_PINNED if view.is_pinned else FEED_UNPINNED
