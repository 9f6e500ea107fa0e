"""Authorization policies for feed operations.

The ``can_*`` predicates are pure and never raise; the ``assert_*`` helpers
turn a negative decision into ForbiddenError.
"""

from __future__ import annotations

from app.feeds.domain import models
from app.feeds.domain.exceptions import ForbiddenError

ADMIN_ROLE = models.Role.ADMIN.value


def is_admin(actor: models.Viewer) -> bool:
	return actor.role == ADMIN_ROLE


def owns(actor: models.Viewer, author_id: str) -> bool:
	return actor.user_id is not None and actor.user_id == author_id


def can_edit(actor: models.Viewer, feed: models.Feed) -> bool:
	return owns(actor, feed.author_id)


def can_delete_feed(actor: models.Viewer, feed: models.Feed) -> bool:
	return owns(actor, feed.author_id) or is_admin(actor)


def can_delete_comment(actor: models.Viewer, feed: models.Feed, comment: models.Comment) -> bool:
	return owns(actor, comment.author_id) or is_admin(actor)


def can_pin(actor: models.Viewer) -> bool:
	return is_admin(actor)


def can_view_admin_badge(actor: models.Viewer) -> bool:
	return is_admin(actor)


def assert_can_edit(actor: models.Viewer, feed: models.Feed) -> None:
	if not can_edit(actor, feed):
		raise ForbiddenError("not_feed_owner")


def assert_can_delete_feed(actor: models.Viewer, feed: models.Feed) -> None:
	if not can_delete_feed(actor, feed):
		raise ForbiddenError("not_feed_owner_or_admin")


def assert_can_delete_comment(actor: models.Viewer, feed: models.Feed, comment: models.Comment) -> None:
	if not can_delete_comment(actor, feed, comment):
		raise ForbiddenError("not_comment_owner_or_admin")


def assert_can_pin(actor: models.Viewer) -> None:
	if not can_pin(actor):
		raise ForbiddenError("admin_role_required")
