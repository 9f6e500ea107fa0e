"""Pure mapping from stored feed aggregates to viewer-specific read models."""

from __future__ import annotations

from typing import Mapping, Optional
from uuid import UUID

from app.feeds.domain import models, policies
from app.feeds.schemas import dto

UNKNOWN_MEMBER = "Unknown member"
UNKNOWN_PARISH = "Unknown Parish"

CHURCH_NAMES = {
	"ss_joachim_and_anne": "SS Joachim & Anne Catholic Church Ijegun",
	"st_marys": "St. Mary's Catholic Church Ijagemo",
	"st_brendan": "St. Brendan Catholic Church Ifesowapo",
}


def church_display_name(church_key: str | None) -> str:
	if not church_key:
		return UNKNOWN_PARISH
	return CHURCH_NAMES.get(church_key, UNKNOWN_PARISH)


def default_reshare_caption(original_feed_id: UUID | str) -> str:
	return f"Shared post from feed {original_feed_id}. Check it out!"


def display_text(feed: models.Feed) -> str:
	"""Text a client should render; the stored text is left untouched."""
	text = feed.text or ""
	if feed.is_reshare and feed.original_feed_id is not None:
		if text == default_reshare_caption(feed.original_feed_id):
			return ""
	return text


def author_view(user_id: str, profile: models.UserProfile | None) -> dto.AuthorView:
	if profile is None:
		return dto.AuthorView(id=user_id, name=UNKNOWN_MEMBER, church=UNKNOWN_PARISH)
	viewer = models.Viewer(user_id=profile.id, role=profile.role.value)
	return dto.AuthorView(
		id=profile.id,
		name=profile.name,
		profile_pic=profile.profile_pic or None,
		church=church_display_name(profile.church),
		role=profile.role.value,
		is_admin=policies.can_view_admin_badge(viewer),
	)


def comment_view(
	comment: models.Comment,
	profiles: Mapping[str, models.UserProfile] | None = None,
) -> dto.CommentView:
	profiles = profiles or {}
	return dto.CommentView(
		id=comment.id,
		author_id=comment.author_id,
		author=author_view(comment.author_id, profiles.get(comment.author_id)),
		text=comment.text,
		created_at=comment.created_at,
	)


def original_ref(
	original_feed_id: UUID,
	original: models.Feed | None,
	profiles: Mapping[str, models.UserProfile],
) -> dto.OriginalRef:
	if original is None:
		return dto.OriginalRef(id=original_feed_id, available=False)
	profile = profiles.get(original.author_id)
	return dto.OriginalRef(
		id=original.id,
		available=True,
		author_name=profile.name if profile else UNKNOWN_MEMBER,
		text=display_text(original),
		image=original.image,
	)


def project(
	feed: models.Feed,
	viewer: models.Viewer,
	*,
	profiles: Mapping[str, models.UserProfile] | None = None,
	original: Optional[models.Feed] = None,
) -> dto.FeedView:
	"""Build the FeedView of ``feed`` as seen by ``viewer``.

	``profiles`` maps user ids to directory entries for the author and the
	commenters; ``original`` is the resolved origin of a reshare, or None when it
	no longer exists.
	"""
	profiles = profiles or {}
	origin = None
	if feed.is_reshare and feed.original_feed_id is not None:
		origin = original_ref(feed.original_feed_id, original, profiles)
	return dto.FeedView(
		id=feed.id,
		author_id=feed.author_id,
		author=author_view(feed.author_id, profiles.get(feed.author_id)),
		text=feed.text,
		display_text=display_text(feed),
		image=feed.image,
		kind=feed.kind.value,
		original_feed_id=feed.original_feed_id,
		original=origin,
		likes=list(feed.likes),
		like_count=feed.like_count,
		comment_count=feed.comment_count,
		comments=[comment_view(comment, profiles) for comment in feed.comments],
		is_pinned=feed.is_pinned,
		pinned_at=feed.pinned_at,
		created_at=feed.created_at,
		updated_at=feed.updated_at,
		is_liked_by_viewer=viewer.user_id is not None and viewer.user_id in feed.likes,
		can_edit=policies.can_edit(viewer, feed),
		can_delete=policies.can_delete_feed(viewer, feed),
		can_pin=policies.can_pin(viewer),
	)


def localize(view: dto.FeedView, viewer: models.Viewer) -> dto.FeedView:
	"""Recompute the viewer flags of an already projected view for another viewer.

	Broadcast views are projected for the anonymous viewer; each client applies
	its own identity with this function.
	"""
	is_owner = policies.owns(viewer, view.author_id)
	is_admin = policies.is_admin(viewer)
	return view.model_copy(
		update={
			"is_liked_by_viewer": viewer.user_id is not None and viewer.user_id in view.likes,
			"can_edit": is_owner,
			"can_delete": is_owner or is_admin,
			"can_pin": is_admin,
		}
	)
