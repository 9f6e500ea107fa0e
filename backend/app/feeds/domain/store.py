"""Feed aggregate operations.

Every mutation goes through ``FeedRepository.update``/``delete`` so the
existence check, the authorization decision and the write all happen against
the same committed state of one feed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Mapping, Optional, Sequence
from uuid import UUID, uuid4

from app.feeds.domain import models, policies, projector
from app.feeds.domain.exceptions import InvalidArgumentError, NotFoundError
from app.feeds.domain.repo import FeedRepository
from app.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 5


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


def _clean(text: Optional[str]) -> Optional[str]:
	if text is None:
		return None
	text = text.strip()
	return text or None


@dataclass(slots=True)
class LikeResult:
	feed: models.Feed
	liked: bool

	@property
	def like_count(self) -> int:
		return self.feed.like_count


@dataclass(slots=True)
class CommentResult:
	feed: models.Feed
	comment: models.Comment


class FeedStore:
	"""Owns Feed and Comment entities on top of a FeedRepository."""

	def __init__(
		self,
		repository: FeedRepository,
		*,
		clock: Callable[[], datetime] = _utcnow,
		id_factory: Callable[[], UUID] = uuid4,
	) -> None:
		self.repo = repository
		self._clock = clock
		self._new_id = id_factory

	# ------------------------------------------------------------------
	# Mutations

	async def create(
		self,
		author_id: str,
		*,
		kind: models.FeedKind = models.FeedKind.ORIGINAL,
		text: Optional[str] = None,
		image: Optional[str] = None,
		original_feed_id: Optional[UUID] = None,
	) -> models.Feed:
		text = _clean(text)
		if kind is models.FeedKind.RESHARE:
			if original_feed_id is None:
				raise InvalidArgumentError("original_feed_required")
			original = await self.repo.get(original_feed_id)
			if original is None:
				raise NotFoundError("original_feed_not_found")
			image = image or original.image
			text = text or projector.default_reshare_caption(original_feed_id)
		else:
			if original_feed_id is not None:
				raise InvalidArgumentError("original_feed_not_allowed")
			if not text and not image:
				raise InvalidArgumentError("post_content_required")
		now = self._clock()
		feed = models.Feed(
			id=self._new_id(),
			author_id=author_id,
			text=text,
			image=image,
			kind=kind,
			original_feed_id=original_feed_id,
			created_at=now,
			updated_at=now,
		)
		await self.repo.insert(feed)
		obs_metrics.inc_feed_mutation("create")
		_LOG.info("feeds.store.created", extra={"feed_id": str(feed.id), "kind": kind.value})
		return feed

	async def toggle_like(self, feed_id: UUID, user_id: str) -> LikeResult:
		outcome: dict[str, bool] = {}

		def _toggle(feed: models.Feed) -> models.Feed:
			if user_id in feed.likes:
				feed.likes = [liker for liker in feed.likes if liker != user_id]
				outcome["liked"] = False
			else:
				feed.likes = [*feed.likes, user_id]
				outcome["liked"] = True
			return feed

		feed = await self.repo.update(feed_id, _toggle)
		obs_metrics.inc_feed_mutation("like" if outcome["liked"] else "unlike")
		return LikeResult(feed=feed, liked=outcome["liked"])

	async def add_comment(self, feed_id: UUID, author_id: str, text: Optional[str]) -> CommentResult:
		body = _clean(text)
		if body is None:
			raise InvalidArgumentError("comment_text_required")
		comment = models.Comment(id=self._new_id(), author_id=author_id, text=body, created_at=self._clock())

		def _append(feed: models.Feed) -> models.Feed:
			feed.comments = [*feed.comments, comment]
			return feed

		feed = await self.repo.update(feed_id, _append)
		obs_metrics.inc_feed_mutation("comment")
		return CommentResult(feed=feed, comment=comment)

	async def remove_comment(self, feed_id: UUID, comment_id: UUID, actor: models.Viewer) -> models.Feed:
		def _remove(feed: models.Feed) -> models.Feed:
			comment = feed.find_comment(comment_id)
			if comment is None:
				raise NotFoundError("comment_not_found")
			policies.assert_can_delete_comment(actor, feed, comment)
			feed.comments = [item for item in feed.comments if item.id != comment_id]
			return feed

		feed = await self.repo.update(feed_id, _remove)
		obs_metrics.inc_feed_mutation("uncomment")
		return feed

	async def edit(
		self,
		feed_id: UUID,
		actor: models.Viewer,
		*,
		text: Optional[str] = None,
		image: Optional[str] = None,
		remove_image: bool = False,
	) -> models.Feed:
		new_text = _clean(text)
		now = self._clock()

		def _edit(feed: models.Feed) -> models.Feed:
			policies.assert_can_edit(actor, feed)
			if new_text is not None:
				feed.text = new_text
			if image:
				feed.image = image
			elif remove_image:
				feed.image = None
			if not feed.is_reshare and not feed.text and not feed.image:
				raise InvalidArgumentError("post_content_required")
			feed.updated_at = now
			return feed

		feed = await self.repo.update(feed_id, _edit)
		obs_metrics.inc_feed_mutation("edit")
		return feed

	async def delete(self, feed_id: UUID, actor: models.Viewer) -> models.Feed:
		feed = await self.repo.delete(feed_id, lambda current: policies.assert_can_delete_feed(actor, current))
		obs_metrics.inc_feed_mutation("delete")
		_LOG.info(
			"feeds.store.deleted",
			extra={"feed_id": str(feed_id), "comments": feed.comment_count, "by_admin": actor.user_id != feed.author_id},
		)
		return feed

	async def toggle_pin(self, feed_id: UUID, actor: models.Viewer) -> models.Feed:
		now = self._clock()

		def _flip(feed: models.Feed) -> models.Feed:
			policies.assert_can_pin(actor)
			feed.is_pinned = not feed.is_pinned
			feed.pinned_at = now if feed.is_pinned else None
			feed.updated_at = now
			return feed

		feed = await self.repo.update(feed_id, _flip)
		obs_metrics.inc_feed_mutation("pin" if feed.is_pinned else "unpin")
		return feed

	# ------------------------------------------------------------------
	# Reads

	async def get(self, feed_id: UUID) -> models.Feed:
		feed = await self.repo.get(feed_id)
		if feed is None:
			raise NotFoundError("feed_not_found")
		return feed

	async def page(self, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> Sequence[models.Feed]:
		page = max(1, page)
		page_size = max(1, page_size)
		return await self.repo.list_page(offset=(page - 1) * page_size, limit=page_size)

	async def by_author(self, author_id: str) -> Sequence[models.Feed]:
		return await self.repo.list_by_author(author_id)

	async def resolve_many(self, feed_ids: Iterable[UUID]) -> Mapping[UUID, models.Feed]:
		unique = list(dict.fromkeys(feed_ids))
		if not unique:
			return {}
		return await self.repo.get_many(unique)
