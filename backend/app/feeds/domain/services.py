"""Service layer orchestrating feed operations.

Each mutation commits through FeedStore first, then projects the result and
publishes it on the PropagationBus, then records notifications.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional, Sequence
from uuid import UUID

from app.feeds.domain import events, models, notifications as notify, projector
from app.feeds.domain.exceptions import NotFoundError
from app.feeds.domain.notifications import NotificationService
from app.feeds.domain.propagation import PropagationBus
from app.feeds.domain.repo import UserDirectory
from app.feeds.domain.store import FeedStore
from app.feeds.infra.uploads import LocalImageStorage
from app.feeds.schemas import dto
from app.infra.auth import AuthenticatedUser

_LOG = logging.getLogger(__name__)


def parse_feed_id(raw: str | UUID, *, detail: str = "feed_not_found") -> UUID:
	"""Malformed ids cannot resolve, so they are reported as NotFound."""
	if isinstance(raw, UUID):
		return raw
	try:
		return UUID(str(raw).strip())
	except ValueError:
		raise NotFoundError(detail) from None


class FeedService:
	"""Implements the feed use cases on top of the store, projector and bus."""

	def __init__(
		self,
		*,
		store: FeedStore,
		users: UserDirectory,
		notifications: NotificationService,
		bus: PropagationBus,
		images: LocalImageStorage,
		page_size: int = 5,
	) -> None:
		self.store = store
		self.users = users
		self.notifications = notifications
		self.bus = bus
		self.images = images
		self.page_size = page_size

	# ------------------------------------------------------------------
	# Projection helpers

	async def _context(
		self, feeds: Sequence[models.Feed]
	) -> tuple[Mapping[str, models.UserProfile], Mapping[UUID, models.Feed]]:
		origin_ids = [feed.original_feed_id for feed in feeds if feed.original_feed_id is not None]
		originals = await self.store.resolve_many(origin_ids)
		user_ids: set[str] = set()
		for feed in [*feeds, *originals.values()]:
			user_ids.add(feed.author_id)
			user_ids.update(comment.author_id for comment in feed.comments)
		profiles = await self.users.get_many(user_ids) if user_ids else {}
		return profiles, originals

	async def _project_many(self, feeds: Sequence[models.Feed], viewer: models.Viewer) -> List[dto.FeedView]:
		profiles, originals = await self._context(feeds)
		return [
			projector.project(
				feed,
				viewer,
				profiles=profiles,
				original=originals.get(feed.original_feed_id) if feed.original_feed_id else None,
			)
			for feed in feeds
		]

	async def _project(self, feed: models.Feed, viewer: models.Viewer) -> dto.FeedView:
		views = await self._project_many([feed], viewer)
		return views[0]

	async def _comment_view(self, comment: models.Comment) -> dto.CommentView:
		profiles = await self.users.get_many([comment.author_id])
		return projector.comment_view(comment, profiles)

	async def _comment_views(self, comments: Iterable[models.Comment]) -> List[dto.CommentView]:
		comments = list(comments)
		profiles = await self.users.get_many({comment.author_id for comment in comments}) if comments else {}
		return [projector.comment_view(comment, profiles) for comment in comments]

	# ------------------------------------------------------------------
	# Reads

	async def list_page(self, viewer: models.Viewer, page: int = 1) -> List[dto.FeedView]:
		feeds = await self.store.page(page, self.page_size)
		return await self._project_many(feeds, viewer)

	async def list_by_author(self, viewer: models.Viewer, author_id: str) -> List[dto.FeedView]:
		feeds = await self.store.by_author(author_id)
		return await self._project_many(feeds, viewer)

	async def list_mine(self, user: AuthenticatedUser) -> List[dto.FeedView]:
		return await self.list_by_author(models.Viewer.from_user(user), user.id)

	async def get_feed(self, viewer: models.Viewer, feed_id: str | UUID) -> dto.FeedView:
		feed = await self.store.get(parse_feed_id(feed_id))
		return await self._project(feed, viewer)

	# ------------------------------------------------------------------
	# Mutations

	async def create_feed(
		self,
		user: AuthenticatedUser,
		payload: dto.OriginalFeedRequest | dto.ReshareFeedRequest,
		*,
		base_url: Optional[str] = None,
	) -> dto.FeedView:
		viewer = models.Viewer.from_user(user)
		original_id: Optional[UUID] = None
		kind = models.FeedKind.ORIGINAL
		if isinstance(payload, dto.ReshareFeedRequest):
			kind = models.FeedKind.RESHARE
			original_id = parse_feed_id(payload.original_feed_id, detail="original_feed_not_found")
		image_url = self.images.save(payload.image, base_url=base_url) if payload.image else None
		try:
			feed = await self.store.create(
				user.id,
				kind=kind,
				text=payload.text,
				image=image_url,
				original_feed_id=original_id,
			)
		except Exception:
			self.images.delete(image_url)
			raise
		view = await self._project(feed, viewer)
		broadcast = projector.localize(view, models.Viewer.anonymous())
		await self.bus.publish(events.FEED_CREATED, events.feed_payload(broadcast))
		if original_id is not None:
			original = (await self.store.resolve_many([original_id])).get(original_id)
			if original is not None:
				await self.notifications.notify(
					type=notify.FEED_REPOSTED,
					recipient_id=original.author_id,
					actor_id=user.id,
					feed_id=original_id,
					actor_name=user.name,
				)
		return view

	async def toggle_like(self, user: AuthenticatedUser, feed_id: str | UUID) -> dto.LikeResponse:
		result = await self.store.toggle_like(parse_feed_id(feed_id), user.id)
		await self.bus.publish(
			events.FEED_LIKED,
			events.feed_liked_payload(result.feed.id, result.like_count),
		)
		if result.liked:
			await self.notifications.notify(
				type=notify.FEED_LIKED,
				recipient_id=result.feed.author_id,
				actor_id=user.id,
				feed_id=result.feed.id,
				actor_name=user.name,
			)
		return dto.LikeResponse(like_count=result.like_count, liked=result.liked)

	async def add_comment(
		self,
		user: AuthenticatedUser,
		feed_id: str | UUID,
		payload: dto.CommentCreateRequest,
	) -> dto.CommentView:
		result = await self.store.add_comment(parse_feed_id(feed_id), user.id, payload.text)
		comment = await self._comment_view(result.comment)
		await self.bus.publish(events.COMMENT_ADDED, events.comment_added_payload(result.feed.id, comment))
		await self.notifications.notify(
			type=notify.FEED_COMMENTED,
			recipient_id=result.feed.author_id,
			actor_id=user.id,
			feed_id=result.feed.id,
			actor_name=user.name,
		)
		return comment

	async def remove_comment(
		self,
		user: AuthenticatedUser,
		feed_id: str | UUID,
		comment_id: str | UUID,
	) -> List[dto.CommentView]:
		target_feed = parse_feed_id(feed_id)
		target_comment = parse_feed_id(comment_id, detail="comment_not_found")
		feed = await self.store.remove_comment(target_feed, target_comment, models.Viewer.from_user(user))
		await self.bus.publish(events.COMMENT_DELETED, events.comment_deleted_payload(feed.id, target_comment))
		return await self._comment_views(feed.comments)

	async def edit_feed(
		self,
		user: AuthenticatedUser,
		feed_id: str | UUID,
		payload: dto.FeedUpdateRequest,
		*,
		base_url: Optional[str] = None,
	) -> dto.FeedView:
		viewer = models.Viewer.from_user(user)
		target = parse_feed_id(feed_id)
		await self.store.get(target)
		image_url = self.images.save(payload.image, base_url=base_url) if payload.image else None
		try:
			feed = await self.store.edit(
				target,
				viewer,
				text=payload.text,
				image=image_url,
				remove_image=payload.remove_image,
			)
		except Exception:
			self.images.delete(image_url)
			raise
		view = await self._project(feed, viewer)
		await self.bus.publish(events.FEED_UPDATED, events.feed_payload(projector.localize(view, models.Viewer.anonymous())))
		return view

	async def delete_feed(self, user: AuthenticatedUser, feed_id: str | UUID) -> dto.DeleteFeedResponse:
		feed = await self.store.delete(parse_feed_id(feed_id), models.Viewer.from_user(user))
		await self.bus.publish(events.FEED_DELETED, events.feed_deleted_payload(feed.id))
		return dto.DeleteFeedResponse(message="Feed deleted successfully", feed_id=str(feed.id))

	async def toggle_pin(self, user: AuthenticatedUser, feed_id: str | UUID) -> dto.TogglePinResponse:
		viewer = models.Viewer.from_user(user)
		feed = await self.store.toggle_pin(parse_feed_id(feed_id), viewer)
		view = await self._project(feed, viewer)
		broadcast = events.feed_payload(projector.localize(view, models.Viewer.anonymous()))
		await self.bus.publish(events.pin_event(view), broadcast)
		await self.bus.publish(events.FEED_UPDATED, broadcast)
		_LOG.info("feeds.service.pin_toggled", extra={"feed_id": str(feed.id), "pinned": feed.is_pinned})
		message = "Feed pinned successfully" if feed.is_pinned else "Feed unpinned successfully"
		return dto.TogglePinResponse(message=message, feed=view)
