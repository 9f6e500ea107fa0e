"""Per-user notification inbox fed by feed activity."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional
from uuid import UUID, uuid4

from app.feeds.domain import events, models, projector
from app.feeds.domain.exceptions import NotFoundError
from app.feeds.domain.propagation import PropagationBus
from app.feeds.domain.repo import NotificationRepository, UserDirectory
from app.feeds.schemas import dto
from app.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)

FEED_LIKED = "feed_liked"
FEED_COMMENTED = "feed_commented"
FEED_REPOSTED = "feed_reposted"

_TEMPLATES = {
	FEED_LIKED: "{actor} liked your post",
	FEED_COMMENTED: "{actor} commented on your post",
	FEED_REPOSTED: "{actor} reposted your post",
}


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


class NotificationService:
	"""Persists notifications, suppresses duplicates and pushes new ones."""

	def __init__(
		self,
		*,
		repository: NotificationRepository,
		users: UserDirectory,
		bus: PropagationBus,
		dedupe_seconds: int = 5,
		list_limit: int = 50,
		clock: Callable[[], datetime] = _utcnow,
	) -> None:
		self.repo = repository
		self.users = users
		self.bus = bus
		self.dedupe_window = timedelta(seconds=dedupe_seconds)
		self.list_limit = list_limit
		self._clock = clock

	async def _to_response(self, item: models.Notification) -> dto.NotificationResponse:
		profiles = await self.users.get_many([item.actor_id])
		return dto.NotificationResponse(
			id=item.id,
			user_id=item.user_id,
			actor_id=item.actor_id,
			actor=projector.author_view(item.actor_id, profiles.get(item.actor_id)),
			type=item.type,
			feed_id=item.feed_id,
			text=item.text,
			is_read=item.is_read,
			created_at=item.created_at,
		)

	async def notify(
		self,
		*,
		type: str,
		recipient_id: str,
		actor_id: str,
		feed_id: Optional[UUID],
		actor_name: Optional[str] = None,
	) -> Optional[models.Notification]:
		"""Record one notification; never raises.

		Returns None for self-notifications and on failure, the existing record
		when an identical one was created within the dedupe window.
		"""
		if recipient_id == actor_id:
			obs_metrics.notification_outcome(type, "self")
			return None
		try:
			now = self._clock()
			existing = await self.repo.find_recent(
				user_id=recipient_id,
				actor_id=actor_id,
				type=type,
				feed_id=feed_id,
				since=now - self.dedupe_window,
			)
			if existing is not None:
				obs_metrics.notification_outcome(type, "deduplicated")
				return existing
			if actor_name is None:
				profiles = await self.users.get_many([actor_id])
				profile = profiles.get(actor_id)
				actor_name = profile.name if profile else "Someone"
			notification = models.Notification(
				id=uuid4(),
				user_id=recipient_id,
				actor_id=actor_id,
				type=type,
				feed_id=feed_id,
				text=_TEMPLATES.get(type, "{actor} interacted with your post").format(actor=actor_name),
				created_at=now,
			)
			await self.repo.insert(notification)
			obs_metrics.notification_outcome(type, "persisted")
			payload = (await self._to_response(notification)).to_payload()
			await self.bus.publish_to_user(recipient_id, events.NEW_NOTIFICATION, payload)
			return notification
		except Exception:
			obs_metrics.notification_outcome(type, "failed")
			_LOG.exception(
				"feeds.notifications.failed",
				extra={"type": type, "recipient": recipient_id, "feed_id": str(feed_id) if feed_id else None},
			)
			return None

	# ------------------------------------------------------------------
	# Inbox

	async def list_for_user(self, user_id: str) -> List[dto.NotificationResponse]:
		items = await self.repo.list_for_user(user_id, limit=self.list_limit)
		return [await self._to_response(item) for item in items]

	async def unread_count(self, user_id: str) -> dto.UnreadCountResponse:
		return dto.UnreadCountResponse(count=await self.repo.count_unread(user_id))

	async def mark_read(self, user_id: str, notification_id: str) -> dto.NotificationResponse:
		item = await self.repo.mark_read(user_id, _parse_id(notification_id))
		if item is None:
			raise NotFoundError("notification_not_found")
		return await self._to_response(item)

	async def mark_all_read(self, user_id: str) -> dto.MessageResponse:
		changed = await self.repo.mark_all_read(user_id)
		return dto.MessageResponse(message=f"{changed} notifications marked as read")

	async def delete(self, user_id: str, notification_id: str) -> dto.MessageResponse:
		if not await self.repo.delete(user_id, _parse_id(notification_id)):
			raise NotFoundError("notification_not_found")
		return dto.MessageResponse(message="Notification deleted")

	async def clear(self, user_id: str) -> dto.MessageResponse:
		removed = await self.repo.clear(user_id)
		return dto.MessageResponse(message=f"{removed} notifications cleared")


def _parse_id(raw: str) -> UUID:
	try:
		return UUID(str(raw))
	except ValueError:
		raise NotFoundError("notification_not_found") from None
