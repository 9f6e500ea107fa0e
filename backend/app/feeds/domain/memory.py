"""In-process repositories used for development and the test suite."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from app.feeds.domain import models
from app.feeds.domain.exceptions import NotFoundError
from app.feeds.domain.repo import FeedGuard, FeedMutator


class InMemoryFeedRepository:
	"""Feed storage keyed by id with one asyncio lock per feed."""

	def __init__(self) -> None:
		self._feeds: Dict[UUID, models.Feed] = {}
		self._locks: Dict[UUID, asyncio.Lock] = defaultdict(asyncio.Lock)

	def _ordered(self) -> List[models.Feed]:
		return sorted(
			self._feeds.values(),
			key=lambda feed: (feed.created_at, str(feed.id)),
			reverse=True,
		)

	async def insert(self, feed: models.Feed) -> models.Feed:
		self._feeds[feed.id] = feed.model_copy(deep=True)
		return feed

	async def get(self, feed_id: UUID) -> Optional[models.Feed]:
		feed = self._feeds.get(feed_id)
		return feed.model_copy(deep=True) if feed else None

	async def get_many(self, feed_ids: Iterable[UUID]) -> Dict[UUID, models.Feed]:
		found: Dict[UUID, models.Feed] = {}
		for feed_id in feed_ids:
			feed = self._feeds.get(feed_id)
			if feed is not None:
				found[feed_id] = feed.model_copy(deep=True)
		return found

	async def list_page(self, *, offset: int, limit: int) -> List[models.Feed]:
		window = self._ordered()[offset : offset + limit]
		return [feed.model_copy(deep=True) for feed in window]

	async def list_by_author(self, author_id: str) -> List[models.Feed]:
		return [feed.model_copy(deep=True) for feed in self._ordered() if feed.author_id == author_id]

	async def update(self, feed_id: UUID, mutator: FeedMutator) -> models.Feed:
		async with self._locks[feed_id]:
			current = self._feeds.get(feed_id)
			if current is None:
				raise NotFoundError("feed_not_found")
			updated = mutator(current.model_copy(deep=True))
			self._feeds[feed_id] = updated.model_copy(deep=True)
			return updated

	async def delete(self, feed_id: UUID, guard: FeedGuard) -> models.Feed:
		async with self._locks[feed_id]:
			current = self._feeds.get(feed_id)
			if current is None:
				raise NotFoundError("feed_not_found")
			guard(current.model_copy(deep=True))
			del self._feeds[feed_id]
		self._locks.pop(feed_id, None)
		return current


class InMemoryUserDirectory:
	def __init__(self, profiles: Iterable[models.UserProfile] = ()) -> None:
		self._profiles: Dict[str, models.UserProfile] = {profile.id: profile for profile in profiles}

	async def get_many(self, user_ids: Iterable[str]) -> Dict[str, models.UserProfile]:
		return {user_id: self._profiles[user_id] for user_id in set(user_ids) if user_id in self._profiles}

	async def upsert(self, profile: models.UserProfile) -> models.UserProfile:
		self._profiles[profile.id] = profile
		return profile


class InMemoryNotificationRepository:
	def __init__(self) -> None:
		self._items: Dict[UUID, models.Notification] = {}

	def _for_user(self, user_id: str) -> List[models.Notification]:
		items = [item for item in self._items.values() if item.user_id == user_id]
		items.sort(key=lambda item: item.created_at, reverse=True)
		return items

	async def insert(self, notification: models.Notification) -> models.Notification:
		self._items[notification.id] = notification
		return notification

	async def find_recent(
		self,
		*,
		user_id: str,
		actor_id: str,
		type: str,
		feed_id: UUID | None,
		since: datetime,
	) -> Optional[models.Notification]:
		for item in self._for_user(user_id):
			if item.created_at < since:
				break
			if item.actor_id == actor_id and item.type == type and item.feed_id == feed_id:
				return item
		return None

	async def list_for_user(self, user_id: str, *, limit: int) -> List[models.Notification]:
		return self._for_user(user_id)[:limit]

	async def count_unread(self, user_id: str) -> int:
		return sum(1 for item in self._for_user(user_id) if not item.is_read)

	async def mark_read(self, user_id: str, notification_id: UUID) -> Optional[models.Notification]:
		item = self._items.get(notification_id)
		if item is None or item.user_id != user_id:
			return None
		updated = item.model_copy(update={"is_read": True})
		self._items[notification_id] = updated
		return updated

	async def mark_all_read(self, user_id: str) -> int:
		changed = 0
		for item in self._for_user(user_id):
			if not item.is_read:
				self._items[item.id] = item.model_copy(update={"is_read": True})
				changed += 1
		return changed

	async def delete(self, user_id: str, notification_id: UUID) -> bool:
		item = self._items.get(notification_id)
		if item is None or item.user_id != user_id:
			return False
		del self._items[notification_id]
		return True

	async def clear(self, user_id: str) -> int:
		doomed = [item.id for item in self._for_user(user_id)]
		for notification_id in doomed:
			del self._items[notification_id]
		return len(doomed)
