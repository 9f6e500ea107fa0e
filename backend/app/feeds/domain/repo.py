"""Persistence contracts for feeds, the user directory and notifications.

Implementations must apply ``update``/``delete`` atomically per feed id: the
mutator or guard sees the committed state, and concurrent calls for the same
feed id are serialized. Nothing is written when the callback raises.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Iterable, Mapping, Protocol, Sequence
from uuid import UUID

from app.feeds.domain import models

FeedMutator = Callable[[models.Feed], models.Feed]
FeedGuard = Callable[[models.Feed], None]


class FeedRepository(Protocol):
	async def insert(self, feed: models.Feed) -> models.Feed:
		...

	async def get(self, feed_id: UUID) -> models.Feed | None:
		...

	async def get_many(self, feed_ids: Iterable[UUID]) -> Mapping[UUID, models.Feed]:
		...

	async def list_page(self, *, offset: int, limit: int) -> Sequence[models.Feed]:
		"""Feeds ordered newest ``created_at`` first."""
		...

	async def list_by_author(self, author_id: str) -> Sequence[models.Feed]:
		...

	async def update(self, feed_id: UUID, mutator: FeedMutator) -> models.Feed:
		"""Apply ``mutator`` under the feed's lock; NotFoundError when missing."""
		...

	async def delete(self, feed_id: UUID, guard: FeedGuard) -> models.Feed:
		"""Remove the feed (and its embedded comments) once ``guard`` accepts it."""
		...


class UserDirectory(Protocol):
	async def get_many(self, user_ids: Iterable[str]) -> Mapping[str, models.UserProfile]:
		...

	async def upsert(self, profile: models.UserProfile) -> models.UserProfile:
		...


class NotificationRepository(Protocol):
	async def insert(self, notification: models.Notification) -> models.Notification:
		...

	async def find_recent(
		self,
		*,
		user_id: str,
		actor_id: str,
		type: str,
		feed_id: UUID | None,
		since: datetime,
	) -> models.Notification | None:
		...

	async def list_for_user(self, user_id: str, *, limit: int) -> Sequence[models.Notification]:
		...

	async def count_unread(self, user_id: str) -> int:
		...

	async def mark_read(self, user_id: str, notification_id: UUID) -> models.Notification | None:
		...

	async def mark_all_read(self, user_id: str) -> int:
		...

	async def delete(self, user_id: str, notification_id: UUID) -> bool:
		...

	async def clear(self, user_id: str) -> int:
		...
