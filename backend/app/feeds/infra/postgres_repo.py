"""PostgreSQL persistence for feeds, the user directory and notifications."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence
from uuid import UUID

import asyncpg

from app.feeds.domain import models
from app.feeds.domain.exceptions import NotFoundError
from app.feeds.domain.repo import FeedGuard, FeedMutator

_FEED_COLUMNS = (
	"id, author_id, text, image, likes, comments, kind, original_feed_id, "
	"is_pinned, pinned_at, created_at, updated_at"
)


# comments is jsonb; the pool codec in app.infra.postgres maps it to and from lists
def _load_comments(raw: Optional[list]) -> List[models.Comment]:
	return [models.Comment.model_validate(item) for item in raw or []]


def _dump_comments(comments: Sequence[models.Comment]) -> list:
	return [comment.model_dump(mode="json") for comment in comments]


def _row_to_feed(row: asyncpg.Record) -> models.Feed:
	return models.Feed(
		id=row["id"],
		author_id=str(row["author_id"]),
		text=row["text"],
		image=row["image"],
		likes=list(row["likes"] or []),
		comments=_load_comments(row["comments"]),
		kind=models.FeedKind(str(row["kind"])),
		original_feed_id=row["original_feed_id"],
		is_pinned=bool(row["is_pinned"]),
		pinned_at=row["pinned_at"],
		created_at=row["created_at"],
		updated_at=row["updated_at"],
	)


def _row_to_profile(row: asyncpg.Record) -> models.UserProfile:
	return models.UserProfile(
		id=str(row["id"]),
		name=str(row["name"]),
		role=models.Role(str(row["role"])),
		church=row["church"],
		profile_pic=row["profile_pic"],
	)


def _row_to_notification(row: asyncpg.Record) -> models.Notification:
	return models.Notification(
		id=row["id"],
		user_id=str(row["user_id"]),
		actor_id=str(row["actor_id"]),
		type=str(row["type"]),
		feed_id=row["feed_id"],
		text=str(row["text"]),
		is_read=bool(row["is_read"]),
		created_at=row["created_at"],
	)


class PostgresFeedRepository:
	"""Stores each feed as one row with its comments embedded as jsonb."""

	def __init__(self, pool: asyncpg.Pool) -> None:
		self._pool = pool

	async def insert(self, feed: models.Feed) -> models.Feed:
		row = await self._pool.fetchrow(
			f"""
			INSERT INTO feed (id, author_id, text, image, likes, comments, kind, original_feed_id,
				is_pinned, pinned_at, created_at, updated_at)
			VALUES ($1, $2, $3, $4, $5, $6::jsonb, $7, $8, $9, $10, $11, $12)
			RETURNING {_FEED_COLUMNS}
			""",
			feed.id,
			feed.author_id,
			feed.text,
			feed.image,
			list(feed.likes),
			_dump_comments(feed.comments),
			feed.kind.value,
			feed.original_feed_id,
			feed.is_pinned,
			feed.pinned_at,
			feed.created_at,
			feed.updated_at,
		)
		if row is None:  # pragma: no cover - asyncpg always returns a row for RETURNING
			raise RuntimeError("Failed to insert feed")
		return _row_to_feed(row)

	async def get(self, feed_id: UUID) -> Optional[models.Feed]:
		row = await self._pool.fetchrow(f"SELECT {_FEED_COLUMNS} FROM feed WHERE id = $1", feed_id)
		return _row_to_feed(row) if row else None

	async def get_many(self, feed_ids: Iterable[UUID]) -> Dict[UUID, models.Feed]:
		ids = list(feed_ids)
		if not ids:
			return {}
		rows = await self._pool.fetch(f"SELECT {_FEED_COLUMNS} FROM feed WHERE id = ANY($1::uuid[])", ids)
		return {row["id"]: _row_to_feed(row) for row in rows}

	async def list_page(self, *, offset: int, limit: int) -> List[models.Feed]:
		rows = await self._pool.fetch(
			f"""
			SELECT {_FEED_COLUMNS}
			FROM feed
			ORDER BY created_at DESC, id DESC
			OFFSET $1 LIMIT $2
			""",
			offset,
			limit,
		)
		return [_row_to_feed(row) for row in rows]

	async def list_by_author(self, author_id: str) -> List[models.Feed]:
		rows = await self._pool.fetch(
			f"""
			SELECT {_FEED_COLUMNS}
			FROM feed
			WHERE author_id = $1
			ORDER BY created_at DESC, id DESC
			""",
			author_id,
		)
		return [_row_to_feed(row) for row in rows]

	async def update(self, feed_id: UUID, mutator: FeedMutator) -> models.Feed:
		async with self._pool.acquire() as conn:
			async with conn.transaction():
				row = await conn.fetchrow(
					f"SELECT {_FEED_COLUMNS} FROM feed WHERE id = $1 FOR UPDATE",
					feed_id,
				)
				if row is None:
					raise NotFoundError("feed_not_found")
				updated = mutator(_row_to_feed(row))
				row = await conn.fetchrow(
					f"""
					UPDATE feed
					SET text = $2, image = $3, likes = $4, comments = $5::jsonb,
						is_pinned = $6, pinned_at = $7, updated_at = $8
					WHERE id = $1
					RETURNING {_FEED_COLUMNS}
					""",
					feed_id,
					updated.text,
					updated.image,
					list(updated.likes),
					_dump_comments(updated.comments),
					updated.is_pinned,
					updated.pinned_at,
					updated.updated_at,
				)
		return _row_to_feed(row)

	async def delete(self, feed_id: UUID, guard: FeedGuard) -> models.Feed:
		async with self._pool.acquire() as conn:
			async with conn.transaction():
				row = await conn.fetchrow(
					f"SELECT {_FEED_COLUMNS} FROM feed WHERE id = $1 FOR UPDATE",
					feed_id,
				)
				if row is None:
					raise NotFoundError("feed_not_found")
				current = _row_to_feed(row)
				guard(current)
				await conn.execute("DELETE FROM feed WHERE id = $1", feed_id)
		return current


class PostgresUserDirectory:
	def __init__(self, pool: asyncpg.Pool) -> None:
		self._pool = pool

	async def get_many(self, user_ids: Iterable[str]) -> Dict[str, models.UserProfile]:
		ids = list(set(user_ids))
		if not ids:
			return {}
		rows = await self._pool.fetch(
			"SELECT id, name, role, church, profile_pic FROM app_user WHERE id = ANY($1::text[])",
			ids,
		)
		return {str(row["id"]): _row_to_profile(row) for row in rows}

	async def upsert(self, profile: models.UserProfile) -> models.UserProfile:
		row = await self._pool.fetchrow(
			"""
			INSERT INTO app_user (id, name, role, church, profile_pic)
			VALUES ($1, $2, $3, $4, $5)
			ON CONFLICT (id) DO UPDATE
			SET name = EXCLUDED.name, role = EXCLUDED.role,
				church = EXCLUDED.church, profile_pic = EXCLUDED.profile_pic
			RETURNING id, name, role, church, profile_pic
			""",
			profile.id,
			profile.name,
			profile.role.value,
			profile.church,
			profile.profile_pic,
		)
		return _row_to_profile(row)


class PostgresNotificationRepository:
	_COLUMNS = "id, user_id, actor_id, type, feed_id, text, is_read, created_at"

	def __init__(self, pool: asyncpg.Pool) -> None:
		self._pool = pool

	async def insert(self, notification: models.Notification) -> models.Notification:
		row = await self._pool.fetchrow(
			f"""
			INSERT INTO notification (id, user_id, actor_id, type, feed_id, text, is_read, created_at)
			VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
			RETURNING {self._COLUMNS}
			""",
			notification.id,
			notification.user_id,
			notification.actor_id,
			notification.type,
			notification.feed_id,
			notification.text,
			notification.is_read,
			notification.created_at,
		)
		return _row_to_notification(row)

	async def find_recent(
		self,
		*,
		user_id: str,
		actor_id: str,
		type: str,
		feed_id: UUID | None,
		since: datetime,
	) -> Optional[models.Notification]:
		row = await self._pool.fetchrow(
			f"""
			SELECT {self._COLUMNS}
			FROM notification
			WHERE user_id = $1 AND actor_id = $2 AND type = $3
				AND feed_id IS NOT DISTINCT FROM $4 AND created_at >= $5
			ORDER BY created_at DESC
			LIMIT 1
			""",
			user_id,
			actor_id,
			type,
			feed_id,
			since,
		)
		return _row_to_notification(row) if row else None

	async def list_for_user(self, user_id: str, *, limit: int) -> List[models.Notification]:
		rows = await self._pool.fetch(
			f"""
			SELECT {self._COLUMNS}
			FROM notification
			WHERE user_id = $1
			ORDER BY created_at DESC
			LIMIT $2
			""",
			user_id,
			limit,
		)
		return [_row_to_notification(row) for row in rows]

	async def count_unread(self, user_id: str) -> int:
		value = await self._pool.fetchval(
			"SELECT COUNT(*) FROM notification WHERE user_id = $1 AND is_read = FALSE",
			user_id,
		)
		return int(value or 0)

	async def mark_read(self, user_id: str, notification_id: UUID) -> Optional[models.Notification]:
		row = await self._pool.fetchrow(
			f"""
			UPDATE notification SET is_read = TRUE
			WHERE id = $1 AND user_id = $2
			RETURNING {self._COLUMNS}
			""",
			notification_id,
			user_id,
		)
		return _row_to_notification(row) if row else None

	async def mark_all_read(self, user_id: str) -> int:
		result = await self._pool.execute(
			"UPDATE notification SET is_read = TRUE WHERE user_id = $1 AND is_read = FALSE",
			user_id,
		)
		return _affected(result)

	async def delete(self, user_id: str, notification_id: UUID) -> bool:
		result = await self._pool.execute(
			"DELETE FROM notification WHERE id = $1 AND user_id = $2",
			notification_id,
			user_id,
		)
		return _affected(result) > 0

	async def clear(self, user_id: str) -> int:
		result = await self._pool.execute("DELETE FROM notification WHERE user_id = $1", user_id)
		return _affected(result)


def _affected(status: str) -> int:
	# asyncpg returns the command tag, e.g. "UPDATE 3" or "DELETE 0".
	try:
		return int(str(status).rsplit(" ", 1)[-1])
	except ValueError:
		return 0
