"""Service container shared by the feed API, sockets and tests."""

from __future__ import annotations

from typing import Optional

import asyncpg

from app.feeds.domain.memory import (
	InMemoryFeedRepository,
	InMemoryNotificationRepository,
	InMemoryUserDirectory,
)
from app.feeds.domain.notifications import NotificationService
from app.feeds.domain.propagation import PropagationBus
from app.feeds.domain.repo import FeedRepository, NotificationRepository, UserDirectory
from app.feeds.domain.services import FeedService
from app.feeds.domain.store import FeedStore
from app.feeds.infra.postgres_repo import (
	PostgresFeedRepository,
	PostgresNotificationRepository,
	PostgresUserDirectory,
)
from app.feeds.infra.uploads import LocalImageStorage
from app.settings import settings

_feed_service: Optional[FeedService] = None
_notification_service: Optional[NotificationService] = None


def build(
	*,
	feeds: Optional[FeedRepository] = None,
	users: Optional[UserDirectory] = None,
	notifications: Optional[NotificationRepository] = None,
	bus: Optional[PropagationBus] = None,
	images: Optional[LocalImageStorage] = None,
) -> FeedService:
	"""Wire a FeedService; omitted collaborators fall back to in-memory ones."""
	users = users or InMemoryUserDirectory()
	bus = bus or PropagationBus()
	notification_service = NotificationService(
		repository=notifications or InMemoryNotificationRepository(),
		users=users,
		bus=bus,
		dedupe_seconds=settings.notification_dedupe_seconds,
		list_limit=settings.notification_list_limit,
	)
	return FeedService(
		store=FeedStore(feeds or InMemoryFeedRepository()),
		users=users,
		notifications=notification_service,
		bus=bus,
		images=images
		or LocalImageStorage(
			settings.upload_root,
			max_bytes=settings.upload_max_bytes,
			public_base_url=settings.public_base_url,
		),
		page_size=settings.feeds_page_size,
	)


def configure(service: FeedService) -> None:
	global _feed_service, _notification_service
	_feed_service = service
	_notification_service = service.notifications


def configure_postgres(pool: asyncpg.Pool, *, bus: Optional[PropagationBus] = None) -> FeedService:
	service = build(
		feeds=PostgresFeedRepository(pool),
		users=PostgresUserDirectory(pool),
		notifications=PostgresNotificationRepository(pool),
		bus=bus,
	)
	configure(service)
	return service


def reset() -> None:
	global _feed_service, _notification_service
	_feed_service = None
	_notification_service = None


def get_feed_service() -> FeedService:
	if _feed_service is None:
		configure(build())
	assert _feed_service is not None
	return _feed_service


def get_notification_service() -> NotificationService:
	get_feed_service()
	assert _notification_service is not None
	return _notification_service
