from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from app.feeds.domain import events, notifications
from app.feeds.domain.exceptions import NotFoundError
from app.feeds.domain.memory import InMemoryNotificationRepository, InMemoryUserDirectory
from app.feeds.domain.notifications import NotificationService
from app.feeds.domain.propagation import PropagationBus


class _Clock:
	def __init__(self) -> None:
		self.now = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)

	def __call__(self) -> datetime:
		return self.now


@pytest.fixture
def clock() -> _Clock:
	return _Clock()


@pytest.fixture
def service(bus, users, clock) -> NotificationService:
	return NotificationService(
		repository=InMemoryNotificationRepository(),
		users=users,
		bus=bus,
		dedupe_seconds=5,
		clock=clock,
	)


@pytest.mark.asyncio
async def test_notify_persists_and_pushes_to_recipient_room(service, bus):
	feed_id = uuid4()
	created = await service.notify(
		type=notifications.FEED_LIKED,
		recipient_id="user-alice",
		actor_id="user-bob",
		feed_id=feed_id,
	)
	assert created is not None
	assert created.text == "Bob liked your post"
	assert len(bus.direct) == 1
	recipient, event, payload = bus.direct[0]
	assert recipient == "user-alice"
	assert event == events.NEW_NOTIFICATION
	assert payload["feedId"] == str(feed_id)
	assert payload["actor"]["name"] == "Bob"


@pytest.mark.asyncio
async def test_self_notifications_are_skipped(service, bus):
	result = await service.notify(
		type=notifications.FEED_COMMENTED,
		recipient_id="user-alice",
		actor_id="user-alice",
		feed_id=uuid4(),
	)
	assert result is None
	assert bus.direct == []


@pytest.mark.asyncio
async def test_duplicates_inside_the_window_return_the_existing_record(service, bus, clock):
	feed_id = uuid4()
	kwargs = dict(type=notifications.FEED_LIKED, recipient_id="user-alice", actor_id="user-bob", feed_id=feed_id)
	first = await service.notify(**kwargs)
	clock.now += timedelta(seconds=3)
	second = await service.notify(**kwargs)
	assert second is not None and second.id == first.id
	assert len(bus.direct) == 1

	clock.now += timedelta(seconds=10)
	third = await service.notify(**kwargs)
	assert third is not None and third.id != first.id
	assert len(bus.direct) == 2


@pytest.mark.asyncio
async def test_failures_are_swallowed(users, clock):
	class _BrokenRepository(InMemoryNotificationRepository):
		async def insert(self, notification):
			raise RuntimeError("database unavailable")

	service = NotificationService(
		repository=_BrokenRepository(),
		users=users,
		bus=PropagationBus(broadcast=None, to_user=None),
		clock=clock,
	)
	result = await service.notify(
		type=notifications.FEED_REPOSTED,
		recipient_id="user-alice",
		actor_id="user-bob",
		feed_id=uuid4(),
	)
	assert result is None


@pytest.mark.asyncio
async def test_inbox_operations_are_scoped_to_the_recipient(service, clock):
	for index in range(3):
		clock.now += timedelta(seconds=10)
		await service.notify(
			type=notifications.FEED_COMMENTED,
			recipient_id="user-alice",
			actor_id="user-bob",
			feed_id=uuid4(),
			actor_name="Bob",
		)
	inbox = await service.list_for_user("user-alice")
	assert len(inbox) == 3
	assert inbox[0].created_at > inbox[-1].created_at
	assert (await service.unread_count("user-alice")).count == 3

	read = await service.mark_read("user-alice", str(inbox[0].id))
	assert read.is_read is True
	assert (await service.unread_count("user-alice")).count == 2

	with pytest.raises(NotFoundError):
		await service.mark_read("user-bob", str(inbox[1].id))
	with pytest.raises(NotFoundError):
		await service.delete("user-alice", "not-a-uuid")

	await service.mark_all_read("user-alice")
	assert (await service.unread_count("user-alice")).count == 0

	await service.delete("user-alice", str(inbox[1].id))
	assert len(await service.list_for_user("user-alice")) == 2
	await service.clear("user-alice")
	assert await service.list_for_user("user-alice") == []
