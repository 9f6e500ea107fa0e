from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest

from app.feeds.client import optimistic
from app.feeds.client.state import FeedListState, sort_feeds
from app.feeds.domain import events, models
from app.feeds.schemas import dto

T0 = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)
ME = models.Viewer(user_id="me", role="active")


def _at(minutes: int) -> datetime:
	return T0 + timedelta(minutes=minutes)


def _view(
	*,
	feed_id: UUID | None = None,
	author_id: str = "me",
	created: int = 0,
	pinned_at: int | None = None,
	likes: list[str] | None = None,
	text: str = "hello",
) -> dto.FeedView:
	likes = likes or []
	return dto.FeedView(
		id=feed_id or uuid4(),
		author_id=author_id,
		author=dto.AuthorView(id=author_id, name=author_id, church="Unknown Parish"),
		text=text,
		display_text=text,
		kind="original",
		likes=likes,
		like_count=len(likes),
		is_pinned=pinned_at is not None,
		pinned_at=_at(pinned_at) if pinned_at is not None else None,
		created_at=_at(created),
		updated_at=_at(created),
	)


def test_sort_order_pinned_by_pin_time_then_unpinned_by_creation():
	a = _view(text="A", created=0, pinned_at=2)
	b = _view(text="B", created=3)
	c = _view(text="C", created=0, pinned_at=1)
	d = _view(text="D", created=4)
	assert [view.text for view in sort_feeds([b, d, c, a])] == ["A", "C", "D", "B"]


def test_pinned_without_pin_time_falls_back_to_updated_at():
	older = _view(text="old", created=1, pinned_at=None).model_copy(update={"is_pinned": True})
	newer = _view(text="new", created=5, pinned_at=None).model_copy(update={"is_pinned": True})
	assert [view.text for view in sort_feeds([older, newer])] == ["new", "old"]


def test_replace_all_deduplicates_and_localizes():
	state = FeedListState(ME)
	mine = _view(author_id="me", likes=["me"])
	theirs = _view(author_id="them", created=1)
	state.replace_all([mine, theirs, mine])
	assert len(state) == 2
	assert state.get(mine.id).can_edit is True
	assert state.get(mine.id).is_liked_by_viewer is True
	assert state.get(theirs.id).can_edit is False


def test_events_create_update_delete():
	state = FeedListState(ME)
	view = _view(author_id="them")
	assert state.apply_event(events.FEED_CREATED, view.to_payload())
	assert view.id in state

	edited = view.model_copy(update={"text": "edited", "display_text": "edited"})
	state.apply_event(events.FEED_UPDATED, edited.to_payload())
	assert state.get(view.id).text == "edited"

	state.apply_event(events.FEED_LIKED, {"feedId": str(view.id), "likeCount": 4})
	assert state.get(view.id).like_count == 4

	state.apply_event(events.FEED_DELETED, str(view.id))
	assert view.id not in state
	assert state.views == []


def test_comment_events_are_idempotent():
	state = FeedListState(ME)
	view = _view()
	state.upsert(view)
	comment = dto.CommentView(
		id=uuid4(),
		author_id="them",
		author=dto.AuthorView(id="them", name="Them", church="Unknown Parish"),
		text="Amen",
		created_at=_at(1),
	)
	payload = {"feedId": str(view.id), "comment": comment.to_payload()}
	state.apply_event(events.COMMENT_ADDED, payload)
	state.apply_event(events.COMMENT_ADDED, payload)
	assert state.get(view.id).comment_count == 1

	state.apply_event(events.COMMENT_DELETED, {"feedId": str(view.id), "commentId": str(comment.id)})
	assert state.get(view.id).comments == []


def test_events_for_a_feed_being_edited_are_buffered_until_the_session_ends():
	state = FeedListState(ME)
	view = _view()
	state.upsert(view)
	state.begin_edit(view.id)

	state.apply_event(events.FEED_LIKED, {"feedId": str(view.id), "likeCount": 2})
	state.apply_event(events.FEED_UPDATED, view.model_copy(update={"text": "server"}).to_payload())
	assert state.get(view.id).like_count == 0
	assert state.get(view.id).text == "hello"

	assert state.end_edit(view.id) == 2
	assert state.get(view.id).text == "server"
	assert not state.is_editing(view.id)


def test_unknown_or_malformed_events_are_ignored():
	state = FeedListState(ME)
	assert state.apply_event("somethingElse", {}) is False
	assert state.apply_event(events.FEED_LIKED, {"likeCount": 1}) is False


def test_optimistic_like_commit_and_rollback():
	state = FeedListState(ME)
	view = _view(author_id="them")
	state.upsert(view)

	mutation = optimistic.OptimisticMutation(state, view.id, optimistic.like_overlay("me"))
	tentative = mutation.begin()
	assert mutation.status is optimistic.MutationStatus.PENDING
	assert tentative.is_liked_by_viewer and tentative.like_count == 1

	# a concurrent event lands on the confirmed layer underneath the overlay
	state.apply_event(events.COMMENT_DELETED, {"feedId": str(view.id), "commentId": str(uuid4())})
	mutation.rollback()
	assert mutation.status is optimistic.MutationStatus.ROLLED_BACK
	assert state.get(view.id).like_count == 0
	assert state.get(view.id).is_liked_by_viewer is False

	second = optimistic.OptimisticMutation(state, view.id, optimistic.like_overlay("me"))
	second.begin()
	second.commit(view.model_copy(update={"likes": ["me"], "like_count": 1}))
	assert second.status is optimistic.MutationStatus.COMMITTED
	assert state.get(view.id).is_liked_by_viewer is True
	with pytest.raises(RuntimeError):
		second.rollback()


def test_optimistic_delete_hides_then_restores_on_error():
	state = FeedListState(ME)
	view = _view()
	state.upsert(view)
	mutation = optimistic.OptimisticMutation(state, view.id, optimistic.hide_overlay)
	mutation.begin()
	assert view.id not in state
	mutation.rollback()
	assert view.id in state


@pytest.mark.asyncio
async def test_run_rolls_back_on_error_and_reraises():
	state = FeedListState(ME)
	view = _view()
	state.upsert(view)
	mutation = optimistic.OptimisticMutation(state, view.id, optimistic.pin_overlay(_at(9)))

	async def _fail():
		raise RuntimeError("boom")

	with pytest.raises(RuntimeError):
		await mutation.run(_fail, lambda result: result)
	assert mutation.status is optimistic.MutationStatus.ROLLED_BACK
	assert state.get(view.id).is_pinned is False


@pytest.mark.asyncio
async def test_run_timeout_keeps_tentative_view_until_refetch():
	state = FeedListState(ME)
	view = _view()
	state.upsert(view)
	mutation = optimistic.OptimisticMutation(state, view.id, optimistic.pin_overlay(_at(9)))
	refetched = view.model_copy(update={"is_pinned": True, "pinned_at": _at(9)})

	async def _slow():
		await asyncio.sleep(1)

	async def _refetch():
		assert state.get(view.id).is_pinned is True
		state.replace_all([refetched])

	status = await mutation.run(_slow, lambda result: result, timeout=0.01, on_timeout=_refetch)
	assert mutation.timed_out is True
	assert status is optimistic.MutationStatus.COMMITTED
	assert state.get(view.id).is_pinned is True


def test_refetch_discards_events_buffered_during_an_edit():
	state = FeedListState(ME)
	view = _view(text="v0")
	state.upsert(view)
	state.begin_edit(view.id)

	stale = view.model_copy(update={"text": "v1", "display_text": "v1", "updated_at": _at(1)})
	state.apply_event(events.FEED_UPDATED, stale.to_payload())
	fresh = view.model_copy(update={"text": "v2", "display_text": "v2", "updated_at": _at(2)})
	state.replace_all([fresh])

	assert state.end_edit(view.id) == 0
	assert state.get(view.id).text == "v2"


def test_own_like_event_during_pending_like_is_not_counted_twice():
	state = FeedListState(ME)
	view = _view(author_id="them")
	state.upsert(view)
	mutation = optimistic.OptimisticMutation(
		state, view.id, optimistic.like_overlay("me"), holds=(events.FEED_LIKED,)
	)
	mutation.begin()

	state.apply_event(events.FEED_LIKED, {"feedId": str(view.id), "likeCount": 1})
	assert state.get(view.id).like_count == 1

	mutation.commit(view.model_copy(update={"likes": ["me"], "like_count": 1}))
	confirmed = state.get(view.id)
	assert confirmed.like_count == 1
	assert confirmed.likes == ["me"]


def test_rolled_back_like_replays_held_events():
	state = FeedListState(ME)
	view = _view(author_id="them", likes=["ann"])
	state.upsert(view)
	mutation = optimistic.OptimisticMutation(
		state, view.id, optimistic.like_overlay("me"), holds=(events.FEED_LIKED,)
	)
	mutation.begin()
	state.apply_event(events.FEED_LIKED, {"feedId": str(view.id), "likeCount": 2})

	mutation.rollback()
	assert state.get(view.id).like_count == 2
	assert state.get(view.id).is_liked_by_viewer is False

	# with no hold left, events apply directly again
	state.apply_event(events.FEED_LIKED, {"feedId": str(view.id), "likeCount": 3})
	assert state.get(view.id).like_count == 3


@pytest.mark.asyncio
async def test_run_rolls_back_when_refetch_after_timeout_fails():
	state = FeedListState(ME)
	view = _view()
	state.upsert(view)
	mutation = optimistic.OptimisticMutation(state, view.id, optimistic.pin_overlay(_at(9)))

	async def _slow():
		await asyncio.sleep(1)

	async def _refetch():
		raise ConnectionError("offline")

	with pytest.raises(ConnectionError):
		await mutation.run(_slow, lambda result: result, timeout=0.01, on_timeout=_refetch)
	assert mutation.timed_out is True
	assert mutation.status is optimistic.MutationStatus.ROLLED_BACK
	assert state.get(view.id).is_pinned is False


@pytest.mark.asyncio
async def test_run_without_refetch_rolls_back_after_timeout():
	state = FeedListState(ME)
	view = _view()
	state.upsert(view)
	mutation = optimistic.OptimisticMutation(state, view.id, optimistic.pin_overlay(_at(9)))

	async def _slow():
		await asyncio.sleep(1)

	status = await mutation.run(_slow, lambda result: result, timeout=0.01)
	assert status is optimistic.MutationStatus.ROLLED_BACK
	assert state.get(view.id).is_pinned is False
