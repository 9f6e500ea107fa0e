"""Client-side feed list reconciled from fetches and real-time events.

The state keeps two layers per feed: the last server-confirmed view and an
ordered set of optimistic overlays. What a caller sees is the confirmed view
with the overlays applied on top, so dropping an overlay always falls back to
the known-good state.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional
from uuid import UUID

from app.feeds.domain import events, models, projector
from app.feeds.schemas import dto

_LOG = logging.getLogger(__name__)

Overlay = Callable[[dto.FeedView], Optional[dto.FeedView]]


def _pin_time(view: dto.FeedView) -> datetime:
	return view.pinned_at or view.updated_at or view.created_at


def sort_feeds(views: Iterable[dto.FeedView]) -> List[dto.FeedView]:
	"""Pinned first by pin time, newest first; then unpinned by creation, newest first."""
	pinned = [view for view in views if view.is_pinned]
	unpinned = [view for view in views if not view.is_pinned]
	pinned.sort(key=lambda view: (_pin_time(view), str(view.id)), reverse=True)
	unpinned.sort(key=lambda view: (view.created_at, str(view.id)), reverse=True)
	return pinned + unpinned


def _as_uuid(value: Any) -> UUID:
	return value if isinstance(value, UUID) else UUID(str(value))


class FeedListState:
	def __init__(self, viewer: models.Viewer) -> None:
		self.viewer = viewer
		self._confirmed: Dict[UUID, dto.FeedView] = {}
		self._overlays: Dict[UUID, Dict[int, Overlay]] = {}
		self._editing: set[UUID] = set()
		self._buffered: Dict[UUID, List[tuple[str, Any]]] = {}
		self._holds: Dict[tuple[UUID, str], int] = {}
		self._held: Dict[tuple[UUID, str], List[Any]] = {}
		self._next_token = 0

	# ------------------------------------------------------------------
	# Reads

	def get(self, feed_id: UUID) -> Optional[dto.FeedView]:
		view = self._confirmed.get(feed_id)
		for overlay in self._overlays.get(feed_id, {}).values():
			if view is None:
				return None
			view = overlay(view)
		return view

	def confirmed(self, feed_id: UUID) -> Optional[dto.FeedView]:
		return self._confirmed.get(feed_id)

	@property
	def views(self) -> List[dto.FeedView]:
		visible = [self.get(feed_id) for feed_id in self._confirmed]
		return sort_feeds(view for view in visible if view is not None)

	def __len__(self) -> int:
		return len(self.views)

	def __contains__(self, feed_id: object) -> bool:
		return isinstance(feed_id, UUID) and self.get(feed_id) is not None

	# ------------------------------------------------------------------
	# Server-confirmed updates

	def replace_all(self, views: Iterable[dto.FeedView]) -> None:
		"""Adopt a full re-fetch; pending overlays and queued events are superseded by server truth."""
		self._confirmed = {}
		for view in views:
			self._confirmed[view.id] = projector.localize(view, self.viewer)
		self._overlays.clear()
		self._buffered.clear()
		for key in self._held:
			self._held[key] = []

	def merge_page(self, views: Iterable[dto.FeedView]) -> None:
		for view in views:
			self.upsert(view)

	def upsert(self, view: dto.FeedView) -> None:
		self._confirmed[view.id] = projector.localize(view, self.viewer)

	def remove(self, feed_id: UUID) -> None:
		self._confirmed.pop(feed_id, None)
		self._overlays.pop(feed_id, None)

	# ------------------------------------------------------------------
	# Optimistic overlays

	def push_overlay(self, feed_id: UUID, overlay: Overlay) -> int:
		self._next_token += 1
		self._overlays.setdefault(feed_id, {})[self._next_token] = overlay
		return self._next_token

	def drop_overlay(self, feed_id: UUID, token: int) -> None:
		overlays = self._overlays.get(feed_id)
		if not overlays:
			return
		overlays.pop(token, None)
		if not overlays:
			del self._overlays[feed_id]

	def has_overlay(self, feed_id: UUID, token: int) -> bool:
		return token in self._overlays.get(feed_id, {})

	def hold(self, feed_id: UUID, event: str) -> None:
		"""Queue ``event`` for ``feed_id`` instead of applying it, until released."""
		key = (feed_id, event)
		self._holds[key] = self._holds.get(key, 0) + 1
		self._held.setdefault(key, [])

	def release(self, feed_id: UUID, event: str, *, replay: bool) -> int:
		"""Drop one hold; the last one replays or discards what was queued."""
		key = (feed_id, event)
		remaining = self._holds.get(key, 0) - 1
		if remaining > 0:
			self._holds[key] = remaining
			return 0
		self._holds.pop(key, None)
		pending = self._held.pop(key, [])
		if replay:
			for payload in pending:
				self.apply_event(event, payload)
		return len(pending)

	# ------------------------------------------------------------------
	# Edit sessions

	def begin_edit(self, feed_id: UUID) -> None:
		self._editing.add(feed_id)

	def is_editing(self, feed_id: UUID) -> bool:
		return feed_id in self._editing

	def end_edit(self, feed_id: UUID) -> int:
		"""Close the edit session and apply the events buffered during it, in order."""
		self._editing.discard(feed_id)
		pending = self._buffered.pop(feed_id, [])
		for event, payload in pending:
			self.apply_event(event, payload)
		return len(pending)

	# ------------------------------------------------------------------
	# Real-time events

	def apply_event(self, event: str, payload: Any) -> bool:
		"""Merge one bus event. Returns False for events this state does not track."""
		feed_id = self._event_feed_id(event, payload)
		if feed_id is None:
			return False
		if feed_id in self._editing:
			self._buffered.setdefault(feed_id, []).append((event, payload))
			return True
		if (feed_id, event) in self._holds:
			self._held[(feed_id, event)].append(payload)
			return True
		if event in (events.FEED_CREATED, events.FEED_UPDATED, events.FEED_PINNED, events.FEED_UNPINNED):
			self.upsert(dto.FeedView.model_validate(payload))
		elif event == events.FEED_DELETED:
			self.remove(feed_id)
		elif event == events.FEED_LIKED:
			self._patch(feed_id, like_count=int(payload["likeCount"]))
		elif event == events.COMMENT_ADDED:
			self._add_comment(feed_id, dto.CommentView.model_validate(payload["comment"]))
		elif event == events.COMMENT_DELETED:
			self._remove_comment(feed_id, _as_uuid(payload["commentId"]))
		return True

	@staticmethod
	def _event_feed_id(event: str, payload: Any) -> Optional[UUID]:
		try:
			if event == events.FEED_DELETED:
				return _as_uuid(payload)
			if event in (events.FEED_CREATED, events.FEED_UPDATED, events.FEED_PINNED, events.FEED_UNPINNED):
				return _as_uuid(payload["id"])
			if event in (events.FEED_LIKED, events.COMMENT_ADDED, events.COMMENT_DELETED):
				return _as_uuid(payload["feedId"])
		except (KeyError, TypeError, ValueError):
			_LOG.warning("feeds.client.malformed_event", extra={"event": event})
		return None

	def _patch(self, feed_id: UUID, **changes: Any) -> None:
		current = self._confirmed.get(feed_id)
		if current is not None:
			self._confirmed[feed_id] = current.model_copy(update=changes)

	def _add_comment(self, feed_id: UUID, comment: dto.CommentView) -> None:
		current = self._confirmed.get(feed_id)
		if current is None or any(item.id == comment.id for item in current.comments):
			return
		comments = [*current.comments, comment]
		self._patch(feed_id, comments=comments, comment_count=len(comments))

	def _remove_comment(self, feed_id: UUID, comment_id: UUID) -> None:
		current = self._confirmed.get(feed_id)
		if current is None:
			return
		comments = [item for item in current.comments if item.id != comment_id]
		self._patch(feed_id, comments=comments, comment_count=len(comments))
