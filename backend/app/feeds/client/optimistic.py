"""Optimistic mutation tracking for the client feed list."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence, TypeVar
from uuid import UUID

import httpx

from app.feeds.client.state import FeedListState, Overlay
from app.feeds.schemas import dto

_LOG = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 10.0


class MutationStatus(str, Enum):
	IDLE = "idle"
	PENDING = "pending"
	COMMITTED = "committed"
	ROLLED_BACK = "rolled_back"


class OptimisticMutation:
	"""One tentative change to one feed.

	``begin`` shows the tentative view at once; ``commit`` swaps it for what the
	server confirmed; ``rollback`` drops it so the view is recomputed from the
	last confirmed state. Events named in ``holds`` are queued while the
	mutation is pending: a commit discards them, a rollback replays them.
	"""

	def __init__(
		self,
		state: FeedListState,
		feed_id: UUID,
		overlay: Overlay,
		*,
		holds: Sequence[str] = (),
	) -> None:
		self.state = state
		self.feed_id = feed_id
		self.overlay = overlay
		self.holds = tuple(holds)
		self.status = MutationStatus.IDLE
		self.timed_out = False
		self._token: Optional[int] = None

	def begin(self) -> Optional[dto.FeedView]:
		if self.status is not MutationStatus.IDLE:
			raise RuntimeError(f"mutation already {self.status.value}")
		for event in self.holds:
			self.state.hold(self.feed_id, event)
		self._token = self.state.push_overlay(self.feed_id, self.overlay)
		self.status = MutationStatus.PENDING
		return self.state.get(self.feed_id)

	def commit(self, confirmed: Optional[dto.FeedView]) -> None:
		"""Adopt the server result; None means the feed no longer exists."""
		self._drop()
		if confirmed is None:
			self.state.remove(self.feed_id)
		else:
			self.state.upsert(confirmed)
		self._release(replay=False)
		self.status = MutationStatus.COMMITTED

	def rollback(self) -> None:
		self._drop()
		self._release(replay=True)
		self.status = MutationStatus.ROLLED_BACK

	def _drop(self) -> None:
		if self.status is not MutationStatus.PENDING or self._token is None:
			raise RuntimeError(f"mutation is {self.status.value}, not pending")
		self.state.drop_overlay(self.feed_id, self._token)

	def _release(self, *, replay: bool) -> None:
		for event in self.holds:
			self.state.release(self.feed_id, event, replay=replay)

	async def run(
		self,
		request: Callable[[], Awaitable[T]],
		confirm: Callable[[T], Optional[dto.FeedView]],
		*,
		timeout: float = DEFAULT_TIMEOUT_SECONDS,
		on_timeout: Optional[Callable[[], Awaitable[None]]] = None,
	) -> MutationStatus:
		"""Drive the mutation through a request.

		A request that times out may have been applied by the server, so the
		tentative view stays until ``on_timeout`` (normally a full re-fetch)
		replaces it. Without a successful re-fetch the mutation is rolled back.
		"""
		self.begin()
		try:
			result = await asyncio.wait_for(request(), timeout=timeout)
		except (asyncio.TimeoutError, httpx.TimeoutException):
			self.timed_out = True
			_LOG.warning("feeds.client.mutation_timeout", extra={"feed_id": str(self.feed_id)})
			await self._settle_after_timeout(on_timeout)
			return self.status
		except Exception:
			self.rollback()
			raise
		self.commit(confirm(result))
		return self.status

	async def _settle_after_timeout(self, on_timeout: Optional[Callable[[], Awaitable[None]]]) -> None:
		if on_timeout is not None:
			try:
				await on_timeout()
			except Exception:
				self.rollback()
				raise
		if self._token is not None and not self.state.has_overlay(self.feed_id, self._token):
			# the re-fetch replaced the overlay with server truth
			self._release(replay=False)
			self.status = MutationStatus.COMMITTED
		else:
			self.rollback()


# ----------------------------------------------------------------------
# Tentative views for the common interactions


def like_overlay(viewer_id: str) -> Overlay:
	def _apply(view: dto.FeedView) -> dto.FeedView:
		liked = viewer_id in view.likes
		likes = [user for user in view.likes if user != viewer_id] if liked else [*view.likes, viewer_id]
		return view.model_copy(
			update={
				"likes": likes,
				"like_count": max(0, view.like_count + (-1 if liked else 1)),
				"is_liked_by_viewer": not liked,
			}
		)

	return _apply


def pin_overlay(now_pinned_at: datetime) -> Overlay:
	def _apply(view: dto.FeedView) -> dto.FeedView:
		pinned = not view.is_pinned
		return view.model_copy(update={"is_pinned": pinned, "pinned_at": now_pinned_at if pinned else None})

	return _apply


def remove_comment_overlay(comment_id: UUID) -> Overlay:
	def _apply(view: dto.FeedView) -> dto.FeedView:
		comments = [item for item in view.comments if item.id != comment_id]
		return view.model_copy(update={"comments": comments, "comment_count": len(comments)})

	return _apply


def hide_overlay(view: dto.FeedView) -> None:
	return None
