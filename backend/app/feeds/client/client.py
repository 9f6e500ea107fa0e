"""HTTP and Socket.IO client for the feeds service.

``FeedClient`` wraps the REST routes; ``FeedSession`` combines it with a
FeedListState, runs optimistic interactions and keeps the state converged
with the real-time channel.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

import httpx
import socketio

from app.feeds.client import optimistic
from app.feeds.client.state import FeedListState
from app.feeds.domain import events, models
from app.feeds.schemas import dto

_LOG = logging.getLogger(__name__)


class FeedClientError(Exception):
	"""Raised for non-success responses; carries the status and server detail."""

	def __init__(self, status_code: int, detail: str) -> None:
		super().__init__(f"{status_code}: {detail}")
		self.status_code = status_code
		self.detail = detail


class FeedClient:
	def __init__(
		self,
		base_url: str,
		*,
		token: Optional[str] = None,
		timeout: float = 10.0,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		headers = {"Authorization": f"Bearer {token}"} if token else {}
		self.token = token
		self._http = httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout, transport=transport)

	async def aclose(self) -> None:
		await self._http.aclose()

	async def __aenter__(self) -> "FeedClient":
		return self

	async def __aexit__(self, *exc_info: Any) -> None:
		await self.aclose()

	async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
		response = await self._http.request(method, url, **kwargs)
		if response.status_code >= 400:
			try:
				detail = str(response.json().get("detail"))
			except ValueError:
				detail = response.text
			raise FeedClientError(response.status_code, detail)
		return response.json()

	async def list_page(self, page: int = 1) -> List[dto.FeedView]:
		data = await self._request("GET", "/api/feeds", params={"page": page})
		return [dto.FeedView.model_validate(item) for item in data]

	async def list_pages(self, pages: int) -> List[dto.FeedView]:
		collected: Dict[UUID, dto.FeedView] = {}
		for page in range(1, max(1, pages) + 1):
			batch = await self.list_page(page)
			for view in batch:
				collected.setdefault(view.id, view)
			if not batch:
				break
		return list(collected.values())

	async def get(self, feed_id: UUID) -> dto.FeedView:
		return dto.FeedView.model_validate(await self._request("GET", f"/api/feeds/{feed_id}"))

	async def create(
		self,
		*,
		text: Optional[str] = None,
		image: Optional[dto.ImageUpload] = None,
		original_feed_id: Optional[UUID] = None,
	) -> dto.FeedView:
		form: Dict[str, str] = {"type": "reshare" if original_feed_id else "original"}
		if text is not None:
			form["text"] = text
		if original_feed_id:
			form["originalFeedId"] = str(original_feed_id)
		files = {"image": (image.filename, image.data, image.content_type)} if image else None
		return dto.FeedView.model_validate(await self._request("POST", "/api/feeds", data=form, files=files))

	async def toggle_like(self, feed_id: UUID) -> dto.LikeResponse:
		return dto.LikeResponse.model_validate(await self._request("POST", f"/api/feeds/{feed_id}/like"))

	async def add_comment(self, feed_id: UUID, text: str) -> dto.CommentView:
		data = await self._request("POST", f"/api/feeds/{feed_id}/comment", json={"text": text})
		return dto.CommentView.model_validate(data)

	async def delete_comment(self, feed_id: UUID, comment_id: UUID) -> List[dto.CommentView]:
		data = await self._request("DELETE", f"/api/feeds/{feed_id}/comment/{comment_id}")
		return [dto.CommentView.model_validate(item) for item in data]

	async def edit(
		self,
		feed_id: UUID,
		*,
		text: Optional[str] = None,
		image: Optional[dto.ImageUpload] = None,
		remove_image: bool = False,
	) -> dto.FeedView:
		form: Dict[str, str] = {"removeImage": "true" if remove_image else "false"}
		if text is not None:
			form["text"] = text
		files = {"image": (image.filename, image.data, image.content_type)} if image else None
		return dto.FeedView.model_validate(await self._request("PUT", f"/api/feeds/{feed_id}", data=form, files=files))

	async def delete(self, feed_id: UUID) -> dto.DeleteFeedResponse:
		return dto.DeleteFeedResponse.model_validate(await self._request("DELETE", f"/api/feeds/{feed_id}"))

	async def toggle_pin(self, feed_id: UUID) -> dto.TogglePinResponse:
		return dto.TogglePinResponse.model_validate(await self._request("PATCH", f"/api/feeds/{feed_id}/toggle-pin"))


class FeedSession:
	"""Keeps one viewer's FeedListState converged with the server."""

	def __init__(self, client: FeedClient, viewer: models.Viewer, *, timeout: float = optimistic.DEFAULT_TIMEOUT_SECONDS) -> None:
		self.client = client
		self.viewer = viewer
		self.state = FeedListState(viewer)
		self.pages_loaded = 0
		self.timeout = timeout

	async def load_first_page(self) -> List[dto.FeedView]:
		self.state.replace_all(await self.client.list_page(1))
		self.pages_loaded = 1
		return self.state.views

	async def load_more(self) -> List[dto.FeedView]:
		batch = await self.client.list_page(self.pages_loaded + 1)
		if batch:
			self.pages_loaded += 1
			self.state.merge_page(batch)
		return batch

	async def refetch(self) -> None:
		"""Gap repair: reload every page loaded so far."""
		self.state.replace_all(await self.client.list_pages(max(1, self.pages_loaded)))
		self.pages_loaded = max(1, self.pages_loaded)

	# ------------------------------------------------------------------
	# Real-time channel

	def bind(self, sio: socketio.AsyncClient) -> None:
		"""Register feed event handlers; every (re)connect triggers a re-fetch."""

		async def _on_connect() -> None:
			await self.refetch()

		sio.on("connect", _on_connect)
		for name in events.FEED_EVENTS:
			sio.on(name, self._handler(name))

	def _handler(self, name: str):
		async def _handle(payload: Any) -> None:
			self.state.apply_event(name, payload)

		return _handle

	async def connect(self, sio: socketio.AsyncClient, url: str) -> None:
		self.bind(sio)
		await sio.connect(url, auth={"token": self.client.token} if self.client.token else None)

	# ------------------------------------------------------------------
	# Optimistic interactions

	async def toggle_like(self, feed_id: UUID) -> optimistic.MutationStatus:
		if self.viewer.user_id is None:
			raise FeedClientError(401, "missing_token")
		mutation = optimistic.OptimisticMutation(
			self.state, feed_id, optimistic.like_overlay(self.viewer.user_id), holds=(events.FEED_LIKED,)
		)

		def _confirm(result: dto.LikeResponse) -> Optional[dto.FeedView]:
			current = self.state.confirmed(feed_id)
			if current is None:
				return None
			likes = [user for user in current.likes if user != self.viewer.user_id]
			if result.liked:
				likes.append(self.viewer.user_id)
			return current.model_copy(update={"likes": likes, "like_count": result.like_count})

		return await mutation.run(
			lambda: self.client.toggle_like(feed_id),
			_confirm,
			timeout=self.timeout,
			on_timeout=self.refetch,
		)

	async def toggle_pin(self, feed_id: UUID) -> optimistic.MutationStatus:
		mutation = optimistic.OptimisticMutation(
			self.state, feed_id, optimistic.pin_overlay(datetime.now(timezone.utc))
		)
		return await mutation.run(
			lambda: self.client.toggle_pin(feed_id),
			lambda result: result.feed,
			timeout=self.timeout,
			on_timeout=self.refetch,
		)

	async def delete(self, feed_id: UUID) -> optimistic.MutationStatus:
		mutation = optimistic.OptimisticMutation(self.state, feed_id, optimistic.hide_overlay)
		return await mutation.run(
			lambda: self.client.delete(feed_id),
			lambda result: None,
			timeout=self.timeout,
			on_timeout=self.refetch,
		)

	async def delete_comment(self, feed_id: UUID, comment_id: UUID) -> optimistic.MutationStatus:
		mutation = optimistic.OptimisticMutation(self.state, feed_id, optimistic.remove_comment_overlay(comment_id))

		def _confirm(comments: List[dto.CommentView]) -> Optional[dto.FeedView]:
			current = self.state.confirmed(feed_id)
			if current is None:
				return None
			return current.model_copy(update={"comments": comments, "comment_count": len(comments)})

		return await mutation.run(
			lambda: self.client.delete_comment(feed_id, comment_id),
			_confirm,
			timeout=self.timeout,
			on_timeout=self.refetch,
		)
