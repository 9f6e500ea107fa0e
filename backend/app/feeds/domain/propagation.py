"""Best-effort fan-out of committed feed mutations to connected sockets."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from app.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)

Broadcaster = Callable[[str, Any], Awaitable[None]]
UserEmitter = Callable[[str, str, Any], Awaitable[None]]


async def _socket_broadcast(event: str, payload: Any) -> None:
	from app.feeds.sockets import server

	await server.emit_all(event, payload)


async def _socket_to_user(user_id: str, event: str, payload: Any) -> None:
	from app.feeds.sockets import server

	await server.emit_user(user_id, event, payload)


class PropagationBus:
	"""Publishes events after the store commit has returned.

	A failed emit is logged and counted but never raised: the write it reports
	on is already durable.
	"""

	def __init__(
		self,
		*,
		broadcast: Optional[Broadcaster] = None,
		to_user: Optional[UserEmitter] = None,
	) -> None:
		self._broadcast = broadcast or _socket_broadcast
		self._to_user = to_user or _socket_to_user

	async def publish(self, event: str, payload: Any) -> bool:
		try:
			await self._broadcast(event, payload)
		except Exception:
			obs_metrics.inc_broadcast_failure(event)
			_LOG.exception("feeds.bus.broadcast_failed", extra={"event": event})
			return False
		return True

	async def publish_to_user(self, user_id: str, event: str, payload: Any) -> bool:
		try:
			await self._to_user(user_id, event, payload)
		except Exception:
			obs_metrics.inc_broadcast_failure(event)
			_LOG.exception("feeds.bus.user_emit_failed", extra={"event": event, "recipient": user_id})
			return False
		return True
