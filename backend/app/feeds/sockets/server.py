"""Entry-point utilities for emitting on the feed Socket.IO namespace."""

from __future__ import annotations

from typing import Any, Optional

import socketio

from app.feeds.sockets.namespace import FeedNamespace
from app.obs import metrics as obs_metrics

_namespace: Optional[FeedNamespace] = None


def register(sio: socketio.AsyncServer) -> FeedNamespace:
	namespace = FeedNamespace()
	sio.register_namespace(namespace)
	set_namespace(namespace)
	return namespace


def set_namespace(namespace: Optional[FeedNamespace]) -> None:
	global _namespace
	_namespace = namespace


async def emit_all(event: str, payload: Any) -> None:
	if _namespace is None:
		return
	obs_metrics.socket_event(_namespace.namespace, event)
	await _namespace.emit(event, payload)


async def emit_user(user_id: str, event: str, payload: Any) -> None:
	if _namespace is None:
		return
	obs_metrics.socket_event(_namespace.namespace, event)
	await _namespace.emit(event, payload, room=FeedNamespace.user_room(user_id))
