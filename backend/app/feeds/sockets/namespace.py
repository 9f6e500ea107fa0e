"""Default Socket.IO namespace carrying feed events and personal notifications."""

from __future__ import annotations

import logging
from typing import Dict, Optional

import socketio
from fastapi import HTTPException

from app.infra.auth import AuthenticatedUser, authenticate_token
from app.infra import jwt as jwt_helper
from app.obs import logging as obs_logging
from app.obs import metrics as obs_metrics
from app.settings import settings

_LOG = logging.getLogger(__name__)


def _header(scope: dict, name: str) -> Optional[str]:
	target = name.encode().lower()
	for key, value in scope.get("headers", []):
		if key.lower() == target:
			return value.decode()
	return None


class FeedNamespace(socketio.AsyncNamespace):
	"""Authenticates the handshake and places each socket in its user room."""

	def __init__(self, namespace: str = "/") -> None:
		super().__init__(namespace)
		self._sessions: Dict[str, AuthenticatedUser] = {}

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		try:
			user = await self._authorise(environ, auth)
		except HTTPException as exc:
			obs_metrics.socket_rejected(str(exc.detail))
			_LOG.info("feeds.socket.refused", extra={"sid": sid, "reason": str(exc.detail)})
			raise ConnectionRefusedError(str(exc.detail)) from None
		obs_logging.bind_context(sid=sid, user_id=user.id, role=user.role)
		obs_metrics.socket_connected(self.namespace)
		_LOG.info("feeds.socket.connected")
		self._sessions[sid] = user
		await self.enter_room(sid, self.user_room(user.id))
		await self.emit("ready", {"userId": user.id}, room=sid)

	async def on_disconnect(self, sid: str, *args) -> None:
		user = self._sessions.pop(sid, None)
		if user:
			obs_metrics.socket_disconnected(self.namespace)
			_LOG.info("feeds.socket.disconnected", extra={"sid": sid, "user_id": user.id})
			await self.leave_room(sid, self.user_room(user.id))

	def get_user(self, sid: str) -> Optional[AuthenticatedUser]:
		return self._sessions.get(sid)

	@staticmethod
	def user_room(user_id: str) -> str:
		return f"user:{user_id}"

	async def _authorise(self, environ: dict, auth: Optional[dict]) -> AuthenticatedUser:
		scope = environ.get("asgi.scope", environ)
		auth_payload = auth or environ.get("auth") or scope.get("auth") or {}
		token = auth_payload.get("token")
		if not token:
			header = _header(scope, "authorization")
			if header and header.lower().startswith("bearer "):
				token = header.split(" ", 1)[1]
		if token:
			return await authenticate_token(str(token))
		if settings.is_dev():
			user_id = auth_payload.get("userId") or _header(scope, "x-user-id")
			role = auth_payload.get("role") or _header(scope, "x-user-role") or "active"
			if user_id and role in jwt_helper.ROLES:
				return AuthenticatedUser(id=str(user_id), role=str(role))
		raise HTTPException(status_code=401, detail="missing_token")
