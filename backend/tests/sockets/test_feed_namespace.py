from unittest.mock import AsyncMock

import pytest
import socketio

from app.feeds.sockets import server as feed_sockets
from app.feeds.sockets.namespace import FeedNamespace
from app.infra import token_blacklist


def _scope_with_authorization(token: str) -> dict:
	return {
		"headers": [(b"authorization", f"Bearer {token}".encode())],
	}


def _namespace() -> FeedNamespace:
	server = socketio.AsyncServer(async_mode="asgi")
	namespace = FeedNamespace()
	server.register_namespace(namespace)
	namespace.emit = AsyncMock()
	namespace.enter_room = AsyncMock()
	namespace.leave_room = AsyncMock()
	return namespace


@pytest.mark.asyncio
async def test_connect_requires_token():
	namespace = _namespace()
	with pytest.raises(ConnectionRefusedError):
		await namespace.trigger_event("connect", "sid-1", {"asgi.scope": {"headers": []}})
	assert namespace.get_user("sid-1") is None


@pytest.mark.asyncio
async def test_connect_rejects_invalid_and_revoked_tokens(token_for):
	namespace = _namespace()
	with pytest.raises(ConnectionRefusedError):
		await namespace.trigger_event("connect", "sid-1", {"asgi.scope": _scope_with_authorization("garbage")})

	token = token_for("user-alice")
	await token_blacklist.add_to_blacklist(token, ttl_seconds=60)
	with pytest.raises(ConnectionRefusedError):
		await namespace.trigger_event("connect", "sid-2", {"asgi.scope": _scope_with_authorization(token)})


@pytest.mark.asyncio
async def test_connect_joins_user_room_and_emits_ready(token_for):
	namespace = _namespace()
	token = token_for("user-alice")
	await namespace.trigger_event("connect", "sid-1", {"asgi.scope": _scope_with_authorization(token)})

	assert namespace.get_user("sid-1").id == "user-alice"
	namespace.enter_room.assert_awaited_once_with("sid-1", "user:user-alice")
	namespace.emit.assert_awaited_once_with("ready", {"userId": "user-alice"}, room="sid-1")

	await namespace.trigger_event("disconnect", "sid-1")
	assert namespace.get_user("sid-1") is None
	namespace.leave_room.assert_awaited_once_with("sid-1", "user:user-alice")


@pytest.mark.asyncio
async def test_connect_accepts_token_from_auth_payload(token_for):
	namespace = _namespace()
	token = token_for("user-bob")
	await namespace.on_connect("sid-9", {"asgi.scope": {"headers": []}}, {"token": token})
	assert namespace.get_user("sid-9").id == "user-bob"


@pytest.mark.asyncio
async def test_dev_header_fallback():
	namespace = _namespace()
	scope = {"headers": [(b"x-user-id", b"user-dev"), (b"x-user-role", b"admin")]}
	await namespace.trigger_event("connect", "sid-3", {"asgi.scope": scope})
	user = namespace.get_user("sid-3")
	assert user.id == "user-dev"
	assert user.is_admin


@pytest.mark.asyncio
async def test_emit_helpers_target_everyone_or_one_user():
	namespace = _namespace()
	feed_sockets.set_namespace(namespace)
	try:
		await feed_sockets.emit_all("feedDeleted", "feed-1")
		await feed_sockets.emit_user("user-alice", "newNotification", {"text": "hi"})
	finally:
		feed_sockets.set_namespace(None)

	calls = namespace.emit.await_args_list
	assert calls[0].args == ("feedDeleted", "feed-1")
	assert calls[1].args == ("newNotification", {"text": "hi"})
	assert calls[1].kwargs == {"room": "user:user-alice"}


@pytest.mark.asyncio
async def test_emit_without_namespace_is_a_no_op():
	feed_sockets.set_namespace(None)
	await feed_sockets.emit_all("feedCreated", {})
