"""Redis-backed revocation list for access tokens."""

from __future__ import annotations

import hashlib

from app.infra.redis import redis_client

_KEY_PREFIX = "auth:revoked:"


def _key(token: str) -> str:
	digest = hashlib.sha256(token.encode()).hexdigest()
	return f"{_KEY_PREFIX}{digest}"


async def add_to_blacklist(token: str, *, ttl_seconds: int) -> None:
	# An already-expired token is rejected by signature checks; keep the entry briefly anyway.
	await redis_client.set(_key(token), "1", ex=max(1, ttl_seconds))


async def is_token_blacklisted(token: str) -> bool:
	return bool(await redis_client.exists(_key(token)))
