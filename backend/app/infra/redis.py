"""Shared Redis client, used for the access-token blacklist.

Modules import ``redis_client`` once; tests swap the client underneath it
(fakeredis) through ``set_redis_client`` without re-importing anything.
"""

from __future__ import annotations

import redis.asyncio as redis

from app.settings import settings


class RedisProxy:
	def __init__(self, client: redis.Redis) -> None:
		self._client = client

	@property
	def client(self) -> redis.Redis:
		return self._client

	def set_client(self, client: redis.Redis) -> None:
		self._client = client

	def __getattr__(self, item):
		return getattr(self._client, item)


# connections are opened lazily on first command
redis_client = RedisProxy(redis.from_url(settings.redis_url, decode_responses=True))


def set_redis_client(client: redis.Redis) -> None:
	redis_client.set_client(client)


async def close_redis() -> None:
	await redis_client.client.aclose()
