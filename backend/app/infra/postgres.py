"""Process-wide asyncpg pool used by the Postgres feed backend."""

from __future__ import annotations

import json
import logging
from typing import Optional

import asyncpg

from app.settings import settings

_LOG = logging.getLogger(__name__)

_pool: Optional[asyncpg.Pool] = None


async def _init_connection(conn: asyncpg.Connection) -> None:
	# embedded comments round-trip as Python lists
	await conn.set_type_codec("jsonb", encoder=json.dumps, decoder=json.loads, schema="pg_catalog")


async def init_pool() -> asyncpg.Pool:
	global _pool
	if _pool is None:
		_pool = await asyncpg.create_pool(
			dsn=settings.postgres_url,
			min_size=settings.postgres_min_pool_size,
			max_size=settings.postgres_max_pool_size,
			ssl="require" if settings.postgres_ssl else "disable",
			init=_init_connection,
		)
		_LOG.info(
			"postgres.pool_opened",
			extra={"min_size": settings.postgres_min_pool_size, "max_size": settings.postgres_max_pool_size},
		)
	return _pool


async def get_pool() -> asyncpg.Pool:
	return _pool if _pool is not None else await init_pool()


async def close_pool() -> None:
	global _pool
	if _pool is None:
		return
	pool, _pool = _pool, None
	await pool.close()
	_LOG.info("postgres.pool_closed")
