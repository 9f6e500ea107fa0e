"""Liveness, readiness and the public health summary."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from time import perf_counter
from typing import Any, Awaitable, Callable, Dict, Tuple

from app.infra import postgres
from app.infra.redis import redis_client
from app.obs import metrics
from app.settings import settings

_LOG = logging.getLogger(__name__)

REDIS_TIMEOUT_SECONDS = 0.2
POSTGRES_TIMEOUT_SECONDS = 0.3


async def _probe(
	name: str,
	check: Callable[[], Awaitable[Any]],
	mark: Callable[..., None],
	timeout: float,
) -> Dict[str, Any]:
	start = perf_counter()
	try:
		await asyncio.wait_for(check(), timeout=timeout)
	except Exception as exc:  # pragma: no cover - depends on runtime
		mark(False)
		_LOG.warning("health.probe_failed", extra={"dependency": name}, exc_info=True)
		return {"ok": False, "error": str(exc) or type(exc).__name__}
	latency = perf_counter() - start
	mark(True, latency_seconds=latency)
	return {"ok": True, "latency_ms": round(latency * 1000, 2)}


async def _select_one() -> None:
	pool = await postgres.get_pool()
	async with pool.acquire() as conn:
		await conn.execute("SELECT 1")


async def liveness() -> Dict[str, Any]:
	return {"status": "ok"}


async def readiness() -> Tuple[int, Dict[str, Any]]:
	"""Ping redis, and postgres when feeds are stored there; 503 if either fails."""
	checks = {"redis": await _probe("redis", redis_client.ping, metrics.mark_redis, REDIS_TIMEOUT_SECONDS)}
	if settings.uses_postgres():
		checks["postgres"] = await _probe("postgres", _select_one, metrics.mark_postgres, POSTGRES_TIMEOUT_SECONDS)
	else:
		checks["postgres"] = {"ok": True, "skipped": "memory_backend"}
	ok = all(check["ok"] for check in checks.values())
	return (200 if ok else 503), {"status": "ok" if ok else "degraded", "checks": checks}


def summary() -> Dict[str, Any]:
	return {
		"status": "OK",
		"message": "Server is running correctly",
		"timestamp": datetime.now(timezone.utc).isoformat(),
		"service": settings.service_name,
		"backend": settings.feeds_store_backend,
	}
