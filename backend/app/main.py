"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.staticfiles import StaticFiles

from app.api import ops
from app.api.errors import install_error_handlers
from app.feeds.api import router as feeds_router
from app.feeds.domain import container as feeds_container
from app.feeds.sockets import server as feeds_sockets
from app.infra import postgres
from app.infra.redis import close_redis
from app.obs import init as obs_init
from app.settings import settings

_LOG = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	if settings.uses_postgres():
		pool = await postgres.init_pool()
		feeds_container.configure_postgres(pool)
	else:
		feeds_container.get_feed_service()
	_LOG.info("app.startup", extra={"backend": settings.feeds_store_backend})
	try:
		yield
	finally:
		await postgres.close_pool()
		await close_redis()


app = FastAPI(title="Parish Feed API", lifespan=lifespan)
install_error_handlers(app)

DEV_ORIGINS = ("http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173", "http://127.0.0.1:5173")


def _allowed_origins() -> list[str]:
	"""Configured origins; credentials forbid "*", which expands to the dev origins in dev only."""
	origins = [origin for origin in settings.cors_allow_origins if origin != "*"]
	if settings.is_dev() and (not origins or "*" in settings.cors_allow_origins):
		origins = list(dict.fromkeys([*origins, *DEV_ORIGINS]))
	return origins


allow_origins = _allowed_origins()
app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

upload_root = Path(settings.upload_root).resolve()
upload_root.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(upload_root), check_dir=True), name="uploads")

# Use the same allowed origins for Socket.IO as for the REST API
sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
feeds_sockets.register(sio)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)
obs_init(app)

app.include_router(ops.router)
app.include_router(feeds_router)
