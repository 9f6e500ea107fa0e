import os
import sys
import tempfile
from pathlib import Path

# Settings are read at import time; configure the process before importing the app.
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-enough-length-1234")
os.environ.setdefault("ENV", "dev")
os.environ.setdefault("FEEDS_STORE_BACKEND", "memory")
os.environ.setdefault("UPLOAD_ROOT", tempfile.mkdtemp(prefix="parish-feed-uploads-"))
os.environ.setdefault("OBS_METRICS_PUBLIC", "true")

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis
from httpx import ASGITransport, AsyncClient

from app.feeds.domain import container, models
from app.feeds.domain.memory import InMemoryUserDirectory
from app.feeds.domain.propagation import PropagationBus
from app.feeds.infra.uploads import LocalImageStorage
from app.infra import jwt as jwt_helper
from app.main import app
from app.settings import settings


class RecordingBus(PropagationBus):
	"""PropagationBus that keeps every publish instead of emitting on sockets."""

	def __init__(self) -> None:
		self.broadcasts: list[tuple[str, object]] = []
		self.direct: list[tuple[str, str, object]] = []
		super().__init__(broadcast=self._record_broadcast, to_user=self._record_direct)

	async def _record_broadcast(self, event: str, payload: object) -> None:
		self.broadcasts.append((event, payload))

	async def _record_direct(self, user_id: str, event: str, payload: object) -> None:
		self.direct.append((user_id, event, payload))

	def events(self) -> list[str]:
		return [event for event, _ in self.broadcasts]


MEMBERS = (
	models.UserProfile(id="user-alice", name="Alice", role=models.Role.ACTIVE, church="st_marys"),
	models.UserProfile(id="user-bob", name="Bob", role=models.Role.ACTIVE, church="st_brendan"),
	models.UserProfile(id="user-admin", name="Father Admin", role=models.Role.ADMIN, church="ss_joachim_and_anne"),
)


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from app.infra.redis import redis_client, set_redis_client

	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Dev mode enables the X-User-Id header fallback some tests rely on."""
	original_env = settings.environment
	settings.environment = "dev"
	try:
		yield
	finally:
		settings.environment = original_env


@pytest.fixture
def bus() -> RecordingBus:
	return RecordingBus()


@pytest.fixture
def users() -> InMemoryUserDirectory:
	return InMemoryUserDirectory(MEMBERS)


@pytest.fixture
def images(tmp_path) -> LocalImageStorage:
	return LocalImageStorage(tmp_path / "uploads", max_bytes=1024 * 1024)


@pytest.fixture
def feed_service(bus, users, images):
	service = container.build(users=users, bus=bus, images=images)
	container.configure(service)
	try:
		yield service
	finally:
		container.reset()


def make_token(user_id: str, role: str = "active", *, name: str | None = None, ttl_seconds: int | None = None) -> str:
	claims: dict[str, object] = {"sub": user_id, "role": role}
	if name is not None:
		claims["name"] = name
	return jwt_helper.encode_access(claims, ttl_seconds=ttl_seconds)


def auth_headers(user_id: str, role: str = "active", *, name: str | None = None) -> dict[str, str]:
	return {"Authorization": f"Bearer {make_token(user_id, role, name=name)}"}


@pytest_asyncio.fixture
async def api_client(feed_service):
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client


@pytest.fixture
def token_for():
	return make_token


@pytest.fixture
def headers_for():
	return auth_headers
