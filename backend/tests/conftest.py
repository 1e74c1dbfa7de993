import sys
from pathlib import Path

import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis
from httpx import ASGITransport, AsyncClient

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from devradar import container
from devradar.main import app
from devradar.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from devradar.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	# Fresh registry, subscriptions and outboxes per test, persisted in fakeredis.
	container.configure()
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Pin the knobs tests rely on, whatever the local .env says."""
	original = (
		settings.environment,
		settings.developer_store,
		settings.obs_metrics_public,
		settings.obs_admin_token,
	)
	settings.environment = "dev"
	settings.developer_store = "redis"
	settings.obs_metrics_public = False
	settings.obs_admin_token = None
	try:
		yield
	finally:
		(
			settings.environment,
			settings.developer_store,
			settings.obs_metrics_public,
			settings.obs_admin_token,
		) = original


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
