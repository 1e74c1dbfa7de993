import pytest

from devradar.domain.developers.models import DeveloperRecord
from devradar.domain.developers.registry import DeveloperRegistry
from devradar.domain.developers.repo import RedisDeveloperRepository
from devradar.domain.geo.spatial_index import SpatialIndex


@pytest.mark.asyncio
async def test_redis_repository_round_trip(fake_redis):
	repo = RedisDeveloperRepository()
	record = DeveloperRecord.create(
		id="octocat",
		latitude=37.7749,
		longitude=-122.4194,
		techs="Go, TypeScript",
		avatar_url="https://avatars.example/octocat.png",
		bio="ships things",
		name="Mona",
	)
	await repo.save(record)

	assert await fake_redis.sismember("devs:ids", "octocat")
	assert await repo.load_all() == [record]

	assert await repo.delete("octocat") is True
	assert await repo.load_all() == []
	assert not await fake_redis.exists("dev:octocat")
	assert await repo.delete("octocat") is False


@pytest.mark.asyncio
async def test_load_all_skips_dangling_and_corrupt_entries(fake_redis):
	repo = RedisDeveloperRepository()
	await repo.save(DeveloperRecord(id="good", latitude=1.0, longitude=2.0))
	await fake_redis.sadd("devs:ids", "dangling")
	await fake_redis.sadd("devs:ids", "corrupt")
	await fake_redis.hset("dev:corrupt", mapping={"latitude": "north"})

	records = await repo.load_all()

	assert [r.id for r in records] == ["good"]
	assert not await fake_redis.sismember("devs:ids", "dangling")


@pytest.mark.asyncio
async def test_registry_restores_from_redis_after_restart(fake_redis):
	first = DeveloperRegistry(RedisDeveloperRepository(), SpatialIndex(0.1))
	await first.register(DeveloperRecord(id="d1", latitude=0.0, longitude=0.0, techs=("go",)))
	await first.register(DeveloperRecord(id="d2", latitude=0.0, longitude=0.001))
	await first.unregister("d2")

	restarted = DeveloperRegistry(RedisDeveloperRepository(), SpatialIndex(0.1))
	assert await restarted.load() == 1
	assert [r.id for r in restarted.search_by_tags_and_region(0.0, 0.0, 1_000, ["go"])] == ["d1"]
