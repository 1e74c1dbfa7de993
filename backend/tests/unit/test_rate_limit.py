import pytest

from devradar.infra.rate_limit import allow


@pytest.mark.asyncio
async def test_allow_until_limit_then_block():
	results = [await allow("subscription_update", "sid-1", limit=3, window_seconds=10, now=1000.0 + n) for n in range(4)]
	assert results == [True, True, True, False]


@pytest.mark.asyncio
async def test_window_slides():
	for n in range(3):
		assert await allow("subscription_update", "sid-1", limit=3, window_seconds=10, now=1000.0 + n)
	# first three hits have aged out of the window
	assert await allow("subscription_update", "sid-1", limit=3, window_seconds=10, now=1012.5)


@pytest.mark.asyncio
async def test_actors_are_independent():
	assert await allow("subscription_update", "sid-1", limit=1, now=500.0)
	assert not await allow("subscription_update", "sid-1", limit=1, now=500.5)
	assert await allow("subscription_update", "sid-2", limit=1, now=500.5)


@pytest.mark.asyncio
async def test_zero_limit_blocks():
	assert not await allow("subscription_update", "sid-1", limit=0)
