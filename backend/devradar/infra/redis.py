"""Shared async Redis handle.

Modules import ``redis_client`` once. The connection behind it is created on
first use from ``REDIS_URL`` and can be replaced (fakeredis in tests) through
``set_redis_client`` without touching those imports.
"""

from __future__ import annotations

from typing import Any, Optional

import redis.asyncio as redis

from devradar.settings import settings


class RedisProxy:
	def __init__(self, client: Optional[redis.Redis] = None) -> None:
		self._client = client

	@property
	def client(self) -> redis.Redis:
		if self._client is None:
			self._client = redis.from_url(settings.redis_url, decode_responses=True)
		return self._client

	def set_client(self, client: Optional[redis.Redis]) -> None:
		self._client = client

	async def shutdown(self) -> None:
		"""Close the current connection pool; the next call reconnects lazily."""
		client, self._client = self._client, None
		if client is not None:
			await client.aclose()

	def __getattr__(self, item: str) -> Any:
		return getattr(self.client, item)


redis_client = RedisProxy()


def set_redis_client(client: Optional[redis.Redis]) -> None:
	redis_client.set_client(client)
