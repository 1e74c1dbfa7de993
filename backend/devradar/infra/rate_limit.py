"""Redis-backed sliding-window rate limiting."""

from __future__ import annotations

import time
import uuid
from typing import Optional

from devradar.infra.redis import redis_client


async def allow(
	kind: str,
	actor_id: str,
	*,
	limit: int,
	window_seconds: int = 60,
	now: Optional[float] = None,
) -> bool:
	"""Record one hit and return True while the actor stays within ``limit`` per window.

	Hits are kept in a sorted set scored by timestamp, so the window slides
	instead of resetting on fixed boundaries.
	"""

	if limit <= 0:
		return False
	now = now or time.time()
	window = max(1, int(window_seconds))
	key = f"rl:{kind}:{actor_id}"
	async with redis_client.pipeline(transaction=True) as pipe:
		pipe.zremrangebyscore(key, 0, now - window)
		pipe.zadd(key, {f"{now:.6f}:{uuid.uuid4().hex[:8]}": now})
		pipe.zcard(key)
		pipe.expire(key, window)
		_, _, count, _ = await pipe.execute()
	return int(count) <= limit
