"""Durable storage for developer records.

The registry only talks to the ``DeveloperRepository`` protocol; the storage
engine behind it is a deployment choice. Two implementations ship here: an
in-process dictionary (tests, single-node demos) and Redis hashes.
"""

from __future__ import annotations

import json
import logging
from typing import Dict, List, Protocol

from devradar.domain.developers.models import DeveloperRecord
from devradar.infra.redis import RedisProxy, redis_client

logger = logging.getLogger(__name__)

_IDS_KEY = "devs:ids"


def _record_key(developer_id: str) -> str:
	return f"dev:{developer_id}"


class DeveloperRepository(Protocol):
	async def save(self, record: DeveloperRecord) -> None:
		...

	async def delete(self, developer_id: str) -> bool:
		...

	async def load_all(self) -> List[DeveloperRecord]:
		...


class InMemoryDeveloperRepository:
	def __init__(self) -> None:
		self.store: Dict[str, DeveloperRecord] = {}

	async def save(self, record: DeveloperRecord) -> None:
		self.store[record.id] = record

	async def delete(self, developer_id: str) -> bool:
		return self.store.pop(developer_id, None) is not None

	async def load_all(self) -> List[DeveloperRecord]:
		return [self.store[key] for key in sorted(self.store)]


class RedisDeveloperRepository:
	"""Stores each record as a hash under ``dev:{id}`` plus an id set."""

	def __init__(self, client: RedisProxy | None = None) -> None:
		self._client = client or redis_client

	async def save(self, record: DeveloperRecord) -> None:
		mapping = {
			"latitude": repr(record.latitude),
			"longitude": repr(record.longitude),
			"techs": json.dumps(list(record.techs)),
			"avatar_url": record.avatar_url,
			"bio": record.bio,
			"name": record.name,
		}
		async with self._client.pipeline(transaction=True) as pipe:
			pipe.delete(_record_key(record.id))
			pipe.hset(_record_key(record.id), mapping=mapping)
			pipe.sadd(_IDS_KEY, record.id)
			await pipe.execute()

	async def delete(self, developer_id: str) -> bool:
		async with self._client.pipeline(transaction=True) as pipe:
			pipe.delete(_record_key(developer_id))
			pipe.srem(_IDS_KEY, developer_id)
			deleted, _ = await pipe.execute()
		return bool(deleted)

	async def load_all(self) -> List[DeveloperRecord]:
		ids = sorted(await self._client.smembers(_IDS_KEY))
		records: List[DeveloperRecord] = []
		for developer_id in ids:
			raw = await self._client.hgetall(_record_key(developer_id))
			if not raw:
				await self._client.srem(_IDS_KEY, developer_id)
				continue
			try:
				records.append(_decode(developer_id, raw))
			except (KeyError, ValueError):
				logger.warning("skipping undecodable developer record id=%s", developer_id, exc_info=True)
		return records


def _decode(developer_id: str, raw: Dict[str, str]) -> DeveloperRecord:
	return DeveloperRecord(
		id=developer_id,
		latitude=float(raw["latitude"]),
		longitude=float(raw["longitude"]),
		techs=tuple(json.loads(raw.get("techs") or "[]")),
		avatar_url=raw.get("avatar_url", ""),
		bio=raw.get("bio", ""),
		name=raw.get("name", ""),
	)


__all__ = [
	"DeveloperRepository",
	"InMemoryDeveloperRepository",
	"RedisDeveloperRepository",
]
