"""Canonical owner of developer records and their spatial index."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Protocol

from devradar.domain.developers.exceptions import DeveloperNotFound, ValidationError
from devradar.domain.developers.models import DeveloperRecord, normalize_techs, tags_match
from devradar.domain.developers.repo import DeveloperRepository
from devradar.domain.geo.spatial_index import SpatialIndex
from devradar.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = frozenset({"latitude", "longitude", "techs", "avatar_url", "bio", "name"})


class RegistryListener(Protocol):
	def on_upsert(self, record: DeveloperRecord, previous: Optional[DeveloperRecord]) -> None:
		...

	def on_remove(self, record: DeveloperRecord) -> None:
		...


class DeveloperRegistry:
	"""One record per developer id, mirrored into a SpatialIndex.

	Writes are serialised by a single lock and commit to the repository first;
	the in-memory records and the index are then swapped together without
	yielding to the event loop, so readers see either the old or the new state.
	"""

	def __init__(
		self,
		repository: DeveloperRepository,
		index: SpatialIndex,
		*,
		listener: Optional[RegistryListener] = None,
	) -> None:
		self.repository = repository
		self.index = index
		self.listener = listener
		self._records: Dict[str, DeveloperRecord] = {}
		self._write_lock = asyncio.Lock()

	def __len__(self) -> int:
		return len(self._records)

	def __contains__(self, developer_id: object) -> bool:
		return developer_id in self._records

	async def load(self) -> int:
		"""Rebuild the serving copy and index from the repository."""
		records = await self.repository.load_all()
		async with self._write_lock:
			self._records.clear()
			self.index.clear()
			for record in records:
				self._records[record.id] = record
				self.index.upsert(record.id, record.latitude, record.longitude)
		obs_metrics.set_indexed_developers(len(self.index))
		logger.info("developer registry loaded count=%s", len(records))
		return len(records)

	async def register(self, record: DeveloperRecord) -> DeveloperRecord:
		"""Insert or wholesale-replace a record; returns the committed copy."""
		committed = self._validated(record)
		async with self._write_lock:
			return await self._commit(committed)

	async def update(self, developer_id: str, **changes: Any) -> DeveloperRecord:
		"""Merge ``changes`` into the stored record and register the result.

		The merge reads the record under the write lock, so concurrent partial
		updates of one developer each build on the previous commit.
		"""
		unknown = set(changes) - _UPDATABLE_FIELDS
		if unknown:
			raise ValidationError(f"unknown_field:{sorted(unknown)[0]}")
		async with self._write_lock:
			current = self.get(developer_id)
			merged = {
				"id": current.id,
				"latitude": current.latitude,
				"longitude": current.longitude,
				"techs": current.techs,
				"avatar_url": current.avatar_url,
				"bio": current.bio,
				"name": current.name,
			}
			merged.update({key: value for key, value in changes.items() if value is not None})
			return await self._commit(self._validated(DeveloperRecord.create(**merged)))

	async def unregister(self, developer_id: str) -> Optional[DeveloperRecord]:
		"""Remove a developer; unknown ids are a no-op and return None."""
		async with self._write_lock:
			previous = self._records.get(developer_id)
			if previous is None:
				return None
			await self.repository.delete(developer_id)
			del self._records[developer_id]
			self.index.remove(developer_id)
			obs_metrics.inc_registry_write("delete")
			obs_metrics.set_indexed_developers(len(self.index))
			self._notify_remove(previous)
		return previous

	def get(self, developer_id: str) -> DeveloperRecord:
		record = self._records.get(developer_id)
		if record is None:
			raise DeveloperNotFound()
		return record

	def all(self) -> List[DeveloperRecord]:
		return [self._records[key] for key in sorted(self._records)]

	def search_by_tags_and_region(
		self,
		latitude: float,
		longitude: float,
		radius_m: float,
		techs: Iterable[str] = (),
		*,
		limit: Optional[int] = None,
	) -> List[DeveloperRecord]:
		"""Records within ``radius_m`` carrying every requested tag, ascending by id."""
		wanted = normalize_techs(techs)
		ids = self.index.query_radius(latitude, longitude, radius_m)
		results = [
			self._records[developer_id]
			for developer_id in sorted(ids)
			if tags_match(self._records[developer_id].techs, wanted)
		]
		if limit is not None:
			results = results[: max(0, limit)]
		return results

	@staticmethod
	def _validated(record: DeveloperRecord) -> DeveloperRecord:
		try:
			return record.validated()
		except ValidationError as exc:
			obs_metrics.inc_registry_reject(exc.reason)
			raise

	async def _commit(self, committed: DeveloperRecord) -> DeveloperRecord:
		# Caller holds _write_lock.
		previous = self._records.get(committed.id)
		await self.repository.save(committed)
		self._records[committed.id] = committed
		self.index.upsert(committed.id, committed.latitude, committed.longitude)
		obs_metrics.inc_registry_write("update" if previous else "create")
		obs_metrics.set_indexed_developers(len(self.index))
		self._notify_upsert(committed, previous)
		return committed

	def _notify_upsert(self, record: DeveloperRecord, previous: Optional[DeveloperRecord]) -> None:
		if self.listener is None:
			return
		try:
			self.listener.on_upsert(record, previous)
		except Exception:
			logger.exception("match fan-out failed after upsert id=%s", record.id)

	def _notify_remove(self, record: DeveloperRecord) -> None:
		if self.listener is None:
			return
		try:
			self.listener.on_remove(record)
		except Exception:
			logger.exception("match fan-out failed after removal id=%s", record.id)


__all__ = ["DeveloperRegistry", "RegistryListener"]
