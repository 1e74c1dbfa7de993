"""Lightweight service container wiring the proximity core together."""

from __future__ import annotations

from typing import Optional

from devradar.domain.developers.registry import DeveloperRegistry
from devradar.domain.developers.repo import (
	DeveloperRepository,
	InMemoryDeveloperRepository,
	RedisDeveloperRepository,
)
from devradar.domain.geo.distance import DistanceMetric
from devradar.domain.geo.spatial_index import SpatialIndex
from devradar.domain.matching.engine import MatchEngine
from devradar.domain.matching.subscriptions import SubscriptionManager
from devradar.domain.realtime.outbox import OutboxRouter
from devradar.settings import settings

_registry: DeveloperRegistry
_subscriptions: SubscriptionManager
_outboxes: OutboxRouter
_engine: MatchEngine


def _default_repository() -> DeveloperRepository:
	if settings.developer_store == "memory":
		return InMemoryDeveloperRepository()
	return RedisDeveloperRepository()


def configure(
	*,
	repository: Optional[DeveloperRepository] = None,
	cell_size_deg: Optional[float] = None,
	metric: Optional[DistanceMetric] = None,
	snapshot_on_subscribe: Optional[bool] = None,
	outbox_max_size: Optional[int] = None,
	outbox_max_drops: Optional[int] = None,
) -> None:
	"""(Re)build every component. Unset arguments fall back to settings."""
	global _registry, _subscriptions, _outboxes, _engine
	cell = cell_size_deg if cell_size_deg is not None else settings.spatial_cell_size_deg
	distance_metric: DistanceMetric = metric or settings.distance_metric
	store = repository if repository is not None else _default_repository()
	_registry = DeveloperRegistry(store, SpatialIndex(cell, metric=distance_metric))
	_subscriptions = SubscriptionManager(cell, metric=distance_metric)
	_outboxes = OutboxRouter(
		max_size=outbox_max_size if outbox_max_size is not None else settings.outbox_max_size,
		max_drops=outbox_max_drops if outbox_max_drops is not None else settings.outbox_max_drops,
	)
	_engine = MatchEngine(
		_subscriptions,
		sink=_outboxes,
		snapshot_on_subscribe=(
			settings.snapshot_on_subscribe if snapshot_on_subscribe is None else snapshot_on_subscribe
		),
	)
	_engine.bind(_registry)


async def startup() -> int:
	"""Warm the in-memory index from durable storage."""
	return await _registry.load()


def get_registry() -> DeveloperRegistry:
	return _registry


def get_subscriptions() -> SubscriptionManager:
	return _subscriptions


def get_outboxes() -> OutboxRouter:
	return _outboxes


def get_engine() -> MatchEngine:
	return _engine


configure()


__all__ = [
	"configure",
	"get_engine",
	"get_outboxes",
	"get_registry",
	"get_subscriptions",
	"startup",
]
