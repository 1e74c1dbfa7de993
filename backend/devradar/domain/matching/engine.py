"""Match engine: fans registry writes out to the subscriptions they affect."""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol

from devradar.domain.developers.models import DeveloperRecord, TagsInput, normalize_techs
from devradar.domain.developers.registry import DeveloperRegistry
from devradar.domain.matching.events import MatchEvent, MatchKind
from devradar.domain.matching.subscriptions import Region, Subscription, SubscriptionManager
from devradar.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


class EventSink(Protocol):
	def deliver(self, event: MatchEvent) -> None:
		...


class MatchEngine:
	"""Turns registry mutations into MatchEvents for covering subscriptions.

	Fan-out cost is bounded by the subscriptions covering the old and new
	positions. Delivery never raises into the caller: a sink failure is logged
	and counted, so registry writes succeed whether or not anyone is listening.
	"""

	def __init__(
		self,
		subscriptions: SubscriptionManager,
		*,
		sink: Optional[EventSink] = None,
		registry: Optional[DeveloperRegistry] = None,
		snapshot_on_subscribe: bool = True,
	) -> None:
		self.subscriptions = subscriptions
		self.sink = sink
		self.registry = registry
		self.snapshot_on_subscribe = snapshot_on_subscribe

	def bind(self, registry: DeveloperRegistry) -> None:
		"""Attach to a registry so its writes flow through this engine."""
		self.registry = registry
		registry.listener = self

	def on_upsert(self, record: DeveloperRecord, previous: Optional[DeveloperRecord]) -> List[MatchEvent]:
		covering = self.subscriptions.subscriptions_covering(record.latitude, record.longitude, record.techs)
		events = [MatchEvent(MatchKind.NEW_OR_UPDATED, connection_id, record) for connection_id in covering]
		if previous is not None:
			still_covering = set(covering)
			for connection_id in self.subscriptions.subscriptions_covering(
				previous.latitude, previous.longitude, previous.techs
			):
				if connection_id not in still_covering:
					events.append(MatchEvent(MatchKind.REMOVED, connection_id, record))
		self._dispatch(events)
		return events

	def on_remove(self, record: DeveloperRecord) -> List[MatchEvent]:
		covering = self.subscriptions.subscriptions_covering(record.latitude, record.longitude, record.techs)
		events = [MatchEvent(MatchKind.REMOVED, connection_id, record) for connection_id in covering]
		self._dispatch(events)
		return events

	def subscribe(
		self,
		connection_id: str,
		region: Region,
		techs: TagsInput = None,
		*,
		push_snapshot: bool = True,
	) -> Subscription:
		"""Open a subscription and, unless told otherwise, push its snapshot to the sink."""
		subscription = self.subscriptions.open(connection_id, region, techs)
		if push_snapshot:
			self._deliver(self.snapshot(connection_id))
		return subscription

	def snapshot(self, connection_id: str) -> List[MatchEvent]:
		"""NEW_OR_UPDATED events for every record the subscription already matches, ascending by id.

		Empty when snapshots are disabled. Raises SubscriptionNotFound for an unknown connection.
		"""
		subscription = self.subscriptions.get(connection_id)
		if not self.snapshot_on_subscribe:
			return []
		events = [
			MatchEvent(MatchKind.NEW_OR_UPDATED, connection_id, record)
			for record in self._matching(subscription)
		]
		self._count(events)
		return events

	def update_subscription(
		self,
		connection_id: str,
		*,
		region: Optional[Region] = None,
		techs: TagsInput = None,
	) -> Subscription:
		"""Move or re-filter a subscription, pushing the records that enter or leave it.

		Raises SubscriptionNotFound when the connection has no open subscription.
		"""
		subscription = self.subscriptions.get(connection_id)
		track = self.snapshot_on_subscribe and self.registry is not None
		before = {record.id: record for record in self._matching(subscription)} if track else {}
		if region is not None:
			subscription = self.subscriptions.update_region(connection_id, region)
		if techs is not None:
			subscription = self.subscriptions.update_tags(connection_id, techs)
		if not track:
			return subscription
		after = {record.id: record for record in self._matching(subscription)}
		events = [
			MatchEvent(MatchKind.NEW_OR_UPDATED, connection_id, after[dev_id])
			for dev_id in sorted(after.keys() - before.keys())
		]
		events.extend(
			MatchEvent(MatchKind.REMOVED, connection_id, before[dev_id])
			for dev_id in sorted(before.keys() - after.keys())
		)
		self._dispatch(events)
		return subscription

	def unsubscribe(self, connection_id: str) -> None:
		self.subscriptions.close(connection_id)

	def search(
		self,
		latitude: float,
		longitude: float,
		radius_m: float,
		techs: TagsInput = (),
		*,
		limit: Optional[int] = None,
	) -> List[DeveloperRecord]:
		if self.registry is None:
			return []
		wanted = normalize_techs(techs)
		results = self.registry.search_by_tags_and_region(latitude, longitude, radius_m, wanted, limit=limit)
		obs_metrics.inc_search_query(bool(wanted), len(results))
		return results

	def _matching(self, subscription: Subscription) -> List[DeveloperRecord]:
		if self.registry is None:
			return []
		region = subscription.region
		return self.registry.search_by_tags_and_region(
			region.latitude, region.longitude, region.radius_m, subscription.techs
		)

	def _dispatch(self, events: List[MatchEvent]) -> None:
		self._count(events)
		self._deliver(events)

	@staticmethod
	def _count(events: List[MatchEvent]) -> None:
		for event in events:
			obs_metrics.inc_match_event(event.kind.value)

	def _deliver(self, events: List[MatchEvent]) -> None:
		if self.sink is None:
			return
		for event in events:
			try:
				self.sink.deliver(event)
			except Exception:
				obs_metrics.inc_delivery_failure("enqueue")
				logger.warning(
					"match delivery failed connection=%s developer=%s kind=%s",
					event.connection_id,
					event.developer.id,
					event.kind.value,
					exc_info=True,
				)


__all__ = ["EventSink", "MatchEngine"]
