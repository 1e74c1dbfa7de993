"""Live subscriptions: one search region and tag filter per connection."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from devradar.domain.developers.exceptions import SubscriptionNotFound, ValidationError
from devradar.domain.developers.models import TagsInput, normalize_techs, parse_coordinate, tags_match
from devradar.domain.geo.distance import DistanceMetric, distance_m
from devradar.domain.geo.spatial_index import SpatialIndex
from devradar.obs import metrics as obs_metrics


@dataclass(frozen=True, slots=True)
class Region:
	latitude: float
	longitude: float
	radius_m: float

	@classmethod
	def create(cls, latitude: Any, longitude: Any, radius_m: Any) -> "Region":
		try:
			radius = float(radius_m)
		except (TypeError, ValueError):
			raise ValidationError("invalid_radius") from None
		if not radius >= 0 or radius == float("inf"):
			raise ValidationError("invalid_radius")
		return cls(
			latitude=parse_coordinate(latitude, name="latitude", bound=90.0),
			longitude=parse_coordinate(longitude, name="longitude", bound=180.0),
			radius_m=radius,
		)

	def contains(self, latitude: float, longitude: float, metric: DistanceMetric = "haversine") -> bool:
		return distance_m(self.latitude, self.longitude, latitude, longitude, metric) <= self.radius_m

	def to_payload(self) -> dict:
		return {"latitude": self.latitude, "longitude": self.longitude, "radius_m": self.radius_m}


@dataclass(slots=True)
class Subscription:
	connection_id: str
	region: Region
	techs: Tuple[str, ...] = ()

	def matches(
		self,
		latitude: float,
		longitude: float,
		record_techs: Iterable[str],
		metric: DistanceMetric = "haversine",
	) -> bool:
		return self.region.contains(latitude, longitude, metric) and tags_match(record_techs, self.techs)

	def to_payload(self) -> dict:
		return {**self.region.to_payload(), "techs": list(self.techs)}


class SubscriptionManager:
	"""Tracks open subscriptions and answers "who covers this point?".

	Subscription centres are indexed in their own SpatialIndex and queried with
	the largest open radius, so a lookup touches only subscriptions whose centre
	is near the point. This assumes subscription counts stay far below developer
	counts; a single continent-sized radius degrades lookups towards a scan of
	the occupied cells.
	"""

	def __init__(self, cell_size_deg: float = 0.1, *, metric: DistanceMetric = "haversine") -> None:
		self.metric: DistanceMetric = metric
		self._subscriptions: Dict[str, Subscription] = {}
		self._centers = SpatialIndex(cell_size_deg, metric=metric)
		self._radii: Counter[float] = Counter()

	def __len__(self) -> int:
		return len(self._subscriptions)

	def __contains__(self, connection_id: object) -> bool:
		return connection_id in self._subscriptions

	def open(self, connection_id: str, region: Region, techs: TagsInput = None) -> Subscription:
		"""Create the connection's subscription, replacing any previous one."""
		subscription = Subscription(connection_id=connection_id, region=region, techs=normalize_techs(techs))
		previous = self._subscriptions.get(connection_id)
		if previous is not None:
			self._forget_radius(previous.region.radius_m)
		self._subscriptions[connection_id] = subscription
		self._radii[region.radius_m] += 1
		self._centers.upsert(connection_id, region.latitude, region.longitude)
		obs_metrics.set_open_subscriptions(len(self._subscriptions))
		return subscription

	def get(self, connection_id: str) -> Subscription:
		subscription = self._subscriptions.get(connection_id)
		if subscription is None:
			raise SubscriptionNotFound()
		return subscription

	def update_region(self, connection_id: str, region: Region) -> Subscription:
		subscription = self.get(connection_id)
		self._forget_radius(subscription.region.radius_m)
		subscription.region = region
		self._radii[region.radius_m] += 1
		self._centers.upsert(connection_id, region.latitude, region.longitude)
		return subscription

	def update_tags(self, connection_id: str, techs: TagsInput) -> Subscription:
		subscription = self.get(connection_id)
		subscription.techs = normalize_techs(techs)
		return subscription

	def close(self, connection_id: str) -> Optional[Subscription]:
		subscription = self._subscriptions.pop(connection_id, None)
		if subscription is None:
			return None
		self._forget_radius(subscription.region.radius_m)
		self._centers.remove(connection_id)
		obs_metrics.set_open_subscriptions(len(self._subscriptions))
		return subscription

	def subscriptions_covering(self, latitude: float, longitude: float, techs: Iterable[str]) -> List[str]:
		"""Connection ids whose region contains the point and whose filter accepts ``techs``."""
		if not self._subscriptions:
			return []
		record_techs = tuple(techs)
		reach = max(self._radii)
		candidates = self._centers.query_radius(latitude, longitude, reach)
		return [
			connection_id
			for connection_id in sorted(candidates)
			if self._subscriptions[connection_id].matches(latitude, longitude, record_techs, self.metric)
		]

	def _forget_radius(self, radius_m: float) -> None:
		self._radii[radius_m] -= 1
		if self._radii[radius_m] <= 0:
			del self._radii[radius_m]


__all__ = ["Region", "Subscription", "SubscriptionManager"]
