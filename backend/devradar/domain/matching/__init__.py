"""Subscriptions and the engine that matches registry writes against them."""

from devradar.domain.matching.engine import EventSink, MatchEngine
from devradar.domain.matching.events import MatchEvent, MatchKind
from devradar.domain.matching.subscriptions import Region, Subscription, SubscriptionManager

__all__ = [
	"EventSink",
	"MatchEngine",
	"MatchEvent",
	"MatchKind",
	"Region",
	"Subscription",
	"SubscriptionManager",
]
