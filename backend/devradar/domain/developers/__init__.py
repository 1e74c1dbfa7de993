"""Developer records, their storage and the registry that indexes them."""

from devradar.domain.developers.exceptions import (
	DeliveryFailure,
	DeveloperNotFound,
	DevRadarError,
	NotFound,
	ProtocolError,
	SubscriptionNotFound,
	ValidationError,
)
from devradar.domain.developers.models import DeveloperRecord, normalize_techs, tags_match
from devradar.domain.developers.registry import DeveloperRegistry
from devradar.domain.developers.repo import (
	DeveloperRepository,
	InMemoryDeveloperRepository,
	RedisDeveloperRepository,
)

__all__ = [
	"DeliveryFailure",
	"DevRadarError",
	"DeveloperNotFound",
	"DeveloperRecord",
	"DeveloperRegistry",
	"DeveloperRepository",
	"InMemoryDeveloperRepository",
	"NotFound",
	"ProtocolError",
	"RedisDeveloperRepository",
	"SubscriptionNotFound",
	"ValidationError",
	"normalize_techs",
	"tags_match",
]
