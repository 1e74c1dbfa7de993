"""Match events handed from the match engine to the realtime gateway."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from devradar.domain.developers.models import DeveloperRecord


class MatchKind(str, Enum):
	NEW_OR_UPDATED = "new_or_updated"
	REMOVED = "removed"


# Socket.IO event names pushed to clients for each kind.
PUSH_EVENTS = {
	MatchKind.NEW_OR_UPDATED: "new-dev",
	MatchKind.REMOVED: "dev-removed",
}


@dataclass(frozen=True, slots=True)
class MatchEvent:
	kind: MatchKind
	connection_id: str
	developer: DeveloperRecord

	@property
	def push_event(self) -> str:
		return PUSH_EVENTS[self.kind]

	def to_payload(self) -> dict:
		return self.developer.to_payload()
