"""Domain models for developer records."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Tuple, Union

from devradar.domain.developers.exceptions import ValidationError

MAX_ID_LENGTH = 100
MAX_TAGS = 50
MAX_TAG_LENGTH = 50

_ID_PATTERN = re.compile(r"^[^\s/]+$")

TagsInput = Union[str, Iterable[str], None]


def normalize_techs(raw: TagsInput) -> Tuple[str, ...]:
	"""Split, strip, lower-case and dedupe tags, keeping first-seen order.

	Accepts a comma-separated string ("ReactJS, Node.js") or any iterable of
	strings, whose elements may themselves contain commas.
	"""
	if raw is None:
		return ()
	if isinstance(raw, str):
		fragments: Iterable[str] = raw.split(",")
	else:
		fragments = (part for item in raw for part in str(item).split(","))
	seen: dict[str, None] = {}
	for fragment in fragments:
		tag = fragment.strip().lower()
		if not tag:
			continue
		if len(tag) > MAX_TAG_LENGTH:
			raise ValidationError("tag_too_long")
		seen.setdefault(tag, None)
	if len(seen) > MAX_TAGS:
		raise ValidationError("too_many_tags")
	return tuple(seen)


def tags_match(record_techs: Iterable[str], wanted: Iterable[str]) -> bool:
	"""True when ``wanted`` is empty or every wanted tag is present (case-insensitive)."""
	wanted_set = {tag.lower() for tag in wanted}
	if not wanted_set:
		return True
	return wanted_set.issubset({tag.lower() for tag in record_techs})


def parse_coordinate(value: Any, *, name: str, bound: float) -> float:
	try:
		parsed = float(value)
	except (TypeError, ValueError):
		raise ValidationError(f"invalid_{name}") from None
	if not math.isfinite(parsed) or not -bound <= parsed <= bound:
		raise ValidationError(f"invalid_{name}")
	return parsed


def validate_developer_id(value: Any) -> str:
	if not isinstance(value, str):
		raise ValidationError("invalid_id")
	ident = value.strip()
	if not ident or len(ident) > MAX_ID_LENGTH or not _ID_PATTERN.match(ident):
		raise ValidationError("invalid_id")
	return ident


@dataclass(frozen=True, slots=True)
class DeveloperRecord:
	"""Canonical developer entry; replaced wholesale on every update."""

	id: str
	latitude: float
	longitude: float
	techs: Tuple[str, ...] = ()
	avatar_url: str = ""
	bio: str = ""
	name: str = ""

	@classmethod
	def create(
		cls,
		*,
		id: Any,
		latitude: Any,
		longitude: Any,
		techs: TagsInput = None,
		avatar_url: Optional[str] = None,
		bio: Optional[str] = None,
		name: Optional[str] = None,
	) -> "DeveloperRecord":
		"""Validate raw input and build a normalised record."""
		return cls(
			id=validate_developer_id(id),
			latitude=parse_coordinate(latitude, name="latitude", bound=90.0),
			longitude=parse_coordinate(longitude, name="longitude", bound=180.0),
			techs=normalize_techs(techs),
			avatar_url=str(avatar_url or ""),
			bio=str(bio or ""),
			name=str(name or ""),
		)

	def validated(self) -> "DeveloperRecord":
		"""Return a normalised copy, raising ValidationError when malformed."""
		return DeveloperRecord.create(
			id=self.id,
			latitude=self.latitude,
			longitude=self.longitude,
			techs=self.techs,
			avatar_url=self.avatar_url,
			bio=self.bio,
			name=self.name,
		)

	def to_payload(self) -> dict:
		"""Wire shape shared by the search response and realtime pushes."""
		return {
			"id": self.id,
			"latitude": self.latitude,
			"longitude": self.longitude,
			"tags": list(self.techs),
			"avatarUrl": self.avatar_url,
			"bio": self.bio,
			"name": self.name,
		}

