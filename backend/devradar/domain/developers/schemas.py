"""Pydantic schemas for developer and search endpoints."""

from __future__ import annotations

from typing import List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from devradar.domain.developers.models import DeveloperRecord


class DeveloperIn(BaseModel):
	"""Registration payload. Range checks happen in the domain layer."""

	id: str = Field(..., validation_alias=AliasChoices("id", "github_username"))
	latitude: float
	longitude: float
	techs: Union[str, List[str]] = Field(default_factory=list, validation_alias=AliasChoices("techs", "tags"))
	avatar_url: Optional[str] = Field(default=None, validation_alias=AliasChoices("avatar_url", "avatarUrl"))
	bio: Optional[str] = None
	name: Optional[str] = None

	def to_record(self) -> DeveloperRecord:
		return DeveloperRecord.create(
			id=self.id,
			latitude=self.latitude,
			longitude=self.longitude,
			techs=self.techs,
			avatar_url=self.avatar_url,
			bio=self.bio,
			name=self.name,
		)


class DeveloperUpdate(BaseModel):
	"""Partial update; omitted fields keep their stored values."""

	latitude: Optional[float] = None
	longitude: Optional[float] = None
	techs: Optional[Union[str, List[str]]] = Field(default=None, validation_alias=AliasChoices("techs", "tags"))
	avatar_url: Optional[str] = Field(default=None, validation_alias=AliasChoices("avatar_url", "avatarUrl"))
	bio: Optional[str] = None
	name: Optional[str] = None

	def changes(self) -> dict:
		return self.model_dump(exclude_none=True)


class DeveloperOut(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	id: str
	latitude: float
	longitude: float
	tags: List[str]
	avatar_url: str = Field(default="", serialization_alias="avatarUrl")
	bio: str = ""
	name: str = ""

	@classmethod
	def from_record(cls, record: DeveloperRecord) -> "DeveloperOut":
		return cls(
			id=record.id,
			latitude=record.latitude,
			longitude=record.longitude,
			tags=list(record.techs),
			avatar_url=record.avatar_url,
			bio=record.bio,
			name=record.name,
		)


class DeveloperListResponse(BaseModel):
	developers: List[DeveloperOut]


class SearchResponse(BaseModel):
	developers: List[DeveloperOut]
