"""Radius + tag search over registered developers."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from devradar import container
from devradar.domain.developers.exceptions import ValidationError
from devradar.domain.developers.models import normalize_techs, parse_coordinate
from devradar.domain.developers.schemas import DeveloperOut, SearchResponse
from devradar.domain.matching.engine import MatchEngine
from devradar.settings import settings

router = APIRouter()


def _resolve_radius(radius_m: Optional[float]) -> float:
	if radius_m is None:
		return float(settings.default_search_radius_m)
	if radius_m > settings.max_search_radius_m:
		raise ValidationError("radius_too_large")
	return radius_m


@router.get("/search", response_model=SearchResponse)
async def search_developers(
	latitude: float = Query(...),
	longitude: float = Query(...),
	techs: Optional[str] = Query(default=None, description="Comma-separated tags"),
	tags: Optional[List[str]] = Query(default=None, description="Repeated or comma-separated tags"),
	radius_m: Optional[float] = Query(default=None, gt=0),
	limit: Optional[int] = Query(default=None, ge=1),
	engine: MatchEngine = Depends(container.get_engine),
) -> SearchResponse:
	lat = parse_coordinate(latitude, name="latitude", bound=90.0)
	lon = parse_coordinate(longitude, name="longitude", bound=180.0)
	wanted = normalize_techs([*(tags or []), *([techs] if techs else [])])
	cap = min(limit or settings.search_result_limit, settings.search_result_limit)
	records = engine.search(lat, lon, _resolve_radius(radius_m), wanted, limit=cap)
	return SearchResponse(developers=[DeveloperOut.from_record(record) for record in records])
