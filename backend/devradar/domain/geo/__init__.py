"""Geodesy helpers and the grid spatial index."""

from devradar.domain.geo.distance import (
	EARTH_RADIUS_M,
	DistanceMetric,
	bounding_box,
	distance_m,
	equirectangular_m,
	haversine_m,
	wrap_longitude,
)
from devradar.domain.geo.spatial_index import SpatialIndex

__all__ = [
	"EARTH_RADIUS_M",
	"DistanceMetric",
	"SpatialIndex",
	"bounding_box",
	"distance_m",
	"equirectangular_m",
	"haversine_m",
	"wrap_longitude",
]
