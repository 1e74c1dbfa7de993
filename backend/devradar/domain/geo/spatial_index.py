"""Grid-bucketed spatial index for point lookups by radius."""

from __future__ import annotations

import math
from typing import Dict, Iterable, Iterator, Optional, Set, Tuple

from devradar.domain.geo.distance import DistanceMetric, bounding_box, distance_m, wrap_longitude

CellKey = Tuple[int, int]

# Bounding boxes are padded slightly so the planar metric never misses a cell.
_BBOX_PADDING = 1.01


class SpatialIndex:
	"""Maps ids to quantised (lat, lon) cells.

	Each id lives in exactly one cell, matching its last upserted position. Radius
	queries visit only the cells intersecting the circle's bounding box, wrapping
	across the antimeridian and clipping at the poles, then filter exactly by
	distance.
	"""

	def __init__(self, cell_size_deg: float = 0.1, *, metric: DistanceMetric = "haversine") -> None:
		if not 0 < cell_size_deg <= 90:
			raise ValueError("cell_size_deg must be in (0, 90]")
		self.cell_size_deg = float(cell_size_deg)
		self.metric: DistanceMetric = metric
		self._rows = int(math.ceil(180.0 / self.cell_size_deg))
		self._cols = int(math.ceil(360.0 / self.cell_size_deg))
		self._cells: Dict[CellKey, Set[str]] = {}
		self._positions: Dict[str, Tuple[float, float, CellKey]] = {}

	def __len__(self) -> int:
		return len(self._positions)

	def __contains__(self, item_id: object) -> bool:
		return item_id in self._positions

	def __iter__(self) -> Iterator[str]:
		return iter(self._positions)

	@property
	def cell_count(self) -> int:
		return len(self._cells)

	def position(self, item_id: str) -> Optional[Tuple[float, float]]:
		entry = self._positions.get(item_id)
		if entry is None:
			return None
		return entry[0], entry[1]

	def cell_of(self, item_id: str) -> Optional[CellKey]:
		entry = self._positions.get(item_id)
		return entry[2] if entry else None

	def upsert(self, item_id: str, lat: float, lon: float) -> None:
		key = self._cell_key(lat, lon)
		previous = self._positions.get(item_id)
		if previous is not None and previous[2] != key:
			self._discard(item_id, previous[2])
		self._cells.setdefault(key, set()).add(item_id)
		self._positions[item_id] = (float(lat), float(lon), key)

	def remove(self, item_id: str) -> None:
		previous = self._positions.pop(item_id, None)
		if previous is None:
			return
		self._discard(item_id, previous[2])

	def clear(self) -> None:
		self._cells.clear()
		self._positions.clear()

	def query_radius(self, lat: float, lon: float, radius_m: float) -> Set[str]:
		"""Return every id whose stored position lies within ``radius_m`` of (lat, lon)."""
		if radius_m < 0:
			raise ValueError("radius_m must be >= 0")
		if not self._positions:
			return set()
		matches: Set[str] = set()
		for key in self._candidate_cells(lat, lon, radius_m):
			for item_id in self._cells.get(key, ()):
				item_lat, item_lon, _ = self._positions[item_id]
				if distance_m(lat, lon, item_lat, item_lon, self.metric) <= radius_m:
					matches.add(item_id)
		return matches

	def _candidate_cells(self, lat: float, lon: float, radius_m: float) -> Iterable[CellKey]:
		min_lat, max_lat, min_lon, max_lon = bounding_box(lat, lon, radius_m * _BBOX_PADDING)
		row_lo = self._row(min_lat)
		row_hi = self._row(max_lat)
		cols: Optional[Set[int]] = None
		col_span = self._cols
		if max_lon - min_lon < 360.0:
			if min_lon < -180.0:
				segments = [(min_lon + 360.0, 180.0), (-180.0, max_lon)]
			elif max_lon > 180.0:
				segments = [(min_lon, 180.0), (-180.0, max_lon - 360.0)]
			else:
				segments = [(min_lon, max_lon)]
			cols = set()
			for seg_lo, seg_hi in segments:
				cols.update(range(self._col(seg_lo), self._col(seg_hi) + 1))
			col_span = len(cols)
			if col_span >= self._cols:
				cols = None
		touched = (row_hi - row_lo + 1) * col_span
		if touched > len(self._cells):
			return [
				key
				for key in self._cells
				if row_lo <= key[0] <= row_hi and (cols is None or key[1] in cols)
			]
		col_iter = range(self._cols) if cols is None else sorted(cols)
		return [(row, col) for row in range(row_lo, row_hi + 1) for col in col_iter]

	def _discard(self, item_id: str, key: CellKey) -> None:
		bucket = self._cells.get(key)
		if bucket is None:
			return
		bucket.discard(item_id)
		if not bucket:
			del self._cells[key]

	def _row(self, lat: float) -> int:
		row = int(math.floor((lat + 90.0) / self.cell_size_deg))
		return min(max(row, 0), self._rows - 1)

	def _col(self, lon: float) -> int:
		col = int(math.floor((lon + 180.0) / self.cell_size_deg))
		return min(max(col, 0), self._cols - 1)

	def _cell_key(self, lat: float, lon: float) -> CellKey:
		return self._row(lat), self._col(wrap_longitude(lon))


__all__ = ["CellKey", "SpatialIndex"]
