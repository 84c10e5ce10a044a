from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List

from .geometry import GeoCoordinate, bbox_ring

# Just inside the antimeridian so the ring never folds over itself.
LONGITUDE_CLAMP = 179.99999


@dataclass(frozen=True)
class BoundingBox:
    """Viewport extent reported by the host map view.

    At low zoom or after wide pans the view may report ``west < -180`` or
    ``east > 180``; :func:`normalize_extent` takes care of that.
    """

    west: float
    south: float
    east: float
    north: float

    @property
    def south_west(self) -> GeoCoordinate:
        return GeoCoordinate(self.west, self.south)

    @property
    def north_east(self) -> GeoCoordinate:
        return GeoCoordinate(self.east, self.north)

    def is_finite(self) -> bool:
        return all(math.isfinite(value) for value in (self.west, self.south, self.east, self.north))


def clamp_longitude(lon: float) -> float:
    if lon < -180.0:
        return -LONGITUDE_CLAMP
    if lon > 180.0:
        return LONGITUDE_CLAMP
    return lon


def normalize_extent(bbox: BoundingBox) -> List[GeoCoordinate]:
    """Turn a viewport bbox into a closed ring SW, NW, NE, SE, SW.

    Longitudes outside [-180, 180] are pulled in to +/-179.99999; latitudes
    are left untouched. Extents that really straddle the antimeridian are not
    split.
    """

    return bbox_ring(
        clamp_longitude(bbox.west),
        bbox.south,
        clamp_longitude(bbox.east),
        bbox.north,
    )
