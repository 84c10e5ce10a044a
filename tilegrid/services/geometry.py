from __future__ import annotations

import json
import math
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Any, Dict, List, NamedTuple, Tuple

from .quadkey import TileCoordinate, tile_to_quadkey

# Web Mercator cuts the world off where the projection becomes square.
MAX_LATITUDE = 85.0511287798

BBox = Tuple[float, float, float, float]

# Wide enough to hold any finite float to a handful of decimals.
_FIXED_CONTEXT = Context(prec=400)


class GeoCoordinate(NamedTuple):
    """A longitude/latitude pair in degrees."""

    lon: float
    lat: float


def tile_to_bbox(x: int, y: int, z: int) -> BBox:
    """Return ``(west, south, east, north)`` of a tile in degrees."""

    n = 2 ** z
    west = x / n * 360.0 - 180.0
    east = (x + 1) / n * 360.0 - 180.0
    north = _tile_y_to_lat(y, n)
    south = _tile_y_to_lat(y + 1, n)
    return west, south, east, north


def tile_to_polygon(x: int, y: int, z: int) -> Dict[str, Any]:
    """GeoJSON polygon of the tile footprint, ring ordered SW, NW, NE, SE, SW."""

    west, south, east, north = tile_to_bbox(x, y, z)
    ring = [
        [west, south],
        [west, north],
        [east, north],
        [east, south],
        [west, south],
    ]
    return {"type": "Polygon", "coordinates": [ring]}


def tile_to_center(x: int, y: int, z: int) -> GeoCoordinate:
    # Midpoint of the bbox corners, not the Mercator centroid.
    west, south, east, north = tile_to_bbox(x, y, z)
    return GeoCoordinate((west + east) / 2, (south + north) / 2)


def format_tile_info(x: int, y: int, z: int) -> str:
    """Render the clipboard descriptor shown when a tile is clicked."""

    center = tile_to_center(x, y, z)
    quadkey = tile_to_quadkey(x, y, z)
    center_text = f"緯度経度:\nlat {to_fixed(center.lat, 4)}, lon {to_fixed(center.lon, 4)}"
    zoom_text = f"Zoomレベル:\n{z}"
    tile_text = f"Tile:\n{json.dumps([x, y, z], separators=(',', ':'))}"
    quadkey_text = f"Quadkey:\n{quadkey}"
    return f"{center_text}\n\n{zoom_text}\n\n{tile_text}\n\n{quadkey_text}"


def to_fixed(value: float, digits: int) -> str:
    """Format ``value`` the way JavaScript's ``Number.toFixed`` does.

    Ties round away from zero on the exact binary value, so ``-175.78125``
    becomes ``-175.7813`` where ``format(value, ".4f")`` would give ``-175.7812``.
    """

    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    # "+ 0.0" turns -0.0 into 0.0, which toFixed prints without a sign.
    exact = Decimal(value + 0.0)
    rounded = exact.quantize(Decimal(f"1e-{digits}"), rounding=ROUND_HALF_UP, context=_FIXED_CONTEXT)
    return f"{rounded:f}"


def lon_to_tile_fraction(lon: float, z: int) -> float:
    return (lon + 180.0) / 360.0 * float(2 ** z)


def lat_to_tile_fraction(lat: float, z: int) -> float:
    clamped = _clamp(lat, -MAX_LATITUDE, MAX_LATITUDE)
    sin_lat = math.sin(math.radians(clamped))
    fraction = 0.5 - math.log((1 + sin_lat) / (1 - sin_lat)) / (4 * math.pi)
    return fraction * float(2 ** z)


def point_to_tile(lon: float, lat: float, z: int) -> TileCoordinate:
    """Return the tile containing a point, clamped to the pyramid edges."""

    n = 2 ** z
    x = int(math.floor(lon_to_tile_fraction(lon, z)))
    y = int(math.floor(lat_to_tile_fraction(lat, z)))
    return TileCoordinate(_clamp_index(x, n), _clamp_index(y, n), z)


def bbox_ring(west: float, south: float, east: float, north: float) -> List[GeoCoordinate]:
    return [
        GeoCoordinate(west, south),
        GeoCoordinate(west, north),
        GeoCoordinate(east, north),
        GeoCoordinate(east, south),
        GeoCoordinate(west, south),
    ]


def _tile_y_to_lat(tile_y: int, n: int) -> float:
    return math.degrees(math.atan(math.sinh(math.pi * (1 - 2 * tile_y / n))))


def _clamp(value: float, minimum: float, maximum: float) -> float:
    return max(min(value, maximum), minimum)


def _clamp_index(index: int, n: int) -> int:
    return max(0, min(n - 1, index))
