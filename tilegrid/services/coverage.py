from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from itertools import islice
from typing import Iterator, List, Sequence, Tuple

from shapely.errors import GEOSException
from shapely.geometry import Polygon, box
from shapely.geometry.base import BaseGeometry
from shapely.prepared import PreparedGeometry, prep

from .geometry import MAX_LATITUDE, lat_to_tile_fraction, lon_to_tile_fraction, tile_to_bbox
from .quadkey import TileCoordinate, child_tiles

logger = logging.getLogger(__name__)

MAX_TILES_ENV = "TILEGRID_MAX_TILES"
DEFAULT_MAX_TILES = 4096
# Deepest grid level served; 2 ** z must stay well inside float range.
MAX_GRID_ZOOM = 30


@dataclass(frozen=True)
class TileCoverage:
    """Tiles at a single zoom level that intersect a polygon.

    ``tiles`` is ordered row-major (``y`` then ``x``). When the polygon needs
    more than ``limit`` tiles only the first ``limit`` are kept and
    ``truncated`` is set.
    """

    zoom: int
    tiles: Tuple[TileCoordinate, ...] = ()
    truncated: bool = False
    limit: int | None = None

    def __len__(self) -> int:
        return len(self.tiles)

    def __iter__(self) -> Iterator[TileCoordinate]:
        return iter(self.tiles)


def max_tiles_setting() -> int:
    raw_value = os.getenv(MAX_TILES_ENV, "").strip()
    if not raw_value:
        return DEFAULT_MAX_TILES
    try:
        limit = int(raw_value)
    except ValueError:
        return DEFAULT_MAX_TILES
    return max(1, limit)


def target_zoom(zoom: float) -> int:
    """Integer grid zoom for a continuous view zoom.

    Raises ``ValueError`` for non-finite input; callers validate first.
    """

    if not math.isfinite(zoom):
        raise ValueError(f"Zoom must be a finite number, got {zoom!r}.")
    return max(0, int(math.ceil(zoom)))


def cover(
    ring: Sequence[Sequence[float]],
    zoom: int,
    *,
    max_tiles: int | None = None,
) -> TileCoverage:
    """Compute the tiles at ``zoom`` whose footprint intersects ``ring``.

    Tiles touching the polygon boundary are included. Zero-area, non-finite
    or otherwise unusable input yields an empty coverage instead of an error.
    """

    limit = max_tiles if max_tiles is not None else max_tiles_setting()
    limit = max(1, limit)

    grid_zoom = _coerce_zoom(zoom)
    if grid_zoom is None:
        logger.warning("Rejecting coverage request for invalid zoom %r", zoom)
        return TileCoverage(zoom=0, limit=limit)

    polygon = _build_polygon(ring)
    if polygon is None:
        return TileCoverage(zoom=grid_zoom, limit=limit)

    if polygon.equals(box(*polygon.bounds)):
        tiles, truncated = _cover_rectangle(polygon.bounds, grid_zoom, limit)
    else:
        tiles, truncated = _cover_polygon(polygon, grid_zoom, limit)

    if truncated:
        logger.warning(
            "Tile coverage at zoom %s exceeds %s tiles; result truncated.", grid_zoom, limit
        )
    return TileCoverage(zoom=grid_zoom, tiles=tuple(tiles), truncated=truncated, limit=limit)


def _coerce_zoom(zoom: object) -> int | None:
    if isinstance(zoom, bool):
        return None
    if isinstance(zoom, float) and math.isfinite(zoom) and zoom.is_integer():
        zoom = int(zoom)
    if isinstance(zoom, int) and 0 <= zoom <= MAX_GRID_ZOOM:
        return zoom
    return None


def _build_polygon(ring: Sequence[Sequence[float]]) -> BaseGeometry | None:
    coords: List[Tuple[float, float]] = []
    for point in ring:
        try:
            lon, lat = float(point[0]), float(point[1])
        except (TypeError, ValueError, IndexError):
            return None
        if not (math.isfinite(lon) and math.isfinite(lat)):
            return None
        coords.append((lon, lat))

    if len(set(coords)) < 3:
        return None

    try:
        polygon: BaseGeometry = Polygon(coords)
        if not polygon.is_valid:
            polygon = polygon.buffer(0)
    except (ValueError, GEOSException) as exc:
        logger.debug("Discarding unusable coverage polygon: %s", exc)
        return None

    if polygon.is_empty or polygon.area <= 0:
        return None
    return polygon


def _cover_rectangle(
    bounds: Tuple[float, float, float, float], zoom: int, limit: int
) -> Tuple[List[TileCoordinate], bool]:
    west, south, east, north = bounds
    if south > MAX_LATITUDE or north < -MAX_LATITUDE or west > 180.0 or east < -180.0:
        return [], False

    n = 2 ** zoom
    x_min = _lower_index(lon_to_tile_fraction(west, zoom), n)
    x_max = _upper_index(lon_to_tile_fraction(east, zoom), n)
    y_min = _lower_index(lat_to_tile_fraction(north, zoom), n)
    y_max = _upper_index(lat_to_tile_fraction(south, zoom), n)

    tiles: List[TileCoordinate] = []
    for y in range(y_min, y_max + 1):
        for x in range(x_min, x_max + 1):
            if len(tiles) >= limit:
                return tiles, True
            tiles.append(TileCoordinate(x, y, zoom))
    return tiles, False


def _cover_polygon(
    polygon: BaseGeometry, zoom: int, limit: int
) -> Tuple[List[TileCoordinate], bool]:
    found = list(islice(_descend(prep(polygon), zoom), limit + 1))
    truncated = len(found) > limit
    tiles = sorted(found[:limit], key=lambda tile: (tile.y, tile.x))
    return tiles, truncated


def _descend(prepared: PreparedGeometry, zoom: int) -> Iterator[TileCoordinate]:
    stack = [TileCoordinate(0, 0, 0)]
    while stack:
        tile = stack.pop()
        tile_box = box(*tile_to_bbox(*tile))
        if not prepared.intersects(tile_box):
            continue
        if tile.z == zoom:
            yield tile
            continue
        if prepared.contains(tile_box):
            # Every descendant at the target zoom lies inside the polygon.
            scale = 2 ** (zoom - tile.z)
            for y in range(tile.y * scale, (tile.y + 1) * scale):
                for x in range(tile.x * scale, (tile.x + 1) * scale):
                    yield TileCoordinate(x, y, zoom)
            continue
        stack.extend(reversed(child_tiles(tile)))


def _lower_index(fraction: float, n: int) -> int:
    # A boundary sitting exactly on a grid line also touches the tile before it.
    return max(0, min(n - 1, int(math.ceil(fraction)) - 1))


def _upper_index(fraction: float, n: int) -> int:
    return max(0, min(n - 1, int(math.floor(fraction))))
