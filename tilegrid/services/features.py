from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping

from .coverage import MAX_GRID_ZOOM, TileCoverage, target_zoom
from .geometry import format_tile_info, point_to_tile, tile_to_bbox, tile_to_center, tile_to_polygon
from .quadkey import TileCoordinate, tile_to_quadkey

FeatureCollection = Dict[str, Any]


def _feature_collection(features: List[Dict[str, Any]]) -> FeatureCollection:
    return {"type": "FeatureCollection", "features": features}


@dataclass(frozen=True)
class TileLayers:
    """The grid cells and their label points, always published together."""

    grid: FeatureCollection = field(default_factory=lambda: _feature_collection([]))
    labels: FeatureCollection = field(default_factory=lambda: _feature_collection([]))
    zoom: int | None = None
    truncated: bool = False

    @classmethod
    def empty(cls, zoom: int | None = None) -> "TileLayers":
        return cls(zoom=zoom)

    def __len__(self) -> int:
        return len(self.grid["features"])


def tile_parity(tile: TileCoordinate) -> bool:
    return (tile.x + tile.y) % 2 == 0


def build_tile_feature(tile: TileCoordinate, quadkey: str, info_text: str) -> Dict[str, Any]:
    return {
        "type": "Feature",
        "properties": {
            "parity": tile_parity(tile),
            "quadkey": quadkey,
            "infoText": info_text,
        },
        "geometry": tile_to_polygon(*tile),
    }


def build_center_feature(tile: TileCoordinate, quadkey: str, info_text: str) -> Dict[str, Any]:
    center = tile_to_center(*tile)
    return {
        "type": "Feature",
        "properties": {
            "text": info_text,
            "quadkey": quadkey,
            "infoText": info_text,
        },
        "geometry": {"type": "Point", "coordinates": [center.lon, center.lat]},
    }


def assemble(tiles: TileCoverage | Iterable[TileCoordinate], zoom: int | None = None) -> TileLayers:
    """Build the grid and label collections for a set of tiles.

    Both collections list the tiles in the same order.
    """

    truncated = False
    if isinstance(tiles, TileCoverage):
        zoom = tiles.zoom if zoom is None else zoom
        truncated = tiles.truncated

    grid_features: List[Dict[str, Any]] = []
    label_features: List[Dict[str, Any]] = []
    for tile in tiles:
        tile = TileCoordinate(*tile)
        quadkey = tile_to_quadkey(*tile)
        info_text = format_tile_info(*tile)
        grid_features.append(build_tile_feature(tile, quadkey, info_text))
        label_features.append(build_center_feature(tile, quadkey, info_text))

    return TileLayers(
        grid=_feature_collection(grid_features),
        labels=_feature_collection(label_features),
        zoom=zoom,
        truncated=truncated,
    )


class LayerPublisher:
    """Holds the currently published :class:`TileLayers`.

    The pair is swapped as a single reference, so readers never see a grid
    from one recompute next to labels from another.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._layers = TileLayers.empty()

    @property
    def current(self) -> TileLayers:
        with self._lock:
            return self._layers

    def publish(self, layers: TileLayers) -> TileLayers:
        """Replace the published pair and return the previous one."""

        with self._lock:
            previous = self._layers
            self._layers = layers
            return previous


def clipboard_text(properties: Mapping[str, Any]) -> str:
    info_text = properties.get("infoText")
    if info_text:
        return str(info_text)
    return f"Quadkey:\n{properties.get('quadkey', '')}"


def tile_info_at(lon: float, lat: float, zoom: float) -> Dict[str, Any]:
    """Describe the grid tile under a clicked point.

    ``zoom`` is the continuous view zoom; the grid uses ``ceil(zoom)``.
    """

    if not (math.isfinite(lon) and math.isfinite(lat)):
        raise ValueError("Longitude and latitude must be finite numbers.")
    if not math.isfinite(zoom) or zoom < 0:
        raise ValueError("Zoom must be a finite, non-negative number.")

    grid_zoom = target_zoom(zoom)
    if grid_zoom > MAX_GRID_ZOOM:
        raise ValueError(f"Zoom must not exceed {MAX_GRID_ZOOM}.")

    tile = point_to_tile(lon, lat, grid_zoom)
    quadkey = tile_to_quadkey(*tile)
    feature = build_tile_feature(tile, quadkey, format_tile_info(*tile))
    return {
        "tile": list(tile),
        "quadkey": quadkey,
        "bbox": list(tile_to_bbox(*tile)),
        "parity": feature["properties"]["parity"],
        "infoText": feature["properties"]["infoText"],
        "clipboard": clipboard_text(feature["properties"]),
    }
