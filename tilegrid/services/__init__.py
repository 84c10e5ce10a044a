"""Tile coverage and quadkey indexing exposed by the ``tilegrid.services`` package."""

from .controller import GridController, compute_tile_layers
from .coverage import TileCoverage, cover, target_zoom
from .extent import BoundingBox, normalize_extent
from .features import LayerPublisher, TileLayers, assemble
from .quadkey import QuadkeyError, TileCoordinate, quadkey_to_tile, tile_to_quadkey
from .viewport import ViewportState, decode, encode

__all__ = [
    "BoundingBox",
    "GridController",
    "LayerPublisher",
    "QuadkeyError",
    "TileCoordinate",
    "TileCoverage",
    "TileLayers",
    "ViewportState",
    "assemble",
    "compute_tile_layers",
    "cover",
    "decode",
    "encode",
    "normalize_extent",
    "quadkey_to_tile",
    "target_zoom",
    "tile_to_quadkey",
]
