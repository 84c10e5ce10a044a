import math

import pytest
from shapely.geometry import Polygon, box

from tilegrid.services.coverage import (
    DEFAULT_MAX_TILES,
    MAX_GRID_ZOOM,
    cover,
    max_tiles_setting,
    target_zoom,
)
from tilegrid.services.extent import BoundingBox, normalize_extent
from tilegrid.services.geometry import bbox_ring, tile_to_bbox
from tilegrid.services.quadkey import TileCoordinate


def _slippy_tile(lon: float, lat: float, zoom: int) -> tuple[int, int]:
    n = 2 ** zoom
    lat_rad = math.radians(lat)
    x = int(math.floor((lon + 180.0) / 360.0 * n))
    y = int(math.floor((1.0 - math.asinh(math.tan(lat_rad)) / math.pi) / 2.0 * n))
    return x, y


def test_target_zoom_rounds_up():
    assert target_zoom(9.4) == 10
    assert target_zoom(3.0) == 3
    assert target_zoom(-0.5) == 0
    with pytest.raises(ValueError):
        target_zoom(float("nan"))


def test_strictly_interior_tile_bbox_covers_exactly_that_tile():
    tile = TileCoordinate(540, 355, 10)
    west, south, east, north = tile_to_bbox(*tile)
    inset_lon = (east - west) * 0.01
    inset_lat = (north - south) * 0.01
    ring = bbox_ring(west + inset_lon, south + inset_lat, east - inset_lon, north - inset_lat)

    coverage = cover(ring, 10)

    assert coverage.tiles == (tile,)
    assert not coverage.truncated


def test_viewport_scenario_at_zoom_ten():
    bbox = BoundingBox(west=9.99, south=49.99, east=10.01, north=50.01)
    zoom = target_zoom(9.4)

    coverage = cover(normalize_extent(bbox), zoom)

    x_min, y_min = _slippy_tile(9.99, 50.01, zoom)
    x_max, y_max = _slippy_tile(10.01, 49.99, zoom)
    expected = {
        (x, y, zoom) for x in range(x_min, x_max + 1) for y in range(y_min, y_max + 1)
    }
    assert set(coverage.tiles) == expected
    assert coverage.zoom == 10

    union = [tile_to_bbox(*tile) for tile in coverage.tiles]
    assert min(b[0] for b in union) <= 9.99
    assert min(b[1] for b in union) <= 49.99
    assert max(b[2] for b in union) >= 10.01
    assert max(b[3] for b in union) >= 50.01


def test_coverage_is_deterministic_and_duplicate_free():
    ring = normalize_extent(BoundingBox(west=-30.0, south=-20.0, east=45.0, north=60.0))
    first = cover(ring, 5)
    second = cover(ring, 5)

    assert first.tiles == second.tiles
    assert len(set(first.tiles)) == len(first.tiles)
    assert list(first.tiles) == sorted(first.tiles, key=lambda tile: (tile.y, tile.x))


def test_tiles_touching_the_boundary_are_included():
    # lon 0 is a grid line at zoom 1, so the western tile only touches the ring.
    ring = bbox_ring(0.0, 10.0, 10.0, 20.0)
    coverage = cover(ring, 1)
    assert set(coverage.tiles) == {(0, 0, 1), (1, 0, 1)}


def test_zero_area_extent_yields_empty_coverage():
    assert cover(bbox_ring(5.0, 5.0, 5.0, 6.0), 4).tiles == ()
    assert cover(bbox_ring(5.0, 5.0, 6.0, 5.0), 4).tiles == ()
    assert cover([], 4).tiles == ()


def test_non_finite_input_yields_empty_coverage():
    assert cover(bbox_ring(float("nan"), 0.0, 1.0, 1.0), 3).tiles == ()
    assert cover(bbox_ring(0.0, 0.0, 1.0, float("inf")), 3).tiles == ()
    assert cover(bbox_ring(0.0, 0.0, 1.0, 1.0), -1).tiles == ()
    assert cover(bbox_ring(0.0, 0.0, 1.0, 1.0), 2.5).tiles == ()


def test_extent_beyond_mercator_limit_is_empty():
    assert cover(bbox_ring(0.0, 86.0, 10.0, 89.0), 3).tiles == ()


def test_zoom_zero_is_the_root_tile():
    ring = normalize_extent(BoundingBox(west=-200.0, south=-80.0, east=200.0, north=80.0))
    assert cover(ring, 0).tiles == ((0, 0, 0),)


def test_non_rectangular_polygon_matches_brute_force():
    ring = [(-100.0, -40.0), (120.0, -10.0), (10.0, 60.0), (-100.0, -40.0)]
    polygon = Polygon(ring)
    zoom = 4
    expected = {
        (x, y, zoom)
        for x in range(2 ** zoom)
        for y in range(2 ** zoom)
        if box(*tile_to_bbox(x, y, zoom)).intersects(polygon)
    }

    coverage = cover(ring, zoom)

    assert set(coverage.tiles) == expected
    assert len(coverage.tiles) < 2 ** zoom * 2 ** zoom


def test_small_triangle_inside_one_tile():
    tile = TileCoordinate(8, 5, 4)
    west, south, east, north = tile_to_bbox(*tile)
    mid_lon = (west + east) / 2
    mid_lat = (south + north) / 2
    ring = [
        (mid_lon - 1.0, mid_lat - 1.0),
        (mid_lon + 1.0, mid_lat - 1.0),
        (mid_lon, mid_lat + 1.0),
        (mid_lon - 1.0, mid_lat - 1.0),
    ]
    assert cover(ring, 4).tiles == (tile,)


def test_oversized_extent_is_truncated_deterministically():
    ring = normalize_extent(BoundingBox(west=-180.0, south=-85.0, east=180.0, north=85.0))

    coverage = cover(ring, 4, max_tiles=10)

    assert coverage.truncated
    assert coverage.limit == 10
    assert len(coverage) == 10
    assert list(coverage.tiles) == [(x, 0, 4) for x in range(10)]
    assert cover(ring, 4, max_tiles=10).tiles == coverage.tiles


def test_polygon_truncation_keeps_the_limit():
    ring = [(-170.0, -80.0), (170.0, -80.0), (0.0, 80.0), (-170.0, -80.0)]
    coverage = cover(ring, 5, max_tiles=25)
    assert coverage.truncated
    assert len(coverage) == 25
    assert cover(ring, 5, max_tiles=25).tiles == coverage.tiles


def test_exact_limit_is_not_truncated():
    ring = normalize_extent(BoundingBox(west=-180.0, south=-85.0, east=180.0, north=85.0))
    coverage = cover(ring, 2, max_tiles=16)
    assert len(coverage) == 16
    assert not coverage.truncated


def test_max_tiles_setting_reads_environment(monkeypatch):
    monkeypatch.setenv("TILEGRID_MAX_TILES", "5")
    assert max_tiles_setting() == 5

    ring = normalize_extent(BoundingBox(west=-180.0, south=-85.0, east=180.0, north=85.0))
    coverage = cover(ring, 3)
    assert coverage.truncated
    assert len(coverage) == 5

    monkeypatch.setenv("TILEGRID_MAX_TILES", "lots")
    assert max_tiles_setting() == DEFAULT_MAX_TILES
    monkeypatch.setenv("TILEGRID_MAX_TILES", "0")
    assert max_tiles_setting() == 1
    monkeypatch.delenv("TILEGRID_MAX_TILES")
    assert max_tiles_setting() == DEFAULT_MAX_TILES


def test_zoom_beyond_grid_depth_is_empty():
    ring = bbox_ring(9.99, 49.99, 10.01, 50.01)

    assert cover(ring, MAX_GRID_ZOOM).tiles
    assert cover(ring, MAX_GRID_ZOOM + 1).tiles == ()
    assert cover(ring, 1100).tiles == ()
    assert cover(ring, 1100.0).tiles == ()
