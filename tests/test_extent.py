from tilegrid.services.extent import LONGITUDE_CLAMP, BoundingBox, clamp_longitude, normalize_extent


def test_ring_order_is_sw_nw_ne_se_sw():
    ring = normalize_extent(BoundingBox(west=1.0, south=2.0, east=3.0, north=4.0))
    assert ring == [(1.0, 2.0), (1.0, 4.0), (3.0, 4.0), (3.0, 2.0), (1.0, 2.0)]
    assert ring[0] == ring[-1]


def test_west_beyond_antimeridian_is_clamped():
    ring = normalize_extent(BoundingBox(west=-190.0, south=-10.0, east=-170.0, north=10.0))
    assert ring[0].lon == -179.99999
    assert ring[1].lon == -179.99999
    assert ring[2].lon == -170.0


def test_east_beyond_antimeridian_is_clamped():
    ring = normalize_extent(BoundingBox(west=170.0, south=-10.0, east=190.0, north=10.0))
    assert ring[2].lon == LONGITUDE_CLAMP
    assert ring[3].lon == 179.99999


def test_latitude_and_in_range_longitude_pass_through():
    ring = normalize_extent(BoundingBox(west=-180.0, south=-89.5, east=180.0, north=89.5))
    assert [point.lat for point in ring] == [-89.5, 89.5, 89.5, -89.5, -89.5]
    assert ring[0].lon == -180.0
    assert ring[2].lon == 180.0
    assert clamp_longitude(0.5) == 0.5


def test_bounding_box_finiteness():
    assert BoundingBox(0.0, 0.0, 1.0, 1.0).is_finite()
    assert not BoundingBox(float("nan"), 0.0, 1.0, 1.0).is_finite()
    assert not BoundingBox(0.0, 0.0, float("inf"), 1.0).is_finite()
