"""Viewport state carried in the page URL (``?lat=..&lon=..&zoom=..``)."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Dict

import httpx

from .geometry import GeoCoordinate, to_fixed

DEFAULT_CENTER = GeoCoordinate(138.0, 36.0)
DEFAULT_ZOOM = 1.0
MIN_ZOOM = 0.0
MAX_ZOOM = 18.0

# Same prefix rule as the browser's parseFloat: "12.5abc" reads as 12.5.
_FLOAT_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


@dataclass(frozen=True)
class ViewportState:
    center: GeoCoordinate = DEFAULT_CENTER
    zoom: float = DEFAULT_ZOOM

    @property
    def lon(self) -> float:
        return self.center.lon

    @property
    def lat(self) -> float:
        return self.center.lat


def parse_float(raw: str | None) -> float | None:
    """Read a leading number from ``raw``; ``None`` unless it is finite."""

    if raw is None:
        return None
    match = _FLOAT_PREFIX.match(raw.lstrip())
    if match is None:
        return None
    value = float(match.group(0))
    if not math.isfinite(value):
        return None
    return value


def decode(query: str | None) -> ViewportState:
    """Restore the viewport from a query string.

    Missing or malformed values fall back to the defaults. The center and
    the zoom fall back independently of each other.
    """

    params = httpx.QueryParams((query or "").lstrip("?"))
    lat = parse_float(params.get("lat"))
    lon = parse_float(params.get("lon"))
    zoom = parse_float(params.get("zoom"))

    center = GeoCoordinate(lon, lat) if lat is not None and lon is not None else DEFAULT_CENTER
    if zoom is None:
        zoom = DEFAULT_ZOOM
    # The map view refuses zooms outside [MIN_ZOOM, MAX_ZOOM] (its maxZoom is 18),
    # so the restored state is pinned to the range the view will actually show.
    zoom = max(MIN_ZOOM, min(MAX_ZOOM, zoom))
    return ViewportState(center=center, zoom=zoom)


def viewport_params(state: ViewportState) -> Dict[str, str]:
    return {
        "lat": to_fixed(state.lat, 5),
        "lon": to_fixed(state.lon, 5),
        "zoom": to_fixed(state.zoom, 2),
    }


def encode(state: ViewportState, location: str | None) -> str | None:
    """Write ``state`` into ``location`` and return the new location string.

    ``location`` is ``path?query#fragment``. Other query parameters, the path
    and the fragment are kept as they are. Returns ``None`` when there is no
    location to update.
    """

    if location is None:
        return None

    rest, _, fragment = location.partition("#")
    path, _, query = rest.partition("?")

    params = httpx.QueryParams(query)
    for key, value in viewport_params(state).items():
        params = params.set(key, value)

    encoded_query = str(params)
    new_location = path
    if encoded_query:
        new_location += f"?{encoded_query}"
    if fragment:
        new_location += f"#{fragment}"
    return new_location
