from __future__ import annotations

import logging
import math
import threading
from typing import Callable, List, Protocol

from .coverage import cover, max_tiles_setting, target_zoom
from .extent import BoundingBox, normalize_extent
from .features import LayerPublisher, TileLayers, assemble
from .geometry import GeoCoordinate
from .viewport import ViewportState, encode

logger = logging.getLogger(__name__)

RecomputeCallback = Callable[[TileLayers], None]


class HostView(Protocol):
    """The map view the grid is drawn on."""

    def get_bounds(self) -> BoundingBox: ...

    def get_zoom(self) -> float: ...

    def get_center(self) -> GeoCoordinate: ...


class LocationContext(Protocol):
    """Addressable location (page URL) the viewport state is written to."""

    def current(self) -> str: ...

    def replace_location(self, location: str) -> None: ...


def compute_tile_layers(
    bbox: BoundingBox, zoom: float, *, max_tiles: int | None = None
) -> TileLayers:
    """Run the whole pipeline for one viewport: normalize, cover, assemble."""

    if not bbox.is_finite() or not math.isfinite(zoom) or zoom < 0:
        logger.warning("Ignoring invalid viewport bbox=%s zoom=%s", bbox, zoom)
        return TileLayers.empty()

    limit = max_tiles_setting()
    if max_tiles is not None:
        limit = min(limit, max_tiles)

    grid_zoom = target_zoom(zoom)
    coverage = cover(normalize_extent(bbox), grid_zoom, max_tiles=limit)
    return assemble(coverage)


class GridController:
    """Keeps the published tile layers in step with a host view.

    The host calls :meth:`on_view_settled` after every pan or zoom, and
    :meth:`on_style_ready` once a basemap style started with
    :meth:`begin_style_change` is active. Everything else is pure.
    """

    def __init__(
        self,
        view: HostView,
        *,
        location: LocationContext | None = None,
        publisher: LayerPublisher | None = None,
        max_tiles: int | None = None,
    ) -> None:
        self.view = view
        self.location = location
        self.publisher = publisher or LayerPublisher()
        self.max_tiles = max_tiles
        self._callbacks: List[RecomputeCallback] = []
        self._lock = threading.Lock()
        self._running = False
        self._pending = False
        self._style_token = 0
        self._awaiting_style: int | None = None

    @property
    def layers(self) -> TileLayers:
        return self.publisher.current

    def on_recompute_needed(self, callback: RecomputeCallback) -> None:
        self._callbacks.append(callback)

    def recompute(self) -> TileLayers | None:
        """Recompute and publish the layers for the current view.

        A call made while a recompute is already running is folded into a
        single follow-up run and returns ``None``.
        """

        with self._lock:
            if self._running:
                self._pending = True
                return None
            self._running = True

        try:
            while True:
                layers = self._recompute_once()
                with self._lock:
                    if not self._pending:
                        return layers
                    self._pending = False
        finally:
            with self._lock:
                self._running = False
                self._pending = False

    def persist_viewport(self) -> str | None:
        if self.location is None:
            return None

        state = ViewportState(center=self.view.get_center(), zoom=self.view.get_zoom())
        new_location = encode(state, self.location.current())
        if new_location is not None:
            self.location.replace_location(new_location)
        return new_location

    def on_view_settled(self) -> TileLayers | None:
        layers = self.recompute()
        self.persist_viewport()
        return layers

    def begin_style_change(self) -> int:
        with self._lock:
            self._style_token += 1
            self._awaiting_style = self._style_token
            return self._style_token

    def on_style_ready(self, token: int | None = None) -> bool:
        """Recompute once for the latest style change.

        Repeated or stale notifications return ``False`` and do nothing.
        """

        with self._lock:
            if self._awaiting_style is None:
                return False
            if token is not None and token != self._awaiting_style:
                return False
            self._awaiting_style = None

        self.recompute()
        return True

    def _recompute_once(self) -> TileLayers:
        bbox = self.view.get_bounds()
        zoom = self.view.get_zoom()
        layers = compute_tile_layers(bbox, zoom, max_tiles=self.max_tiles)
        self.publisher.publish(layers)
        logger.debug(
            "Published %s tiles at zoom %s (truncated=%s)", len(layers), layers.zoom, layers.truncated
        )
        for callback in self._callbacks:
            callback(layers)
        return layers
