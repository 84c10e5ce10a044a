from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

from .services.controller import compute_tile_layers
from .services.coverage import MAX_GRID_ZOOM
from .services.extent import BoundingBox
from .services.features import TileLayers, tile_info_at
from .services.geometry import GeoCoordinate, format_tile_info, tile_to_bbox, tile_to_center
from .services.quadkey import QuadkeyError, quadkey_to_tile
from .services.styles import DEFAULT_STYLE, resolve_style, style_catalog
from .services.viewport import MAX_ZOOM, ViewportState, decode, encode

app = FastAPI(title="Quadkey Tile Grid", version="0.1.0")

BASE_DIR = Path(__file__).resolve().parent

logger = logging.getLogger(__name__)

app.mount("/static", StaticFiles(directory=BASE_DIR / "static"), name="static")
templates = Jinja2Templates(directory=BASE_DIR / "templates")


class LocationRequest(BaseModel):
    lat: float
    lon: float
    zoom: float
    location: str | None = None


@app.get("/", response_class=HTMLResponse)
def read_root(request: Request):
    state = decode(request.url.query)
    context: Dict[str, object] = {
        "center": [state.lon, state.lat],
        "zoom": state.zoom,
        "max_zoom": MAX_ZOOM,
        "styles": style_catalog(),
        "default_style": DEFAULT_STYLE.key,
    }
    return templates.TemplateResponse(request, "index.html", context)


@app.get("/api/tiles")
def read_tiles(
    west: float = Query(...),
    south: float = Query(...),
    east: float = Query(...),
    north: float = Query(...),
    zoom: float = Query(..., description="Continuous zoom of the map view"),
    max_tiles: int | None = Query(None, ge=1),
) -> Dict[str, object]:
    bbox = BoundingBox(west=west, south=south, east=east, north=north)
    layers = compute_tile_layers(bbox, zoom, max_tiles=max_tiles)
    return _layers_payload(layers)


@app.get("/api/tile-info")
def read_tile_info(
    lon: float = Query(...),
    lat: float = Query(...),
    zoom: float = Query(...),
) -> Dict[str, Any]:
    try:
        return tile_info_at(lon, lat, zoom)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.get("/api/quadkey/{quadkey}")
def read_quadkey(quadkey: str) -> Dict[str, Any]:
    try:
        tile = quadkey_to_tile(quadkey)
    except QuadkeyError as exc:
        logger.info("Rejected quadkey %r: %s", quadkey, exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if tile.z > MAX_GRID_ZOOM:
        raise HTTPException(status_code=400, detail=f"Quadkey longer than {MAX_GRID_ZOOM} digits.")

    center = tile_to_center(*tile)
    return {
        "tile": list(tile),
        "quadkey": quadkey,
        "bbox": list(tile_to_bbox(*tile)),
        "center": [center.lon, center.lat],
        "infoText": format_tile_info(*tile),
    }


@app.get("/api/viewport")
def read_viewport(request: Request) -> Dict[str, float]:
    state = decode(request.url.query)
    return {"lat": state.lat, "lon": state.lon, "zoom": state.zoom}


@app.post("/api/viewport/location")
def update_location(payload: LocationRequest) -> Dict[str, str | None]:
    state = ViewportState(center=GeoCoordinate(payload.lon, payload.lat), zoom=payload.zoom)
    return {"location": encode(state, payload.location)}


@app.get("/api/styles")
def list_styles() -> Dict[str, object]:
    return {"default": DEFAULT_STYLE.key, "styles": style_catalog()}


@app.get("/api/styles/{key}")
def read_style(key: str) -> Dict[str, object]:
    try:
        style = resolve_style(key)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"key": key, "style": style}


def _layers_payload(layers: TileLayers) -> Dict[str, object]:
    return {
        "zoom": layers.zoom,
        "truncated": layers.truncated,
        "count": len(layers),
        "tiles": layers.grid,
        "centers": layers.labels,
    }
