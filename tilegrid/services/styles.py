from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Tuple

logger = logging.getLogger(__name__)

VOYAGER_STYLE_URL = "https://basemaps.cartocdn.com/gl/voyager-gl-style/style.json"
STYLES_DIR_ENV = "TILEGRID_STYLES_DIR"
PACKAGED_STYLES_DIR = Path(__file__).resolve().parent.parent / "styles"

StyleDocument = str | Dict[str, Any]


@dataclass(frozen=True)
class StyleOption:
    """A basemap the viewer can switch to.

    Remote styles carry a ``url``; local styles are JSON documents looked up
    by ``key`` in the styles directory.
    """

    key: str
    name: str
    url: str | None = None

    @property
    def is_local(self) -> bool:
        return self.url is None


STYLE_OPTIONS: Tuple[StyleOption, ...] = (
    StyleOption("voyager", "Voyager", VOYAGER_STYLE_URL),
    StyleOption(
        "positron",
        "Positron Light",
        "https://basemaps.cartocdn.com/gl/positron-gl-style/style.json",
    ),
    StyleOption(
        "positron-nolabels",
        "Positron Nolabels",
        "https://basemaps.cartocdn.com/gl/positron-nolabels-gl-style/style.json",
    ),
    StyleOption(
        "dark-matter",
        "Dark Matter",
        "https://basemaps.cartocdn.com/gl/dark-matter-gl-style/style.json",
    ),
    StyleOption("mapterhorn", "Mapterhorn"),
)
DEFAULT_STYLE = STYLE_OPTIONS[0]


def _determine_styles_dir() -> Path:
    override = os.getenv(STYLES_DIR_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    return PACKAGED_STYLES_DIR


def style_catalog() -> List[Dict[str, object]]:
    return [
        {"key": option.key, "name": option.name, "default": option is DEFAULT_STYLE}
        for option in STYLE_OPTIONS
    ]


def find_style(key: str) -> StyleOption:
    for option in STYLE_OPTIONS:
        if option.key == key:
            return option
    raise ValueError(f"Unknown basemap style: {key}")


def resolve_style(key: str) -> StyleDocument:
    """Return what the map should be given for ``key``: a URL or a style document."""

    option = find_style(key)
    if option.url is not None:
        return option.url
    return load_local_style(option.key)


def load_local_style(key: str) -> StyleDocument:
    """Load ``<styles dir>/<key>.json``, falling back to Voyager on failure."""

    style_path = _determine_styles_dir() / f"{key}.json"
    try:
        document = json.loads(style_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.exception("Error loading %s style from %s: %s", key, style_path, exc)
        return VOYAGER_STYLE_URL

    if not isinstance(document, dict):
        logger.error("Style file %s does not contain a style object", style_path)
        return VOYAGER_STYLE_URL
    return document
