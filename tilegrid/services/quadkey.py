from __future__ import annotations

from typing import List, NamedTuple

QUADKEY_DIGITS = "0123"


class TileCoordinate(NamedTuple):
    """Index of a tile in the standard power-of-two tile pyramid."""

    x: int
    y: int
    z: int


class QuadkeyError(ValueError):
    """Raised when a string cannot be decoded as a quadkey."""


def tile_to_quadkey(x: int, y: int, z: int) -> str:
    """Encode a tile as its interleaved-bit quadtree key.

    Each character holds one zoom level, most significant level first. The
    root tile (``z == 0``) encodes to the empty string.
    """

    _validate_tile(x, y, z)
    digits: List[str] = []
    for level in range(z - 1, -1, -1):
        digit = (((y >> level) & 1) << 1) | ((x >> level) & 1)
        digits.append(QUADKEY_DIGITS[digit])
    return "".join(digits)


def quadkey_to_tile(quadkey: str) -> TileCoordinate:
    """Decode a quadkey back to the tile it identifies."""

    x = 0
    y = 0
    zoom = len(quadkey)
    for index, char in enumerate(quadkey):
        try:
            digit = QUADKEY_DIGITS.index(char)
        except ValueError as exc:
            raise QuadkeyError(
                f"Invalid quadkey digit {char!r} at position {index}; expected one of 0-3."
            ) from exc
        mask = 1 << (zoom - index - 1)
        if digit & 1:
            x |= mask
        if digit & 2:
            y |= mask
    return TileCoordinate(x, y, zoom)


def child_tiles(tile: TileCoordinate) -> List[TileCoordinate]:
    """Return the four children of ``tile`` in quadkey digit order."""

    x, y, z = tile
    return [
        TileCoordinate(x * 2, y * 2, z + 1),
        TileCoordinate(x * 2 + 1, y * 2, z + 1),
        TileCoordinate(x * 2, y * 2 + 1, z + 1),
        TileCoordinate(x * 2 + 1, y * 2 + 1, z + 1),
    ]


def _validate_tile(x: int, y: int, z: int) -> None:
    if z < 0:
        raise ValueError(f"Zoom level must be non-negative, got {z}.")
    size = 1 << z
    if not (0 <= x < size and 0 <= y < size):
        raise ValueError(f"Tile ({x}, {y}) is outside the {size}x{size} grid at zoom {z}.")
