"""Tile window helpers for bounded-memory raster evaluation."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from affine import Affine
from shapely.geometry import Polygon


@dataclass(frozen=True)
class TileWindow:
    """Single tile window in pixel space.

    Parameters
    ----------
    row : int
        Grid row index.
    col : int
        Grid column index.
    x0, y0, x1, y1 : int
        Pixel bounds in ``[x0, y0, x1, y1]`` format, end exclusive.
    """

    row: int
    col: int
    x0: int
    y0: int
    x1: int
    y1: int

    @property
    def width(self) -> int:
        return self.x1 - self.x0

    @property
    def height(self) -> int:
        return self.y1 - self.y0

    @property
    def slices(self) -> tuple[slice, slice]:
        """Row/column slices selecting the tile from an ``(H, W)`` array."""
        return slice(self.y0, self.y1), slice(self.x0, self.x1)


def _axis_starts(full_size: int, tile_size: int) -> list[int]:
    """Build non-overlapping axis start offsets."""
    return list(range(0, full_size, tile_size))


def generate_tile_windows(
    image_width: int,
    image_height: int,
    tile_size: int,
) -> list[TileWindow]:
    """Partition a raster grid into disjoint square tiles.

    Parameters
    ----------
    image_width : int
        Full raster width in pixels.
    image_height : int
        Full raster height in pixels.
    tile_size : int
        Side length of each tile. Edge tiles are cropped to the raster.

    Returns
    -------
    list[TileWindow]
        Windows in row-major order covering every pixel exactly once.
    """
    if tile_size < 1:
        raise ValueError("tile_size must be >= 1")
    if image_width < 0 or image_height < 0:
        raise ValueError("image size must be non-negative")
    windows: list[TileWindow] = []
    for row, y0 in enumerate(_axis_starts(image_height, tile_size)):
        for col, x0 in enumerate(_axis_starts(image_width, tile_size)):
            windows.append(
                TileWindow(
                    row=row,
                    col=col,
                    x0=x0,
                    y0=y0,
                    x1=min(image_width, x0 + tile_size),
                    y1=min(image_height, y0 + tile_size),
                )
            )
    return windows


def _affine_xy(
    transform: Affine, x_value: float, y_value: float
) -> tuple[float, float]:
    """Apply affine transform and return x/y as floats."""
    point_xy = transform * (x_value, y_value)
    return float(point_xy[0]), float(point_xy[1])


def _window_to_geo_polygon(window: TileWindow, transform: Affine) -> Polygon:
    """Convert one pixel window to geo polygon."""
    corners_px = [
        (window.x0, window.y0),
        (window.x1, window.y0),
        (window.x1, window.y1),
        (window.x0, window.y1),
    ]
    return Polygon(
        [_affine_xy(transform, float(x), float(y)) for x, y in corners_px]
    )


def filter_tile_windows_by_boundary(
    windows: list[TileWindow],
    transform: Affine,
    boundary_xy: np.ndarray | None,
) -> list[TileWindow]:
    """Keep only tiles intersecting a region-of-interest polygon.

    Parameters
    ----------
    windows : list[TileWindow]
        Input tile windows.
    transform : affine.Affine
        Pixel-to-geo transform.
    boundary_xy : numpy.ndarray | None
        Boundary coordinates with shape ``(N, 2)``. ``None`` keeps all tiles.
    """
    if boundary_xy is None or np.asarray(boundary_xy).shape[0] < 3:
        return windows
    boundary_poly = Polygon(np.asarray(boundary_xy, dtype=float))
    if boundary_poly.is_empty:
        return windows
    return [
        window
        for window in windows
        if _window_to_geo_polygon(window, transform).intersects(boundary_poly)
    ]
