"""Window-by-window trait evaluation between GeoTIFF files."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import numpy as np
import rasterio
from loguru import logger
from rasterio.windows import Window

from plant_traits.core.errors import EvaluationCancelled
from plant_traits.core.model_store import TraitModelStore
from plant_traits.core.postprocess import clamp_floor
from plant_traits.core.traits import TraitId
from plant_traits.processing.batch import (
    CancelCheck,
    ProgressCallback,
    TraitRequest,
    check_band_order,
    evaluate_tile,
)
from plant_traits.utils.raster_io import (
    boundary_mask,
    resolve_band_names,
    trait_profile,
)
from plant_traits.utils.spectral import scale_reflectance
from plant_traits.utils.tiles import (
    TileWindow,
    filter_tile_windows_by_boundary,
    generate_tile_windows,
)


def _raster_window(window: TileWindow) -> Window:
    """Convert a tile window to a rasterio window."""
    return Window(window.x0, window.y0, window.width, window.height)


def _read_tile(
    dataset, window: TileWindow, reflectance_scale: float | None
) -> tuple[np.ndarray, np.ndarray]:
    """Read one tile and its usable-pixel mask."""
    raster_window = _raster_window(window)
    data = dataset.read(window=raster_window).astype(np.float64)
    if reflectance_scale is not None:
        data = scale_reflectance(data, reflectance_scale)
    mask = np.all(dataset.read_masks(window=raster_window) > 0, axis=0)
    usable = mask & np.all(np.isfinite(data), axis=0)
    return data, usable


def evaluate_geotiff(
    src_path: str | Path,
    dst_path: str | Path,
    request: TraitRequest | TraitId | str,
    store: TraitModelStore,
    band_names: Sequence[str] | None = None,
    reflectance_scale: float | None = None,
    progress: ProgressCallback | None = None,
    should_cancel: CancelCheck | None = None,
) -> Path:
    """Evaluate a trait from a multiband GeoTIFF into a single-band GeoTIFF.

    Only one tile of input and output is held in memory at a time.

    Parameters
    ----------
    src_path : str | Path
        Multiband reflectance raster.
    dst_path : str | Path
        Output trait raster path.
    request : TraitRequest | TraitId | str
        Evaluation settings or a bare trait identifier.
    store : TraitModelStore
        Source of the fitted model.
    band_names : Sequence[str] | None, optional
        Band names in file order. Defaults to the band descriptions.
    reflectance_scale : float | None, optional
        Divide input values by this factor before evaluation.
    progress : Callable[[int, int], None], optional
        Called with ``(done_tiles, total_tiles)``.
    should_cancel : Callable[[], bool], optional
        Checked between tiles.

    Returns
    -------
    pathlib.Path
        Written output path.
    """
    request = TraitRequest.coerce(request)
    model = store.get(request.trait_id)
    out_path = Path(dst_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    with rasterio.open(Path(src_path)) as src:
        check_band_order(resolve_band_names(src.descriptions, band_names), model)
        windows = generate_tile_windows(src.width, src.height, request.tile_size)
        kept = set(
            filter_tile_windows_by_boundary(
                windows, src.transform, request.boundary_xy
            )
        )
        profile = trait_profile(src.width, src.height, src.transform, src.crs)
        logger.info(
            f"Evaluating {model.trait_id.value}: {src_path} -> {out_path} "
            f"({len(kept)}/{len(windows)} tiles)"
        )
        with rasterio.open(out_path, "w", **profile) as dst:
            dst.set_band_description(1, model.output_name)
            total = len(windows)
            for idx, window in enumerate(windows):
                if should_cancel is not None and should_cancel():
                    raise EvaluationCancelled(f"Cancelled after {idx}/{total} tiles")
                values = np.full((window.height, window.width), np.nan)
                if window in kept:
                    data, usable = _read_tile(src, window, reflectance_scale)
                    if request.boundary_xy is not None:
                        usable &= boundary_mask(
                            usable.shape,
                            src.window_transform(_raster_window(window)),
                            request.boundary_xy,
                        )
                    values = evaluate_tile(data, usable, model)
                    if request.clamp:
                        values = clamp_floor(values, request.floor)
                dst.write(
                    values.astype(np.float32),
                    1,
                    window=_raster_window(window),
                )
                if progress is not None:
                    progress(idx + 1, total)
    return out_path
