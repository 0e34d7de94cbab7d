"""Tiled evaluation of trait models over spectral rasters."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterable

import numpy as np
from affine import Affine
from loguru import logger

from plant_traits.config import DEFAULT_TILE_SIZE, TRAIT_FLOOR
from plant_traits.core.errors import BandMismatchError, EvaluationCancelled
from plant_traits.core.gpr import predict_pixels
from plant_traits.core.model_store import TraitModelStore
from plant_traits.core.postprocess import clamp_floor
from plant_traits.core.trait_model import TraitModel
from plant_traits.core.traits import TraitId
from plant_traits.utils.raster_io import boundary_mask
from plant_traits.utils.tiles import (
    TileWindow,
    filter_tile_windows_by_boundary,
    generate_tile_windows,
)

ProgressCallback = Callable[[int, int], None]
CancelCheck = Callable[[], bool]


@dataclass
class SpectralRaster:
    """Band-stacked reflectance raster.

    Parameters
    ----------
    data : numpy.ndarray
        Reflectance fractions with shape ``(D, H, W)``.
    band_names : tuple[str, ...]
        Band names in stack order, length ``D``.
    valid_mask : numpy.ndarray | None, optional
        Boolean ``(H, W)`` array, ``True`` for usable pixels. Defaults to all
        pixels usable.
    transform : affine.Affine, optional
        Pixel-to-geo transform.
    crs : Any, optional
        Coordinate reference system passed through to outputs.
    """

    data: np.ndarray
    band_names: tuple[str, ...]
    valid_mask: np.ndarray | None = None
    transform: Affine = field(default_factory=Affine.identity)
    crs: Any = None

    def __post_init__(self) -> None:
        self.data = np.asarray(self.data, dtype=np.float64)
        if self.data.ndim != 3:
            raise ValueError(f"data must have shape (D, H, W), got {self.data.shape}")
        self.band_names = tuple(str(band) for band in self.band_names)
        if len(self.band_names) != self.data.shape[0]:
            raise ValueError(
                f"{len(self.band_names)} band names for {self.data.shape[0]} bands"
            )
        if self.valid_mask is None:
            self.valid_mask = np.ones(self.shape, dtype=bool)
        self.valid_mask = np.asarray(self.valid_mask, dtype=bool)
        if self.valid_mask.shape != self.shape:
            raise ValueError(
                f"valid_mask shape {self.valid_mask.shape} != raster {self.shape}"
            )

    @property
    def shape(self) -> tuple[int, int]:
        return int(self.data.shape[1]), int(self.data.shape[2])

    @property
    def width(self) -> int:
        return self.shape[1]

    @property
    def height(self) -> int:
        return self.shape[0]

    def usable_mask(self) -> np.ndarray:
        """Mask of pixels that are unmasked and finite in every band."""
        return self.valid_mask & np.all(np.isfinite(self.data), axis=0)

    def band(self, name: str) -> np.ndarray:
        """Return one band as an ``(H, W)`` array."""
        try:
            index = self.band_names.index(name)
        except ValueError:
            raise KeyError(f"Band {name!r} not in {list(self.band_names)}") from None
        return self.data[index]


@dataclass
class TraitRaster:
    """Single-band trait raster aligned with its source grid."""

    values: np.ndarray
    valid_mask: np.ndarray
    name: str
    trait_id: TraitId | None = None
    transform: Affine = field(default_factory=Affine.identity)
    crs: Any = None
    nodata: float = float("nan")

    @property
    def shape(self) -> tuple[int, int]:
        return int(self.values.shape[0]), int(self.values.shape[1])

    def value_range(self) -> tuple[float, float] | None:
        """Return ``(min, max)`` over valid pixels, ``None`` when empty."""
        valid_values = self.values[self.valid_mask]
        if valid_values.size == 0:
            return None
        return float(np.min(valid_values)), float(np.max(valid_values))


@dataclass(frozen=True)
class TraitRequest:
    """Explicit evaluation settings for one trait raster.

    Parameters
    ----------
    trait_id : TraitId
        Trait to retrieve.
    tile_size : int, optional
        Tile side length in pixels.
    workers : int, optional
        Number of threads evaluating tiles.
    clamp : bool, optional
        Whether negative predictions are floored.
    floor : float, optional
        Floor value used when clamping.
    boundary_xy : numpy.ndarray | None, optional
        Region-of-interest polygon in geo coordinates, shape ``(N, 2)``.
        Tiles outside it are skipped.
    """

    trait_id: TraitId
    tile_size: int = DEFAULT_TILE_SIZE
    workers: int = 1
    clamp: bool = True
    floor: float = TRAIT_FLOOR
    boundary_xy: np.ndarray | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "trait_id", TraitId.parse(self.trait_id))
        if self.tile_size < 1:
            raise ValueError("tile_size must be >= 1")
        if self.workers < 1:
            raise ValueError("workers must be >= 1")

    @classmethod
    def coerce(cls, request: TraitRequest | TraitId | str) -> TraitRequest:
        if isinstance(request, cls):
            return request
        return cls(trait_id=request)


def check_band_order(band_names: Iterable[str], model: TraitModel) -> None:
    """Require raster bands to match the model band order position by position.

    Raises
    ------
    BandMismatchError
        Raised on any difference in count, names or order.
    """
    actual = tuple(band_names)
    if actual != model.band_order:
        raise BandMismatchError(model.band_order, actual)


def evaluate_tile(
    data: np.ndarray,
    usable: np.ndarray,
    model: TraitModel,
) -> np.ndarray:
    """Evaluate one tile and return an ``(h, w)`` array, NaN where unusable.

    Parameters
    ----------
    data : numpy.ndarray
        Tile reflectance with shape ``(D, h, w)``.
    usable : numpy.ndarray
        Boolean ``(h, w)`` mask of pixels to evaluate.
    model : TraitModel
        Fitted trait model.
    """
    tile_values = np.full(usable.shape, np.nan, dtype=np.float64)
    if not np.any(usable):
        return tile_values
    # (P, D)
    pixels = data[:, usable].T
    tile_values[usable] = predict_pixels(pixels, model)
    return tile_values


class RasterBatchProcessor:
    """Apply trait models to rasters tile by tile.

    Tiles cover disjoint parts of the output grid, so they can be computed in
    any order and on any number of threads without synchronization.
    """

    def __init__(self, store: TraitModelStore) -> None:
        self._store = store

    @property
    def store(self) -> TraitModelStore:
        return self._store

    def evaluate(
        self,
        raster: SpectralRaster,
        request: TraitRequest | TraitId | str,
        progress: ProgressCallback | None = None,
        should_cancel: CancelCheck | None = None,
    ) -> TraitRaster:
        """Evaluate one trait over a raster.

        Parameters
        ----------
        raster : SpectralRaster
            Reflectance raster whose bands follow the model band order.
        request : TraitRequest | TraitId | str
            Evaluation settings or a bare trait identifier.
        progress : Callable[[int, int], None], optional
            Called with ``(done_tiles, total_tiles)`` after each tile.
        should_cancel : Callable[[], bool], optional
            Checked between tiles; returning ``True`` aborts the call.

        Returns
        -------
        TraitRaster
            Trait values on the raster grid, NaN for masked pixels.

        Raises
        ------
        UnknownTraitError
            Raised when no model is registered for the trait.
        BandMismatchError
            Raised when raster bands differ from the model band order.
        NumericError
            Raised when the model yields non-finite values.
        EvaluationCancelled
            Raised when ``should_cancel`` requested an abort.
        """
        request = TraitRequest.coerce(request)
        model = self._store.get(request.trait_id)
        check_band_order(raster.band_names, model)

        windows = generate_tile_windows(raster.width, raster.height, request.tile_size)
        windows = filter_tile_windows_by_boundary(
            windows, raster.transform, request.boundary_xy
        )
        usable = raster.usable_mask()
        if request.boundary_xy is not None:
            usable &= boundary_mask(raster.shape, raster.transform, request.boundary_xy)
        values = np.full(raster.shape, np.nan, dtype=np.float64)
        output_mask = np.zeros(raster.shape, dtype=bool)
        logger.info(
            f"Evaluating {model.trait_id.value} on {raster.width}x{raster.height} "
            f"raster: {len(windows)} tiles, {request.workers} worker(s)"
        )

        def _run(window: TileWindow) -> TileWindow:
            rows, cols = window.slices
            tile_usable = usable[rows, cols]
            values[rows, cols] = evaluate_tile(
                raster.data[:, rows, cols], tile_usable, model
            )
            output_mask[rows, cols] = tile_usable
            logger.debug(
                f"Tile ({window.row}, {window.col}) "
                f"pixels={int(np.count_nonzero(tile_usable))}"
            )
            return window

        if request.workers == 1:
            self._run_sequential(windows, _run, progress, should_cancel)
        else:
            self._run_threaded(
                windows, _run, request.workers, progress, should_cancel
            )

        trait_raster = TraitRaster(
            values=values,
            valid_mask=output_mask,
            name=model.output_name,
            trait_id=model.trait_id,
            transform=raster.transform,
            crs=raster.crs,
        )
        if request.clamp:
            trait_raster = clamp_floor(trait_raster, request.floor)
        return trait_raster

    def evaluate_many(
        self,
        raster: SpectralRaster,
        trait_ids: Iterable[TraitId | str],
        request: TraitRequest | None = None,
        progress: ProgressCallback | None = None,
        should_cancel: CancelCheck | None = None,
    ) -> dict[TraitId, TraitRaster]:
        """Evaluate several traits that share one band order.

        Parameters
        ----------
        raster : SpectralRaster
            Reflectance raster shared by every trait.
        trait_ids : Iterable[TraitId | str]
            Traits to retrieve.
        request : TraitRequest | None, optional
            Settings template. Its ``trait_id`` is replaced for each trait.
        progress, should_cancel : optional
            Forwarded to :meth:`evaluate` for every trait.

        Returns
        -------
        dict[TraitId, TraitRaster]
            One layer per trait.
        """
        trait_list = [TraitId.parse(trait_id) for trait_id in trait_ids]
        band_order = self._store.check_band_consistency(trait_list)
        if raster.band_names != band_order:
            raise BandMismatchError(band_order, raster.band_names)
        template = request if request is not None else TraitRequest(trait_list[0])
        return {
            trait_id: self.evaluate(
                raster,
                replace(template, trait_id=trait_id),
                progress=progress,
                should_cancel=should_cancel,
            )
            for trait_id in trait_list
        }

    @staticmethod
    def _run_sequential(
        windows: list[TileWindow],
        run_tile: Callable[[TileWindow], TileWindow],
        progress: ProgressCallback | None,
        should_cancel: CancelCheck | None,
    ) -> None:
        total = len(windows)
        for idx, window in enumerate(windows):
            if should_cancel is not None and should_cancel():
                raise EvaluationCancelled(f"Cancelled after {idx}/{total} tiles")
            run_tile(window)
            if progress is not None:
                progress(idx + 1, total)

    @staticmethod
    def _run_threaded(
        windows: list[TileWindow],
        run_tile: Callable[[TileWindow], TileWindow],
        workers: int,
        progress: ProgressCallback | None,
        should_cancel: CancelCheck | None,
    ) -> None:
        total = len(windows)
        cancelled = False

        def _guarded(window: TileWindow) -> TileWindow | None:
            if should_cancel is not None and should_cancel():
                return None
            return run_tile(window)

        done = 0
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(_guarded, window) for window in windows]
            try:
                for future in as_completed(futures):
                    if future.result() is None:
                        cancelled = True
                        continue
                    done += 1
                    if progress is not None:
                        progress(done, total)
            except BaseException:
                # queued tiles are dropped, running ones finish
                executor.shutdown(wait=True, cancel_futures=True)
                raise
        if cancelled:
            raise EvaluationCancelled(f"Cancelled after {done}/{total} tiles")
