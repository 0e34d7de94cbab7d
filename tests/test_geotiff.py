"""Tests for window-by-window GeoTIFF evaluation."""

from pathlib import Path

import numpy as np
import pytest
import rasterio
from affine import Affine

from plant_traits.core.errors import BandMismatchError, EvaluationCancelled
from plant_traits.core.model_store import TraitModelStore
from plant_traits.processing.batch import RasterBatchProcessor, TraitRequest
from plant_traits.processing.geotiff import evaluate_geotiff
from plant_traits.utils.raster_io import read_spectral_raster

BANDS = ("B4", "B8", "B11")


def _write_input(path: Path, band_names=BANDS) -> np.ndarray:
    rng = np.random.default_rng(11)
    data = rng.integers(200, 4500, size=(len(band_names), 12, 10)).astype(np.uint16)
    data[:, 0, 0] = 0
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=12,
        width=10,
        count=len(band_names),
        dtype=data.dtype,
        transform=Affine(10, 0, 0, 0, -10, 120),
        crs="EPSG:32633",
        nodata=0,
    ) as dataset:
        dataset.write(data)
        for idx, name in enumerate(band_names, start=1):
            dataset.set_band_description(idx, name)
    return data


def test_geotiff_evaluation_matches_in_memory(tmp_path: Path, small_model) -> None:
    """Windowed file evaluation equals in-memory raster evaluation."""
    src_path = tmp_path / "s2.tif"
    dst_path = tmp_path / "lai.tif"
    _write_input(src_path)
    store = TraitModelStore([small_model])
    request = TraitRequest("LAI", tile_size=4)
    progress: list[tuple[int, int]] = []

    evaluate_geotiff(
        src_path,
        dst_path,
        request,
        store,
        reflectance_scale=10000,
        progress=lambda done, total: progress.append((done, total)),
    )

    raster = read_spectral_raster(src_path, reflectance_scale=10000)
    expected = RasterBatchProcessor(store).evaluate(raster, request)
    with rasterio.open(dst_path) as dataset:
        written = dataset.read(1)
        assert dataset.crs == "EPSG:32633"
        assert dataset.descriptions[0] == "LAI"
    assert np.isnan(written[0, 0])
    assert np.allclose(written, expected.values.astype(np.float32), equal_nan=True)
    assert progress[-1] == (9, 9)


def test_geotiff_evaluation_rejects_band_mismatch(tmp_path: Path, small_model) -> None:
    """Files whose band descriptions differ from the model are rejected."""
    src_path = tmp_path / "swapped.tif"
    _write_input(src_path, band_names=("B8", "B4", "B11"))
    store = TraitModelStore([small_model])

    with pytest.raises(BandMismatchError):
        evaluate_geotiff(src_path, tmp_path / "out.tif", "LAI", store)


def test_geotiff_evaluation_can_be_cancelled(tmp_path: Path, small_model) -> None:
    """Cancellation is honoured at the first tile boundary."""
    src_path = tmp_path / "s2.tif"
    _write_input(src_path)
    store = TraitModelStore([small_model])

    with pytest.raises(EvaluationCancelled):
        evaluate_geotiff(
            src_path,
            tmp_path / "out.tif",
            TraitRequest("LAI", tile_size=4),
            store,
            should_cancel=lambda: True,
        )
