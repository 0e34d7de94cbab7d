"""Tests for GeoTIFF and boundary I/O helpers."""

from pathlib import Path

import geopandas as gpd
import numpy as np
import pytest
import rasterio
from affine import Affine
from shapely.geometry import Polygon

from plant_traits.processing.batch import SpectralRaster, TraitRaster
from plant_traits.utils.raster_io import (
    boundary_mask,
    load_boundary_xy,
    mask_outside_boundary,
    read_spectral_raster,
    write_trait_raster,
)

TRANSFORM = Affine(10, 0, 500000, 0, -10, 4200000)


def _write_multiband(
    path: Path,
    data: np.ndarray,
    descriptions: tuple[str, ...] | None,
    nodata: float | None = None,
) -> None:
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=data.shape[1],
        width=data.shape[2],
        count=data.shape[0],
        dtype=data.dtype,
        transform=TRANSFORM,
        crs="EPSG:32610",
        nodata=nodata,
    ) as dataset:
        dataset.write(data)
        if descriptions is not None:
            for idx, name in enumerate(descriptions, start=1):
                dataset.set_band_description(idx, name)


def test_read_spectral_raster_uses_descriptions_and_mask(tmp_path: Path) -> None:
    """Band names come from descriptions and nodata pixels are masked."""
    data = np.full((2, 4, 5), 2500, dtype=np.uint16)
    data[:, 0, 0] = 0
    tif_path = tmp_path / "s2.tif"
    _write_multiband(tif_path, data, ("B4", "B8"), nodata=0)

    raster = read_spectral_raster(tif_path, reflectance_scale=10000)

    assert raster.band_names == ("B4", "B8")
    assert raster.shape == (4, 5)
    assert not raster.valid_mask[0, 0]
    assert raster.valid_mask.sum() == 19
    assert raster.data[0, 1, 1] == pytest.approx(0.25)
    assert raster.transform == TRANSFORM


def test_read_spectral_raster_requires_band_names(tmp_path: Path) -> None:
    """Undescribed bands need explicit names of matching length."""
    tif_path = tmp_path / "plain.tif"
    _write_multiband(tif_path, np.ones((2, 3, 3), dtype=np.float32), None)

    with pytest.raises(ValueError):
        read_spectral_raster(tif_path)
    with pytest.raises(ValueError):
        read_spectral_raster(tif_path, band_names=("B4",))
    raster = read_spectral_raster(tif_path, band_names=("B4", "B8"))
    assert raster.band_names == ("B4", "B8")


def test_write_trait_raster_stores_nan_nodata(tmp_path: Path) -> None:
    """Trait output is single-band float32 with NaN for masked pixels."""
    trait_raster = TraitRaster(
        values=np.array([[1.5, 2.0], [0.25, 9.0]]),
        valid_mask=np.array([[True, True], [True, False]]),
        name="laiCab",
        transform=TRANSFORM,
        crs="EPSG:32610",
    )

    out_path = write_trait_raster(trait_raster, tmp_path / "out" / "cab.tif")

    with rasterio.open(out_path) as dataset:
        assert dataset.count == 1
        assert dataset.dtypes[0] == "float32"
        assert dataset.descriptions[0] == "laiCab"
        values = dataset.read(1)
    assert values[0, 0] == pytest.approx(1.5)
    assert np.isnan(values[1, 1])


def test_boundary_mask_and_masking(tmp_path: Path) -> None:
    """Pixels whose centers fall outside the polygon are masked."""
    transform = Affine(1, 0, 0, 0, -1, 4)
    raster = SpectralRaster(
        data=np.ones((1, 4, 4)), band_names=("B4",), transform=transform
    )
    boundary_xy = np.array([[0.0, 2.0], [4.0, 2.0], [4.0, 4.0], [0.0, 4.0]])

    inside = boundary_mask(raster.shape, transform, boundary_xy)
    masked = mask_outside_boundary(raster, boundary_xy)

    assert inside[:2].all()
    assert not inside[2:].any()
    assert np.array_equal(masked.valid_mask, inside)
    with pytest.raises(ValueError):
        boundary_mask((4, 4), transform, np.array([[0.0, 0.0], [1.0, 1.0]]))


def test_load_boundary_xy_reads_single_polygon(tmp_path: Path) -> None:
    """Boundary files must contain exactly one polygon."""
    poly = Polygon([(0, 0), (10, 0), (10, 10), (0, 10), (0, 0)])
    shp_path = tmp_path / "roi.shp"
    gpd.GeoDataFrame({"id": [1]}, geometry=[poly], crs="EPSG:3857").to_file(shp_path)

    boundary_xy = load_boundary_xy(shp_path)

    assert boundary_xy.shape == (5, 2)

    two_path = tmp_path / "two.shp"
    gpd.GeoDataFrame(
        {"id": [1, 2]}, geometry=[poly, poly], crs="EPSG:3857"
    ).to_file(two_path)
    with pytest.raises(ValueError):
        load_boundary_xy(two_path)
