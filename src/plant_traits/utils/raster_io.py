"""GeoTIFF and boundary I/O helpers for trait retrieval."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Sequence

import geopandas as gpd
import numpy as np
import rasterio
from affine import Affine
from rasterio.features import geometry_mask
from shapely.geometry import Polygon, mapping

from plant_traits.utils.spectral import scale_reflectance

if TYPE_CHECKING:
    from plant_traits.processing.batch import SpectralRaster, TraitRaster


def load_boundary_xy(shp_path: str | Path) -> np.ndarray:
    """Load a one-polygon boundary file as exterior coordinates.

    Parameters
    ----------
    shp_path : str | Path
        Boundary vector file readable by GeoPandas.

    Returns
    -------
    numpy.ndarray
        Exterior ring coordinates with shape ``(N, 2)``.

    Raises
    ------
    ValueError
        Raised when the file holds anything but one polygon.
    """
    boundary_gdf = gpd.read_file(Path(shp_path))
    if len(boundary_gdf) != 1:
        raise ValueError(
            f"Boundary must contain exactly one polygon, got {len(boundary_gdf)}"
        )
    geom = boundary_gdf.geometry.iloc[0]
    if geom.geom_type != "Polygon":
        raise ValueError(f"Boundary geometry must be a Polygon, got {geom.geom_type}")
    return np.asarray(geom.exterior.coords, dtype=float)[:, :2]


def boundary_mask(
    shape: tuple[int, int],
    transform: Affine,
    boundary_xy: np.ndarray,
) -> np.ndarray:
    """Rasterize a boundary polygon into an inside mask.

    Parameters
    ----------
    shape : tuple[int, int]
        Output ``(H, W)``.
    transform : affine.Affine
        Pixel-to-geo transform of the grid.
    boundary_xy : numpy.ndarray
        Polygon coordinates with shape ``(N, 2)``.

    Returns
    -------
    numpy.ndarray
        Boolean ``(H, W)`` array, ``True`` for pixel centers inside.
    """
    boundary_array = np.asarray(boundary_xy, dtype=float)
    if boundary_array.ndim != 2 or boundary_array.shape[0] < 3:
        raise ValueError("boundary_xy must have shape (N, 2) with N >= 3")
    if shape[0] == 0 or shape[1] == 0:
        return np.zeros(shape, dtype=bool)
    return geometry_mask(
        [mapping(Polygon(boundary_array))],
        out_shape=shape,
        transform=transform,
        invert=True,
    )


def mask_outside_boundary(
    raster: SpectralRaster,
    boundary_xy: np.ndarray,
) -> SpectralRaster:
    """Return a copy of ``raster`` with pixels outside the boundary masked."""
    inside = boundary_mask(raster.shape, raster.transform, boundary_xy)
    return type(raster)(
        data=raster.data,
        band_names=raster.band_names,
        valid_mask=raster.valid_mask & inside,
        transform=raster.transform,
        crs=raster.crs,
    )


def resolve_band_names(
    descriptions: Sequence[str | None],
    band_names: Sequence[str] | None = None,
) -> tuple[str, ...]:
    """Pick band names from an explicit list or the dataset descriptions."""
    if band_names is not None:
        names = tuple(str(name) for name in band_names)
        if len(names) != len(descriptions):
            raise ValueError(
                f"{len(names)} band names given for {len(descriptions)} bands"
            )
        return names
    if any(not desc for desc in descriptions):
        raise ValueError(
            "Dataset bands have no descriptions; pass band_names explicitly"
        )
    return tuple(str(desc) for desc in descriptions)


def read_spectral_raster(
    path: str | Path,
    band_names: Sequence[str] | None = None,
    reflectance_scale: float | None = None,
) -> SpectralRaster:
    """Read a multiband GeoTIFF into a ``SpectralRaster``.

    Parameters
    ----------
    path : str | Path
        Input raster path.
    band_names : Sequence[str] | None, optional
        Band names in file order. Defaults to the band descriptions.
    reflectance_scale : float | None, optional
        Divide values by this factor, e.g. ``10000`` for Sentinel-2 DN.

    Returns
    -------
    SpectralRaster
        Raster with the dataset mask folded into ``valid_mask``.
    """
    from plant_traits.processing.batch import SpectralRaster

    with rasterio.open(Path(path)) as dataset:
        names = resolve_band_names(dataset.descriptions, band_names)
        data = dataset.read().astype(np.float64)
        valid_mask = np.all(dataset.read_masks() > 0, axis=0)
        transform = dataset.transform
        crs = dataset.crs
    if reflectance_scale is not None:
        data = scale_reflectance(data, reflectance_scale)
    return SpectralRaster(
        data=data,
        band_names=names,
        valid_mask=valid_mask,
        transform=transform,
        crs=crs,
    )


def trait_profile(
    width: int,
    height: int,
    transform: Affine,
    crs: object,
) -> dict:
    """Build a single-band float32 GTiff profile with NaN nodata."""
    return {
        "driver": "GTiff",
        "height": int(height),
        "width": int(width),
        "count": 1,
        "dtype": "float32",
        "transform": transform,
        "crs": crs,
        "nodata": float("nan"),
    }


def write_trait_raster(trait_raster: TraitRaster, path: str | Path) -> Path:
    """Write a trait raster as a single-band float32 GeoTIFF.

    Parameters
    ----------
    trait_raster : TraitRaster
        Values to write. Invalid pixels are stored as NaN.
    path : str | Path
        Output file path.

    Returns
    -------
    pathlib.Path
        Written file path.
    """
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    height, width = trait_raster.shape
    values = np.where(trait_raster.valid_mask, trait_raster.values, np.nan)
    profile = trait_profile(width, height, trait_raster.transform, trait_raster.crs)
    with rasterio.open(out_path, "w", **profile) as dataset:
        dataset.write(values.astype(np.float32), 1)
        dataset.set_band_description(1, trait_raster.name)
    return out_path
