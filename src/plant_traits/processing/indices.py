"""Spectral index layers computed directly from reflectance bands."""

from __future__ import annotations

import numpy as np

from plant_traits.processing.batch import SpectralRaster, TraitRaster
from plant_traits.utils.spectral import normalized_difference


def compute_ndvi(
    raster: SpectralRaster,
    nir_band: str = "B8",
    red_band: str = "B4",
) -> TraitRaster:
    """Compute NDVI from the near-infrared and red bands.

    Parameters
    ----------
    raster : SpectralRaster
        Reflectance raster containing both bands.
    nir_band : str, optional
        Near-infrared band name.
    red_band : str, optional
        Red band name.

    Returns
    -------
    TraitRaster
        Layer named ``NDVI``; masked pixels and zero denominators are NaN.
    """
    ndvi = normalized_difference(raster.band(nir_band), raster.band(red_band))
    valid_mask = raster.valid_mask & np.isfinite(ndvi)
    ndvi[~valid_mask] = np.nan
    return TraitRaster(
        values=ndvi,
        valid_mask=valid_mask,
        name="NDVI",
        transform=raster.transform,
        crs=raster.crs,
    )
