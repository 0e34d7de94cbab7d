"""Utility package exports for plant-traits."""

from plant_traits.utils.raster_io import (
    boundary_mask,
    load_boundary_xy,
    mask_outside_boundary,
    read_spectral_raster,
    write_trait_raster,
)
from plant_traits.utils.spectral import normalized_difference, scale_reflectance
from plant_traits.utils.tiles import (
    TileWindow,
    filter_tile_windows_by_boundary,
    generate_tile_windows,
)

__all__ = [
    "TileWindow",
    "boundary_mask",
    "filter_tile_windows_by_boundary",
    "generate_tile_windows",
    "load_boundary_xy",
    "mask_outside_boundary",
    "normalized_difference",
    "read_spectral_raster",
    "scale_reflectance",
    "write_trait_raster",
]
