"""Tests for floor clamping of trait predictions."""

import numpy as np
import pytest

from plant_traits.config import TRAIT_FLOOR
from plant_traits.core.postprocess import clamp_floor
from plant_traits.processing.batch import TraitRaster


def test_clamp_floor_replaces_strictly_negative_values() -> None:
    """Negative values become exactly 1e-5; zero and positives pass through."""
    values = np.array([-3.0, -1e-12, 0.0, 2.5])

    clamped = clamp_floor(values)

    assert clamped[0] == 1e-5
    assert clamped[1] == 1e-5
    assert clamped[2] == 0.0
    assert clamped[3] == 2.5
    assert values[0] == -3.0


def test_clamp_floor_keeps_nodata_on_trait_raster() -> None:
    """Masked pixels stay no-data after clamping."""
    trait_raster = TraitRaster(
        values=np.array([[-1.0, np.nan], [0.0, 4.0]]),
        valid_mask=np.array([[True, False], [True, True]]),
        name="LAI",
    )

    clamped = clamp_floor(trait_raster)

    assert clamped is not trait_raster
    assert clamped.values[0, 0] == TRAIT_FLOOR
    assert np.isnan(clamped.values[0, 1])
    assert clamped.values[1, 0] == 0.0
    assert clamped.values[1, 1] == 4.0
    assert np.array_equal(clamped.valid_mask, trait_raster.valid_mask)


def test_clamp_floor_custom_floor_and_validation() -> None:
    """Floor is configurable but must be positive."""
    assert clamp_floor(np.array([-1.0]), floor=0.01)[0] == 0.01
    with pytest.raises(ValueError):
        clamp_floor(np.array([-1.0]), floor=0.0)
