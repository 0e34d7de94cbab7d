"""Reflectance scaling and band-ratio helpers."""

from __future__ import annotations

import numpy as np

from plant_traits.config import REFLECTANCE_SCALE


def scale_reflectance(
    digital_numbers: np.ndarray,
    scale: float = REFLECTANCE_SCALE,
) -> np.ndarray:
    """Convert Sentinel-2 digital numbers to reflectance fractions.

    Parameters
    ----------
    digital_numbers : numpy.ndarray
        Raw band values, e.g. surface reflectance scaled by ``10000``.
    scale : float, optional
        Reflectance scale factor.

    Returns
    -------
    numpy.ndarray
        Float64 reflectance with the input shape.
    """
    if scale == 0:
        raise ValueError("scale must be nonzero")
    return np.asarray(digital_numbers, dtype=np.float64) / float(scale)


def normalized_difference(first: np.ndarray, second: np.ndarray) -> np.ndarray:
    """Compute ``(first - second) / (first + second)``.

    Pixels whose sum is zero or which are non-finite in either input come
    back as NaN.

    Examples
    --------
    >>> normalized_difference(np.array([0.5]), np.array([0.1])).round(3).tolist()
    [0.667]
    """
    first_array = np.asarray(first, dtype=np.float64)
    second_array = np.asarray(second, dtype=np.float64)
    total = first_array + second_array
    valid = np.isfinite(total) & (total != 0.0)
    result = np.full(np.broadcast(first_array, second_array).shape, np.nan)
    np.divide(first_array - second_array, total, out=result, where=valid)
    return result
