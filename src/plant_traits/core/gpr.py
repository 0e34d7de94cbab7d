"""GPR posterior-mean evaluation in dual (kernel expansion) form.

The fitted model stores the training inputs, their precomputed self terms and
the dual coefficients, so one prediction costs ``O(N * D)`` and needs no
matrix inversion.
"""

from __future__ import annotations

import numpy as np

from plant_traits.core.errors import BandMismatchError, NumericError
from plant_traits.core.trait_model import TraitModel


def _check_scale(model: TraitModel) -> None:
    """Guard against zero normalization scales."""
    if np.any(model.std_norm == 0.0):
        raise NumericError(f"std_norm of {model.trait_id.value} contains zeros")


def predict(pixel: np.ndarray, model: TraitModel) -> float:
    """Predict one trait value from one spectral pixel vector.

    Parameters
    ----------
    pixel : numpy.ndarray
        Reflectance values with shape ``(D,)`` ordered as ``model.band_order``.
    model : TraitModel
        Fitted trait model.

    Returns
    -------
    float
        Posterior mean of the trait.

    Raises
    ------
    BandMismatchError
        Raised when the pixel length differs from the model band count.
    NumericError
        Raised for zero scales or a non-finite prediction.

    Examples
    --------
    >>> float(predict(np.zeros(2), model))  # doctest: +SKIP
    1.0
    """
    pixel_array = np.asarray(pixel, dtype=np.float64).reshape(-1)
    if pixel_array.shape[0] != model.band_count:
        raise BandMismatchError(
            model.band_order,
            (),
            f"Pixel has {pixel_array.shape[0]} values, "
            f"model {model.trait_id.value} expects {model.band_count}",
        )
    _check_scale(model)
    z = (pixel_array - model.mean_norm) / model.std_norm
    zw = z * model.length_scale
    self_energy = -0.5 * np.dot(zw, z)
    cross = model.train_design @ zw
    log_k = cross - model.train_self_energy
    # k * exp(self_energy) as a single exponent
    with np.errstate(over="ignore", under="ignore"):
        k_amp = np.exp(log_k + self_energy)
    result = float(np.dot(k_amp, model.dual_coefficients)) * model.signal_variance
    result += model.bias
    if not np.isfinite(result):
        raise NumericError(
            f"Non-finite prediction for {model.trait_id.value}: {result}"
        )
    return result


def predict_pixels(pixels: np.ndarray, model: TraitModel) -> np.ndarray:
    """Predict trait values for a batch of pixels at once.

    Parameters
    ----------
    pixels : numpy.ndarray
        Reflectance matrix with shape ``(P, D)``.
    model : TraitModel
        Fitted trait model.

    Returns
    -------
    numpy.ndarray
        Float64 predictions with shape ``(P,)``.
    """
    pixel_array = np.asarray(pixels, dtype=np.float64)
    if pixel_array.ndim != 2 or pixel_array.shape[1] != model.band_count:
        raise BandMismatchError(
            model.band_order,
            (),
            f"Pixel matrix has shape {pixel_array.shape}, "
            f"model {model.trait_id.value} expects (P, {model.band_count})",
        )
    if pixel_array.shape[0] == 0:
        return np.zeros((0,), dtype=np.float64)
    _check_scale(model)
    z = (pixel_array - model.mean_norm) / model.std_norm
    zw = z * model.length_scale
    # (P,)
    self_energy = -0.5 * np.einsum("pd,pd->p", zw, z)
    # (P, N)
    cross = zw @ model.train_design.T
    log_k = cross - model.train_self_energy
    with np.errstate(over="ignore", under="ignore"):
        k_amp = np.exp(log_k + self_energy[:, None])
    result = (k_amp @ model.dual_coefficients) * model.signal_variance + model.bias
    bad_count = int(np.count_nonzero(~np.isfinite(result)))
    if bad_count:
        raise NumericError(
            f"{bad_count} non-finite predictions for {model.trait_id.value}"
        )
    return result
