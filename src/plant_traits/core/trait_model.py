"""Fitted GPR trait model definition and decoding helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import numpy as np
from loguru import logger

from plant_traits.config import S2_TRAIT_BANDS
from plant_traits.core.errors import NumericError
from plant_traits.core.traits import TraitId

# Export keys written by the Earth Engine model bundles, mapped to field names.
_EXPORT_KEYS = {
    "veg_index": "output_name",
    "mx": "mean_norm",
    "sx": "std_norm",
    "hyp_ell": "length_scale",
    "hyp_sig": "signal_variance",
    "X_train": "train_design",
    "XDX_pre_calc": "train_self_energy",
    "alpha_coefficients": "dual_coefficients",
    "mean_model": "bias",
}


def _frozen_array(values: Any, name: str, ndim: int) -> np.ndarray:
    """Copy values into a read-only float64 array of the given rank."""
    array = np.array(values, dtype=np.float64)
    if ndim == 1:
        array = array.reshape(-1)
    if array.ndim != ndim:
        raise ValueError(f"{name} must be {ndim}D, got shape {array.shape}")
    if not np.all(np.isfinite(array)):
        raise NumericError(f"{name} contains non-finite values")
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class TraitModel:
    """Pre-fitted parameters of one squared-exponential GPR trait model.

    Parameters
    ----------
    trait_id : TraitId
        Trait the model predicts.
    band_order : tuple[str, ...]
        Band names, in the order of the spectral vector, length ``D``.
    mean_norm : numpy.ndarray
        Per-band centering offset with shape ``(D,)``.
    std_norm : numpy.ndarray
        Per-band nonzero scale with shape ``(D,)``.
    length_scale : numpy.ndarray
        Per-band kernel relevance weight with shape ``(D,)``.
    signal_variance : float
        Kernel amplitude.
    train_design : numpy.ndarray
        Normalized training inputs with shape ``(N, D)``.
    train_self_energy : numpy.ndarray
        Precomputed per-row self term ``0.5 * sum(x**2 * length_scale)`` with
        shape ``(N,)``. The export key ``XDX_pre_calc`` holds twice this value.
    dual_coefficients : numpy.ndarray
        Dual weights with shape ``(N,)``.
    bias : float
        Additive offset applied after the kernel combination.
    output_name : str
        Name of the produced band.
    """

    trait_id: TraitId
    band_order: tuple[str, ...]
    mean_norm: np.ndarray
    std_norm: np.ndarray
    length_scale: np.ndarray
    signal_variance: float
    train_design: np.ndarray
    train_self_energy: np.ndarray
    dual_coefficients: np.ndarray
    bias: float
    output_name: str = ""

    def __post_init__(self) -> None:
        set_field = object.__setattr__
        set_field(self, "trait_id", TraitId.parse(self.trait_id))
        set_field(self, "band_order", tuple(str(band) for band in self.band_order))
        for name in ("mean_norm", "std_norm", "length_scale"):
            set_field(self, name, _frozen_array(getattr(self, name), name, 1))
        set_field(
            self, "train_design", _frozen_array(self.train_design, "train_design", 2)
        )
        for name in ("train_self_energy", "dual_coefficients"):
            set_field(self, name, _frozen_array(getattr(self, name), name, 1))
        for name in ("signal_variance", "bias"):
            value = float(getattr(self, name))
            if not np.isfinite(value):
                raise NumericError(f"{name} must be finite, got {value}")
            set_field(self, name, value)
        if not self.output_name:
            set_field(self, "output_name", self.trait_id.value)
        self._validate_shapes()

    def _validate_shapes(self) -> None:
        """Check band-dimension and training-row invariants."""
        band_count = len(self.band_order)
        if band_count == 0:
            raise ValueError("band_order must not be empty")
        if len(set(self.band_order)) != band_count:
            raise ValueError(f"band_order has duplicate names: {self.band_order}")
        for name in ("mean_norm", "std_norm", "length_scale"):
            size = getattr(self, name).shape[0]
            if size != band_count:
                raise ValueError(
                    f"{name} has {size} entries, expected {band_count} bands"
                )
        if np.any(self.std_norm == 0.0):
            zero_bands = [
                band
                for band, scale in zip(self.band_order, self.std_norm)
                if scale == 0.0
            ]
            raise NumericError(f"std_norm is zero for bands {zero_bands}")
        row_count, col_count = self.train_design.shape
        if col_count != band_count:
            raise ValueError(
                f"train_design has {col_count} columns, expected {band_count}"
            )
        for name in ("train_self_energy", "dual_coefficients"):
            size = getattr(self, name).shape[0]
            if size != row_count:
                raise ValueError(
                    f"{name} has {size} entries, expected {row_count} training rows"
                )

    @property
    def band_count(self) -> int:
        return len(self.band_order)

    @property
    def train_count(self) -> int:
        return int(self.train_design.shape[0])

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        trait_id: TraitId | str | None = None,
    ) -> TraitModel:
        """Build a model from field names or Earth Engine export keys.

        Parameters
        ----------
        data : Mapping[str, Any]
            Model parameters. Keys may be the dataclass field names or the
            export keys ``mx``, ``sx``, ``hyp_ell``, ``hyp_sig``, ``X_train``,
            ``XDX_pre_calc``, ``alpha_coefficients``, ``mean_model`` and
            ``veg_index``. ``XDX_pre_calc`` is halved on the way in.
        trait_id : TraitId | str | None, optional
            Trait identifier when ``data`` carries none.

        Returns
        -------
        TraitModel
            Validated, read-only model.
        """
        fields: dict[str, Any] = {}
        for key, value in data.items():
            if key == "XDX_pre_calc":
                value = 0.5 * np.asarray(value, dtype=np.float64)
            fields[_EXPORT_KEYS.get(key, key)] = value
        if trait_id is not None:
            fields["trait_id"] = trait_id
        if "trait_id" not in fields:
            if not fields.get("output_name"):
                raise ValueError("Model data has neither trait_id nor veg_index")
            fields["trait_id"] = fields["output_name"]
        if "band_order" not in fields:
            fields["band_order"] = _default_band_order(fields)
        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(fields) - known)
        if unknown:
            logger.debug(f"Ignoring unknown model keys: {unknown}")
        return cls(**{key: value for key, value in fields.items() if key in known})

    @classmethod
    def from_json(
        cls,
        path: str | Path,
        trait_id: TraitId | str | None = None,
    ) -> TraitModel:
        """Load one model from a JSON document."""
        path_obj = Path(path)
        with open(path_obj, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Model file must hold a JSON object: {path_obj}")
        return cls.from_dict(data, trait_id=trait_id)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible field names."""
        return {
            "trait_id": self.trait_id.value,
            "band_order": list(self.band_order),
            "mean_norm": self.mean_norm.tolist(),
            "std_norm": self.std_norm.tolist(),
            "length_scale": self.length_scale.tolist(),
            "signal_variance": self.signal_variance,
            "train_design": self.train_design.tolist(),
            "train_self_energy": self.train_self_energy.tolist(),
            "dual_coefficients": self.dual_coefficients.tolist(),
            "bias": self.bias,
            "output_name": self.output_name,
        }


def _default_band_order(fields: Mapping[str, Any]) -> tuple[str, ...]:
    """Assume the fit-time Sentinel-2 order when a bundle omits band names."""
    band_count = int(np.asarray(fields.get("mean_norm", [])).reshape(-1).shape[0])
    if band_count != len(S2_TRAIT_BANDS):
        raise ValueError(
            f"Model data has no band_order and {band_count} bands; "
            f"cannot assume the {len(S2_TRAIT_BANDS)}-band Sentinel-2 order"
        )
    logger.warning(
        f"Model {fields.get('trait_id')} has no band_order, "
        f"assuming {list(S2_TRAIT_BANDS)}"
    )
    return S2_TRAIT_BANDS
