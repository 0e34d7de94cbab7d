"""Pytest bootstrap helpers and shared trait model fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest


def _append_src_root() -> None:
    """Ensure the ``src`` directory is present in import path."""
    src_root = Path(__file__).resolve().parents[1] / "src"
    src_root_text = str(src_root)
    if src_root_text in sys.path:
        return
    sys.path.insert(0, src_root_text)


_append_src_root()

from plant_traits.core.trait_model import TraitModel  # noqa: E402
from plant_traits.core.traits import TraitId  # noqa: E402


def build_model(
    trait_id: TraitId | str = TraitId.LAI,
    band_order: tuple[str, ...] = ("B4", "B8", "B11"),
    train_count: int = 6,
    bias: float = 0.5,
    seed: int = 0,
) -> TraitModel:
    """Build a small, numerically sane squared-exponential trait model."""
    rng = np.random.default_rng(seed)
    band_count = len(band_order)
    train_design = rng.normal(0.0, 1.0, size=(train_count, band_count))
    length_scale = rng.uniform(0.2, 1.0, size=band_count)
    return TraitModel(
        trait_id=trait_id,
        band_order=band_order,
        mean_norm=rng.uniform(0.05, 0.3, size=band_count),
        std_norm=rng.uniform(0.05, 0.2, size=band_count),
        length_scale=length_scale,
        signal_variance=2.0,
        train_design=train_design,
        train_self_energy=0.5 * np.sum(train_design**2 * length_scale, axis=1),
        dual_coefficients=rng.normal(0.0, 1.0, size=train_count),
        bias=bias,
    )


@pytest.fixture
def unit_model() -> TraitModel:
    """Two-band model with a single training row at the origin."""
    return TraitModel(
        trait_id=TraitId.LAI,
        band_order=("B4", "B8"),
        mean_norm=[0.0, 0.0],
        std_norm=[1.0, 1.0],
        length_scale=[1.0, 1.0],
        signal_variance=1.0,
        train_design=[[0.0, 0.0]],
        train_self_energy=[0.0],
        dual_coefficients=[1.0],
        bias=0.0,
    )


@pytest.fixture
def small_model() -> TraitModel:
    """Three-band model with several training rows."""
    return build_model()


@pytest.fixture
def make_model():
    """Factory fixture building models with custom trait/bands/bias."""
    return build_model
