"""Static settings shared by the trait retrieval modules."""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_TILE_SIZE = 256
TRAIT_FLOOR = 1e-5
REFLECTANCE_SCALE = 10000.0

# Sentinel-2 bands, in the order the trait models were fitted on.
S2_TRAIT_BANDS = (
    "B2",
    "B3",
    "B4",
    "B5",
    "B6",
    "B7",
    "B8",
    "B8A",
    "B11",
    "B12",
)

MODEL_DIR_ENV = "PLANT_TRAITS_MODEL_DIR"


def resolve_model_dir(model_dir: str | Path | None = None) -> Path:
    """Resolve the directory holding fitted trait model JSON files.

    Parameters
    ----------
    model_dir : str | Path | None, optional
        Explicit directory. Falls back to ``$PLANT_TRAITS_MODEL_DIR``.

    Returns
    -------
    pathlib.Path
        Model directory path.

    Raises
    ------
    FileNotFoundError
        Raised when no directory is configured or it does not exist.
    """
    if model_dir is None:
        env_value = os.environ.get(MODEL_DIR_ENV, "")
        if not env_value:
            raise FileNotFoundError(
                f"No model directory given and ${MODEL_DIR_ENV} is not set"
            )
        model_dir = env_value
    path_obj = Path(model_dir)
    if not path_obj.is_dir():
        raise FileNotFoundError(f"Model directory not found: {path_obj}")
    return path_obj
