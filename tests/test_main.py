"""Tests for the command-line entry point."""

import json
import sys
from pathlib import Path

import numpy as np
import pytest
import rasterio
from affine import Affine

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from main import main  # noqa: E402


def _prepare(
    tmp_path: Path, model, describe_bands: bool = True
) -> tuple[Path, Path]:
    model_dir = tmp_path / "models"
    model_dir.mkdir()
    (model_dir / "LAI.json").write_text(json.dumps(model.to_dict()), encoding="utf-8")
    src_path = tmp_path / "s2.tif"
    data = np.full((3, 8, 8), 0.2, dtype=np.float32)
    with rasterio.open(
        src_path,
        "w",
        driver="GTiff",
        height=8,
        width=8,
        count=3,
        dtype=data.dtype,
        transform=Affine(1, 0, 0, 0, -1, 8),
    ) as dataset:
        dataset.write(data)
        if describe_bands:
            for idx, name in enumerate(("B4", "B8", "B11"), start=1):
                dataset.set_band_description(idx, name)
    return model_dir, src_path


def test_main_writes_trait_raster(tmp_path: Path, small_model) -> None:
    """CLI run produces the output GeoTIFF and exit code 0."""
    model_dir, src_path = _prepare(tmp_path, small_model)
    out_path = tmp_path / "lai.tif"

    exit_code = main(
        [str(src_path), str(out_path), "--trait", "LAI", "--model-dir", str(model_dir)]
    )

    assert exit_code == 0
    assert out_path.exists()


def test_main_reports_missing_model(tmp_path: Path, small_model) -> None:
    """Traits without a model file exit with code 1."""
    model_dir, src_path = _prepare(tmp_path, small_model)

    exit_code = main(
        [
            str(src_path),
            str(tmp_path / "cw.tif"),
            "--trait",
            "Cw",
            "--model-dir",
            str(model_dir),
        ]
    )

    assert exit_code == 1


def test_main_rejects_unknown_trait_choice(tmp_path: Path) -> None:
    """Argparse refuses identifiers outside the closed set."""
    with pytest.raises(SystemExit):
        main([str(tmp_path / "in.tif"), str(tmp_path / "out.tif"), "--trait", "NDVI"])


def test_main_uses_band_names_for_undescribed_bands(
    tmp_path: Path, small_model
) -> None:
    """Band names given on the command line replace missing descriptions."""
    model_dir, src_path = _prepare(tmp_path, small_model, describe_bands=False)
    out_path = tmp_path / "lai.tif"
    base_args = [
        str(src_path),
        str(out_path),
        "--trait",
        "LAI",
        "--model-dir",
        str(model_dir),
    ]

    assert main(base_args) == 1
    assert main(base_args + ["--band-names", "B4", "B8", "B11"]) == 0
    with rasterio.open(out_path) as dataset:
        assert np.isfinite(dataset.read(1)).all()


def test_main_reports_unreadable_raster(tmp_path: Path, small_model) -> None:
    """An input that GDAL cannot open exits with code 1."""
    model_dir, _ = _prepare(tmp_path, small_model)
    broken_path = tmp_path / "broken.tif"
    broken_path.write_text("not a raster", encoding="utf-8")

    exit_code = main(
        [
            str(broken_path),
            str(tmp_path / "out.tif"),
            "--trait",
            "LAI",
            "--model-dir",
            str(model_dir),
        ]
    )

    assert exit_code == 1
