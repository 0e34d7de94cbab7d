#!/usr/bin/env python
"""
plant-traits - GPR retrieval of plant traits from reflectance GeoTIFFs.

Main entry point for command-line evaluation.

Usage
-----
    python main.py input.tif output.tif --trait laiCab --model-dir models/
    python main.py input.tif output.tif --trait LAI --model-dir models/ \
        --band-names B2 B3 B4 B5 B6 B7 B8 B8A B11 B12 --reflectance-scale 10000
"""

import argparse
import sys
from pathlib import Path


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line argument parser."""
    from plant_traits.config import DEFAULT_TILE_SIZE, REFLECTANCE_SCALE
    from plant_traits.core.traits import TraitId

    parser = argparse.ArgumentParser(
        description="Retrieve a biophysical trait raster from a reflectance GeoTIFF."
    )
    parser.add_argument("input", type=Path, help="Multiband reflectance GeoTIFF")
    parser.add_argument("output", type=Path, help="Output trait GeoTIFF")
    parser.add_argument(
        "--trait",
        default=TraitId.LAI_CAB.value,
        choices=[trait.value for trait in TraitId],
        help="Trait identifier (default: laiCab)",
    )
    parser.add_argument(
        "--model-dir",
        type=Path,
        default=None,
        help="Directory of fitted model JSON files (default: $PLANT_TRAITS_MODEL_DIR)",
    )
    parser.add_argument("--tile-size", type=int, default=DEFAULT_TILE_SIZE)
    parser.add_argument(
        "--reflectance-scale",
        type=float,
        default=None,
        help=f"Divide input values by this factor, e.g. {REFLECTANCE_SCALE:g}",
    )
    parser.add_argument(
        "--band-names",
        nargs="+",
        default=None,
        help="Band names in file order when the GeoTIFF has no band descriptions",
    )
    parser.add_argument("--boundary", type=Path, default=None, help="ROI polygon file")
    parser.add_argument("--no-clamp", action="store_true", help="Keep negative values")
    parser.add_argument("--log-level", default="INFO")
    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for plant-traits evaluation.

    Returns
    -------
    int
        Exit code (0 for success, non-zero for error).
    """
    from loguru import logger
    from rasterio.errors import RasterioIOError

    from plant_traits.core.errors import TraitRetrievalError
    from plant_traits.core.model_store import TraitModelStore
    from plant_traits.processing.batch import TraitRequest
    from plant_traits.processing.geotiff import evaluate_geotiff
    from plant_traits.utils.raster_io import load_boundary_xy

    args = build_parser().parse_args(argv)

    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | "
               "<level>{level: <8}</level> | "
               "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
               "<level>{message}</level>",
        level=args.log_level.upper(),
    )

    try:
        store = TraitModelStore.from_directory(args.model_dir)
        boundary_xy = None if args.boundary is None else load_boundary_xy(args.boundary)
        request = TraitRequest(
            trait_id=args.trait,
            tile_size=args.tile_size,
            clamp=not args.no_clamp,
            boundary_xy=boundary_xy,
        )
        out_path = evaluate_geotiff(
            args.input,
            args.output,
            request,
            store,
            band_names=args.band_names,
            reflectance_scale=args.reflectance_scale,
        )
    except (
        TraitRetrievalError,
        FileNotFoundError,
        ValueError,
        RasterioIOError,
    ) as exc:
        logger.error(f"{type(exc).__name__}: {exc}")
        return 1

    logger.info(f"Trait raster written to {out_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
