# plant-traits - Source Package
"""
plant-traits: GPR retrieval of biophysical plant traits from reflectance rasters.

This package provides:
- Fitted trait model definitions and a read-only model store
- Gaussian Process Regression posterior-mean evaluation per pixel
- Tiled, bounded-memory evaluation over spectral rasters and GeoTIFF files
- Floor clamping of non-physical predictions
"""

__version__ = "0.1.0"
