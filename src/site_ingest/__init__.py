"""
site_ingest - Point-Located Environmental Forcing for Photosynthesis Models

This package collects site-level observations from heterogeneous geospatial
and tabular sources, harmonizes them into model units, derives secondary
quantities and aggregates them into one row per site.

Source Adapters:
- ETOPO1 elevation (point raster)
- WorldClim monthly climatology (monthly raster stack)
- SoilGrids soil properties (layered soil raster)
- Nitrogen deposition and CO2 (yearly time series)

Scientific Utilities:
- Atmospheric science calculations (VPD, saturation pressure, growth temperature)
- Physical constants and unit conversions
- Growing-season and multi-year temporal aggregation
- Multi-source site table assembly
"""

__version__ = "1.0.0"
__author__ = "site_ingest Development Team"
