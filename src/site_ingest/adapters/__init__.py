"""
Site Ingestion Source Adapters

This package contains one adapter per data source. Each adapter implements
the common extraction contract of BaseSourceAdapter and produces RawRecords
in the source's native units:
1. ETOPO1 elevation (point raster)
2. WorldClim monthly climatology (monthly raster stack)
3. SoilGrids soil properties (layered soil raster)
4. Nitrogen deposition and global CO2 (yearly time series)
"""

from .base import BaseSourceAdapter
from .etopo import EtopoAdapter
from .worldclim import WorldClimAdapter
from .soilgrids import SoilGridsAdapter
from .ndep import NdepAdapter
from .co2 import Co2Adapter

__all__ = [
    'BaseSourceAdapter',
    'EtopoAdapter',
    'WorldClimAdapter',
    'SoilGridsAdapter',
    'NdepAdapter',
    'Co2Adapter',
]
