"""
Source Variable Registry - Vocabulary for All Supported Sources

This module provides the single source of truth for the variables each data
source can deliver: their native units, the conversion applied on extraction,
and a plausible physical range reported by the adapters at debug level.

Scientific Context:
Sources differ in naming and units. WorldClim delivers vapour pressure in
kPa and solar radiation in kJ m-2 day-1, SoilGrids stores integer-scaled
properties per depth interval, and deposition archives deliver annual
fluxes. Keeping the vocabulary here lets settings validation reject unknown
variables before any file is touched.
"""

from typing import Dict, List, Any, Optional

from .records import SourceKind


# Depth intervals of the SoilGrids layers, numbered as used in settings
SOIL_LAYERS: Dict[int, Dict[str, Any]] = {
    1: {'label': '0-5cm', 'top_cm': 0, 'bottom_cm': 5},
    2: {'label': '5-15cm', 'top_cm': 5, 'bottom_cm': 15},
    3: {'label': '15-30cm', 'top_cm': 15, 'bottom_cm': 30},
    4: {'label': '30-60cm', 'top_cm': 30, 'bottom_cm': 60},
    5: {'label': '60-100cm', 'top_cm': 60, 'bottom_cm': 100},
    6: {'label': '100-200cm', 'top_cm': 100, 'bottom_cm': 200},
}


SOURCE_REGISTRY: Dict[str, Dict[str, Any]] = {

    # ========== Topography ==========

    'etopo1': {
        'kind': SourceKind.POINT_RASTER,
        'description': 'ETOPO1 global relief model, bedrock version',
        'variables': {
            'elv': {
                'units': 'm',
                'description': 'Elevation above sea level',
                'physical_range': (-11000, 9000),
            },
        },
    },

    # ========== Climate ==========

    'worldclim': {
        'kind': SourceKind.MONTHLY_RASTER_STACK,
        'description': 'WorldClim 2.1 monthly climatology 1970-2000',
        'variables': {
            'tmin': {
                'units': 'degC',
                'description': 'Average minimum temperature',
                'physical_range': (-70, 50),
            },
            'tmax': {
                'units': 'degC',
                'description': 'Average maximum temperature',
                'physical_range': (-60, 60),
            },
            'tavg': {
                'units': 'degC',
                'description': 'Average temperature',
                'physical_range': (-65, 55),
            },
            'prec': {
                'units': 'mm month-1',
                'description': 'Total precipitation',
                'physical_range': (0, 3000),
            },
            'srad': {
                'units': 'kJ m-2 day-1',
                'description': 'Incident solar radiation',
                'physical_range': (0, 40000),
            },
            'wind': {
                'units': 'm s-1',
                'description': 'Wind speed at 10 m',
                'physical_range': (0, 30),
            },
            'vapr': {
                'units': 'kPa',
                'description': 'Water vapour pressure',
                'physical_range': (0, 8),
            },
        },
    },

    # ========== Soil ==========
    # Values in the SoilGrids rasters are integer-scaled; 'conversion' divides
    # them into conventional units. Soil pH is not part of the vocabulary.

    'soilgrids': {
        'kind': SourceKind.LAYERED_SOIL_RASTER,
        'description': 'SoilGrids 2.0 soil properties by depth interval',
        'variables': {
            'bdod': {'units': 'kg dm-3', 'native_units': 'cg cm-3', 'conversion': 100.0,
                     'description': 'Bulk density of the fine earth fraction',
                     'physical_range': (0.1, 2.5)},
            'cec': {'units': 'cmol(c) kg-1', 'native_units': 'mmol(c) kg-1', 'conversion': 10.0,
                    'description': 'Cation exchange capacity at pH 7',
                    'physical_range': (0, 200)},
            'cfvo': {'units': 'cm3 100cm-3', 'native_units': 'cm3 dm-3', 'conversion': 10.0,
                     'description': 'Volumetric fraction of coarse fragments',
                     'physical_range': (0, 100)},
            'clay': {'units': '%', 'native_units': 'g kg-1', 'conversion': 10.0,
                     'description': 'Proportion of clay particles',
                     'physical_range': (0, 100)},
            'sand': {'units': '%', 'native_units': 'g kg-1', 'conversion': 10.0,
                     'description': 'Proportion of sand particles',
                     'physical_range': (0, 100)},
            'silt': {'units': '%', 'native_units': 'g kg-1', 'conversion': 10.0,
                     'description': 'Proportion of silt particles',
                     'physical_range': (0, 100)},
            'nitrogen': {'units': 'g kg-1', 'native_units': 'cg kg-1', 'conversion': 100.0,
                         'description': 'Total nitrogen',
                         'physical_range': (0, 50)},
            'soc': {'units': 'g kg-1', 'native_units': 'dg kg-1', 'conversion': 10.0,
                    'description': 'Soil organic carbon content in the fine earth fraction',
                    'physical_range': (0, 1000)},
            'ocd': {'units': 'kg m-3', 'native_units': 'hg m-3', 'conversion': 10.0,
                    'description': 'Organic carbon density',
                    'physical_range': (0, 200)},
        },
    },

    # ========== Nutrient deposition ==========

    'ndep': {
        'kind': SourceKind.YEARLY_TIME_SERIES,
        'description': 'Annual atmospheric nitrogen deposition (Lamarque et al. 2011)',
        'variables': {
            'noy': {
                'units': 'gN m-2 yr-1',
                'description': 'Oxidized nitrogen deposition',
                'physical_range': (0, 10),
            },
            'nhx': {
                'units': 'gN m-2 yr-1',
                'description': 'Reduced nitrogen deposition',
                'physical_range': (0, 10),
            },
        },
    },

    # ========== Atmospheric CO2 ==========

    'co2': {
        'kind': SourceKind.YEARLY_TIME_SERIES,
        'description': 'Global annual mean CO2 mole fraction (NOAA GML)',
        'variables': {
            'co2': {
                'units': 'ppm',
                'description': 'Atmospheric CO2 mole fraction',
                'physical_range': (250, 500),
            },
        },
    },
}


def get_source_config(source: str) -> Dict[str, Any]:
    """
    Get the registry entry for a source.

    Args:
        source: Source name (e.g., 'worldclim')

    Returns:
        dict: Registry entry

    Raises:
        KeyError: If source is not registered
    """
    if source not in SOURCE_REGISTRY:
        raise KeyError(f"Unknown source: {source}. Available: {list_sources()}")
    return SOURCE_REGISTRY[source]


def list_sources() -> List[str]:
    """Return all registered source names."""
    return list(SOURCE_REGISTRY.keys())


def get_source_kind(source: str) -> SourceKind:
    """Return the structural family of a source."""
    return get_source_config(source)['kind']


def get_vocabulary(source: str) -> List[str]:
    """Return the variable names a source can deliver."""
    return list(get_source_config(source)['variables'].keys())


def get_variable_info(source: str, variable: str) -> Dict[str, Any]:
    """
    Get metadata for one variable of a source.

    Raises:
        KeyError: If source or variable is not registered
    """
    variables = get_source_config(source)['variables']
    if variable not in variables:
        raise KeyError(f"Variable '{variable}' not in {source} vocabulary: {list(variables)}")
    return variables[variable]


def get_variable_units(source: str, variable: str) -> str:
    return get_variable_info(source, variable)['units']


def get_variable_physical_range(source: str, variable: str) -> Optional[tuple]:
    """Plausible (low, high) range of a variable in record units, or None."""
    try:
        return get_variable_info(source, variable).get('physical_range')
    except KeyError:
        return None


def get_layer_thickness(layer: int) -> float:
    """Thickness of a soil layer in cm."""
    info = SOIL_LAYERS[layer]
    return float(info['bottom_cm'] - info['top_cm'])
