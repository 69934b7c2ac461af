"""
Source Settings Construction and Validation

Provides builders for the settings of each supported source and the
validation applied before any adapter is invoked. Validation failures raise
InvalidSettings so malformed settings never reach storage.

Scientific Context:
Each source has its own vocabulary and temporal structure. WorldClim is a
monthly climatology and takes no year range, SoilGrids is organised by depth
layer, and deposition and CO2 archives are annual series that need an
explicit year range to average over.
"""

import logging
from pathlib import Path
from typing import Dict, Any, Iterable, Optional, Sequence, Union

from .logging_utils import InvalidSettings
from .records import SourceKind, SourceSpec, TimeScale
from .source_variables import SOIL_LAYERS, get_source_kind, get_vocabulary, list_sources


logger = logging.getLogger(__name__)

# Time scales each source family can deliver
SUPPORTED_TIME_SCALES = {
    SourceKind.POINT_RASTER: (None,),
    SourceKind.MONTHLY_RASTER_STACK: (TimeScale.MONTHLY,),
    SourceKind.LAYERED_SOIL_RASTER: (None,),
    SourceKind.YEARLY_TIME_SERIES: (TimeScale.YEARLY,),
}

# Keys of a source config section that are not spec fields
_SPEC_KEYS = {'directory', 'variables', 'layers', 'time_scale', 'year_start', 'year_end'}


def _build_spec(source: str,
                storage: Union[str, Path],
                variables: Iterable[str],
                layers: Optional[Iterable[int]] = None,
                time_scale: Union[str, TimeScale, None] = None,
                year_start: Optional[int] = None,
                year_end: Optional[int] = None,
                options: Optional[Dict[str, Any]] = None) -> SourceSpec:
    if source not in list_sources():
        raise InvalidSettings(f"Unknown source: {source}. Available: {list_sources()}",
                              {'source': source})
    try:
        scale = TimeScale.parse(time_scale)
    except ValueError as e:
        raise InvalidSettings(str(e), {'source': source}) from e

    try:
        layers = tuple(int(layer) for layer in layers) if layers is not None else None
        year_start = int(year_start) if year_start is not None else None
        year_end = int(year_end) if year_end is not None else None
    except (TypeError, ValueError) as e:
        raise InvalidSettings(f"Layers and years for {source} must be integers: {e}",
                              {'source': source}) from e

    return SourceSpec(
        source=source,
        kind=get_source_kind(source),
        variables=tuple(variables),
        storage=Path(storage),
        layers=layers,
        time_scale=scale,
        year_start=year_start,
        year_end=year_end,
        options=dict(options or {}),
    )


def get_settings_etopo(storage: Union[str, Path], **options) -> SourceSpec:
    """Settings for ETOPO1 elevation."""
    return _build_spec('etopo1', storage, ('elv',), options=options)


def get_settings_worldclim(storage: Union[str, Path],
                           variables: Sequence[str] = ('tmin', 'tmax', 'vapr', 'srad'),
                           **options) -> SourceSpec:
    """
    Settings for the WorldClim monthly climatology.

    Args:
        storage: Directory containing the monthly GeoTIFFs
        variables: WorldClim variable names

    Returns:
        SourceSpec for a monthly raster stack
    """
    return _build_spec('worldclim', storage, variables, time_scale=TimeScale.MONTHLY, options=options)


def get_settings_soilgrids(storage: Union[str, Path],
                           variables: Sequence[str] = ('soc', 'nitrogen'),
                           layers: Sequence[int] = tuple(SOIL_LAYERS),
                           **options) -> SourceSpec:
    """
    Settings for SoilGrids soil properties.

    Args:
        storage: Directory containing one GeoTIFF per variable and depth layer
        variables: SoilGrids property names
        layers: Depth layers, numbered 1 (0-5 cm) to 6 (100-200 cm)
    """
    return _build_spec('soilgrids', storage, variables, layers=layers, options=options)


def get_settings_ndep(storage: Union[str, Path],
                      year_start: int,
                      year_end: int,
                      variables: Sequence[str] = ('noy', 'nhx'),
                      time_scale: Union[str, TimeScale] = 'y',
                      **options) -> SourceSpec:
    """
    Settings for annual nitrogen deposition.

    Args:
        storage: Directory containing one NetCDF file per deposition form
        year_start: First year to extract (inclusive)
        year_end: Last year to extract (inclusive)
        variables: Deposition forms ('noy' oxidized, 'nhx' reduced)
        time_scale: Temporal granularity, only 'y' is available
    """
    return _build_spec('ndep', storage, variables, time_scale=time_scale,
                       year_start=year_start, year_end=year_end, options=options)


def get_settings_co2(storage: Union[str, Path], year_start: int, year_end: int, **options) -> SourceSpec:
    """Settings for the global annual CO2 record."""
    return _build_spec('co2', storage, ('co2',), time_scale=TimeScale.YEARLY,
                       year_start=year_start, year_end=year_end, options=options)


def source_spec_from_dict(source: str,
                          source_config: Dict[str, Any],
                          base_directory: Union[str, Path] = '.') -> SourceSpec:
    """
    Build a SourceSpec from a configuration section.

    Args:
        source: Source name
        source_config: Section from IngestConfig.get_source_config(source)
        base_directory: Directory that relative source directories resolve against

    Returns:
        Unvalidated SourceSpec (call validate_source_spec before use)
    """
    directory = Path(source_config.get('directory', source))
    if not directory.is_absolute():
        directory = Path(base_directory) / directory

    variables = source_config.get('variables')
    if variables is None:
        variables = get_vocabulary(source) if source in list_sources() else ()

    options = {key: value for key, value in source_config.items() if key not in _SPEC_KEYS}

    return _build_spec(
        source,
        directory,
        variables,
        layers=source_config.get('layers'),
        time_scale=source_config.get('time_scale'),
        year_start=source_config.get('year_start'),
        year_end=source_config.get('year_end'),
        options=options,
    )


def validate_source_spec(spec: SourceSpec) -> None:
    """
    Validate source settings before extraction.

    Checks vocabulary membership, layer usage and range, year range presence
    and ordering, and time scale support for the source family.

    Args:
        spec: Settings to validate

    Raises:
        InvalidSettings: If any check fails
    """
    context = {'source': spec.source}

    if spec.source not in list_sources():
        raise InvalidSettings(f"Unknown source: {spec.source}", context)

    expected_kind = get_source_kind(spec.source)
    if spec.kind != expected_kind:
        raise InvalidSettings(
            f"Source '{spec.source}' is a {expected_kind.value} source, settings say {spec.kind.value}",
            context)

    if not spec.variables:
        raise InvalidSettings(f"No variables requested for {spec.source}", context)

    if len(set(spec.variables)) != len(spec.variables):
        raise InvalidSettings(f"Duplicate variables requested for {spec.source}: {list(spec.variables)}", context)

    vocabulary = get_vocabulary(spec.source)
    unknown = [var for var in spec.variables if var not in vocabulary]
    if unknown:
        raise InvalidSettings(
            f"Variables {unknown} not in {spec.source} vocabulary: {vocabulary}", context)

    # Layers
    if spec.kind == SourceKind.LAYERED_SOIL_RASTER:
        if not spec.layers:
            raise InvalidSettings(f"At least one layer is required for {spec.source}", context)
        invalid_layers = [layer for layer in spec.layers if layer not in SOIL_LAYERS]
        if invalid_layers:
            raise InvalidSettings(
                f"Invalid layers {invalid_layers} for {spec.source}; use {list(SOIL_LAYERS)}", context)
        if len(set(spec.layers)) != len(spec.layers):
            raise InvalidSettings(f"Duplicate layers requested for {spec.source}", context)
    elif spec.layers is not None:
        raise InvalidSettings(f"Layers are only valid for soil sources, not {spec.source}", context)

    # Year range
    if spec.kind == SourceKind.YEARLY_TIME_SERIES:
        if spec.year_start is None or spec.year_end is None:
            raise InvalidSettings(f"year_start and year_end are required for {spec.source}", context)
    if spec.year_start is not None and spec.year_end is not None and spec.year_start > spec.year_end:
        raise InvalidSettings(
            f"year_start ({spec.year_start}) must be <= year_end ({spec.year_end})", context)

    # Time scale
    supported = SUPPORTED_TIME_SCALES[spec.kind]
    if spec.time_scale is not None and spec.time_scale not in supported:
        raise InvalidSettings(
            f"Time scale '{spec.time_scale.value}' not available for {spec.source}", context)

    logger.debug(f"Validated settings for {spec.source}: {list(spec.variables)}")
