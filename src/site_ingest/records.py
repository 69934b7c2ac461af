"""
Record Types for Site Ingestion

This module defines the value types that flow between the ingestion
components: sites, source settings, raw records produced by adapters,
derived records produced by the transformer and aggregated records
produced by the temporal aggregator.

Missing data is represented by a NaN marker rather than an exception so it
can propagate through transformation and aggregation and be excluded from
means instead of being treated as zero.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple, Union


MISSING = float('nan')


def is_missing(value: Optional[float]) -> bool:
    """Return True if value is None or the NaN missing-value marker."""
    if value is None:
        return True
    try:
        return math.isnan(value)
    except TypeError:
        return False


class SourceKind(Enum):
    """Structural family of a data source."""
    POINT_RASTER = "point_raster"
    MONTHLY_RASTER_STACK = "monthly_raster_stack"
    LAYERED_SOIL_RASTER = "layered_soil_raster"
    YEARLY_TIME_SERIES = "yearly_time_series"


class TimeScale(Enum):
    """Temporal granularity requested from a source."""
    YEARLY = "y"
    MONTHLY = "m"
    DAILY = "d"

    @classmethod
    def parse(cls, value: Union[str, "TimeScale", None]) -> Optional["TimeScale"]:
        """Parse 'y'/'m'/'d' (or the long names) into a TimeScale."""
        if value is None or isinstance(value, cls):
            return value
        aliases = {'y': cls.YEARLY, 'yearly': cls.YEARLY,
                   'm': cls.MONTHLY, 'monthly': cls.MONTHLY,
                   'd': cls.DAILY, 'daily': cls.DAILY}
        key = str(value).strip().lower()
        if key not in aliases:
            raise ValueError(f"Unknown time scale: {value}. Use one of 'y', 'm', 'd'")
        return aliases[key]


@dataclass(frozen=True)
class Site:
    """
    A point location. The identifier is the join key for every table.

    Attributes:
        id: Unique site identifier
        lon: Longitude in decimal degrees (-180 to 180)
        lat: Latitude in decimal degrees (-90 to 90)
        elv: Elevation in metres, optional
    """
    id: str
    lon: float
    lat: float
    elv: Optional[float] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("Site identifier must be a non-empty string")
        if not -180.0 <= float(self.lon) <= 180.0:
            raise ValueError(f"Site {self.id}: longitude {self.lon} outside [-180, 180]")
        if not -90.0 <= float(self.lat) <= 90.0:
            raise ValueError(f"Site {self.id}: latitude {self.lat} outside [-90, 90]")


@dataclass(frozen=True)
class SourceSpec:
    """
    Settings for extracting one source.

    Attributes:
        source: Concrete source name ('etopo1', 'worldclim', 'soilgrids', 'ndep', 'co2')
        kind: Structural family of the source
        variables: Requested variable names in the source's vocabulary
        storage: Directory holding the source-specific files
        layers: Soil depth layers (soil sources only)
        time_scale: Requested temporal granularity
        year_start: First year of the requested range (yearly series)
        year_end: Last year of the requested range (yearly series)
        options: Source-specific extras such as filename patterns
    """
    source: str
    kind: SourceKind
    variables: Tuple[str, ...]
    storage: Path
    layers: Optional[Tuple[int, ...]] = None
    time_scale: Optional[TimeScale] = None
    year_start: Optional[int] = None
    year_end: Optional[int] = None
    options: Mapping[str, str] = field(default_factory=dict)

    @property
    def years(self) -> Tuple[int, ...]:
        if self.year_start is None or self.year_end is None:
            return ()
        return tuple(range(int(self.year_start), int(self.year_end) + 1))


@dataclass(frozen=True)
class RawRecord:
    """One extracted value for a (site, variable, layer or time index)."""
    site_id: str
    variable: str
    value: float
    unit: str
    layer: Optional[int] = None
    time: Optional[int] = None

    @property
    def is_missing(self) -> bool:
        return is_missing(self.value)


@dataclass(frozen=True)
class DerivedRecord:
    """Normalized and derived values for one site at one time index."""
    site_id: str
    time: int
    values: Dict[str, float]
    units: Dict[str, str]

    def get(self, name: str) -> float:
        return self.values.get(name, MISSING)


@dataclass(frozen=True)
class AggregatedRecord:
    """One value per (site, variable) after reducing over time or layers."""
    site_id: str
    variable: str
    value: float
