"""
Base Source Adapter Class for Site Ingestion

This module provides an abstract base class that all source adapters
(ETOPO1, WorldClim, SoilGrids, deposition, CO2) inherit from to ensure
consistent extraction behavior and record shapes.

Scientific Context:
A common base class ensures all adapters:
1. Fail with SourceUnavailable when storage cannot be opened
2. Fail with VariableNotFound when a requested variable is not delivered
3. Return one record per requested (site, variable, layer or time) combination
4. Mark sites outside the source coverage with a missing value instead of
   failing the whole batch
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Sequence
from pathlib import Path
import logging
import time

import numpy as np
import rasterio
from rasterio.warp import transform as transform_coords
from rasterio.windows import Window

from ..logging_utils import SourceUnavailable, VariableNotFound
from ..records import MISSING, RawRecord, Site, SourceSpec, is_missing
from ..source_variables import get_variable_physical_range, get_variable_units, get_vocabulary


logger = logging.getLogger(__name__)

# CRS in which site coordinates are given
SITE_CRS = 'EPSG:4326'


class BaseSourceAdapter(ABC):
    """
    Abstract base class for source adapters.

    Each concrete adapter implements the extraction for one source and
    inherits storage checks, retrying opens and missing-value handling.

    Attributes:
        source_name (str): Name of the source handled by the adapter
        retry_attempts (int): Number of retries for transient I/O errors (0 or 1)
        retry_delay (float): Seconds to wait before retrying
    """

    source_name: str = ''

    def __init__(self, retry_attempts: int = 0, retry_delay: float = 0.5, **options):
        """
        Initialize the adapter.

        Args:
            retry_attempts (int): Retries on transient I/O errors. Default: 0
            retry_delay (float): Seconds between attempts. Default: 0.5
            **options: Source-specific options (e.g. file patterns)
        """
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.options = options
        self.logger = logging.getLogger(self.__class__.__name__)

    def extract(self, sites: Sequence[Site], spec: SourceSpec) -> List[RawRecord]:
        """
        Extract raw records for all sites.

        Args:
            sites: Sites to extract, in output order
            spec: Validated settings for this source

        Returns:
            List[RawRecord]: One record per requested combination, in
                (site, layer/time, variable) order

        Raises:
            SourceUnavailable: If the storage location cannot be opened
            VariableNotFound: If a requested variable is not delivered by the source
        """
        storage = Path(spec.storage)
        if not storage.is_dir():
            raise SourceUnavailable(
                f"Storage location for {spec.source} not found: {storage}",
                {'source': spec.source, 'storage': str(storage)})

        vocabulary = get_vocabulary(spec.source)
        for variable in spec.variables:
            if variable not in vocabulary:
                raise VariableNotFound(
                    f"Variable '{variable}' not delivered by {spec.source}",
                    {'source': spec.source, 'variable': variable})

        self.logger.debug(f"Extracting {list(spec.variables)} for {len(sites)} sites from {storage}")
        records = self._extract(list(sites), spec)

        n_missing = sum(1 for record in records if record.is_missing)
        self.logger.debug(f"{spec.source}: {len(records)} records, {n_missing} missing")
        n_outside = count_outside_range(records, spec.source)
        if n_outside:
            self.logger.debug(f"{spec.source}: {n_outside} values outside the plausible physical range")
        return records

    @abstractmethod
    def _extract(self, sites: List[Site], spec: SourceSpec) -> List[RawRecord]:
        """
        Source-specific extraction.

        Must be implemented by each concrete adapter class.
        """
        raise NotImplementedError(
            f"{self.__class__.__name__} must implement _extract()"
        )

    def option(self, spec: SourceSpec, name: str, default: Any) -> Any:
        """Look up a source option in the settings, then the adapter, then the default."""
        if name in spec.options:
            return spec.options[name]
        return self.options.get(name, default)

    def require_file(self, spec: SourceSpec, file_name: str, variable: Optional[str] = None) -> Path:
        """
        Resolve a file inside the storage location.

        Raises:
            VariableNotFound: If the file holding a requested variable is absent
        """
        path = Path(spec.storage) / file_name
        if not path.exists():
            raise VariableNotFound(
                f"{spec.source} file not found: {path}",
                {'source': spec.source, 'variable': variable, 'path': str(path)})
        return path

    def open_with_retry(self, opener: Callable, path: Path, source: str):
        """
        Open a storage handle, retrying once on a transient I/O error.

        Args:
            opener: Callable that opens the path (e.g. rasterio.open)
            path: File to open
            source: Source name for error context

        Returns:
            Whatever the opener returns

        Raises:
            SourceUnavailable: If the file cannot be opened
        """
        last_error = None
        for attempt in range(self.retry_attempts + 1):
            if attempt > 0:
                self.logger.info(f"Retry attempt {attempt}/{self.retry_attempts} for {path}")
                time.sleep(self.retry_delay)
            try:
                return opener(path)
            except OSError as e:
                last_error = e
                self.logger.warning(f"Opening {path} failed (attempt {attempt + 1}): {e}")

        raise SourceUnavailable(
            f"Could not open {path}: {last_error}",
            {'source': source, 'path': str(path)}) from last_error

    def make_record(self, site: Site, spec: SourceSpec, variable: str, value: Any,
                    layer: Optional[int] = None, time: Optional[int] = None,
                    unit: Optional[str] = None) -> RawRecord:
        """Build a RawRecord, normalizing any missing value to the MISSING marker."""
        value = MISSING if is_missing(value) else float(value)
        return RawRecord(
            site_id=site.id,
            variable=variable,
            value=value,
            unit=unit or get_variable_units(spec.source, variable),
            layer=layer,
            time=time,
        )


def sample_raster_at_sites(dataset, sites: Sequence[Site]) -> List[float]:
    """
    Read the first band of an open raster at each site's cell.

    Sites outside the raster extent and nodata cells give MISSING. A site on
    the right or bottom edge falls in the last column or row. Site
    coordinates are reprojected when the raster is not in geographic
    coordinates.

    Args:
        dataset: Open rasterio dataset
        sites: Sites to sample

    Returns:
        List of values, one per site, in site order
    """
    xs = [float(site.lon) for site in sites]
    ys = [float(site.lat) for site in sites]

    if dataset.crs is not None and not dataset.crs.is_geographic:
        xs, ys = transform_coords(SITE_CRS, dataset.crs, xs, ys)

    bounds = dataset.bounds
    values = []
    for x, y in zip(xs, ys):
        row, col = dataset.index(x, y)
        # the right and bottom edges belong to the last column and row
        if col == dataset.width and np.isclose(x, bounds.right):
            col = dataset.width - 1
        if row == dataset.height and np.isclose(y, bounds.bottom):
            row = dataset.height - 1
        if not (0 <= row < dataset.height and 0 <= col < dataset.width):
            values.append(MISSING)
            continue

        cell = dataset.read(1, window=Window(col, row, 1, 1), masked=True)
        value = cell[0, 0]
        if np.ma.is_masked(value):
            values.append(MISSING)
        else:
            values.append(float(value))

    return values


def open_raster(path: Path):
    """Open a raster read-only."""
    return rasterio.open(path)


def count_outside_range(records: Sequence[RawRecord], source: str) -> int:
    """Count non-missing values outside their variable's plausible physical range."""
    count = 0
    for record in records:
        bounds = get_variable_physical_range(source, record.variable)
        if bounds is None or record.is_missing:
            continue
        if not bounds[0] <= record.value <= bounds[1]:
            count += 1
    return count
