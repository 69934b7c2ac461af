"""
Point Extractor

Drives source adapters against a list of sites. Settings are validated
before dispatch so adapters never see malformed settings, and extraction
may run across worker threads while keeping the output order fixed by the
input site order.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .adapter_factory import AdapterRegistry, default_registry
from .data_source_config import validate_source_spec
from .logging_utils import (
    InvalidSettings,
    ProcessingLogger,
    SiteIngestError,
    error_context,
)
from .records import RawRecord, Site, SourceKind, SourceSpec


logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """
    Outcome of extracting several sources.

    Attributes:
        records_by_source: Raw records per source that extracted successfully
        failures: Error per source that failed
    """
    records_by_source: Dict[str, List[RawRecord]] = field(default_factory=dict)
    failures: Dict[str, SiteIngestError] = field(default_factory=dict)

    @property
    def succeeded(self) -> List[str]:
        return list(self.records_by_source.keys())


def validate_sites(sites: Sequence[Site]) -> None:
    """
    Check the site list before extraction.

    Raises:
        InvalidSettings: If the list is empty or identifiers repeat
    """
    if not sites:
        raise InvalidSettings("No sites given for extraction")

    seen = set()
    duplicates = []
    for site in sites:
        if site.id in seen:
            duplicates.append(site.id)
        seen.add(site.id)
    if duplicates:
        raise InvalidSettings(f"Duplicate site identifiers: {duplicates}")


def count_expected_records(sites: Sequence[Site], spec: SourceSpec) -> int:
    """
    Number of records a spec requests for a site list.

    sites x variables x (layers | 12 months | years | 1)
    """
    per_site = len(spec.variables)
    if spec.kind == SourceKind.LAYERED_SOIL_RASTER:
        per_site *= len(spec.layers or ())
    elif spec.kind == SourceKind.MONTHLY_RASTER_STACK:
        per_site *= 12
    elif spec.kind == SourceKind.YEARLY_TIME_SERIES:
        per_site *= len(spec.years)
    return len(sites) * per_site


def _chunks(sites: List[Site], n_chunks: int) -> List[List[Site]]:
    size = -(-len(sites) // n_chunks)
    return [sites[i:i + size] for i in range(0, len(sites), size)]


def extract_all(sites: Sequence[Site],
                spec: SourceSpec,
                registry: Optional[AdapterRegistry] = None,
                max_workers: int = 1,
                retry_attempts: int = 0) -> List[RawRecord]:
    """
    Extract one source for all sites.

    Validates settings and sites, resolves the adapter for spec.source and
    returns its records unchanged. With max_workers > 1 the site list is split
    into chunks extracted concurrently; chunks are concatenated in input
    order so repeated runs give the same record order.

    Args:
        sites: Sites to extract
        spec: Source settings
        registry: Adapter registry (default: all built-in adapters)
        max_workers: Number of worker threads
        retry_attempts: Retries on transient I/O errors (0 or 1)

    Returns:
        List[RawRecord] in (site, time/layer, variable) order

    Raises:
        InvalidSettings: If settings or sites are malformed (before any I/O)
        SourceUnavailable: If the source storage cannot be opened or has an
            unreadable layout
        VariableNotFound: If a requested variable is not delivered
    """
    validate_source_spec(spec)
    sites = list(sites)
    validate_sites(sites)

    registry = registry or default_registry()
    adapter = registry.create_adapter(spec.source, {'retry_attempts': retry_attempts})

    with error_context(f"reading {spec.source}", source=spec.source, storage=str(spec.storage)):
        if max_workers <= 1 or len(sites) < 2:
            records = adapter.extract(sites, spec)
        else:
            chunks = _chunks(sites, min(max_workers, len(sites)))
            logger.debug(f"Extracting {spec.source} in {len(chunks)} chunks")
            with ThreadPoolExecutor(max_workers=len(chunks)) as executor:
                chunk_records = list(executor.map(lambda chunk: adapter.extract(chunk, spec), chunks))
            records = [record for chunk in chunk_records for record in chunk]

    expected = count_expected_records(sites, spec)
    if len(records) != expected:
        logger.warning(f"{spec.source}: expected {expected} records, adapter returned {len(records)}")

    return records


def extract_sources(sites: Sequence[Site],
                    specs: Sequence[SourceSpec],
                    registry: Optional[AdapterRegistry] = None,
                    max_workers: int = 1,
                    retry_attempts: int = 0,
                    processing_logger: Optional[ProcessingLogger] = None) -> ExtractionResult:
    """
    Extract several sources, isolating per-source failures.

    A failing source is recorded in the result and does not stop the others.

    Args:
        sites: Sites to extract
        specs: Settings per source (source names must be unique)
        registry: Adapter registry (default: all built-in adapters)
        max_workers: Number of worker threads per source
        retry_attempts: Retries on transient I/O errors (0 or 1)
        processing_logger: Optional run logger

    Returns:
        ExtractionResult with records per source and failures per source
    """
    names = [spec.source for spec in specs]
    if len(set(names)) != len(names):
        raise InvalidSettings(f"Each source may be requested once: {names}")
    sites = list(sites)
    validate_sites(sites)

    registry = registry or default_registry()
    result = ExtractionResult()

    for spec in specs:
        try:
            records = extract_all(sites, spec, registry=registry,
                                  max_workers=max_workers, retry_attempts=retry_attempts)
        except SiteIngestError as e:
            result.failures[spec.source] = e
            if processing_logger:
                processing_logger.log_processing_error(type(e).__name__, str(e), e.context)
            else:
                logger.error(f"{spec.source} extraction failed ({type(e).__name__}): {e}")
            continue

        result.records_by_source[spec.source] = records
        if processing_logger:
            processing_logger.log_source_extracted(
                spec.source, len(records), sum(1 for r in records if r.is_missing))

    return result
