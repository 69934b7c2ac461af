"""
Site Forcing Orchestration

Runs the whole ingestion for a site list: extraction of every configured
source, derivation of the forcing variables, temporal aggregation and the
join into one site table. The table is then mapped onto the named inputs of
a downstream photosynthesis model:

    tc     growth temperature                    °C
    vpd    vapour pressure deficit               Pa
    co2    atmospheric CO2                       ppm
    fapar  fraction of absorbed PAR              unitless (0-1)
    ppfd   photosynthetic photon flux density    mol m-2 s-1
    elv    elevation                             m

The model itself is an external pure callable; its constants (kphio, beta)
are passed explicitly through ModelParams.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

import pandas as pd

from .adapter_factory import AdapterRegistry
from .assembler import SITE_KEY, join
from .config_manager import IngestConfig
from .data_source_config import source_spec_from_dict
from .derived_variables import TransformParams, derive_all
from .logging_utils import InvalidSettings, ProcessingLogger, SiteIngestError, error_context
from .point_extractor import extract_sources
from .records import MISSING, AggregatedRecord, RawRecord, Site, SourceSpec
from .source_variables import get_vocabulary, list_sources
from .temporal_aggregation import (
    depth_weighted_layer_mean,
    growing_season_mean,
    multi_year_mean,
    nan_mean,
    single_value,
    sum_components,
    to_table,
)


logger = logging.getLogger(__name__)

MODEL_INPUTS = ('tc', 'vpd', 'co2', 'fapar', 'ppfd', 'elv')

# Raw climate variables consumed by each derived variable
DERIVATION_INPUTS = {
    'tgrowth': ('tmin', 'tmax'),
    'vpd': ('tmin', 'tmax', 'vapr'),
    'ppfd': ('srad',),
}


@dataclass(frozen=True)
class ModelParams:
    """
    Constants of the downstream photosynthesis model.

    Attributes:
        kphio: Quantum yield efficiency of photosynthesis
        beta: Ratio of unit costs of carboxylation and transpiration
        fapar: Fraction of absorbed photosynthetically active radiation
        co2: Fallback atmospheric CO2 in ppm for sites without a co2 column
    """
    kphio: float = 0.049977
    beta: float = 146.0
    fapar: float = 1.0
    co2: float = 400.0

    @classmethod
    def from_config(cls, model_config: Mapping[str, Any]) -> "ModelParams":
        defaults = cls()
        return cls(
            kphio=float(model_config.get('kphio', defaults.kphio)),
            beta=float(model_config.get('beta', defaults.beta)),
            fapar=float(model_config.get('fapar', defaults.fapar)),
            co2=float(model_config.get('co2', defaults.co2)),
        )


@dataclass
class SiteTableResult:
    """
    Site table plus the sources that could not be extracted.

    Columns of failed sources are present and hold missing values, so the
    table layout does not depend on which sources failed.
    """
    table: pd.DataFrame
    failures: Dict[str, SiteIngestError] = field(default_factory=dict)


def sites_from_config(entries: Sequence[Mapping[str, Any]]) -> List[Site]:
    """
    Build Site objects from configuration entries.

    Args:
        entries: Mappings with id, lon, lat and optional elv

    Raises:
        InvalidSettings: If an entry has invalid coordinates
    """
    sites = []
    for entry in entries:
        try:
            elv = entry.get('elv')
            sites.append(Site(id=str(entry['id']), lon=float(entry['lon']), lat=float(entry['lat']),
                              elv=None if elv is None else float(elv)))
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidSettings(f"Invalid site entry {dict(entry)}: {e}") from e
    return sites


def specs_from_config(config: IngestConfig) -> List[SourceSpec]:
    """Build unvalidated SourceSpecs for every configured source."""
    data_directory = config.get('processing.data_directory', '.')
    return [source_spec_from_dict(source, config.get_source_config(source), data_directory)
            for source in config.get_configured_sources()]


def _climate_variables(variables: Sequence[str]) -> List[str]:
    requested = set(variables)
    produced = [name for name, inputs in DERIVATION_INPUTS.items() if requested.issuperset(inputs)]
    consumed = {variable for name in produced for variable in DERIVATION_INPUTS[name]}
    return produced + [v for v in variables if v not in consumed]


def source_columns(spec: SourceSpec) -> List[str]:
    """
    Columns a source contributes to the site table.

    Requested names outside the source vocabulary contribute nothing.
    """
    if spec.source not in list_sources():
        return []
    vocabulary = get_vocabulary(spec.source)
    variables = [v for v in dict.fromkeys(spec.variables) if v in vocabulary]

    if spec.source == 'worldclim':
        return _climate_variables(variables)
    if spec.source == 'ndep' and {'noy', 'nhx'} <= set(variables):
        return variables + ['ndep']
    return variables


def missing_source_table(sites: Sequence[Site], columns: Sequence[str]) -> pd.DataFrame:
    """Per-source table with the missing-value marker in every column."""
    table = pd.DataFrame({SITE_KEY: [site.id for site in sites]})
    for column in columns:
        table[column] = MISSING
    return table


def aggregate_climate(sites: Sequence[Site], records: Sequence[RawRecord], spec: SourceSpec,
                      params: TransformParams) -> List[AggregatedRecord]:
    """
    Derive monthly forcing and reduce it to growing-season means.

    Without tmin and tmax no growing season can be defined and the mean is
    taken over all months instead.
    """
    derived = derive_all(sites, records, params)
    variables = _climate_variables(spec.variables)

    if 'tgrowth' in variables:
        return growing_season_mean(derived, variables, params.growth_temperature_threshold)

    logger.warning("worldclim: tmin/tmax not requested, averaging over all months")
    aggregated = []
    for site in sites:
        site_derived = [d for d in derived if d.site_id == site.id]
        for variable in variables:
            aggregated.append(AggregatedRecord(site.id, variable, nan_mean([d.get(variable) for d in site_derived])))
    return aggregated


def aggregate_source(sites: Sequence[Site], records: Sequence[RawRecord], spec: SourceSpec,
                     params: TransformParams) -> List[AggregatedRecord]:
    """
    Reduce one source's raw records to one value per (site, variable).

    Args:
        sites: Sites in output order
        records: Raw records of the source
        spec: Source settings
        params: Transformer constants

    Returns:
        Aggregated records
    """
    if spec.source == 'worldclim':
        return aggregate_climate(sites, records, spec, params)

    if spec.source == 'ndep':
        aggregated = multi_year_mean(records, spec.year_start, spec.year_end, spec.variables)
        if {'noy', 'nhx'} <= set(spec.variables):
            aggregated = sum_components(aggregated, ('noy', 'nhx'), 'ndep')
        return aggregated

    if spec.source == 'co2':
        return multi_year_mean(records, spec.year_start, spec.year_end, spec.variables)

    if spec.source == 'soilgrids':
        return depth_weighted_layer_mean(records, spec.variables)

    return single_value(records)


def collect_site_table(sites: Sequence[Site],
                       specs: Sequence[SourceSpec],
                       config: Optional[IngestConfig] = None,
                       processing_logger: Optional[ProcessingLogger] = None,
                       registry: Optional[AdapterRegistry] = None) -> SiteTableResult:
    """
    Build the joined site table for a list of sites and sources.

    Args:
        sites: Sites to process
        specs: Settings per source
        config: Configuration supplying worker count, retries and transformer constants
        processing_logger: Optional run logger
        registry: Adapter registry (default: all built-in adapters)

    Returns:
        SiteTableResult with one row per site and the per-source failures

    Example:
        >>> sites = [Site('FR-Pue', 3.5957, 43.7413)]
        >>> specs = [get_settings_etopo('DATA/etopo1')]
        >>> collect_site_table(sites, specs).table.columns.tolist()
        ['sitename', 'lon', 'lat', 'elv']
    """
    processing = config.get_processing_config() if config else {}
    params = TransformParams.from_config(config.get_transform_config()) if config else TransformParams()

    if processing_logger:
        processing_logger.log_sites(len(sites))

    extraction = extract_sources(
        sites, specs,
        registry=registry,
        max_workers=int(processing.get('max_workers', 1)),
        retry_attempts=int(processing.get('retry_attempts', 0)),
        processing_logger=processing_logger,
    )

    tables = []
    for spec in specs:
        if spec.source not in extraction.records_by_source:
            tables.append(missing_source_table(sites, source_columns(spec)))
            continue
        with error_context(f"aggregating {spec.source}", processing_logger, source=spec.source):
            aggregated = aggregate_source(sites, extraction.records_by_source[spec.source], spec, params)
            tables.append(to_table(aggregated, SITE_KEY))

    table = join(sites, tables, SITE_KEY)
    return SiteTableResult(table=table, failures=extraction.failures)


def build_model_forcing(table: pd.DataFrame,
                        model_params: ModelParams = ModelParams(),
                        sites: Optional[Sequence[Site]] = None) -> pd.DataFrame:
    """
    Map a site table onto the inputs of the photosynthesis model.

    Args:
        table: Joined site table
        model_params: Model constants (fapar and the co2 fallback)
        sites: Sites supplying elevation when the table has no elv column

    Returns:
        DataFrame with sitename, tc, vpd, co2, fapar, ppfd and elv
    """
    n_rows = len(table)

    def column(name: str) -> pd.Series:
        if name in table.columns:
            return table[name].astype(float).reset_index(drop=True)
        return pd.Series([MISSING] * n_rows, dtype=float)

    co2 = column('co2').fillna(model_params.co2)

    elv = column('elv')
    if sites is not None:
        site_elevation = {site.id: site.elv for site in sites}
        fallback = pd.Series([site_elevation.get(site_id) for site_id in table[SITE_KEY]], dtype=float)
        elv = elv.fillna(fallback)

    forcing = pd.DataFrame({
        SITE_KEY: table[SITE_KEY].reset_index(drop=True),
        'tc': column('tgrowth'),
        'vpd': column('vpd'),
        'co2': co2,
        'fapar': [model_params.fapar] * n_rows,
        'ppfd': column('ppfd'),
        'elv': elv,
    })
    return forcing


def run_photosynthesis_model(forcing: pd.DataFrame,
                             model: Callable[..., Mapping[str, float]],
                             model_params: ModelParams = ModelParams()) -> pd.DataFrame:
    """
    Apply an external photosynthesis model to every site.

    The model is called as model(tc=, vpd=, co2=, fapar=, ppfd=, elv=,
    kphio=, beta=) and must return a mapping of output names to values. Sites
    with a missing forcing input are not passed to the model and get missing
    outputs.

    Returns:
        DataFrame keyed by sitename with one column per model output
    """
    rows = []
    for _, row in forcing.iterrows():
        inputs = {name: float(row[name]) for name in MODEL_INPUTS}
        if any(pd.isna(value) for value in inputs.values()):
            logger.warning(f"Site {row[SITE_KEY]}: incomplete forcing, model not run")
            rows.append({SITE_KEY: row[SITE_KEY]})
            continue

        outputs = model(kphio=model_params.kphio, beta=model_params.beta, **inputs)
        rows.append({SITE_KEY: row[SITE_KEY], **dict(outputs)})

    return pd.DataFrame(rows)


def write_site_table(table: pd.DataFrame, path: Union[str, Path]) -> Path:
    """
    Write a site table as NetCDF (.nc) or CSV (any other suffix).

    Returns:
        Path of the written file
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with error_context(f"writing site table {path.name}"):
        if path.suffix.lower() == '.nc':
            dataset = table.set_index(SITE_KEY).to_xarray()
            dataset.attrs['title'] = 'Site forcing table'
            dataset.to_netcdf(path)
        else:
            table.to_csv(path, index=False)

    logger.info(f"Site table written: {path}")
    return path
