"""
Temporal Aggregation for Site Ingestion

Reduces per-site series to one value per (site, variable):

- growing-season mean: mean over time indices with tgrowth above a threshold
- multi-year mean: mean over the years of a requested range
- component sums: e.g. total deposition = oxidized + reduced
- depth-weighted layer mean: soil properties over the requested layers

Missing values are excluded from every mean. A group with nothing left to
average yields the missing-value marker, never a mean of zero elements.

References:
- Stocker et al. (2020), Geosci. Model Dev. 13: 1545-1581 (growing-season forcing)
"""

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .records import MISSING, AggregatedRecord, DerivedRecord, RawRecord, is_missing
from .source_variables import get_layer_thickness


logger = logging.getLogger(__name__)


def nan_mean(values: Sequence[float]) -> float:
    """
    Mean of the non-missing values.

    Returns:
        Mean, or MISSING when no value is present
    """
    data = np.asarray([v for v in values if not is_missing(v)], dtype=float)
    if data.size == 0:
        return MISSING
    return float(data.mean())


def _group_by_site(records: Iterable) -> "OrderedDict[str, List]":
    groups: "OrderedDict[str, List]" = OrderedDict()
    for record in records:
        groups.setdefault(record.site_id, []).append(record)
    return groups


def growing_season_mean(derived: Iterable[DerivedRecord],
                        variables: Sequence[str] = ('tgrowth', 'vpd', 'ppfd'),
                        threshold: float = 0.0) -> List[AggregatedRecord]:
    """
    Mean of each variable over the growing season of each site.

    The growing season is the set of time indices where tgrowth exceeds the
    threshold. A site with no such index gets MISSING for every variable.

    Args:
        derived: Derived records of one or more sites
        variables: Variables to average
        threshold: Growth temperature threshold in °C (default 0)

    Returns:
        One AggregatedRecord per (site, variable), in site then variable order
    """
    aggregated = []
    for site_id, records in _group_by_site(derived).items():
        season = [r for r in records
                  if not is_missing(r.get('tgrowth')) and r.get('tgrowth') > threshold]

        if not season:
            logger.debug(f"Site {site_id}: no time index with tgrowth > {threshold}")

        for variable in variables:
            value = nan_mean([r.get(variable) for r in season])
            aggregated.append(AggregatedRecord(site_id=site_id, variable=variable, value=value))

    return aggregated


def multi_year_mean(records: Iterable[RawRecord],
                    year_start: int,
                    year_end: int,
                    variables: Optional[Sequence[str]] = None) -> List[AggregatedRecord]:
    """
    Mean of each variable over all years in [year_start, year_end].

    Args:
        records: Yearly raw records (time holds the year)
        year_start: First year (inclusive)
        year_end: Last year (inclusive)
        variables: Variables to average (default: all variables present, in first-seen order)

    Returns:
        One AggregatedRecord per (site, variable)
    """
    if year_start > year_end:
        raise ValueError(f"year_start ({year_start}) must be <= year_end ({year_end})")

    aggregated = []
    for site_id, site_records in _group_by_site(records).items():
        in_range = [r for r in site_records
                    if r.time is not None and year_start <= r.time <= year_end]

        site_variables = variables
        if site_variables is None:
            site_variables = list(OrderedDict.fromkeys(r.variable for r in site_records))

        for variable in site_variables:
            value = nan_mean([r.value for r in in_range if r.variable == variable])
            aggregated.append(AggregatedRecord(site_id=site_id, variable=variable, value=value))

    return aggregated


def sum_components(aggregated: Iterable[AggregatedRecord],
                   components: Sequence[str] = ('noy', 'nhx'),
                   name: str = 'ndep') -> List[AggregatedRecord]:
    """
    Add a composite variable as the sum of component variables.

    The components are kept; the composite follows each site's components.
    The composite is MISSING if any component is missing or absent.

    Args:
        aggregated: Aggregated records
        components: Variables to sum
        name: Name of the composite variable

    Returns:
        Input records plus one composite record per site
    """
    result = []
    for site_id, records in _group_by_site(aggregated).items():
        by_variable = {r.variable: r.value for r in records}
        parts = [by_variable.get(component, MISSING) for component in components]
        total = MISSING if any(is_missing(p) for p in parts) else float(sum(parts))

        result.extend(records)
        result.append(AggregatedRecord(site_id=site_id, variable=name, value=total))

    return result


def depth_weighted_layer_mean(records: Iterable[RawRecord],
                              variables: Optional[Sequence[str]] = None) -> List[AggregatedRecord]:
    """
    Reduce layered soil records to one value per (site, variable).

    Each layer is weighted by its thickness; missing layers are dropped and the
    remaining weights renormalized.

    Args:
        records: Layered raw records (layer holds the depth layer number)
        variables: Variables to reduce (default: all present)

    Returns:
        One AggregatedRecord per (site, variable)
    """
    aggregated = []
    for site_id, site_records in _group_by_site(records).items():
        site_variables = variables
        if site_variables is None:
            site_variables = list(OrderedDict.fromkeys(r.variable for r in site_records))

        for variable in site_variables:
            pairs: List[Tuple[float, float]] = [
                (r.value, get_layer_thickness(r.layer))
                for r in site_records
                if r.variable == variable and r.layer is not None and not r.is_missing
            ]
            if pairs:
                values, weights = zip(*pairs)
                value = float(np.average(values, weights=weights))
            else:
                value = MISSING
            aggregated.append(AggregatedRecord(site_id=site_id, variable=variable, value=value))

    return aggregated


def single_value(records: Iterable[RawRecord]) -> List[AggregatedRecord]:
    """
    Lift records without a time or layer dimension (e.g. elevation).

    Raises:
        ValueError: If a (site, variable) pair occurs more than once
    """
    aggregated = []
    seen = set()
    for record in records:
        key = (record.site_id, record.variable)
        if key in seen:
            raise ValueError(f"More than one value for site {record.site_id}, variable {record.variable}")
        seen.add(key)
        aggregated.append(AggregatedRecord(site_id=record.site_id, variable=record.variable, value=record.value))
    return aggregated


def to_table(aggregated: Iterable[AggregatedRecord], key: str = 'sitename') -> pd.DataFrame:
    """
    Pivot aggregated records into a per-source table.

    Args:
        aggregated: Aggregated records
        key: Name of the site identifier column

    Returns:
        DataFrame with the key column and one column per variable, rows in
        first-seen site order, columns in first-seen variable order
    """
    rows: "OrderedDict[str, Dict[str, float]]" = OrderedDict()
    columns: List[str] = []
    for record in aggregated:
        rows.setdefault(record.site_id, {})[record.variable] = record.value
        if record.variable not in columns:
            columns.append(record.variable)

    table = pd.DataFrame(
        [[site_id] + [values.get(column, MISSING) for column in columns] for site_id, values in rows.items()],
        columns=[key] + columns,
    )
    return table
