"""
Derived-Variable Transformer

Pure per-record functions that normalize raw source values to model units and
compute the derived forcing variables for each (site, time index):

- vapr:    kPa -> Pa
- ppfd:    kJ m-2 day-1 of shortwave radiation -> mol m-2 s-1 of photons
- vpd:     mean of the deficits at tmin and tmax, in Pa
- tgrowth: day-length-weighted daytime temperature, in °C

No state is carried across sites. A missing input marks only the derived
fields that depend on it as missing.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Sequence

from .atmospheric_science import calc_growth_temperature, calc_vpd
from .records import MISSING, DerivedRecord, RawRecord, Site, is_missing
from .units_constants import MODEL_UNITS, PhysicalConstants, convert_units, solar_radiation_to_ppfd


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransformParams:
    """
    Constants used by the transformer.

    Attributes:
        kfFEC: Flux-to-energy conversion factor in µmol J⁻¹
        growth_temperature_threshold: Growing-season threshold on tgrowth in °C
        mid_month_day: Day of month representing a monthly value
    """
    kfFEC: float = PhysicalConstants.FLUX_TO_ENERGY
    growth_temperature_threshold: float = 0.0
    mid_month_day: int = 15

    @classmethod
    def from_config(cls, transform_config: Dict) -> "TransformParams":
        return cls(
            kfFEC=float(transform_config.get('kfFEC', PhysicalConstants.FLUX_TO_ENERGY)),
            growth_temperature_threshold=float(transform_config.get('growth_temperature_threshold', 0.0)),
            mid_month_day=int(transform_config.get('mid_month_day', 15)),
        )


DERIVED_UNITS = {
    'ppfd': 'mol m-2 s-1',
    'vpd': 'Pa',
    'tgrowth': 'degC',
}


def mid_month_doy(month: int, day: int = 15) -> int:
    """
    Day of year representing a month, in a non-leap year.

    Args:
        month: Month number (1-12)
        day: Day of month (default 15)

    Returns:
        Day of year (1-365)
    """
    return date(2001, int(month), int(day)).timetuple().tm_yday


def normalize_record(record: RawRecord) -> RawRecord:
    """
    Convert a raw record from its native unit to the model unit.

    Units without a model-unit mapping (°C, mm, kJ m-2 day-1 before PPFD is
    derived) are returned unchanged.
    """
    target = MODEL_UNITS.get(record.unit)
    if target is None:
        return record

    value = record.value if record.is_missing else float(convert_units(record.value, record.unit, target))
    return RawRecord(
        site_id=record.site_id,
        variable=record.variable,
        value=value,
        unit=target,
        layer=record.layer,
        time=record.time,
    )


def derive_time_step(site: Site, time: int, records: Iterable[RawRecord],
                     params: TransformParams = TransformParams()) -> DerivedRecord:
    """
    Normalize and derive all forcing variables for one site and month.

    Args:
        site: Site the records belong to (latitude is needed for tgrowth)
        time: Month number (1-12)
        records: The site's raw records for this month
        params: Transformer constants

    Returns:
        DerivedRecord with normalized inputs plus ppfd, vpd and tgrowth where
        their inputs were requested
    """
    values: Dict[str, float] = {}
    units: Dict[str, str] = {}
    for record in records:
        normalized = normalize_record(record)
        values[normalized.variable] = normalized.value
        units[normalized.variable] = normalized.unit

    if 'srad' in values:
        srad = values['srad']
        values['ppfd'] = MISSING if is_missing(srad) else float(solar_radiation_to_ppfd(srad, params.kfFEC))
        units['ppfd'] = DERIVED_UNITS['ppfd']

    if 'tmin' in values and 'tmax' in values:
        tmin, tmax = values['tmin'], values['tmax']
        doy = mid_month_doy(time, params.mid_month_day)
        values['tgrowth'] = float(calc_growth_temperature(tmin, tmax, site.lat, doy))
        units['tgrowth'] = DERIVED_UNITS['tgrowth']

        if 'vapr' in values:
            values['vpd'] = float(calc_vpd(eact=values['vapr'], tmin=tmin, tmax=tmax))
            units['vpd'] = DERIVED_UNITS['vpd']

    return DerivedRecord(site_id=site.id, time=int(time), values=values, units=units)


def derive_monthly_climate(site: Site, records: Iterable[RawRecord],
                           params: TransformParams = TransformParams()) -> List[DerivedRecord]:
    """
    Derive forcing variables for every month of one site.

    Args:
        site: Site to derive
        records: Raw monthly records; records of other sites are ignored
        params: Transformer constants

    Returns:
        One DerivedRecord per month present, ordered by month
    """
    by_time: Dict[int, List[RawRecord]] = {}
    for record in records:
        if record.site_id != site.id or record.time is None:
            continue
        by_time.setdefault(int(record.time), []).append(record)

    return [derive_time_step(site, time, by_time[time], params) for time in sorted(by_time)]


def derive_all(sites: Sequence[Site], records: Iterable[RawRecord],
               params: TransformParams = TransformParams()) -> List[DerivedRecord]:
    """
    Derive forcing variables for all sites, in site order.

    Args:
        sites: Sites to derive
        records: Raw monthly records of all sites
        params: Transformer constants

    Returns:
        DerivedRecords ordered by (site, month)
    """
    by_site: Dict[str, List[RawRecord]] = OrderedDict((site.id, []) for site in sites)
    for record in records:
        if record.site_id in by_site:
            by_site[record.site_id].append(record)

    derived = []
    for site in sites:
        derived.extend(derive_monthly_climate(site, by_site[site.id], params))

    logger.debug(f"Derived {len(derived)} site-months for {len(sites)} sites")
    return derived
