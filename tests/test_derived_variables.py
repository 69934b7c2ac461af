"""
Tests for the derived-variable transformer.

Tests unit normalization and derivation of ppfd, vpd and tgrowth from raw
monthly records, including missing-value propagation.
"""

import math

import pytest
from pathlib import Path

import sys
sys.path.append(str(Path(__file__).parent.parent / "src"))

from site_ingest.derived_variables import (
    TransformParams,
    derive_all,
    derive_monthly_climate,
    derive_time_step,
    mid_month_doy,
    normalize_record,
)
from site_ingest.records import MISSING, RawRecord, Site, is_missing


SITE = Site('EQ-Test', 10.0, 0.0)


def monthly_records(site_id, month, tmin=10.0, tmax=20.0, vapr=1.0, srad=20000.0):
    return [
        RawRecord(site_id, 'tmin', tmin, 'degC', time=month),
        RawRecord(site_id, 'tmax', tmax, 'degC', time=month),
        RawRecord(site_id, 'vapr', vapr, 'kPa', time=month),
        RawRecord(site_id, 'srad', srad, 'kJ m-2 day-1', time=month),
    ]


def test_mid_month_doy():
    """Test mid-month day of year in a non-leap year"""
    assert mid_month_doy(1) == 15
    assert mid_month_doy(3) == 74
    assert mid_month_doy(12) == 349
    assert mid_month_doy(2, day=1) == 32


def test_normalize_record_kpa():
    """Test that vapour pressure is converted to Pa"""
    normalized = normalize_record(RawRecord('a', 'vapr', 1.2, 'kPa', time=1))
    assert normalized.unit == 'Pa'
    assert normalized.value == pytest.approx(1200.0)
    assert normalized.time == 1


def test_normalize_record_passthrough():
    """Test that model units and missing values pass unchanged"""
    record = RawRecord('a', 'tmin', 5.0, 'degC', time=1)
    assert normalize_record(record) is record

    missing = normalize_record(RawRecord('a', 'vapr', MISSING, 'kPa', time=1))
    assert missing.unit == 'Pa'
    assert is_missing(missing.value)


def test_derive_time_step_values():
    """Test derived values for one equatorial month"""
    derived = derive_time_step(SITE, 4, monthly_records(SITE.id, 4))

    esat_10 = 611.0 * math.exp(17.27 * 10.0 / 247.3)
    esat_20 = 611.0 * math.exp(17.27 * 20.0 / 257.3)
    assert derived.get('vapr') == pytest.approx(1000.0)
    assert derived.get('vpd') == pytest.approx((esat_10 + esat_20) / 2.0 - 1000.0)
    assert derived.get('ppfd') == pytest.approx(20000.0 * 1e3 * 2.04e-6 / 86400.0)
    assert derived.get('tgrowth') == pytest.approx(20.0 * (0.5 + 1 / math.pi) + 10.0 * (0.5 - 1 / math.pi))
    assert derived.units['vpd'] == 'Pa'
    assert derived.units['ppfd'] == 'mol m-2 s-1'


def test_derive_time_step_kffec_parameter():
    """Test that the flux-to-energy factor is taken from the parameters"""
    params = TransformParams(kfFEC=4.6)
    derived = derive_time_step(SITE, 4, monthly_records(SITE.id, 4), params)
    assert derived.get('ppfd') == pytest.approx(20000.0 * 1e3 * 4.6e-6 / 86400.0)


def test_missing_input_marks_only_dependents():
    """Test that missing vapr only makes vpd missing"""
    derived = derive_time_step(SITE, 4, monthly_records(SITE.id, 4, vapr=MISSING))

    assert is_missing(derived.get('vpd'))
    assert not is_missing(derived.get('tgrowth'))
    assert not is_missing(derived.get('ppfd'))


def test_missing_temperature_marks_tgrowth_and_vpd():
    """Test that missing tmin makes tgrowth and vpd missing"""
    derived = derive_time_step(SITE, 4, monthly_records(SITE.id, 4, tmin=MISSING))

    assert is_missing(derived.get('tgrowth'))
    assert is_missing(derived.get('vpd'))
    assert not is_missing(derived.get('ppfd'))


def test_not_requested_inputs_are_not_derived():
    """Test that no vpd is derived without vapr"""
    records = [r for r in monthly_records(SITE.id, 4) if r.variable != 'vapr']
    derived = derive_time_step(SITE, 4, records)

    assert 'vpd' not in derived.values
    assert is_missing(derived.get('vpd'))


def test_derive_monthly_climate_orders_months():
    """Test one derived record per month, ordered by month"""
    records = []
    for month in (3, 1, 2):
        records.extend(monthly_records(SITE.id, month))
    records.extend(monthly_records('other-site', 1))

    derived = derive_monthly_climate(SITE, records)
    assert [d.time for d in derived] == [1, 2, 3]
    assert all(d.site_id == SITE.id for d in derived)


def test_derive_all_keeps_site_order():
    """Test that derive_all orders records by site then month"""
    north = Site('N', 0.0, 45.0)
    south = Site('S', 0.0, -45.0)
    records = monthly_records('S', 1) + monthly_records('N', 1) + monthly_records('N', 7)

    derived = derive_all([north, south], records)
    assert [(d.site_id, d.time) for d in derived] == [('N', 1), ('N', 7), ('S', 1)]

    # January is summer in the south: longer days, weight closer to the mean
    assert derived[2].get('tgrowth') < derived[0].get('tgrowth')


if __name__ == '__main__':
    pytest.main([__file__])
