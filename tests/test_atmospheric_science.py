"""
Tests for atmospheric science and unit conversion functions.

Checks the vapour pressure, VPD, PPFD and growth temperature formulas
against values computed by hand.
"""

import math

import pytest
import numpy as np
from pathlib import Path

import sys
sys.path.append(str(Path(__file__).parent.parent / "src"))

from site_ingest.atmospheric_science import (
    calc_growth_temperature,
    calc_patm,
    calc_vpd,
    day_length_hours,
    saturation_vapor_pressure,
    solar_declination,
)
from site_ingest.units_constants import (
    convert_units,
    pressure_kpa_to_pa,
    scale_integer_soil_value,
    solar_radiation_to_ppfd,
    temperature_kelvin_to_celsius,
)


def esat_by_hand(tc):
    return 611.0 * math.exp(17.27 * tc / (tc + 237.3))


def test_saturation_vapor_pressure_values():
    """Test saturation vapour pressure in Pa"""
    assert saturation_vapor_pressure(0.0) == pytest.approx(611.0)
    assert saturation_vapor_pressure(20.0) == pytest.approx(esat_by_hand(20.0))

    values = saturation_vapor_pressure(np.array([-10.0, 10.0, 30.0]))
    assert np.all(np.diff(values) > 0)


def test_vpd_from_tmin_tmax():
    """Test VPD as the mean of the deficits at tmin and tmax"""
    vpd = calc_vpd(eact=1000.0, tmin=10.0, tmax=20.0)
    expected = ((esat_by_hand(10.0) - 1000.0) + (esat_by_hand(20.0) - 1000.0)) / 2.0
    assert float(vpd) == pytest.approx(expected)


def test_vpd_degenerate_equal_temperatures():
    """Test that tmin == tmax gives the deficit at that single temperature"""
    vpd = calc_vpd(eact=1000.0, tmin=10.0, tmax=10.0)
    assert float(vpd) == pytest.approx(esat_by_hand(10.0) - 1000.0)
    assert float(vpd) == pytest.approx(float(calc_vpd(eact=1000.0, tc=10.0)))


def test_vpd_from_specific_humidity():
    """Test VPD with vapour pressure derived from specific humidity"""
    vpd = calc_vpd(qair=0.008, elv=0.0, tc=20.0)
    assert 0 < float(vpd) < esat_by_hand(20.0)


def test_vpd_requires_temperature():
    """Test that VPD without temperature raises"""
    with pytest.raises(ValueError):
        calc_vpd(eact=1000.0)


def test_calc_patm():
    """Test barometric pressure at sea level and altitude"""
    assert float(calc_patm(0.0)) == pytest.approx(101325.0)
    assert 85000 < float(calc_patm(1500.0)) < 86000


def test_ppfd_from_solar_radiation():
    """Test srad (kJ m-2 day-1) to PPFD (mol m-2 s-1)"""
    ppfd = solar_radiation_to_ppfd(20000.0)
    assert float(ppfd) == pytest.approx(20000.0 * 1e3 * 2.04 * 1e-6 / 86400.0)

    custom = solar_radiation_to_ppfd(20000.0, flux_to_energy=4.6)
    assert float(custom) > float(ppfd)


def test_unit_conversions():
    """Test unit conversion helpers"""
    assert float(pressure_kpa_to_pa(1.2)) == pytest.approx(1200.0)
    assert float(temperature_kelvin_to_celsius(273.15)) == pytest.approx(0.0)
    assert float(scale_integer_soil_value(125.0, 10.0)) == pytest.approx(12.5)
    assert float(convert_units(0.5, 'kPa', 'Pa')) == pytest.approx(500.0)

    with pytest.raises(ValueError, match="No unit conversion"):
        convert_units(1.0, 'kPa', 'm')


def test_solar_declination_range():
    """Test declination near the solstices and equinox"""
    assert np.rad2deg(solar_declination(172)) == pytest.approx(23.45, abs=0.1)
    assert np.rad2deg(solar_declination(355)) == pytest.approx(-23.45, abs=0.1)
    assert abs(np.rad2deg(solar_declination(81))) < 1.0


def test_day_length():
    """Test day length at the equator and poles"""
    assert float(day_length_hours(0.0, 172)) == pytest.approx(12.0)
    assert float(day_length_hours(80.0, 172)) == pytest.approx(24.0)
    assert float(day_length_hours(80.0, 355)) == pytest.approx(0.0)
    assert float(day_length_hours(50.0, 172)) > float(day_length_hours(50.0, 355))


def test_growth_temperature_equator():
    """Test growth temperature at the equator (12 h day)"""
    tgrowth = calc_growth_temperature(10.0, 20.0, 0.0, 100)
    expected = 20.0 * (0.5 + 1.0 / math.pi) + 10.0 * (0.5 - 1.0 / math.pi)
    assert tgrowth == pytest.approx(expected)


def test_growth_temperature_not_plain_mean():
    """Test that growth temperature weights towards tmax"""
    tgrowth = calc_growth_temperature(0.0, 20.0, 45.0, 200)
    assert tgrowth > 10.0
    assert tgrowth < 20.0


def test_growth_temperature_polar_limits():
    """Test polar day and polar night limits"""
    polar_day = calc_growth_temperature(0.0, 10.0, 80.0, 172)
    polar_night = calc_growth_temperature(0.0, 10.0, 80.0, 355)
    assert polar_day == pytest.approx(5.0)
    assert polar_night == pytest.approx(10.0)


def test_growth_temperature_missing_input():
    """Test that a missing temperature propagates"""
    assert math.isnan(calc_growth_temperature(float('nan'), 10.0, 45.0, 100))


def test_growth_temperature_arrays():
    """Test growth temperature with numpy arrays"""
    tgrowth = calc_growth_temperature(np.array([0.0, 5.0]), np.array([10.0, 15.0]), 30.0, 180)
    assert isinstance(tgrowth, np.ndarray)
    assert tgrowth.shape == (2,)
    assert tgrowth[1] == pytest.approx(tgrowth[0] + 5.0)


if __name__ == '__main__':
    pytest.main([__file__])
