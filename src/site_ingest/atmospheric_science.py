"""
Atmospheric Science Calculations for Site Ingestion

This module provides the atmospheric and astronomical functions used to derive
model forcing from climatological inputs: saturation vapour pressure, vapour
pressure deficit, barometric pressure, solar declination, day length and the
day-length-weighted growth temperature.

Scientific Context:
The photosynthesis model needs a representative daytime temperature and a
daytime vapour pressure deficit. Both depend non-linearly on the daily
temperature extremes, so they are computed from tmin and tmax directly
rather than from a daily mean temperature.

Missing inputs are NaN and propagate through every function here.

References:
- Monteith & Unsworth (1990), Principles of Environmental Physics
- Allen et al. (1998), FAO Irrigation and Drainage Paper 56
- Cooper (1969), Solar Energy 12: 333-346 (solar declination)
- Jones (1992), Plants and Microclimate, 2nd ed., p. 230 (daytime mean temperature)
"""

import numpy as np
from typing import Union, Optional

from .units_constants import PhysicalConstants


def saturation_vapor_pressure(temperature_celsius: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Calculate saturation vapour pressure of water over a flat surface.

    Scientific Background:
    Tetens-type formula as given by Monteith & Unsworth (1990), calibrated to
    return kPa, then converted to Pa:
        esat = 0.611 * exp(17.27 * T / (T + 237.3))   [kPa]

    Args:
        temperature_celsius: Air temperature in degrees Celsius (scalar or array)
            Typical range: -40 to 50°C

    Returns:
        Saturation vapour pressure in Pa
            Typical range: 20-12000 Pa

    Example:
        >>> saturation_vapor_pressure(np.array([0.0, 20.0]))
        array([ 611.  , 2338.1...])
    """
    T = np.asarray(temperature_celsius, dtype=float)
    esat_kpa = 0.611 * np.exp((17.27 * T) / (T + 237.3))
    return esat_kpa * 1000.0


def calc_patm(elevation_m: Union[float, np.ndarray],
              patm0: float = PhysicalConstants.STANDARD_PRESSURE) -> Union[float, np.ndarray]:
    """
    Calculate atmospheric pressure as a function of elevation.

    Scientific Background:
    Barometric formula for a standard atmosphere with constant lapse rate:
        patm = patm0 * (1 - L * z / T0) ** (g * Ma / (R * L))

    Args:
        elevation_m: Elevation above sea level in m
        patm0: Atmospheric pressure at sea level in Pa (default 101325)

    Returns:
        Atmospheric pressure in Pa
    """
    z = np.asarray(elevation_m, dtype=float)
    c = PhysicalConstants
    exponent = c.STANDARD_GRAVITY * c.MOLAR_MASS_DRY_AIR / (c.UNIVERSAL_GAS_CONSTANT * c.TEMPERATURE_LAPSE_RATE)
    return patm0 * (1.0 - c.TEMPERATURE_LAPSE_RATE * z / c.REFERENCE_TEMPERATURE) ** exponent


def vapor_pressure_from_specific_humidity(specific_humidity: Union[float, np.ndarray],
                                          patm_pa: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Calculate actual vapour pressure from specific humidity.

    Args:
        specific_humidity: Specific humidity in kg kg⁻¹
        patm_pa: Atmospheric pressure in Pa

    Returns:
        Actual vapour pressure in Pa
    """
    q = np.asarray(specific_humidity, dtype=float)
    c = PhysicalConstants
    mixing_ratio = q / (1.0 - q)
    rv = c.UNIVERSAL_GAS_CONSTANT / c.MOLAR_MASS_WATER
    rd = c.UNIVERSAL_GAS_CONSTANT / c.MOLAR_MASS_DRY_AIR
    return np.asarray(patm_pa) * mixing_ratio * rv / (rd + mixing_ratio * rv)


def calc_vpd(eact: Optional[Union[float, np.ndarray]] = None,
             tmin: Optional[Union[float, np.ndarray]] = None,
             tmax: Optional[Union[float, np.ndarray]] = None,
             tc: Optional[Union[float, np.ndarray]] = None,
             qair: Optional[Union[float, np.ndarray]] = None,
             patm: Optional[Union[float, np.ndarray]] = None,
             elv: Optional[Union[float, np.ndarray]] = None) -> Union[float, np.ndarray]:
    """
    Calculate vapour pressure deficit.

    Scientific Background:
    Saturation vapour pressure is strongly non-linear in temperature, so
    computing it at the mean temperature biases VPD low. When both daily
    extremes are given, the deficit is computed at tmin and at tmax and the
    two deficits are averaged:
        vpd = ((esat(tmin) - eact) + (esat(tmax) - eact)) / 2
    Otherwise the deficit is computed at the single temperature tc.

    If eact is not given it is derived from specific humidity (qair) and
    atmospheric pressure (patm, or derived from elv).

    Args:
        eact: Actual vapour pressure in Pa
        tmin: Daily minimum temperature in °C
        tmax: Daily maximum temperature in °C
        tc: Temperature in °C, used when tmin/tmax are not both given
        qair: Specific humidity in kg kg⁻¹, used when eact is not given
        patm: Atmospheric pressure in Pa, used with qair
        elv: Elevation in m, used with qair when patm is not given

    Returns:
        Vapour pressure deficit in Pa (NaN where any input is missing)

    Raises:
        ValueError: If neither (tmin, tmax) nor tc is given, or eact cannot be determined

    Example:
        >>> calc_vpd(eact=1000.0, tmin=10.0, tmax=10.0)
        228.3...
    """
    if eact is None:
        if qair is None:
            raise ValueError("calc_vpd requires eact, or qair together with patm or elv")
        if patm is None:
            if elv is None:
                raise ValueError("calc_vpd requires patm or elv to derive eact from qair")
            patm = calc_patm(elv)
        eact = vapor_pressure_from_specific_humidity(qair, patm)

    eact = np.asarray(eact, dtype=float)

    if tmin is not None and tmax is not None:
        vpd_at_tmin = saturation_vapor_pressure(tmin) - eact
        vpd_at_tmax = saturation_vapor_pressure(tmax) - eact
        return (vpd_at_tmin + vpd_at_tmax) / 2.0

    if tc is None:
        raise ValueError("calc_vpd requires either tmin and tmax, or tc")

    return saturation_vapor_pressure(tc) - eact


def solar_declination(day_of_year: Union[int, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Calculate solar declination after Cooper (1969).

        delta = 23.45° * sin(2π (284 + doy) / 365)

    Args:
        day_of_year: Day of year (1-366)

    Returns:
        Solar declination in radians
    """
    doy = np.asarray(day_of_year, dtype=float)
    return np.deg2rad(PhysicalConstants.MAX_SOLAR_DECLINATION_DEG) * np.sin(2.0 * np.pi * (284.0 + doy) / 365.0)


def sunset_hour_angle_cosine(latitude_deg: Union[float, np.ndarray],
                             day_of_year: Union[int, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Cosine of the sunset hour angle, x = -tan(φ) tan(δ), clipped to [-1, 1].

    x = -1 is polar day (24 h daylight), x = 1 is polar night.
    """
    phi = np.deg2rad(np.asarray(latitude_deg, dtype=float))
    delta = solar_declination(day_of_year)
    x = -np.tan(phi) * np.tan(delta)
    return np.clip(x, -1.0, 1.0)


def day_length_hours(latitude_deg: Union[float, np.ndarray],
                     day_of_year: Union[int, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Calculate astronomical day length.

    Args:
        latitude_deg: Latitude in decimal degrees
        day_of_year: Day of year (1-366)

    Returns:
        Day length in hours (0 to 24)
    """
    x = sunset_hour_angle_cosine(latitude_deg, day_of_year)
    return 24.0 * np.arccos(x) / np.pi


def calc_growth_temperature(tmin: Union[float, np.ndarray],
                            tmax: Union[float, np.ndarray],
                            latitude_deg: Union[float, np.ndarray],
                            day_of_year: Union[int, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Calculate day-length-weighted mean daytime temperature (growth temperature).

    Scientific Background:
    Assuming a sinusoidal diurnal temperature course between tmin and tmax,
    the mean temperature over the daylight period is (Jones 1992):
        tgrowth = tmax * (1/2 + sqrt(1 - x²) / (2 acos(x)))
                + tmin * (1/2 - sqrt(1 - x²) / (2 acos(x)))
    where x = -tan(φ) tan(δ) is the cosine of the sunset hour angle. Short
    days weight tmax more strongly; under polar day (x = -1) the result is
    the plain mean of tmin and tmax, and the polar-night limit (x -> 1) is tmax.

    Args:
        tmin: Daily minimum temperature in °C
        tmax: Daily maximum temperature in °C
        latitude_deg: Latitude in decimal degrees
        day_of_year: Day of year (1-366)

    Returns:
        Growth temperature in °C (NaN where tmin or tmax is missing)

    Example:
        >>> # Equinox at the equator: x = 0, weight on tmax = 1/2 + 1/π
        >>> calc_growth_temperature(10.0, 20.0, 0.0, 80)
        18.18...
    """
    x = sunset_hour_angle_cosine(latitude_deg, day_of_year)
    hour_angle = np.arccos(x)

    with np.errstate(divide='ignore', invalid='ignore'):
        ratio = np.sqrt(1.0 - x ** 2) / (2.0 * hour_angle)
    # limit of sin(h)/(2h) as h -> 0
    ratio = np.where(hour_angle == 0.0, 0.5, ratio)

    tmin = np.asarray(tmin, dtype=float)
    tmax = np.asarray(tmax, dtype=float)
    tgrowth = tmax * (0.5 + ratio) + tmin * (0.5 - ratio)

    if np.ndim(tgrowth) == 0:
        return float(tgrowth)
    return tgrowth
