"""
Physical Constants and Unit Conversions for Site Ingestion

This module provides physical constants and unit conversion utilities used
to bring source-native values into the units expected by the downstream
photosynthesis model (degC, Pa, ppm, mol m-2 s-1, m).

Scientific Context:
Sources deliver values in heterogeneous units: WorldClim vapour pressure in
kPa, solar radiation as daily energy totals in kJ m-2 day-1. The model
expects vapour pressure deficit in Pa and photosynthetic photon flux density
as a mean flux in mol m-2 s-1.

References:
- CODATA 2018 internationally recommended values
- Meek et al. (1984), Agron. J. 76: 939-945 (flux-to-energy conversion 2.04 umol J-1)
- Allen et al. (1998), FAO Irrigation and Drainage Paper 56
"""

import numpy as np
from typing import Union, Callable, Dict, Tuple


# =============================================================================
# PHYSICAL CONSTANTS
# =============================================================================

class PhysicalConstants:
    """
    Collection of physical constants used in the derived-variable calculations.
    """

    # Universal constants
    UNIVERSAL_GAS_CONSTANT = 8.3145  # J mol⁻¹ K⁻¹ (value used by the P-model)

    # Earth and atmospheric constants
    STANDARD_GRAVITY = 9.80665  # m s⁻²
    STANDARD_PRESSURE = 101325.0  # Pa (1 atm)
    STANDARD_TEMPERATURE = 273.15  # K (0°C)
    REFERENCE_TEMPERATURE = 298.15  # K, base temperature of the barometric formula
    TEMPERATURE_LAPSE_RATE = 0.0065  # K m⁻¹

    # Molar masses (kg mol⁻¹)
    MOLAR_MASS_DRY_AIR = 0.028963
    MOLAR_MASS_WATER = 0.01802

    # Radiation
    SECONDS_PER_DAY = 86400.0
    FLUX_TO_ENERGY = 2.04  # kfFEC, µmol photons J⁻¹ of shortwave radiation

    # Solar geometry
    MAX_SOLAR_DECLINATION_DEG = 23.45


# =============================================================================
# UNIT CONVERSION FUNCTIONS
# =============================================================================

def temperature_kelvin_to_celsius(temperature_kelvin: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Convert temperature from Kelvin to Celsius.

    Args:
        temperature_kelvin: Temperature in Kelvin

    Returns:
        Temperature in Celsius
    """
    return np.asarray(temperature_kelvin) - PhysicalConstants.STANDARD_TEMPERATURE


def temperature_celsius_to_kelvin(temperature_celsius: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Convert temperature from Celsius to Kelvin.

    Args:
        temperature_celsius: Temperature in Celsius

    Returns:
        Temperature in Kelvin
    """
    return np.asarray(temperature_celsius) + PhysicalConstants.STANDARD_TEMPERATURE


def pressure_kpa_to_pa(pressure_kpa: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Convert pressure from kilopascals to Pascals.

    WorldClim water vapour pressure is delivered in kPa; the model expects Pa.

    Args:
        pressure_kpa: Pressure in kilopascals (kPa)

    Returns:
        Pressure in Pascals
    """
    return np.asarray(pressure_kpa) * 1000.0


def pressure_pa_to_kpa(pressure_pa: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Convert pressure from Pascals to kilopascals.

    Args:
        pressure_pa: Pressure in Pascals

    Returns:
        Pressure in kilopascals (kPa)
    """
    return np.asarray(pressure_pa) / 1000.0


def solar_radiation_to_ppfd(srad_kj_m2_day: Union[float, np.ndarray],
                            flux_to_energy: float = PhysicalConstants.FLUX_TO_ENERGY) -> Union[float, np.ndarray]:
    """
    Convert daily incident solar radiation to mean photosynthetic photon flux density.

    Scientific Background:
    The daily shortwave energy total is converted from kJ to J (x1000),
    from energy to photons with the flux-to-energy factor (2.04 µmol J⁻¹),
    from µmol to mol (x1e-6) and from a daily total to a mean flux per
    second (/86400).

    Args:
        srad_kj_m2_day: Incident solar radiation in kJ m⁻² day⁻¹
            Typical range: 0-35000 kJ m⁻² day⁻¹
            Source: WorldClim 'srad'
        flux_to_energy: Photon flux per unit energy in µmol J⁻¹ (default 2.04)

    Returns:
        PPFD in mol m⁻² s⁻¹
            Typical range: 0-8e-4 mol m⁻² s⁻¹ as a 24 h mean

    Example:
        >>> solar_radiation_to_ppfd(20000.0)
        0.000472...
    """
    srad = np.asarray(srad_kj_m2_day)
    return srad * 1.0e3 * flux_to_energy * 1.0e-6 / PhysicalConstants.SECONDS_PER_DAY


def scale_integer_soil_value(value: Union[float, np.ndarray], conversion: float) -> Union[float, np.ndarray]:
    """
    Convert an integer-scaled SoilGrids value into conventional units.

    Args:
        value: Value as stored in the raster (e.g. soc in dg kg⁻¹)
        conversion: Divisor from the variable registry (e.g. 10 for soc)

    Returns:
        Value in conventional units (e.g. soc in g kg⁻¹)
    """
    return np.asarray(value) / conversion


# Conversions from native source units to model units, keyed by (from, to)
UNIT_CONVERSIONS: Dict[Tuple[str, str], Callable] = {
    ('kPa', 'Pa'): pressure_kpa_to_pa,
    ('Pa', 'kPa'): pressure_pa_to_kpa,
    ('K', 'degC'): temperature_kelvin_to_celsius,
    ('degC', 'K'): temperature_celsius_to_kelvin,
    ('kJ m-2 day-1', 'mol m-2 s-1'): solar_radiation_to_ppfd,
}

# Target unit for each native unit when normalizing to model units
MODEL_UNITS: Dict[str, str] = {
    'kPa': 'Pa',
    'K': 'degC',
}


def convert_units(value: Union[float, np.ndarray], from_unit: str, to_unit: str) -> Union[float, np.ndarray]:
    """
    Convert a value between two units using the conversion table.

    Args:
        value: Value to convert
        from_unit: Unit of the input value
        to_unit: Desired unit

    Returns:
        Converted value

    Raises:
        ValueError: If no conversion between the units is known
    """
    if from_unit == to_unit:
        return np.asarray(value)
    try:
        converter = UNIT_CONVERSIONS[(from_unit, to_unit)]
    except KeyError:
        raise ValueError(f"No unit conversion from '{from_unit}' to '{to_unit}'")
    return converter(value)
