"""
Shared fixtures for the site ingestion tests.

Builds small synthetic source directories in a temporary location: GeoTIFFs
on a 1-degree grid covering 20°W-20°E and 10.5°S-60.5°N, deposition NetCDF
files on a half-degree grid and a CO2 table. Each site gets its own cell so
expected values can be set per site.
"""

import sys
from pathlib import Path

import numpy as np
import pytest
import rasterio
import xarray as xr
from rasterio.transform import from_origin

sys.path.append(str(Path(__file__).parent.parent / "src"))

from site_ingest.records import Site
from site_ingest.source_variables import SOIL_LAYERS


WEST, NORTH, RES = -20.0, 60.5, 1.0
WIDTH, HEIGHT = 40, 71
NODATA = -9999.0

NDEP_YEARS = list(range(1980, 2016))


def cell_of(site):
    """Row and column of the grid cell holding a site."""
    return int((NORTH - site.lat) // RES), int((site.lon - WEST) // RES)


def write_site_raster(path, values_by_site, fill=NODATA):
    """Write a single-band GeoTIFF with one value per site cell and nodata elsewhere."""
    data = np.full((HEIGHT, WIDTH), fill, dtype='float32')
    for site, value in values_by_site.items():
        row, col = cell_of(site)
        data[row, col] = value

    with rasterio.open(
        path, 'w',
        driver='GTiff',
        height=HEIGHT,
        width=WIDTH,
        count=1,
        dtype='float32',
        crs='EPSG:4326',
        transform=from_origin(WEST, NORTH, RES, RES),
        nodata=NODATA,
    ) as dst:
        dst.write(data, 1)
    return Path(path)


def noy_value(year):
    return 0.5 + 0.01 * (year - 1990)


NHX_VALUE = 0.25


def write_ndep_file(path, variable, value_of_year, time_name='time'):
    """Write a (time, lat, lon) deposition grid with one spatially uniform field per year."""
    lats = np.arange(40.25, 60.0, 0.5)
    lons = np.arange(-9.75, 10.0, 0.5)
    data = np.stack([np.full((lats.size, lons.size), value_of_year(year)) for year in NDEP_YEARS])

    dataset = xr.Dataset(
        {variable: ((time_name, 'lat', 'lon'), data)},
        coords={time_name: NDEP_YEARS, 'lat': lats, 'lon': lons},
    )
    dataset[variable].attrs['units'] = 'gN m-2 yr-1'
    dataset.to_netcdf(path)
    return Path(path)


def co2_value(year):
    return 350.0 + 2.0 * (year - 1990)


@pytest.fixture
def sites():
    """Three sites inside the synthetic grid."""
    return [
        Site('CH-Lae', 8.365, 47.4783, elv=689.0),
        Site('FR-Pue', 3.5957, 43.7413, elv=270.0),
        Site('BE-Vie', 5.9981, 50.3049),
    ]


@pytest.fixture
def outside_site():
    """A site outside every synthetic grid."""
    return Site('US-Ha1', -72.1715, 42.5378, elv=340.0)


@pytest.fixture
def etopo_dir(tmp_path, sites):
    """ETOPO1 directory with elevation 420, 270 and 480 m at the three sites."""
    directory = tmp_path / 'etopo1'
    directory.mkdir()
    elevations = dict(zip(sites, [420.0, 270.0, 480.0]))
    write_site_raster(directory / 'ETOPO1_Bed_g_geotiff.tif', elevations)
    return directory


@pytest.fixture
def soilgrids_dir(tmp_path, sites):
    """
    SoilGrids directory with soc and nitrogen for all six layers.

    Stored soc is 100, 80, 60, 40, 20, 10 dg kg-1 (layers 1-6) at every site,
    nitrogen 200 cg kg-1 in every layer.
    """
    directory = tmp_path / 'soilgrids'
    directory.mkdir()
    soc = {1: 100.0, 2: 80.0, 3: 60.0, 4: 40.0, 5: 20.0, 6: 10.0}
    for layer, info in SOIL_LAYERS.items():
        write_site_raster(directory / f"soc_{info['label']}_mean.tif",
                          {site: soc[layer] for site in sites})
        write_site_raster(directory / f"nitrogen_{info['label']}_mean.tif",
                          {site: 200.0 for site in sites})
    return directory


@pytest.fixture
def ndep_dir(tmp_path):
    """Deposition directory with noy rising by 0.01 per year and constant nhx."""
    directory = tmp_path / 'ndep'
    directory.mkdir()
    write_ndep_file(directory / 'ndep_noy.nc', 'noy', noy_value)
    write_ndep_file(directory / 'ndep_nhx.nc', 'nhx', lambda year: NHX_VALUE)
    return directory


@pytest.fixture
def co2_dir(tmp_path):
    """CO2 directory with a NOAA style annual mean table for 1980-2020."""
    directory = tmp_path / 'co2'
    directory.mkdir()
    lines = [
        "# Global annual mean CO2 (synthetic)",
        "# year, mean, unc",
        "year,mean,unc",
    ]
    lines += [f"{year},{co2_value(year):.2f},0.10" for year in range(1980, 2021)]
    (directory / 'co2_annmean_gl.csv').write_text("\n".join(lines) + "\n")
    return directory


@pytest.fixture
def climate_sites():
    """Three equatorial sites; at latitude 0 the day length is 12 h all year."""
    return [
        Site('EQ-Sea', 0.5, 0.0),
        Site('EQ-Warm', 5.5, 0.0),
        Site('EQ-Cold', 10.5, 0.0),
    ]


@pytest.fixture
def climate_values(climate_sites):
    """
    Monthly (tmin, tmax, vapr, srad) per site.

    EQ-Sea: cold (-10/2 °C) in months 1-3 and 10-12, warm (10/20 °C) in
    months 4-9 with srad 12000-20000 kJ m-2 day-1.
    EQ-Warm: 5/15 °C all year.
    EQ-Cold: -20/-10 °C all year.
    """
    seasonal_srad = {4: 12000.0, 5: 16000.0, 6: 20000.0, 7: 20000.0, 8: 16000.0, 9: 12000.0}
    values = {}
    for month in range(1, 13):
        warm = month in seasonal_srad
        values[(climate_sites[0], month)] = {
            'tmin': 10.0 if warm else -10.0,
            'tmax': 20.0 if warm else 2.0,
            'vapr': 1.0 if warm else 0.5,
            'srad': seasonal_srad.get(month, 8000.0),
        }
        values[(climate_sites[1], month)] = {'tmin': 5.0, 'tmax': 15.0, 'vapr': 0.75, 'srad': 15000.0}
        values[(climate_sites[2], month)] = {'tmin': -20.0, 'tmax': -10.0, 'vapr': 0.1, 'srad': 5000.0}
    return values


@pytest.fixture
def worldclim_dir(tmp_path, climate_sites, climate_values):
    """WorldClim directory with tmin, tmax, vapr and srad for every month."""
    directory = tmp_path / 'worldclim'
    directory.mkdir()
    for var in ('tmin', 'tmax', 'vapr', 'srad'):
        for month in range(1, 13):
            write_site_raster(
                directory / f"wc2.1_30s_{var}_{month:02d}.tif",
                {site: climate_values[(site, month)][var] for site in climate_sites})
    return directory
