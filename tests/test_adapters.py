"""
Tests for the source adapters.

Runs each adapter against small synthetic source files and checks record
counts, values, units and the failure modes for missing storage or files.
"""

import numpy as np
import pytest
import rasterio
from pathlib import Path
from rasterio.transform import from_origin

import sys
sys.path.append(str(Path(__file__).parent.parent / "src"))

from site_ingest.adapters import (
    Co2Adapter,
    EtopoAdapter,
    NdepAdapter,
    SoilGridsAdapter,
    WorldClimAdapter,
)
from site_ingest.adapters.base import count_outside_range, sample_raster_at_sites
from site_ingest.data_source_config import (
    get_settings_co2,
    get_settings_etopo,
    get_settings_ndep,
    get_settings_soilgrids,
    get_settings_worldclim,
)
from site_ingest.logging_utils import SourceUnavailable, VariableNotFound
from site_ingest.records import RawRecord, Site

from conftest import NHX_VALUE, co2_value, noy_value, write_ndep_file


def test_etopo_values(etopo_dir, sites):
    """Test elevation at each site"""
    records = EtopoAdapter().extract(sites, get_settings_etopo(etopo_dir))

    assert [r.site_id for r in records] == ['CH-Lae', 'FR-Pue', 'BE-Vie']
    assert [r.value for r in records] == [420.0, 270.0, 480.0]
    assert all(r.unit == 'm' and r.variable == 'elv' for r in records)


def test_etopo_outside_extent_is_missing(etopo_dir, sites, outside_site):
    """Test that a site outside the raster gets a missing value"""
    records = EtopoAdapter().extract(sites + [outside_site], get_settings_etopo(etopo_dir))

    assert len(records) == 4
    assert records[3].is_missing
    assert sum(r.is_missing for r in records) == 1


def test_global_raster_edges(tmp_path):
    """Test that sites on every edge of a global raster get the edge cell"""
    path = tmp_path / 'global.tif'
    data = np.arange(360 * 180, dtype='float32').reshape(180, 360)
    with rasterio.open(path, 'w', driver='GTiff', height=180, width=360, count=1,
                       dtype='float32', crs='EPSG:4326',
                       transform=from_origin(-180.0, 90.0, 1.0, 1.0)) as dst:
        dst.write(data, 1)

    edge_sites = [
        Site('east', 180.0, 0.0),
        Site('south', 0.0, -90.0),
        Site('west', -180.0, 0.0),
        Site('north', 0.0, 90.0),
    ]
    with rasterio.open(path) as dataset:
        values = sample_raster_at_sites(dataset, edge_sites)

    # value = row * 360 + col
    assert values == [90 * 360 + 359, 179 * 360 + 180, 90 * 360, 180.0]


def test_count_outside_range():
    """Test counting of implausible values, ignoring missing ones"""
    records = [
        RawRecord('a', 'elv', 420.0, 'm'),
        RawRecord('b', 'elv', 12000.0, 'm'),
        RawRecord('c', 'elv', float('nan'), 'm'),
    ]
    assert count_outside_range(records, 'etopo1') == 1


def test_storage_not_found(tmp_path, sites):
    """Test that a missing storage directory raises SourceUnavailable"""
    with pytest.raises(SourceUnavailable):
        EtopoAdapter().extract(sites, get_settings_etopo(tmp_path / 'nowhere'))


def test_variable_file_not_found(etopo_dir, sites):
    """Test that a missing variable file raises VariableNotFound"""
    spec = get_settings_etopo(etopo_dir, file_name='ETOPO1_Ice_g_geotiff.tif')
    with pytest.raises(VariableNotFound):
        EtopoAdapter().extract(sites, spec)


def test_unreadable_file(tmp_path, sites):
    """Test that a corrupt raster raises SourceUnavailable after retrying"""
    directory = tmp_path / 'etopo1'
    directory.mkdir()
    (directory / 'ETOPO1_Bed_g_geotiff.tif').write_text("not a raster")

    adapter = EtopoAdapter(retry_attempts=1, retry_delay=0.0)
    with pytest.raises(SourceUnavailable):
        adapter.extract(sites, get_settings_etopo(directory))


def test_worldclim_record_count_and_order(worldclim_dir, climate_sites, climate_values):
    """Test sites x variables x 12 months in (site, month, variable) order"""
    spec = get_settings_worldclim(worldclim_dir)
    records = WorldClimAdapter().extract(climate_sites, spec)

    assert len(records) == len(climate_sites) * 4 * 12
    first = records[:4]
    assert [(r.site_id, r.time, r.variable) for r in first] == [
        ('EQ-Sea', 1, 'tmin'), ('EQ-Sea', 1, 'tmax'), ('EQ-Sea', 1, 'vapr'), ('EQ-Sea', 1, 'srad')]

    for record in records:
        site = next(s for s in climate_sites if s.id == record.site_id)
        assert record.value == pytest.approx(climate_values[(site, record.time)][record.variable])

    units = {r.variable: r.unit for r in records}
    assert units == {'tmin': 'degC', 'tmax': 'degC', 'vapr': 'kPa', 'srad': 'kJ m-2 day-1'}


def test_worldclim_missing_month_file(worldclim_dir, climate_sites):
    """Test that a missing month file fails the extraction"""
    (worldclim_dir / 'wc2.1_30s_srad_07.tif').unlink()
    with pytest.raises(VariableNotFound):
        WorldClimAdapter().extract(climate_sites, get_settings_worldclim(worldclim_dir))


def test_soilgrids_layers_and_scaling(soilgrids_dir, sites):
    """Test one record per site, layer and variable in conventional units"""
    spec = get_settings_soilgrids(soilgrids_dir)
    records = SoilGridsAdapter().extract(sites, spec)

    assert len(records) == len(sites) * 6 * 2
    soc = [r.value for r in records if r.site_id == 'CH-Lae' and r.variable == 'soc']
    assert soc == pytest.approx([10.0, 8.0, 6.0, 4.0, 2.0, 1.0])

    nitrogen = [r for r in records if r.variable == 'nitrogen']
    assert all(r.value == pytest.approx(2.0) and r.unit == 'g kg-1' for r in nitrogen)
    assert [r.layer for r in records[:4]] == [1, 1, 2, 2]


def test_soilgrids_layer_subset(soilgrids_dir, sites):
    """Test extraction of selected layers only"""
    spec = get_settings_soilgrids(soilgrids_dir, variables=('soc',), layers=(1, 2))
    records = SoilGridsAdapter().extract(sites, spec)
    assert len(records) == len(sites) * 2


def test_ndep_yearly_series(ndep_dir, sites, outside_site):
    """Test yearly deposition records and missing values outside the grid"""
    spec = get_settings_ndep(ndep_dir, 1990, 2009)
    records = NdepAdapter().extract(sites + [outside_site], spec)

    assert len(records) == 4 * 20 * 2
    noy_1995 = [r for r in records if r.site_id == 'FR-Pue' and r.variable == 'noy' and r.time == 1995]
    assert noy_1995[0].value == pytest.approx(noy_value(1995))

    nhx = [r for r in records if r.site_id == 'CH-Lae' and r.variable == 'nhx']
    assert all(r.value == pytest.approx(NHX_VALUE) for r in nhx)

    outside = [r for r in records if r.site_id == 'US-Ha1']
    assert all(r.is_missing for r in outside)


def test_ndep_years_beyond_archive(ndep_dir, sites):
    """Test that requested years without data are missing"""
    spec = get_settings_ndep(ndep_dir, 2014, 2017)
    records = NdepAdapter().extract(sites, spec)

    by_year = {r.time: r for r in records if r.site_id == 'CH-Lae' and r.variable == 'noy'}
    assert not by_year[2015].is_missing
    assert by_year[2016].is_missing
    assert by_year[2017].is_missing


def test_ndep_variable_not_in_file(ndep_dir, sites):
    """Test that a file without the requested variable raises VariableNotFound"""
    spec = get_settings_ndep(ndep_dir, 1990, 2009, variables=('noy',), file_pattern='ndep_nhx.nc')
    with pytest.raises(VariableNotFound):
        NdepAdapter().extract(sites, spec)


def test_ndep_year_dimension(tmp_path, sites):
    """Test deposition files whose time axis is named year"""
    directory = tmp_path / 'ndep'
    directory.mkdir()
    write_ndep_file(directory / 'ndep_noy.nc', 'noy', noy_value, time_name='year')

    spec = get_settings_ndep(directory, 2000, 2001, variables=('noy',))
    records = NdepAdapter().extract(sites, spec)

    assert len(records) == 3 * 2
    assert records[1].time == 2001
    assert records[1].value == pytest.approx(noy_value(2001))


def test_ndep_unknown_time_axis(tmp_path, sites):
    """Test that a file without a recognised time axis raises VariableNotFound"""
    directory = tmp_path / 'ndep'
    directory.mkdir()
    write_ndep_file(directory / 'ndep_noy.nc', 'noy', noy_value, time_name='period')

    spec = get_settings_ndep(directory, 2000, 2001, variables=('noy',))
    with pytest.raises(VariableNotFound):
        NdepAdapter().extract(sites, spec)


def test_co2_same_value_for_all_sites(co2_dir, sites, outside_site):
    """Test that the global CO2 record gives every site the same value"""
    spec = get_settings_co2(co2_dir, 2000, 2004)
    records = Co2Adapter().extract(sites + [outside_site], spec)

    assert len(records) == 4 * 5
    for record in records:
        assert record.value == pytest.approx(co2_value(record.time))
        assert record.unit == 'ppm'


def test_co2_missing_columns(tmp_path, sites):
    """Test that a table without the value column raises VariableNotFound"""
    directory = tmp_path / 'co2'
    directory.mkdir()
    (directory / 'co2_annmean_gl.csv').write_text("year,average\n2000,369.7\n")

    with pytest.raises(VariableNotFound):
        Co2Adapter().extract(sites, get_settings_co2(directory, 2000, 2000))


if __name__ == '__main__':
    pytest.main([__file__])
