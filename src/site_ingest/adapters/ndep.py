"""
Nitrogen Deposition Time-Series Adapter

Extracts annual nitrogen deposition (oxidized 'noy', reduced 'nhx') from
NetCDF archives holding one variable on a (time, lat, lon) grid, one file
per deposition form (e.g. ndep_noy.nc).

Scientific Context:
Deposition archives such as Lamarque et al. (2011) are global half-degree
grids with one field per year. The cell nearest to each site is used; no
spatial interpolation is attempted.
"""

from typing import Dict, List, Tuple

import numpy as np
import xarray as xr

from .base import BaseSourceAdapter
from ..logging_utils import VariableNotFound
from ..records import MISSING, RawRecord, Site, SourceSpec


LAT_NAMES = ('lat', 'latitude', 'y')
LON_NAMES = ('lon', 'longitude', 'x')
TIME_NAMES = ('time', 'year')


def _coordinate_name(data_array: xr.DataArray, candidates: Tuple[str, ...]) -> str:
    for name in candidates:
        if name in data_array.coords or name in data_array.dims:
            return name
    raise VariableNotFound(
        f"None of {list(candidates)} found in the dimensions of '{data_array.name}': {list(data_array.dims)}",
        {'variable': data_array.name, 'candidates': list(candidates)})


def _years_of(time_coordinate: xr.DataArray) -> np.ndarray:
    """Calendar years of a time coordinate given as dates or as plain year numbers."""
    if np.issubdtype(time_coordinate.dtype, np.number):
        return time_coordinate.values.astype(int)
    return time_coordinate.dt.year.values.astype(int)


def _covers(axis: np.ndarray, value: float) -> bool:
    """Whether value lies within the cells spanned by a regular coordinate axis."""
    if axis.size == 1:
        return bool(np.isclose(axis[0], value))
    half_step = abs(float(axis[1] - axis[0])) / 2.0
    return float(axis.min()) - half_step <= value <= float(axis.max()) + half_step


def extract_yearly_series(data_array: xr.DataArray, site: Site) -> Dict[int, float]:
    """
    Annual values of the grid cell nearest to a site.

    Several time steps within one year are averaged. Returns an empty mapping
    when the site is outside the grid.
    """
    lat_name = _coordinate_name(data_array, LAT_NAMES)
    lon_name = _coordinate_name(data_array, LON_NAMES)
    time_name = _coordinate_name(data_array, TIME_NAMES)

    lons = data_array[lon_name].values
    lon = float(site.lon)
    if float(np.max(lons)) > 180.0 and lon < 0.0:
        lon = lon % 360.0

    if not (_covers(data_array[lat_name].values, float(site.lat)) and _covers(lons, lon)):
        return {}

    cell = data_array.sel({lat_name: float(site.lat), lon_name: lon}, method='nearest')
    series = np.asarray(cell.values, dtype=float)
    years = _years_of(cell[time_name])

    annual = {}
    for year in np.unique(years):
        year_values = series[years == year]
        finite = year_values[np.isfinite(year_values)]
        annual[int(year)] = float(finite.mean()) if finite.size else MISSING
    return annual


class NdepAdapter(BaseSourceAdapter):
    """Yearly-time-series adapter for gridded nitrogen deposition."""

    source_name = 'ndep'
    default_file_pattern = 'ndep_{var}.nc'

    def _extract(self, sites: List[Site], spec: SourceSpec) -> List[RawRecord]:
        pattern = self.option(spec, 'file_pattern', self.default_file_pattern)

        # series[var][site_index] -> {year: value}
        series: Dict[str, List[Dict[int, float]]] = {}
        for var in spec.variables:
            path = self.require_file(spec, pattern.format(var=var), var)
            with self.open_with_retry(xr.open_dataset, path, spec.source) as dataset:
                if var not in dataset.data_vars:
                    raise VariableNotFound(
                        f"Variable '{var}' not found in {path}",
                        {'source': spec.source, 'variable': var, 'path': str(path)})
                data_array = dataset[var]
                series[var] = [extract_yearly_series(data_array, site) for site in sites]

        records = []
        for i, site in enumerate(sites):
            for year in spec.years:
                for var in spec.variables:
                    value = series[var][i].get(year, MISSING)
                    records.append(self.make_record(site, spec, var, value, time=year))
        return records
