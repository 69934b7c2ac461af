"""
WorldClim Monthly Climatology Adapter

Extracts monthly climatological values from WorldClim 2.1 GeoTIFFs, one
file per variable and month (e.g. wc2.1_30s_tmin_01.tif).

Values are returned in WorldClim's native units (°C, kPa, kJ m-2 day-1);
normalization to model units is left to the derived-variable transformer.
"""

from typing import Dict, List

from .base import BaseSourceAdapter, open_raster, sample_raster_at_sites
from ..records import RawRecord, Site, SourceSpec


MONTHS = tuple(range(1, 13))


class WorldClimAdapter(BaseSourceAdapter):
    """Monthly-raster-stack adapter for WorldClim."""

    source_name = 'worldclim'
    default_file_pattern = 'wc2.1_30s_{var}_{month:02d}.tif'

    def _extract(self, sites: List[Site], spec: SourceSpec) -> List[RawRecord]:
        pattern = self.option(spec, 'file_pattern', self.default_file_pattern)

        # values[var][month] -> one value per site
        values: Dict[str, Dict[int, List[float]]] = {}
        for var in spec.variables:
            values[var] = {}
            for month in MONTHS:
                path = self.require_file(spec, pattern.format(var=var, month=month), var)
                with self.open_with_retry(open_raster, path, spec.source) as dataset:
                    values[var][month] = sample_raster_at_sites(dataset, sites)

        records = []
        for i, site in enumerate(sites):
            for month in MONTHS:
                for var in spec.variables:
                    records.append(self.make_record(site, spec, var, values[var][month][i], time=month))
        return records
