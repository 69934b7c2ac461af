"""
ETOPO1 Elevation Adapter

Extracts elevation at each site from the ETOPO1 global relief GeoTIFF.
One value per site, no time dimension.
"""

from typing import List

from .base import BaseSourceAdapter, open_raster, sample_raster_at_sites
from ..records import RawRecord, Site, SourceSpec


class EtopoAdapter(BaseSourceAdapter):
    """Point-raster adapter for ETOPO1 elevation."""

    source_name = 'etopo1'
    default_file_name = 'ETOPO1_Bed_g_geotiff.tif'

    def _extract(self, sites: List[Site], spec: SourceSpec) -> List[RawRecord]:
        file_name = self.option(spec, 'file_name', self.default_file_name)
        path = self.require_file(spec, file_name, 'elv')

        with self.open_with_retry(open_raster, path, spec.source) as dataset:
            values = sample_raster_at_sites(dataset, sites)

        return [
            self.make_record(site, spec, 'elv', value)
            for site, value in zip(sites, values)
        ]
