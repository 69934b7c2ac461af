"""
SoilGrids Layered Soil Property Adapter

Extracts soil properties per depth layer from SoilGrids 2.0 GeoTIFFs, one
file per property and depth interval (e.g. soc_0-5cm_mean.tif).

SoilGrids stores integer-scaled values; each value is divided by the
property's conversion factor so records carry conventional units
(e.g. soc in g kg-1 instead of dg kg-1).
"""

from typing import Dict, List

from .base import BaseSourceAdapter, open_raster, sample_raster_at_sites
from ..records import MISSING, RawRecord, Site, SourceSpec, is_missing
from ..source_variables import SOIL_LAYERS, get_variable_info
from ..units_constants import scale_integer_soil_value


class SoilGridsAdapter(BaseSourceAdapter):
    """Layered-soil-raster adapter for SoilGrids."""

    source_name = 'soilgrids'
    default_file_pattern = '{var}_{depth}_mean.tif'

    def _extract(self, sites: List[Site], spec: SourceSpec) -> List[RawRecord]:
        pattern = self.option(spec, 'file_pattern', self.default_file_pattern)

        # values[var][layer] -> one value per site, in conventional units
        values: Dict[str, Dict[int, List[float]]] = {}
        for var in spec.variables:
            conversion = get_variable_info(spec.source, var).get('conversion', 1.0)
            values[var] = {}
            for layer in spec.layers:
                depth = SOIL_LAYERS[layer]['label']
                path = self.require_file(spec, pattern.format(var=var, depth=depth, layer=layer), var)
                with self.open_with_retry(open_raster, path, spec.source) as dataset:
                    native = sample_raster_at_sites(dataset, sites)
                values[var][layer] = [
                    MISSING if is_missing(v) else float(scale_integer_soil_value(v, conversion))
                    for v in native
                ]

        records = []
        for i, site in enumerate(sites):
            for layer in spec.layers:
                for var in spec.variables:
                    records.append(self.make_record(site, spec, var, values[var][layer][i], layer=layer))
        return records
