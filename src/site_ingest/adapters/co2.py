"""
Global CO2 Record Adapter

Extracts annual mean atmospheric CO2 from a NOAA GML style table
(comment lines starting with '#', then 'year,mean,unc' columns). The record
has no spatial dimension, so every site receives the same value per year.
"""

from typing import Dict, List

import pandas as pd

from .base import BaseSourceAdapter
from ..logging_utils import SourceUnavailable, VariableNotFound
from ..records import MISSING, RawRecord, Site, SourceSpec


def _read_table(path):
    return pd.read_csv(path, comment='#', skipinitialspace=True)


class Co2Adapter(BaseSourceAdapter):
    """Yearly-time-series adapter for the global annual CO2 record."""

    source_name = 'co2'
    default_file_name = 'co2_annmean_gl.csv'

    def _extract(self, sites: List[Site], spec: SourceSpec) -> List[RawRecord]:
        file_name = self.option(spec, 'file_name', self.default_file_name)
        year_column = self.option(spec, 'year_column', 'year')
        value_column = self.option(spec, 'value_column', 'mean')

        path = self.require_file(spec, file_name, 'co2')
        try:
            table = self.open_with_retry(_read_table, path, spec.source)
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise SourceUnavailable(f"Could not read {path}: {e}",
                                    {'source': spec.source, 'path': str(path)}) from e

        missing_columns = [c for c in (year_column, value_column) if c not in table.columns]
        if missing_columns:
            raise VariableNotFound(
                f"Columns {missing_columns} not found in {path}",
                {'source': spec.source, 'path': str(path)})

        by_year: Dict[int, float] = {}
        for year, value in zip(table[year_column], table[value_column]):
            by_year[int(year)] = float(value)

        records = []
        for site in sites:
            for year in spec.years:
                records.append(self.make_record(site, spec, 'co2', by_year.get(year, MISSING), time=year))
        return records
