"""
Site Table Assembly

Joins per-source tables into one site table keyed by site identifier.
The site list anchors the join: every site appears exactly once, in input
order, and sites absent from a source get missing values for that source's
columns. Two sources delivering the same column is an error.
"""

import logging
from typing import List, Optional, Sequence

import pandas as pd

from .logging_utils import ColumnCollision, InvalidSettings
from .records import Site


logger = logging.getLogger(__name__)

SITE_KEY = 'sitename'


def sites_to_frame(sites: Sequence[Site], key: str = SITE_KEY) -> pd.DataFrame:
    """Frame with the site key and coordinates, one row per site."""
    return pd.DataFrame({
        key: [site.id for site in sites],
        'lon': [float(site.lon) for site in sites],
        'lat': [float(site.lat) for site in sites],
    })


def _check_table(table: pd.DataFrame, key: str, position: int) -> None:
    if key not in table.columns:
        raise InvalidSettings(f"Table {position} has no '{key}' column", {'columns': list(table.columns)})
    if table[key].duplicated().any():
        duplicates = table.loc[table[key].duplicated(), key].tolist()
        raise InvalidSettings(f"Table {position} has duplicate site identifiers: {duplicates}")
    if table.columns.duplicated().any():
        raise ColumnCollision(f"Table {position} repeats columns: {table.columns[table.columns.duplicated()].tolist()}")


def _left_join(base: pd.DataFrame, tables: Sequence[pd.DataFrame], key: str,
               first_position: int = 0) -> pd.DataFrame:
    result = base
    for position, table in enumerate(tables, start=first_position):
        _check_table(table, key, position)

        collisions = [c for c in table.columns if c != key and c in result.columns]
        if collisions:
            raise ColumnCollision(
                f"Columns {collisions} of table {position} already present in the site table",
                {'table': position, 'columns': collisions})

        result = result.merge(table, on=key, how='left', sort=False)

        unmatched = set(table[key]) - set(base[key])
        if unmatched:
            logger.debug(f"Table {position}: {len(unmatched)} sites not in the site list were dropped")

    return result


def join(sites: Sequence[Site], tables: Sequence[pd.DataFrame], key: str = SITE_KEY) -> pd.DataFrame:
    """
    Left-join per-source tables onto the site list.

    Args:
        sites: Site list anchoring the join
        tables: Per-source tables with a key column, joined in order
        key: Site identifier column name

    Returns:
        DataFrame with one row per site (input order), the key, lon, lat
        and every column of every table

    Raises:
        ColumnCollision: If a non-key column appears in more than one table
        InvalidSettings: If a table lacks the key or repeats a site identifier
    """
    base = sites_to_frame(sites, key)
    if base[key].duplicated().any():
        raise InvalidSettings(f"Duplicate site identifiers: {base.loc[base[key].duplicated(), key].tolist()}")

    result = _left_join(base, tables, key)
    logger.debug(f"Joined {len(tables)} tables onto {len(result)} sites")
    return result


def join_tables(tables: Sequence[pd.DataFrame],
                sites: Optional[Sequence[str]] = None,
                key: str = SITE_KEY) -> pd.DataFrame:
    """
    Join per-source tables without site coordinates.

    Args:
        tables: Per-source tables with a key column
        sites: Site identifiers anchoring the join; default is the union of
            the tables' identifiers in first-seen order
        key: Site identifier column name

    Returns:
        DataFrame with one row per site identifier
    """
    if sites is None:
        identifiers: List[str] = []
        seen = set()
        for table in tables:
            for site_id in table[key] if key in table.columns else []:
                if site_id not in seen:
                    seen.add(site_id)
                    identifiers.append(site_id)
    else:
        identifiers = list(sites)

    base = pd.DataFrame({key: identifiers})
    return _left_join(base, tables, key)
