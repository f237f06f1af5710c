"""
Group-and-count helpers behind every chart and the trend fit.

All functions take a cleaned case table and return a new aggregated table with
a non-negative integer ``count`` column; the input is never modified.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Sequence

import numpy as np
import pandas as pd

from .config import AGE_BAND_ORDER, GENDER, LABOUR_COLUMNS, YEAR
from .errors import SchemaError

logger = logging.getLogger(__name__)

COUNT = "count"
SHARE = "share"
SECTOR = "sector"


def _require(df: pd.DataFrame, columns: Iterable[str], stage: str = "aggregate") -> None:
    for col in columns:
        if col not in df.columns:
            raise SchemaError(col, stage=stage, available=df.columns)


def group_count(df: pd.DataFrame, keys: Sequence[str]) -> pd.DataFrame:
    """
    Count rows per distinct combination of one or two key columns.

    Rows with a missing value in any key are left out rather than collected in
    a "missing" group. The result is sorted by the keys.

    Returns
    -------
    DataFrame [*keys, 'count']
    """
    keys = [keys] if isinstance(keys, str) else list(keys)
    if len(keys) not in (1, 2):
        raise ValueError(f"group_count takes one or two key columns, got {keys}")
    _require(df, keys)

    counts = (
        df.groupby(keys, dropna=True, observed=True, sort=True)
          .size()
          .reset_index(name=COUNT)
    )
    counts[COUNT] = counts[COUNT].astype("int64")
    n_excluded = len(df) - int(counts[COUNT].sum())
    if n_excluded:
        logger.debug("group_count%s: %d rows with a missing key left out", keys, n_excluded)
    return counts


def flag_count(df: pd.DataFrame, flag: str, by: str = GENDER) -> pd.DataFrame:
    """Count rows where ``flag`` is exactly 1, grouped by ``by``; 0 and missing are dropped."""
    _require(df, [flag, by])
    selected = df[df[flag].eq(1).fillna(False).astype(bool)]
    return group_count(selected, [by])


def sector_counts(
    df: pd.DataFrame,
    sectors: Iterable[str] = LABOUR_COLUMNS,
    by: str = GENDER,
) -> pd.DataFrame:
    """
    Apply :func:`flag_count` to each labour-sector column.

    Returns
    -------
    DataFrame [sector, by, count] in long format, one block per sector in the
    order given. Sectors without any flagged rows contribute no rows.
    """
    frames = []
    for sector in sectors:
        counts = flag_count(df, sector, by=by)
        if counts.empty:
            logger.info("No cases flagged for %s", sector)
            continue
        counts.insert(0, SECTOR, sector)
        frames.append(counts)
    if not frames:
        return pd.DataFrame({SECTOR: pd.Series(dtype="string"), by: [], COUNT: pd.Series(dtype="int64")})
    return pd.concat(frames, ignore_index=True)


def yearly_totals(df: pd.DataFrame, year: str = YEAR) -> pd.DataFrame:
    """Cases per registration year over all categories, in chronological order."""
    return group_count(df, [year]).sort_values(year).reset_index(drop=True)


def normalize_shares(table: pd.DataFrame, group: str, value: str = COUNT) -> pd.DataFrame:
    """
    Add a ``share`` column: each row's ``value`` over the total of its ``group``.

    Shares sum to 1 within every group that has a nonzero total; a group whose
    total is 0 gets 0.0 on every row.
    """
    _require(table, [group, value])
    out = table.copy()
    totals = out.groupby(group, dropna=False)[value].transform("sum").astype(float)
    values = out[value].astype(float)
    out[SHARE] = np.where(totals > 0, values / totals.where(totals > 0, 1.0), 0.0)
    return out


def counts_to_mapping(table: pd.DataFrame, key: str, value: str = COUNT) -> Dict[object, int]:
    """``{key value: count}`` for a single-key aggregated table."""
    _require(table, [key, value])
    return {k: int(v) for k, v in zip(table[key], table[value])}


def sort_age_bands(labels: Iterable[str], order: Sequence[str] = AGE_BAND_ORDER) -> List[str]:
    """Known age bands in their natural order, then anything else alphabetically."""
    labels = list(dict.fromkeys(labels))
    known = [band for band in order if band in labels]
    rest = sorted(str(lbl) for lbl in labels if lbl not in order)
    return known + rest
