from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Sequence, Union

import pandas as pd
from pandas.api.types import is_integer_dtype, is_numeric_dtype, is_object_dtype, is_string_dtype

from .config import (
    COLUMN_TYPES,
    DEFAULT_SEP,
    GENDER,
    GENDER_POLICIES,
    REQUIRED_COLUMNS,
    SENTINEL,
    UNKNOWN_GENDER,
)
from .errors import InputError, SchemaError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _as_mask(values: pd.Series) -> pd.Series:
    """Collapse a nullable boolean Series to plain bool (missing -> False)."""
    return values.fillna(False).astype(bool)


# ---------------------------------------------------------------------
# 1. Loader
# ---------------------------------------------------------------------
def load_cases(
    file_path: PathLike,
    *,
    sep: str = DEFAULT_SEP,
    required: Sequence[str] = REQUIRED_COLUMNS,
) -> pd.DataFrame:
    """
    Read the case-registration file and coerce known columns to their declared types.

    Parameters
    ----------
    file_path : str or Path
        Delimited text file with a header row.
    sep : str
        Field delimiter.
    required : sequence of str
        Columns that must appear in the header.

    Returns
    -------
    DataFrame
        One row per registered case. Integer columns use ``Int64``, text columns
        use ``string`` with surrounding whitespace stripped and blanks as missing.
        Columns outside the schema are kept as read.

    Raises
    ------
    InputError
        File missing or unreadable, or the header lacks a required column.
    """
    path = Path(file_path)
    if not path.is_file():
        raise InputError(f"input file not found: {path}")

    try:
        df = pd.read_csv(path, sep=sep, dtype=str)
    except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise InputError(f"could not read {path}: {exc}") from exc

    df.columns = df.columns.str.strip()
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise InputError(f"{path.name} is missing required columns: {missing}", missing=missing)

    for col, dtype in COLUMN_TYPES.items():
        if col not in df.columns:
            continue
        if dtype == "Int64":
            try:
                df[col] = pd.to_numeric(df[col], errors="coerce").astype("Int64")
            except (TypeError, ValueError) as exc:
                raise InputError(f"column {col!r} does not hold integers: {exc}") from exc
        else:
            text = df[col].astype("string").str.strip()
            df[col] = text.mask(_as_mask(text.eq("")))

    logger.info("Loaded %d rows x %d columns from %s", len(df), df.shape[1], path)
    return df


# ---------------------------------------------------------------------
# 2. Projection
# ---------------------------------------------------------------------
def project_columns(df: pd.DataFrame, columns: Iterable[str]) -> pd.DataFrame:
    """Return a copy holding exactly ``columns`` (in that order); rows are untouched."""
    columns = list(columns)
    for col in columns:
        if col not in df.columns:
            raise SchemaError(col, stage="project", available=df.columns)
    return df.loc[:, columns].copy()


# ---------------------------------------------------------------------
# 3. Sentinel recoding
# ---------------------------------------------------------------------
def recode_sentinel(df: pd.DataFrame, sentinel: int = SENTINEL) -> pd.DataFrame:
    """
    Replace every cell equal to ``sentinel`` with a missing marker.

    Numeric columns compare numerically; text columns compare against the
    sentinel's text form (``"-99"``). Integer columns that hold the sentinel
    are moved to ``Int64`` so the missing marker is ``pd.NA`` rather than a
    float NaN. Reapplying to cleaned data changes nothing.
    """
    out = df.copy()
    for col in out.columns:
        s = out[col]
        if is_numeric_dtype(s):
            hit = _as_mask(s.eq(sentinel))
        elif is_string_dtype(s) or is_object_dtype(s):
            hit = _as_mask(s.astype("string").str.strip().eq(str(sentinel)))
        else:
            continue
        n_hit = int(hit.sum())
        if not n_hit:
            continue
        if is_integer_dtype(s):
            s = s.astype("Int64")
        out[col] = s.mask(hit, pd.NA) if is_object_dtype(s) else s.mask(hit)
        logger.debug("Recoded %d sentinel cells in %s", n_hit, col)
    return out


# ---------------------------------------------------------------------
# 4. Missing-gender policy
# ---------------------------------------------------------------------
def apply_gender_policy(df: pd.DataFrame, policy: str = "exclude", column: str = GENDER) -> pd.DataFrame:
    """
    Decide how rows without a gender take part in gender breakdowns.

    ``"exclude"`` leaves them missing, so any group-count keyed on gender skips
    them. ``"unknown"`` recodes them to an explicit ``"Unknown"`` category so
    they are counted.
    """
    if policy not in GENDER_POLICIES:
        raise ValueError(f"unknown missing-gender policy {policy!r}; expected one of {GENDER_POLICIES}")
    if column not in df.columns:
        raise SchemaError(column, stage="clean", available=df.columns)
    out = df.copy()
    if policy == "unknown":
        out[column] = out[column].fillna(UNKNOWN_GENDER)
    return out


def clean_cases(
    df: pd.DataFrame,
    columns: Sequence[str] = REQUIRED_COLUMNS,
    *,
    sentinel: int = SENTINEL,
    missing_gender: str = "exclude",
) -> pd.DataFrame:
    """Project to ``columns``, recode the sentinel, then apply the missing-gender policy."""
    cleaned = recode_sentinel(project_columns(df, columns), sentinel=sentinel)
    if GENDER in cleaned.columns:
        cleaned = apply_gender_policy(cleaned, missing_gender)
    n_missing = int(cleaned.isna().sum().sum())
    logger.info("Cleaned %d rows; %d missing cells after recoding", len(cleaned), n_missing)
    return cleaned
