"""
Linear trend of yearly case counts.

Fits ``count = slope * year + intercept`` by ordinary least squares and tests
the null hypothesis ``slope == 0`` with a two-sided t-test on ``n - 2``
degrees of freedom (``scipy.stats.linregress``).
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Dict, Sequence

import numpy as np
import pandas as pd
from scipy import stats

from .config import DEFAULT_ALPHA, MIN_TREND_YEARS, YEAR
from .errors import InsufficientDataError, SchemaError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrendFit:
    slope: float
    intercept: float
    slope_stderr: float
    p_value: float
    rvalue: float
    n_obs: int

    def is_significant(self, alpha: float = DEFAULT_ALPHA) -> bool:
        """True when the slope differs from zero at level ``alpha``. Reported only."""
        return bool(self.p_value < alpha)

    def predict(self, years: Sequence[float]) -> np.ndarray:
        return self.slope * np.asarray(years, dtype=float) + self.intercept

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


def fit_trend(years: Sequence[float], counts: Sequence[float]) -> TrendFit:
    """
    OLS fit of counts against years.

    Parameters
    ----------
    years, counts : array-like
        One observation per year, same length.

    Raises
    ------
    InsufficientDataError
        Fewer than three distinct years.
    """
    x = np.asarray(years, dtype=float)
    y = np.asarray(counts, dtype=float)
    if x.shape != y.shape:
        raise ValueError(f"years and counts differ in length: {x.shape} vs {y.shape}")

    n_distinct = len(np.unique(x))
    if n_distinct < MIN_TREND_YEARS:
        raise InsufficientDataError(n_distinct, MIN_TREND_YEARS)

    res = stats.linregress(x, y)
    fit = TrendFit(
        slope=float(res.slope),
        intercept=float(res.intercept),
        slope_stderr=float(res.stderr),
        p_value=float(res.pvalue),
        rvalue=float(res.rvalue),
        n_obs=int(x.size),
    )
    logger.info(
        "Trend over %d years: slope=%.3f (se=%.3f), p=%.4g",
        fit.n_obs, fit.slope, fit.slope_stderr, fit.p_value,
    )
    return fit


def fit_yearly_trend(table: pd.DataFrame, x: str = YEAR, y: str = "count") -> TrendFit:
    """Fit a trend from a ``(year, count)`` table such as ``yearly_totals`` returns."""
    for col in (x, y):
        if col not in table.columns:
            raise SchemaError(col, stage="trend", available=table.columns)
    return fit_trend(table[x].to_numpy(dtype=float), table[y].to_numpy(dtype=float))
