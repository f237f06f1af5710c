"""End-to-end report: load, clean, aggregate, fit, render.

The primary entry point is :func:`run_report`. Each stage takes the previous
stage's table and returns a new one, so a failure stops the run at the stage
that raised it while artifacts already written by earlier stages stay on disk.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import pandas as pd

from .aggregation import group_count, sector_counts, yearly_totals
from .cleaning import clean_cases, load_cases
from .config import AGE, GENDER, OUTPUT_DIR, YEAR, ReportConfig
from .plotting import (
    figure_normalized_bar,
    figure_scatter_with_trend,
    figure_sector_facets,
    figure_stacked_bar,
)
from .trend import TrendFit, fit_yearly_trend

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

TABLE_NAMES = (
    "cases_by_year_gender",
    "cases_by_year_age",
    "sector_by_gender",
    "yearly_totals",
)


@dataclass
class ReportResult:
    tables: Dict[str, pd.DataFrame]
    trend: TrendFit
    significant: bool
    alpha: float
    figures: Dict[str, Tuple[Path, ...]] = field(default_factory=dict)
    table_paths: Dict[str, Path] = field(default_factory=dict)


def build_tables(cases: pd.DataFrame) -> Dict[str, pd.DataFrame]:
    """Every aggregated table the report draws from."""
    return {
        "cases_by_year_gender": group_count(cases, [YEAR, GENDER]),
        "cases_by_year_age": group_count(cases, [YEAR, AGE]),
        "sector_by_gender": sector_counts(cases, by=GENDER),
        "yearly_totals": yearly_totals(cases),
    }


def trend_summary(fit: TrendFit, alpha: float) -> pd.DataFrame:
    row = fit.as_dict()
    row.update(alpha=alpha, significant=fit.is_significant(alpha))
    return pd.DataFrame([row])


def write_tables(tables: Dict[str, pd.DataFrame], outdir: Path) -> Dict[str, Path]:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)
    paths = {}
    for name, table in tables.items():
        path = outdir / f"{name}.csv"
        table.to_csv(path, index=False)
        paths[name] = path
    logger.info("Wrote %d tables to %s", len(paths), outdir)
    return paths


def read_tables(tables_dir: PathLike) -> Dict[str, pd.DataFrame]:
    """Load saved aggregate tables back (for re-rendering figures)."""
    tables_dir = Path(tables_dir)
    tables = {}
    for name in TABLE_NAMES:
        path = tables_dir / f"{name}.csv"
        if path.is_file():
            tables[name] = pd.read_csv(path)
        else:
            logger.warning("Table %s not found in %s; its figures are skipped", name, tables_dir)
    return tables


def render_figures(
    tables: Dict[str, pd.DataFrame],
    outdir: PathLike,
    config: Optional[ReportConfig] = None,
    fit: Optional[TrendFit] = None,
) -> Dict[str, Tuple[Path, ...]]:
    """Draw every figure whose source table is present in ``tables``."""
    config = config or ReportConfig()
    outdir = Path(outdir)
    opts = dict(dpi=config.dpi, formats=config.formats)
    figures: Dict[str, Tuple[Path, ...]] = {}

    by_gender = tables.get("cases_by_year_gender")
    if by_gender is not None:
        figures["cases_by_year_gender"] = figure_stacked_bar(
            by_gender, YEAR, GENDER, outdir, stem="cases_by_year_gender",
            title="Registered trafficking cases by year",
            subtitle="Cases per year of registration, split by gender", **opts)
        figures["gender_share_by_year"] = figure_normalized_bar(
            by_gender, YEAR, GENDER, outdir, stem="gender_share_by_year",
            title="Gender composition of registered cases",
            subtitle="Share of each year's cases by gender", **opts)
        figures["cases_by_year_gender_trend"] = figure_scatter_with_trend(
            by_gender, YEAR, "count", outdir, hue=GENDER, stem="cases_by_year_gender_trend",
            title="Yearly cases by gender with linear trends",
            subtitle="One OLS line per gender", **opts)

    by_age = tables.get("cases_by_year_age")
    if by_age is not None:
        figures["cases_by_year_age"] = figure_stacked_bar(
            by_age, YEAR, AGE, outdir, stem="cases_by_year_age",
            title="Age of registered victims over time",
            subtitle="Cases per year by broad age band (cases without an age band left out)", **opts)

    sectors = tables.get("sector_by_gender")
    if sectors is not None:
        figures["sector_by_gender"] = figure_sector_facets(sectors, outdir, by=GENDER, **opts)

    totals = tables.get("yearly_totals")
    if totals is not None:
        figures["yearly_totals_trend"] = figure_scatter_with_trend(
            totals, YEAR, "count", outdir, stem="yearly_totals_trend", fit=fit,
            title="Total registered cases per year",
            subtitle="Ordinary least squares fit of case counts on registration year", **opts)

    return figures


def run_report(
    input_path: PathLike,
    outdir: PathLike = OUTPUT_DIR,
    config: Optional[ReportConfig] = None,
) -> ReportResult:
    """
    Run the whole report over one input file.

    Writes aggregate tables to ``<outdir>/tables`` and figures to
    ``<outdir>/figures``.

    Raises
    ------
    InputError, SchemaError, InsufficientDataError
        Fatal; the run stops at the stage that raised.
    """
    config = config or ReportConfig()
    outdir = Path(outdir)

    logger.info("Loading %s", input_path)
    raw = load_cases(input_path, sep=config.sep)

    logger.info("Cleaning (missing gender: %s)", config.missing_gender)
    cases = clean_cases(raw, missing_gender=config.missing_gender)

    logger.info("Aggregating")
    tables = build_tables(cases)
    table_paths = write_tables(tables, outdir / "tables")

    logger.info("Fitting yearly trend")
    fit = fit_yearly_trend(tables["yearly_totals"])
    tables["trend_summary"] = trend_summary(fit, config.alpha)
    table_paths.update(write_tables({"trend_summary": tables["trend_summary"]}, outdir / "tables"))

    logger.info("Rendering figures")
    figures = render_figures(tables, outdir / "figures", config=config, fit=fit)

    return ReportResult(
        tables=tables,
        trend=fit,
        significant=fit.is_significant(config.alpha),
        alpha=config.alpha,
        figures=figures,
        table_paths=table_paths,
    )
