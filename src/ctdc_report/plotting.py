from __future__ import annotations

import logging
import textwrap
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.ticker import FuncFormatter, PercentFormatter

from .aggregation import COUNT, SECTOR, SHARE, normalize_shares, sort_age_bands
from .config import AGE, GENDER, LABOUR_COLUMNS
from .errors import InsufficientDataError, SchemaError
from .trend import TrendFit, fit_trend

logger = logging.getLogger(__name__)


# --- style ---
PALETTE = ["#F97316", "#1E3A8A", "#6B7280", "#0EA5E9", "#A855F7", "#16A34A", "#DC2626", "#CA8A04", "#0F766E"]
COL_GRID = "#E5E7EB"
COL_FRAME = "#D1D5DB"
COL_TEXT = "#374151"
COL_SOURCE = "#000000"
BG_COLOR = "#FFFFFF"

SOURCE_NOTE = "Source: Counter Trafficking Data Collaborative (CTDC) global dataset. Cases with value -99 treated as not recorded."


def _apply_axis_style(ax):
    ax.grid(which="major", axis="y", color=COL_GRID, linestyle="--", linewidth=0.5, alpha=0.8)
    ax.set_axisbelow(True)
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    for side in ("left", "bottom"):
        ax.spines[side].set_linewidth(1.0)
        ax.spines[side].set_color(COL_FRAME)
    ax.tick_params(axis="both", which="both", length=4, color=COL_FRAME, labelsize=9, labelcolor=COL_TEXT, direction="out")
    ax.xaxis.label.set_color(COL_TEXT); ax.xaxis.label.set_fontsize(10)
    ax.yaxis.label.set_color(COL_TEXT); ax.yaxis.label.set_fontsize(10)


def _draw_title_subtitle(fig, title, subtitle):
    fig.text(0.08, 0.90, title, ha="left", va="bottom", fontsize=14, fontweight="bold", color=COL_TEXT)
    fig.text(0.08, 0.865, subtitle, ha="left", va="bottom", fontsize=10.5, color=COL_TEXT)


def _make_legend_above(ax, fig, ncol=3, handles_labels=None, title=None):
    if handles_labels is None:
        handles, labels = ax.get_legend_handles_labels()
    else:
        handles, labels = handles_labels
    if not handles:
        return
    leg = fig.legend(handles, labels, loc="upper left", bbox_to_anchor=(0.08, 0.79), title=title,
                     frameon=True, ncol=ncol, fontsize=10, handlelength=2.5, columnspacing=1.2, handletextpad=0.6)
    leg.get_frame().set_facecolor(BG_COLOR)
    leg.get_frame().set_edgecolor(COL_FRAME)
    leg.get_frame().set_linewidth(0.8)


def _add_wrapped_source(ax, text=SOURCE_NOTE, y_offset=-0.18, width=120, fontsize=8.5):
    wrapped = textwrap.fill(text, width=width)
    ax.text(0.0, y_offset, wrapped, transform=ax.transAxes, ha="left", va="top",
            fontsize=fontsize, color=COL_SOURCE, linespacing=1.3)


def _thousands(ax):
    ax.yaxis.set_major_formatter(FuncFormatter(lambda x, p: f"{int(x):,}"))


def _colors_for(categories: Sequence) -> Dict[object, str]:
    return {cat: PALETTE[i % len(PALETTE)] for i, cat in enumerate(categories)}


def _save(fig, outdir: Path, stem: str, dpi: int = 300, formats: Sequence[str] = ("png", "pdf")) -> Tuple[Path, ...]:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)
    fig.tight_layout(rect=[0.04, 0.04, 1.0, 0.78])
    paths = []
    for ext in formats:
        path = outdir / f"{stem}.{ext}"
        fig.savefig(path, dpi=dpi, bbox_inches="tight", facecolor=BG_COLOR)
        paths.append(path)
    plt.close(fig)
    logger.info("Saved figure %s (%s)", stem, ", ".join(formats))
    return tuple(paths)


def _require(table: pd.DataFrame, columns: Sequence[str]) -> None:
    for col in columns:
        if col not in table.columns:
            raise SchemaError(col, stage="render", available=table.columns)


def _warn_missing_keys(table: pd.DataFrame, keys: Sequence[str], value: Optional[str] = None) -> int:
    """Log rows that a figure cannot place because a key cell is missing."""
    missing = table[list(keys)].isna().any(axis=1)
    n_missing = int(missing.sum())
    if n_missing:
        lost = f", {table.loc[missing, value].sum():,} of {value}" if value else ""
        logger.warning("%d rows with a missing %s left out of the figure%s", n_missing, "/".join(keys), lost)
    return n_missing


def _category_order(values: pd.Series, column: str) -> list:
    labels = list(pd.unique(values.dropna()))
    if column == AGE:
        return sort_age_bands(labels)
    return sorted(labels, key=str)


# ---------------------------------------------------------------------
# Shared data shaping
# ---------------------------------------------------------------------
def pivot_for_bars(table: pd.DataFrame, x: str, hue: str, value: str = COUNT) -> pd.DataFrame:
    """
    Wide ``x`` by ``hue`` matrix for bar charts.

    Duplicate (x, hue) rows are summed and absent combinations are 0, so the
    matrix total equals the sum of ``value`` over rows with ``x`` and ``hue``
    present. Rows with a missing key are left out and logged at WARNING.
    Rows follow ``x`` in ascending order; columns follow the natural order of
    ``hue``.
    """
    _require(table, [x, hue, value])
    _warn_missing_keys(table, [x, hue], value)
    wide = table.pivot_table(index=x, columns=hue, values=value, aggfunc="sum", fill_value=0, observed=True)
    wide = wide.sort_index()
    wide = wide.reindex(columns=_category_order(table[hue], hue), fill_value=0)
    wide.columns.name = hue
    return wide


# ---------------------------------------------------------------------
# Figure builders
# ---------------------------------------------------------------------
def figure_stacked_bar(
    table: pd.DataFrame,
    x: str,
    hue: str,
    outdir: Path,
    *,
    stem: str,
    title: str,
    subtitle: str = "",
    xlabel: str = "Year of registration",
    ylabel: str = "Registered cases",
    dpi: int = 300,
    formats: Sequence[str] = ("png", "pdf"),
) -> Tuple[Path, ...]:
    """Bars per ``x`` stacked by ``hue``; heights are raw counts."""
    wide = pivot_for_bars(table, x, hue)
    fig, ax = plt.subplots(figsize=(12, 7), facecolor=BG_COLOR)
    _apply_axis_style(ax)
    _stack(ax, wide)
    ax.set_xlabel(xlabel); ax.set_ylabel(ylabel)
    _thousands(ax)
    _draw_title_subtitle(fig, title, subtitle)
    _make_legend_above(ax, fig, ncol=min(len(wide.columns), 5) or 1, title=hue)
    _add_wrapped_source(ax)
    return _save(fig, outdir, stem, dpi=dpi, formats=formats)


def figure_normalized_bar(
    table: pd.DataFrame,
    x: str,
    hue: str,
    outdir: Path,
    *,
    stem: str,
    title: str,
    subtitle: str = "",
    xlabel: str = "Year of registration",
    dpi: int = 300,
    formats: Sequence[str] = ("png", "pdf"),
) -> Tuple[Path, ...]:
    """Bars per ``x`` stacked by ``hue`` share; each nonzero bar sums to 1, empty buckets stay at 0."""
    shares = normalize_shares(table, group=x)
    wide = pivot_for_bars(shares, x, hue, value=SHARE)
    fig, ax = plt.subplots(figsize=(12, 7), facecolor=BG_COLOR)
    _apply_axis_style(ax)
    _stack(ax, wide)
    ax.set_ylim(0, 1.0)
    ax.yaxis.set_major_formatter(PercentFormatter(xmax=1.0))
    ax.set_xlabel(xlabel); ax.set_ylabel("Share of registered cases")
    _draw_title_subtitle(fig, title, subtitle)
    _make_legend_above(ax, fig, ncol=min(len(wide.columns), 5) or 1, title=hue)
    _add_wrapped_source(ax)
    return _save(fig, outdir, stem, dpi=dpi, formats=formats)


def _stack(ax, wide: pd.DataFrame) -> None:
    colors = _colors_for(wide.columns)
    positions = np.arange(len(wide.index))
    bottom = np.zeros(len(wide.index))
    for cat in wide.columns:
        heights = wide[cat].to_numpy(dtype=float)
        ax.bar(positions, heights, bottom=bottom, width=0.7, color=colors[cat], label=str(cat))
        bottom += heights
    ax.set_xticks(positions)
    ax.set_xticklabels([str(v) for v in wide.index], rotation=0, ha="center", fontsize=9, color=COL_TEXT)


def figure_scatter_with_trend(
    table: pd.DataFrame,
    x: str,
    y: str,
    outdir: Path,
    *,
    hue: Optional[str] = None,
    stem: str,
    title: str,
    subtitle: str = "",
    xlabel: str = "Year of registration",
    ylabel: str = "Registered cases",
    fit: Optional[TrendFit] = None,
    dpi: int = 300,
    formats: Sequence[str] = ("png", "pdf"),
) -> Tuple[Path, ...]:
    """
    One point per row, coloured by ``hue``, with an OLS line per ``hue`` category.

    Without ``hue`` the whole table is one series; ``fit`` may be passed to reuse
    an existing fit for it. A category with too few distinct ``x`` values keeps
    its points and is drawn without a line.
    """
    keys = [x, y] + ([hue] if hue else [])
    _require(table, keys)
    _warn_missing_keys(table, keys)
    data = table.dropna(subset=keys)
    groups = [(None, data)] if hue is None else [
        (cat, data[data[hue].eq(cat).fillna(False).astype(bool)]) for cat in _category_order(data[hue], hue)
    ]
    colors = _colors_for([cat for cat, _ in groups])

    fig, ax = plt.subplots(figsize=(12, 7), facecolor=BG_COLOR)
    _apply_axis_style(ax)
    for cat, part in groups:
        xs = part[x].to_numpy(dtype=float)
        ys = part[y].to_numpy(dtype=float)
        label = "Cases" if cat is None else str(cat)
        ax.scatter(xs, ys, s=36, color=colors[cat], label=label, zorder=3)
        line = fit if (cat is None and fit is not None) else None
        if line is None:
            try:
                line = fit_trend(xs, ys)
            except InsufficientDataError as exc:
                logger.warning("No trend line for %s: %s", label, exc.message)
                continue
        grid = np.linspace(xs.min(), xs.max(), 50)
        ax.plot(grid, line.predict(grid), color=colors[cat], linewidth=2.0, linestyle="--",
                label=f"{label} trend ({line.slope:+,.1f}/yr)")

    years = sorted(pd.unique(data[x]))
    ax.set_xticks(years)
    ax.set_xticklabels([str(int(v)) for v in years], fontsize=9, color=COL_TEXT)
    ax.set_xlabel(xlabel); ax.set_ylabel(ylabel)
    _thousands(ax)
    _draw_title_subtitle(fig, title, subtitle)
    _make_legend_above(ax, fig, ncol=4)
    _add_wrapped_source(ax)
    return _save(fig, outdir, stem, dpi=dpi, formats=formats)


def figure_sector_facets(
    sector_table: pd.DataFrame,
    outdir: Path,
    *,
    by: str = GENDER,
    stem: str = "sector_by_gender",
    title: str = "Forced labour cases by sector",
    subtitle: str = "Cases flagged for each type of labour, by gender",
    labels: Optional[Dict[str, str]] = None,
    dpi: int = 300,
    formats: Sequence[str] = ("png", "pdf"),
) -> Tuple[Path, ...]:
    """Small multiples: one panel per labour sector, one bar per ``by`` category."""
    _require(sector_table, [SECTOR, by, COUNT])
    labels = labels or LABOUR_COLUMNS
    sectors = list(labels) + [s for s in pd.unique(sector_table[SECTOR]) if s not in labels]
    categories = _category_order(sector_table[by], by)
    colors = _colors_for(categories)

    ncols = 4
    nrows = max(1, int(np.ceil(len(sectors) / ncols)))
    fig, axes = plt.subplots(nrows, ncols, figsize=(14, 3.6 * nrows + 2), facecolor=BG_COLOR,
                             sharey=False, squeeze=False)
    for ax, sector in zip(axes.flat, sectors):
        _apply_axis_style(ax)
        part = sector_table[sector_table[SECTOR] == sector].set_index(by)[COUNT]
        heights = [int(part.get(cat, 0)) for cat in categories]
        ax.bar(range(len(categories)), heights, color=[colors[c] for c in categories], width=0.7)
        ax.set_xticks(range(len(categories)))
        ax.set_xticklabels([str(c) for c in categories], fontsize=8, color=COL_TEXT)
        ax.set_title(labels.get(sector, sector), fontsize=10, color=COL_TEXT, loc="left")
        _thousands(ax)
    for ax in list(axes.flat)[len(sectors):]:
        ax.set_visible(False)

    _draw_title_subtitle(fig, title, subtitle)
    _add_wrapped_source(axes.flat[0], y_offset=-0.25, width=100)
    return _save(fig, outdir, stem, dpi=dpi, formats=formats)
