"""Tests for the figure builders: data shaping plus files written to disk."""

import logging

import pandas as pd
import pytest

from ctdc_report.aggregation import group_count, sector_counts, yearly_totals
from ctdc_report.config import AGE, GENDER, YEAR
from ctdc_report.errors import SchemaError
from ctdc_report.plotting import (
    figure_normalized_bar,
    figure_scatter_with_trend,
    figure_sector_facets,
    figure_stacked_bar,
    pivot_for_bars,
)

FAST = dict(dpi=40, formats=("png",))


# ===================================================================
# pivot_for_bars
# ===================================================================


class TestPivotForBars:
    def test_total_preserved(self, cleaned_cases: pd.DataFrame) -> None:
        table = group_count(cleaned_cases, [YEAR, AGE])
        wide = pivot_for_bars(table, YEAR, AGE)
        assert wide.to_numpy().sum() == table["count"].sum()

    def test_fills_absent_combinations(self) -> None:
        table = pd.DataFrame({YEAR: [2016, 2015], GENDER: ["Male", "Female"], "count": [4, 2]})
        wide = pivot_for_bars(table, YEAR, GENDER)
        assert list(wide.index) == [2015, 2016]
        assert list(wide.columns) == ["Female", "Male"]
        assert wide.loc[2015, "Male"] == 0
        assert wide.loc[2016, "Male"] == 4

    def test_age_bands_in_natural_order(self, cleaned_cases: pd.DataFrame) -> None:
        wide = pivot_for_bars(group_count(cleaned_cases, [YEAR, AGE]), YEAR, AGE)
        assert list(wide.columns) == ["0--8", "9--17", "18--20", "21--23", "30--38", "48+"]

    def test_missing_hue_is_logged(self, caplog) -> None:
        table = pd.DataFrame({YEAR: [2015, 2015], GENDER: ["Male", None], "count": [3, 4]})
        with caplog.at_level(logging.WARNING, logger="ctdc_report.plotting"):
            wide = pivot_for_bars(table, YEAR, GENDER)
        assert wide.to_numpy().sum() == 3
        assert "1 rows with a missing yearOfRegistration/gender" in caplog.text
        assert "4 of count" in caplog.text

    def test_complete_table_logs_nothing(self, cleaned_cases: pd.DataFrame, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="ctdc_report.plotting"):
            pivot_for_bars(group_count(cleaned_cases, [YEAR, GENDER]), YEAR, GENDER)
        assert caplog.text == ""

    def test_absent_column(self) -> None:
        with pytest.raises(SchemaError) as info:
            pivot_for_bars(pd.DataFrame({YEAR: [2015], "count": [1]}), YEAR, GENDER)
        assert info.value.stage == "render"


# ===================================================================
# Figure files
# ===================================================================


class TestFigures:
    def test_stacked_bar(self, cleaned_cases: pd.DataFrame, tmp_path) -> None:
        table = group_count(cleaned_cases, [YEAR, GENDER])
        paths = figure_stacked_bar(table, YEAR, GENDER, tmp_path, stem="stacked", title="t", **FAST)
        assert [p.name for p in paths] == ["stacked.png"]
        assert paths[0].stat().st_size > 0

    def test_png_and_pdf_by_default(self, cleaned_cases: pd.DataFrame, tmp_path) -> None:
        table = group_count(cleaned_cases, [YEAR, GENDER])
        paths = figure_stacked_bar(table, YEAR, GENDER, tmp_path / "figs", stem="both", title="t", dpi=40)
        assert sorted(p.suffix for p in paths) == [".pdf", ".png"]
        assert all(p.exists() for p in paths)

    def test_normalized_bar_with_empty_year(self, tmp_path) -> None:
        table = pd.DataFrame({
            YEAR: [2015, 2015, 2016, 2016],
            GENDER: ["Female", "Male", "Female", "Male"],
            "count": [0, 0, 3, 1],
        })
        (path,) = figure_normalized_bar(table, YEAR, GENDER, tmp_path, stem="norm", title="t", **FAST)
        assert path.exists()

    def test_scatter_per_category(self, cleaned_cases: pd.DataFrame, tmp_path) -> None:
        table = group_count(cleaned_cases, [YEAR, GENDER])
        (path,) = figure_scatter_with_trend(table, YEAR, "count", tmp_path, hue=GENDER,
                                            stem="scatter", title="t", **FAST)
        assert path.exists()

    def test_scatter_skips_line_for_short_category(self, tmp_path, caplog) -> None:
        table = pd.DataFrame({
            YEAR: [2015, 2016, 2017, 2016],
            GENDER: ["Female", "Female", "Female", "Male"],
            "count": [3, 5, 8, 2],
        })
        with caplog.at_level(logging.WARNING, logger="ctdc_report.plotting"):
            (path,) = figure_scatter_with_trend(table, YEAR, "count", tmp_path, hue=GENDER,
                                                stem="short", title="t", **FAST)
        assert path.exists()
        assert "No trend line for Male" in caplog.text
        assert "Female" not in caplog.text

    def test_scatter_logs_rows_without_category(self, tmp_path, caplog) -> None:
        table = pd.DataFrame({
            YEAR: [2015, 2016, 2017, 2017],
            GENDER: ["Female", "Female", "Female", None],
            "count": [3, 5, 8, 2],
        })
        with caplog.at_level(logging.WARNING, logger="ctdc_report.plotting"):
            (path,) = figure_scatter_with_trend(table, YEAR, "count", tmp_path, hue=GENDER,
                                                stem="no_category", title="t", **FAST)
        assert path.exists()
        assert "1 rows with a missing" in caplog.text

    def test_scatter_reuses_given_fit(self, cleaned_cases: pd.DataFrame, tmp_path) -> None:
        from ctdc_report.trend import fit_yearly_trend

        totals = yearly_totals(cleaned_cases)
        (path,) = figure_scatter_with_trend(totals, YEAR, "count", tmp_path, stem="totals", title="t",
                                            fit=fit_yearly_trend(totals), **FAST)
        assert path.exists()

    def test_sector_facets(self, cleaned_cases: pd.DataFrame, tmp_path) -> None:
        (path,) = figure_sector_facets(sector_counts(cleaned_cases), tmp_path, **FAST)
        assert path.name == "sector_by_gender.png"
        assert path.exists()
