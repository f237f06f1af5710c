"""Shared pytest fixtures for the report test suite.

Provides:
- case_rows: a dozen raw registrations with -99 and blank cells mixed in
- raw_cases / cleaned_cases: the same rows as loaded and as cleaned frames
- case_csv: the rows written to a CSV file under tmp_path
"""

import matplotlib

matplotlib.use("Agg")

import pandas as pd  # noqa: E402
import pytest  # noqa: E402

from ctdc_report.cleaning import clean_cases, load_cases  # noqa: E402
from ctdc_report.config import AGE, GENDER, LABOUR_COLUMNS, YEAR  # noqa: E402


def make_row(year, gender, age, **flags) -> dict:
    row = {YEAR: year, GENDER: gender, AGE: age}
    row.update({col: 0 for col in LABOUR_COLUMNS})
    row.update(flags)
    return row


CASE_ROWS = [
    make_row(2015, "Female", "9--17", typeOfLabourDomesticWork=1),
    make_row(2015, "Male", "30--38", typeOfLabourConstruction=1, typeOfLabourAgriculture=1),
    make_row(2015, "-99", "", typeOfLabourBegging=-99),
    make_row(2016, "Female", "18--20", typeOfLabourHospitality=1),
    make_row(2016, "Female", "-99"),
    make_row(2016, "Male", "48+", typeOfLabourAgriculture=1),
    make_row(2016, "Male", "9--17", typeOfLabourAgriculture=-99),
    make_row(2017, "Female", "21--23", typeOfLabourDomesticWork=1),
    make_row(2017, "Male", "30--38", typeOfLabourConstruction=1),
    make_row(2017, "Female", "0--8", typeOfLabourBegging=1),
    make_row(2017, "Male", "", typeOfLabourManufacturing=1),
    make_row(-99, "Female", "27--29", typeOfLabourPeddling=1),
]


def write_cases(path, rows, **extra_columns):
    df = pd.DataFrame(rows)
    for name, value in extra_columns.items():
        df[name] = value
    df.to_csv(path, index=False)
    return path


@pytest.fixture()
def case_rows() -> list:
    return [dict(r) for r in CASE_ROWS]


@pytest.fixture()
def case_csv(tmp_path, case_rows):
    return write_cases(tmp_path / "cases.csv", case_rows, Datasource="Case Management")


@pytest.fixture()
def raw_cases(case_csv) -> pd.DataFrame:
    return load_cases(case_csv)


@pytest.fixture()
def cleaned_cases(raw_cases) -> pd.DataFrame:
    return clean_cases(raw_cases)
