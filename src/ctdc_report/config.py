"""
Configuration constants for the CTDC case-registration report.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Literal, Tuple

# ======================================================
#  PATHS (resolved from this file location)
# ======================================================
REPO_DIR = Path(__file__).resolve().parents[2]
DATA_DIR = REPO_DIR / "data"
RAW_DIR = DATA_DIR / "raw"
OUTPUT_DIR = REPO_DIR / "output"

DEFAULT_INPUT = RAW_DIR / "ctdc_global_dataset.csv"

# ======================================================
#  INPUT SCHEMA
# ======================================================
YEAR = "yearOfRegistration"
GENDER = "gender"
AGE = "ageBroad"

# Display label per labour-sector flag column
LABOUR_COLUMNS: Dict[str, str] = {
    "typeOfLabourAgriculture": "Agriculture",
    "typeOfLabourAquafarming": "Aquafarming",
    "typeOfLabourBegging": "Begging",
    "typeOfLabourConstruction": "Construction",
    "typeOfLabourDomesticWork": "Domestic work",
    "typeOfLabourHospitality": "Hospitality",
    "typeOfLabourManufacturing": "Manufacturing",
    "typeOfLabourPeddling": "Peddling",
}

REQUIRED_COLUMNS: List[str] = [YEAR, GENDER, AGE, *LABOUR_COLUMNS]

COLUMN_TYPES: Dict[str, str] = {
    YEAR: "Int64",
    GENDER: "string",
    AGE: "string",
    **{col: "Int64" for col in LABOUR_COLUMNS},
}

# "data not collected" marker used throughout the source file
SENTINEL: int = -99

AGE_BAND_ORDER: Tuple[str, ...] = (
    "0--8",
    "9--17",
    "18--20",
    "21--23",
    "24--26",
    "27--29",
    "30--38",
    "39--47",
    "48+",
)

UNKNOWN_GENDER = "Unknown"

# ======================================================
#  RUN DEFAULTS
# ======================================================
DEFAULT_SEP: str = ","
DEFAULT_ALPHA: float = 0.05
MIN_TREND_YEARS: int = 3

GenderPolicy = Literal["exclude", "unknown"]
GENDER_POLICIES: Tuple[str, ...] = ("exclude", "unknown")


@dataclass(frozen=True)
class ReportConfig:
    """Knobs for a single report run."""

    sep: str = DEFAULT_SEP
    alpha: float = DEFAULT_ALPHA
    missing_gender: GenderPolicy = "exclude"
    dpi: int = 300
    formats: Tuple[str, ...] = ("png", "pdf")

    def __post_init__(self) -> None:
        if self.missing_gender not in GENDER_POLICIES:
            raise ValueError(
                f"missing_gender must be one of {GENDER_POLICIES}, got {self.missing_gender!r}"
            )
        if not 0.0 < self.alpha < 1.0:
            raise ValueError(f"alpha must be in (0, 1), got {self.alpha}")
