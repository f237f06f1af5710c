"""
Re-draw the report figures from saved aggregate tables.

Usage:
    python scripts/make_figures.py --tables output/tables --outdir output/figures
"""

import argparse
import logging
from pathlib import Path

from ctdc_report.config import OUTPUT_DIR
from ctdc_report.pipeline import read_tables, render_figures


def main(argv=None):
    logging.basicConfig(level=logging.INFO, format="%(asctime)s  %(message)s")
    parser = argparse.ArgumentParser(description="Render report figures from aggregate CSVs.")
    parser.add_argument("--tables", type=Path, default=OUTPUT_DIR / "tables")
    parser.add_argument("--outdir", type=Path, default=OUTPUT_DIR / "figures")
    args = parser.parse_args(argv)

    tables = read_tables(args.tables)
    figures = render_figures(tables, args.outdir)

    print(f"{len(figures)} figures saved in {args.outdir}/")


if __name__ == "__main__":
    main()
