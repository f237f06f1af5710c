"""
ctdc_report
===========

Exploratory report over the CTDC human-trafficking case registrations.

Modules:
- cleaning: load the case file, project the analysed columns, recode -99.
- aggregation: group-counts per year / gender / age band / labour sector.
- trend: OLS fit of yearly case counts on registration year.
- plotting: figure builders for the report.
- pipeline: run_report(), the end-to-end entry point.

All functions take and return new DataFrames; paths are pathlib Paths.
"""
__all__ = ["aggregation", "cleaning", "config", "errors", "pipeline", "plotting", "trend"]
