"""Hail reports, storm events and the in-memory report store."""

from hailmap.reports.io import load_reports, load_reports_csv, load_reports_json, load_storms_json
from hailmap.reports.models import (
    HailReport,
    StormEvent,
    mesh_to_inches,
    partition_reports,
    validate_report,
)
from hailmap.reports.store import MAX_STORMS, ReportStore, detect_source

__all__ = [
    "HailReport",
    "MAX_STORMS",
    "ReportStore",
    "StormEvent",
    "detect_source",
    "load_reports",
    "load_reports_csv",
    "load_reports_json",
    "load_storms_json",
    "mesh_to_inches",
    "partition_reports",
    "validate_report",
]
