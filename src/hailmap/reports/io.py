"""Loading hail reports and storms from files.

Supports the JSON shape used by the map surface (a list of report dicts,
or a list of storm dicts with nested ``reports``) and flat CSV exports
with at least ``latitude``, ``longitude`` and ``size`` columns.
"""

import json
import logging
from pathlib import Path

import pandas as pd

from hailmap.exceptions import MalformedReport
from hailmap.reports.models import HailReport, StormEvent

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("latitude", "longitude", "size")


def load_reports_json(path: Path) -> list[HailReport]:
    """Load reports from a JSON file.

    The file may contain a list of reports, a list of storms, or an
    object with a ``reports`` or ``storms`` key. Reports from disabled
    storms are skipped. Unparseable reports are dropped with a warning.

    Args:
        path: Path to the JSON file

    Returns:
        List of parsed reports
    """
    with open(path) as f:
        data = json.load(f)

    if isinstance(data, dict):
        if "storms" in data:
            data = data["storms"]
        else:
            data = data.get("reports", [])

    raw_reports: list[dict] = []
    for item in data:
        if "reports" in item:
            if item.get("enabled", True):
                raw_reports.extend(item["reports"])
        else:
            raw_reports.append(item)

    return _parse_all(raw_reports, source=str(path))


def load_storms_json(path: Path) -> list[StormEvent]:
    """Load storm events from a JSON list of storm dicts."""
    with open(path) as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("storms", [])
    return [StormEvent.from_dict(d) for d in data]


def load_reports_csv(path: Path) -> list[HailReport]:
    """Load reports from a CSV file.

    Non-numeric coordinates or sizes become NaN and those rows are
    dropped; the count is logged.

    Raises:
        ValueError: If a required column is missing
    """
    df = pd.read_csv(path)
    df.columns = [c.strip() for c in df.columns]

    for col in REQUIRED_COLUMNS:
        if col not in df.columns:
            raise ValueError(f"Missing column '{col}'. Found: {list(df.columns)}")

    for col in REQUIRED_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors="coerce")

    before = len(df)
    df = df.dropna(subset=list(REQUIRED_COLUMNS))
    dropped = before - len(df)
    if dropped:
        logger.warning(f"Dropped {dropped} CSV rows with non-numeric coordinates or size")

    if "id" not in df.columns:
        df["id"] = [f"row_{i}" for i in df.index]

    records = df.astype(object).where(pd.notna(df), None).to_dict(orient="records")
    return _parse_all(records, source=str(path))


def load_reports(path: Path) -> list[HailReport]:
    """Load reports from a ``.json`` or ``.csv`` file."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return load_reports_csv(path)
    if suffix in (".json", ".geojson"):
        return load_reports_json(path)
    raise ValueError(f"Unsupported report file type: {path.suffix}")


def _parse_all(raw_reports: list[dict], source: str) -> list[HailReport]:
    reports = []
    skipped = 0
    for raw in raw_reports:
        try:
            reports.append(HailReport.from_dict(raw))
        except MalformedReport as e:
            skipped += 1
            logger.debug(str(e))
    if skipped:
        logger.warning(f"Skipped {skipped} unparseable reports from {source}")
    logger.info(f"Loaded {len(reports)} reports from {source}")
    return reports
