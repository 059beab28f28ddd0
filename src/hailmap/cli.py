"""Command-line entry point.

Examples:
  python -m hailmap.cli contours reports.json             # GeoJSON to stdout
  python -m hailmap.cli contours reports.csv --simple -o contours.geojson
  python -m hailmap.cli contours storms.json --storms
  python -m hailmap.cli validate contours.geojson
  python -m hailmap.cli diff previous_knocks.json current_knocks.json
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence

import geojson

from hailmap.config import PipelineConfig
from hailmap.contours.features import is_empty, validate_contours
from hailmap.knocks.differential import calculate_knock_changes
from hailmap.knocks.models import Knock
from hailmap.pipeline.coordinator import ContourCoordinator, CoordinatorState
from hailmap.reports.io import load_reports, load_storms_json
from hailmap.reports.models import HailReport
from hailmap.reports.store import ReportStore
from hailmap.surface.base import MessageSurface

logger = logging.getLogger(__name__)


def generate_contours(
    reports: Sequence[HailReport],
    config: PipelineConfig,
    use_smooth_contours: bool,
) -> Optional[geojson.FeatureCollection]:
    """Run reports through the coordinator once.

    Returns:
        The emitted collection, or None if generation failed
    """
    return _run_once(config, lambda c: c.submit(reports, use_smooth_contours))


def generate_store_contours(
    store: ReportStore,
    config: PipelineConfig,
    use_smooth_contours: bool,
) -> Optional[geojson.FeatureCollection]:
    """Run the enabled storms of a store through the coordinator once."""
    return _run_once(config, lambda c: c.refresh_from_store(store, use_smooth_contours))


def _run_once(
    config: PipelineConfig,
    start: Callable[[ContourCoordinator], None],
) -> Optional[geojson.FeatureCollection]:
    messages: list[str] = []

    async def run() -> ContourCoordinator:
        coordinator = ContourCoordinator(
            MessageSurface(messages.append),
            config.with_overrides(debounce_seconds=0.0),
        )
        start(coordinator)
        await coordinator.wait_idle()
        return coordinator

    coordinator = asyncio.run(run())
    logger.debug(f"Coordinator stats: {coordinator.stats.to_dict()}")
    if coordinator.state == CoordinatorState.FAILED:
        return None
    return coordinator.current_contours


def load_knocks(path: Path) -> list[Knock]:
    with open(path) as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("knocks", [])
    return [Knock.from_dict(d) for d in data]


def _cmd_contours(args: argparse.Namespace, config: PipelineConfig) -> int:
    use_smooth = config.use_smooth_contours and not args.simple
    if args.storms:
        storms = load_storms_json(args.reports)
        store = ReportStore(storms, max_storms=max(len(storms), 1))
        collection = generate_store_contours(store, config, use_smooth)
    else:
        collection = generate_contours(load_reports(args.reports), config, use_smooth)
    if collection is None:
        logger.error("Contour generation failed")
        return 1
    if is_empty(collection):
        logger.warning("No report reached the lowest severity tier")

    text = geojson.dumps(collection, indent=2 if args.pretty else None)
    if args.output:
        args.output.write_text(text)
        logger.info(f"Wrote {len(collection['features'])} features to {args.output}")
    else:
        print(text)
    return 0


def _cmd_validate(args: argparse.Namespace, config: PipelineConfig) -> int:
    with open(args.contours) as f:
        collection = json.load(f)
    result = validate_contours(collection)
    print(result)
    for issue in result.issues:
        print(f"  - {issue}")
    return 0 if result.valid else 1


def _cmd_diff(args: argparse.Namespace, config: PipelineConfig) -> int:
    delta = calculate_knock_changes(load_knocks(args.previous), load_knocks(args.current))
    print(json.dumps(delta.to_dict(), indent=2 if args.pretty else None))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hailmap",
        description="Hail contour generation and knock sync tools",
        epilog=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress output except errors",
    )
    parser.add_argument(
        "--pretty",
        action="store_true",
        help="Indent JSON output",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    contours = subparsers.add_parser("contours", help="Generate contours from a report file")
    contours.add_argument("reports", type=Path, help="Reports file (.json or .csv)")
    contours.add_argument(
        "--simple",
        action="store_true",
        help="Use simple buffered-hull contours only",
    )
    contours.add_argument(
        "--storms",
        action="store_true",
        help="Treat the file as a list of storms; disabled storms are skipped",
    )
    contours.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Write GeoJSON to this file instead of stdout",
    )
    contours.set_defaults(handler=_cmd_contours)

    validate = subparsers.add_parser("validate", help="Validate a contour GeoJSON file")
    validate.add_argument("contours", type=Path)
    validate.set_defaults(handler=_cmd_validate)

    diff = subparsers.add_parser("diff", help="Compute the delta between two knock snapshots")
    diff.add_argument("previous", type=Path)
    diff.add_argument("current", type=Path)
    diff.set_defaults(handler=_cmd_diff)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    if args.quiet:
        level = logging.ERROR
    elif args.verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    try:
        config = PipelineConfig.from_env()
        return args.handler(args, config)
    except (OSError, ValueError, KeyError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
