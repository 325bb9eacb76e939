"""
CLI entry point for the level generator.

Usage:
    wattbeat-level <prices_file> [options]
    python -m wattbeat <prices_file> [options]
"""

import argparse
import logging
import sys
import time
from pathlib import Path

import numpy as np

from wattbeat.core.difficulty import Difficulty
from wattbeat.io.exporter import GeometryExporter
from wattbeat.pipeline import LevelPipeline, LevelRequest


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        prog="wattbeat-level",
        description="Build a playable tunnel level from an hourly price series",
    )

    parser.add_argument(
        "prices",
        type=Path,
        help="Text file with one price per line",
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Write the level manifest to this path",
    )
    parser.add_argument(
        "--format", type=str, default="json",
        choices=["json", "numpy"],
        help="Manifest format (default: json)",
    )
    parser.add_argument(
        "-d", "--difficulty", type=str, default="normal",
        choices=[d.name.lower() for d in Difficulty],
        help="Difficulty (default: normal)",
    )
    parser.add_argument("--height", type=float, default=600.0, help="Playfield height in px (default: 600)")
    parser.add_argument("--columns", type=int, default=7000, help="Tunnel columns (default: 7000)")
    parser.add_argument("--dataset", type=str, default="daprices-epex-elec.csv", help="Dataset identifier for the level hash")
    parser.add_argument("--start", type=str, default="2025-01-01", help="Range start for the level hash")
    parser.add_argument("--end", type=str, default="2025-12-31", help="Range end for the level hash")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if not args.prices.exists():
        print(f"Error: Price file not found: {args.prices}", file=sys.stderr)
        sys.exit(1)

    try:
        prices = np.loadtxt(args.prices, dtype=np.float64, ndmin=1)
    except ValueError as e:
        print(f"Error: Could not read prices from {args.prices}: {e}", file=sys.stderr)
        sys.exit(1)

    request = LevelRequest(
        difficulty=Difficulty.coerce(args.difficulty),
        height=args.height,
        n_columns=args.columns,
        dataset=args.dataset,
        start=args.start,
        end=args.end,
    )

    print(f"Generating level: {args.prices}")
    t0 = time.time()

    pipeline = LevelPipeline(n_columns=args.columns)
    try:
        result = pipeline.process(prices, request, use_cache=False)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    geometry = result["geometry"]
    stats = result["stats"]
    gap = geometry.gap

    print(f"  Hash: {result['hash']}")
    print(f"  Samples: {stats.n}")
    print(f"  Price min/median/max: {stats.price_min:.1f} / {stats.price_median:.1f} / {stats.price_max:.1f}")
    print(f"  Volatility: {stats.vol_avg:.3f}")
    print(f"  Average gap: {round(stats.gap_avg)} px (min {gap.min():.1f} px)")
    print(f"  Forced columns: {int(np.count_nonzero(geometry.danger >= 1.0))}")
    print(f"  Generation took {time.time() - t0:.2f}s")

    if args.output:
        exporter = GeometryExporter()
        if args.format == "numpy":
            written = exporter.export_numpy(geometry, result["hash"], args.output)
        else:
            written = exporter.export_json(geometry, result["hash"], args.output)
        print(f"  Output: {written}")


if __name__ == "__main__":
    main()
