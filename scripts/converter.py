"""Converter: turn a directory of X-band mesh files into a replay JSON file.

Settings come from XBAND_* environment variables (or .env, see
pipeline/config.py); any flag given on the command line overrides them.

Usage:
    # Convert everything in ./xbanddata into ./xbanddata/output.json
    python scripts/converter.py

    # One week in July, filling gaps of a minute or more with 6 steps
    python scripts/converter.py --dir /data/xband --start-date 07-01 --end-date 07-07 \\
        --completion --min-gap-time 60 --divisions 6

    # Keep going when a file is corrupt instead of dropping the whole batch
    python scripts/converter.py --skip-bad-files
"""

import argparse
import logging
import os
import sys
import time
from pathlib import Path

# Add the project root to sys.path so that "from pipeline.aggregator import ..."
# works whether this script is run directly (python scripts/converter.py)
# or as a module (python -m scripts.converter).
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ingest.files import build_window, list_files
from pipeline.aggregator import Aggregator, BatchAbortedError
from pipeline.config import ConversionConfig, load_config, log_level
from pipeline.writer import write_json

logger = logging.getLogger(__name__)


def convert(config: ConversionConfig, output_path: Path | None = None) -> dict:
    """List, decode, aggregate and write one batch.

    Args:
        config: Conversion settings.
        output_path: Where to write the JSON. Default: <data_dir>/<output_name>.

    Returns:
        A summary dict:
          - "files":  Number of files selected.
          - "tiles":  Number of tile series written.
          - "frames": Total frames across all tiles (synthetic ones included).
          - "output": Path of the written JSON file.

    Raises:
        FileNotFoundError / NotADirectoryError: If data_dir is unusable.
        BatchAbortedError: If a file fails to decode under the abort policy.
        ValueError: If the date/time window is invalid.
    """
    data_dir = Path(config.data_dir)
    if output_path is None:
        output_path = data_dir / config.output_name

    start, end = build_window(config.start_date, config.end_date, config.start_time, config.end_time)
    logger.info("Converting %s from %s to %s", data_dir, start, end)

    t0 = time.time()
    paths = list_files(data_dir, start, end)
    logger.info("Listed %d files in %.1fs", len(paths), time.time() - t0)

    series = Aggregator(config).run(paths)
    write_json(series, output_path)

    return {
        "files": len(paths),
        "tiles": len(series),
        "frames": sum(len(tile.operation) for tile in series),
        "output": str(output_path),
    }


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description=(
            "Convert X-band radar mesh files into a per-tile rainfall time series JSON. "
            "Unset options fall back to XBAND_* environment variables."
        )
    )
    parser.add_argument("--dir", dest="data_dir", help="Directory of .gz mesh files (default: xbanddata).")
    parser.add_argument("--start-date", metavar="MM-DD", help="First day of the window (default: 01-01).")
    parser.add_argument("--end-date", metavar="MM-DD", help="Last day of the window (default: 12-31).")
    parser.add_argument("--start-time", metavar="HH:MM", help="Start time on the first day (default: 00:00).")
    parser.add_argument("--end-time", metavar="HH:MM", help="End time on the last day (default: 24:00).")
    parser.add_argument(
        "--completion",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Synthesize frames between observed frames (--no-completion turns off XBAND_COMPLETION).",
    )
    parser.add_argument(
        "--min-gap-time",
        dest="min_gap_seconds",
        type=int,
        metavar="SECONDS",
        help="Only fill gaps at least this long (default: 60).",
    )
    parser.add_argument("--divisions", type=int, metavar="N", help="Steps per filled gap (default: 6).")
    parser.add_argument(
        "--skip-bad-files",
        action="store_const",
        const="skip",
        dest="on_frame_error",
        help="Skip files that fail to decode instead of aborting.",
    )
    parser.add_argument(
        "--match",
        choices=["index", "position"],
        help="Pair cells for interpolation by scan index or by position (default: index).",
    )
    parser.add_argument("--workers", type=int, metavar="N", help="Parallel decode workers (default: 4).")
    parser.add_argument("--output", type=Path, help="Output JSON path (default: <dir>/output.json).")
    parser.add_argument("--verbose", action="store_true", help="Log per-file details (overrides XBAND_LOG_LEVEL).")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        level = logging.DEBUG if args.verbose else log_level()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        config = load_config().replace(
            data_dir=args.data_dir,
            start_date=args.start_date,
            end_date=args.end_date,
            start_time=args.start_time,
            end_time=args.end_time,
            completion=args.completion,
            min_gap_seconds=args.min_gap_seconds,
            divisions=args.divisions,
            on_frame_error=args.on_frame_error,
            match=args.match,
            workers=args.workers,
        )
        summary = convert(config, args.output)
    except (ValueError, FileNotFoundError, NotADirectoryError, BatchAbortedError) as e:
        logger.error("%s", e)
        return 1

    print(
        f"\nDone — {summary['tiles']} tiles, {summary['frames']} frames "
        f"from {summary['files']} files written to {summary['output']}."
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
