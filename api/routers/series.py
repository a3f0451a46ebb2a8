"""Mesh time series endpoints.

This module contains everything related to serving converted mesh data:
- API endpoint definitions (GET /series, GET /series/file)
- Business logic for running a conversion (_build_series)

The data directory comes from XBAND_DATA_DIR (see pipeline/config.py); the
time window and interpolation settings can be overridden per request.
Results are cached in memory per effective configuration and file listing.
"""

import json
import logging
import time
from pathlib import Path

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from ingest.files import build_window, list_files
from pipeline.aggregator import Aggregator, BatchAbortedError
from pipeline.config import ConversionConfig, load_config
from pipeline.writer import to_records

logger = logging.getLogger(__name__)
router = APIRouter()

# Keyed by (config, listing). The listing holds (name, mtime_ns) of every
# selected file, so new or rewritten files miss the cache.
_cache: dict[tuple[ConversionConfig, tuple], list[dict]] = {}
CACHE_MAX_ENTRIES = 32


def _listing_key(paths: list[Path]) -> tuple:
    return tuple((path.name, path.stat().st_mtime_ns) for path in paths)


def _build_series(
    start_date: str | None,
    end_date: str | None,
    start_time: str | None,
    end_time: str | None,
    completion: bool | None,
    min_gap_time: int | None,
    divisions: int | None,
    match: str | None,
    skip_bad_files: bool | None,
) -> list[dict]:
    """Convert the mesh files of the configured directory for the requested window.

    Args:
        start_date / end_date: "MM-DD" window bounds (default from config)
        start_time / end_time: "HH:MM" window bounds (default from config)
        completion: Synthesize frames between observed frames
        min_gap_time: Minimum gap in seconds before frames are synthesized
        divisions: Steps per filled gap
        match: "index" or "position" cell pairing for interpolation
        skip_bad_files: Skip undecodable files instead of failing the request

    Returns:
        List of {"meshId", "operation"} records.

    Raises:
        HTTPException(400): If parameters are invalid
        HTTPException(404): If the data directory or matching files are missing
        HTTPException(500): If a file failed to decode under the abort policy
    """
    # Parse and validate all parameters up front (fail fast before any I/O)
    try:
        config = load_config().replace(
            start_date=start_date,
            end_date=end_date,
            start_time=start_time,
            end_time=end_time,
            completion=completion,
            min_gap_seconds=min_gap_time,
            divisions=divisions,
            match=match,
            on_frame_error="skip" if skip_bad_files else None,
        )
        start_dt, end_dt = build_window(config.start_date, config.end_date, config.start_time, config.end_time)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    # Step 1: List files
    t0 = time.time()
    try:
        paths = list_files(config.data_dir, start_dt, end_dt)
        cache_key = (config, _listing_key(paths))
    except (FileNotFoundError, NotADirectoryError) as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    logger.info("Listed %d files in %.1fs", len(paths), time.time() - t0)

    if len(paths) == 0:
        raise HTTPException(status_code=404, detail="No mesh files found for this time window.")

    if cache_key in _cache:
        logger.info("Cache hit for %s (%d files)", config, len(paths))
        return _cache[cache_key]

    # Step 2: Decode, group and interpolate
    try:
        series = Aggregator(config).run(paths)
    except BatchAbortedError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e

    records = to_records(series)
    # Evict the oldest entry once full (dicts keep insertion order).
    if len(_cache) >= CACHE_MAX_ENTRIES:
        del _cache[next(iter(_cache))]
    _cache[cache_key] = records
    return records


@router.get("/series")
def get_series(
    start_date: str | None = None,
    end_date: str | None = None,
    start_time: str | None = None,
    end_time: str | None = None,
    completion: bool | None = None,
    min_gap_time: int | None = None,
    divisions: int | None = None,
    match: str | None = None,
    skip_bad_files: bool | None = None,
):
    """Return per-tile rainfall time series as JSON.

    Example:
        GET /series?start_date=07-03&end_date=07-03&completion=true&divisions=6
    """
    return _build_series(
        start_date, end_date, start_time, end_time, completion, min_gap_time, divisions, match, skip_bad_files
    )


@router.get("/series/file")
def get_series_file(
    start_date: str | None = None,
    end_date: str | None = None,
    start_time: str | None = None,
    end_time: str | None = None,
    completion: bool | None = None,
    min_gap_time: int | None = None,
    divisions: int | None = None,
    match: str | None = None,
    skip_bad_files: bool | None = None,
):
    """Return per-tile rainfall time series as a downloadable output.json file.

    Example:
        GET /series/file?start_date=07-03&end_date=07-03
    """
    records = _build_series(
        start_date, end_date, start_time, end_time, completion, min_gap_time, divisions, match, skip_bad_files
    )
    return Response(
        content=json.dumps(records),
        media_type="application/json",
        headers={"Content-Disposition": "attachment; filename=output.json"},
    )
