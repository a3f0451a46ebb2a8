"""Find X-band mesh files in a local directory and filter them by time window."""

import logging
import re
from datetime import datetime, timedelta
from pathlib import Path

logger = logging.getLogger(__name__)

# <meshId>-<YYYYMMDD>-<HHMM>-G<3 chars>-EL<6 chars>.gz, e.g. 5339-20210703-1230-G001-EL000100.gz
FILENAME_PATTERN = re.compile(
    r"^(?P<mesh_id>[^-\s]{1,10})-(?P<date>\d{8})-(?P<time>\d{4})-G(?P<g>.{3})-EL(?P<el>.{6})\.gz$"
)
TIMESTAMP_FORMAT = "%Y%m%d%H%M"


def parse_filename(filename: str) -> tuple[str, datetime] | None:
    """Extract the mesh id and local timestamp embedded in a mesh file name.

    Example:
        Input:  "5339-20210703-1230-G001-EL000100.gz"
        Output: ("5339", datetime(2021, 7, 3, 12, 30))

    Returns None if the name does not follow the naming convention.
    """
    name = filename.split("/")[-1]
    match = FILENAME_PATTERN.match(name)
    if match is None:
        return None
    try:
        timestamp = datetime.strptime(match["date"] + match["time"], TIMESTAMP_FORMAT)
    except ValueError as e:
        logger.debug("Bad timestamp in file name %s (%s)", filename, e)
        return None
    return match["mesh_id"], timestamp


def parse_month_day(value: str) -> tuple[int, int]:
    """Parse "MM-DD" into (month, day).

    Raises:
        ValueError: If the string is not two dash-separated integers.
    """
    try:
        month, day = (int(part) for part in value.split("-"))
    except ValueError as e:
        raise ValueError(f"Invalid date: '{value}'. Expected MM-DD, e.g. '07-03'.") from e
    return month, day


def parse_hour_minute(value: str) -> tuple[int, int]:
    """Parse "HH:MM" into (hour, minute). "24:00" is allowed.

    Raises:
        ValueError: If the string is not two colon-separated integers.
    """
    try:
        hour, minute = (int(part) for part in value.split(":"))
    except ValueError as e:
        raise ValueError(f"Invalid time: '{value}'. Expected HH:MM, e.g. '12:30'.") from e
    return hour, minute


def build_window(
    start_date: str,
    end_date: str,
    start_time: str,
    end_time: str,
    year: int | None = None,
) -> tuple[datetime, datetime]:
    """Build the local (start, end) datetimes for a MM-DD / HH:MM window.

    The window lies in `year` (default: the current year). Hours and minutes
    past the end of the day roll over, so "12-31" + "24:00" is midnight of
    January 1st of the next year.

    Example:
        build_window("07-01", "07-31", "00:00", "24:00", year=2021)
        → (datetime(2021, 7, 1, 0, 0), datetime(2021, 8, 1, 0, 0))

    Raises:
        ValueError: If any part is malformed or names an impossible date.
    """
    if year is None:
        year = datetime.now().year

    start = _combine(year, parse_month_day(start_date), parse_hour_minute(start_time))
    end = _combine(year, parse_month_day(end_date), parse_hour_minute(end_time))
    return start, end


def _combine(year: int, month_day: tuple[int, int], hour_minute: tuple[int, int]) -> datetime:
    month, day = month_day
    hour, minute = hour_minute
    try:
        base = datetime(year, month, day)
    except ValueError as e:
        raise ValueError(f"Invalid date: {month:02d}-{day:02d} ({e})") from e
    return base + timedelta(hours=hour, minutes=minute)


def list_files(data_dir: Path, start: datetime, end: datetime) -> list[Path]:
    """List mesh files in `data_dir` whose file name timestamp is within [start, end].

    Files that don't follow the naming convention or fall outside the window
    are skipped and logged. The result is sorted by file name, which for a
    single mesh id is chronological.

    Raises:
        FileNotFoundError: If data_dir does not exist.
        NotADirectoryError: If data_dir is not a directory.
    """
    data_dir = Path(data_dir)
    if not data_dir.exists():
        raise FileNotFoundError(f"Data directory not found: {data_dir}")
    if not data_dir.is_dir():
        raise NotADirectoryError(f"Not a directory: {data_dir}")

    matching = []
    for path in data_dir.iterdir():
        if not path.is_file() or not path.name.endswith(".gz"):
            continue
        parsed = parse_filename(path.name)
        if parsed is None or not (start <= parsed[1] <= end):
            logger.info("Eject file: %s", path.name)
            continue
        matching.append(path)

    matching.sort(key=lambda p: p.name)
    logger.info("Found %d mesh files in %s between %s and %s", len(matching), data_dir, start, end)
    return matching
