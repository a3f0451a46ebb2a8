"""Conversion settings.

Reads XBAND_* variables from a .env file (or the environment) and returns an
immutable ConversionConfig. The CLI and the API start from these values and
override individual fields with ConversionConfig.replace().

.env file (place in the project root):
    XBAND_DATA_DIR=/data/xband
    XBAND_COMPLETION=true
    XBAND_MIN_GAP_SECONDS=60
    XBAND_DIVISIONS=6
    XBAND_LOG_LEVEL=DEBUG
"""

import dataclasses
import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from ingest.files import parse_hour_minute, parse_month_day
from processing.interpolate import MATCH_MODES

# Load variables from .env into the environment.
# If .env doesn't exist, this does nothing (existing env vars are kept).
load_dotenv()

ON_FRAME_ERROR_MODES = ("abort", "skip")

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off", "")


@dataclass(frozen=True)
class ConversionConfig:
    """Everything one conversion run needs to know.

    Attributes:
        data_dir: Directory holding the .gz mesh files.
        start_date / end_date: "MM-DD" window bounds in the current year.
        start_time / end_time: "HH:MM" window bounds ("24:00" allowed).
        completion: Synthesize frames between observed frames.
        min_gap_seconds: Only gaps at least this long are filled.
        divisions: Number of steps a filled gap is split into.
        on_frame_error: "abort" drops the whole batch on the first bad file,
                        "skip" logs it and carries on.
        match: How cells are paired for interpolation: "index" or "position".
        workers: Number of files decoded in parallel.
        output_name: File name of the JSON written into data_dir.
    """

    data_dir: str = "xbanddata"
    start_date: str = "01-01"
    end_date: str = "12-31"
    start_time: str = "00:00"
    end_time: str = "24:00"
    completion: bool = False
    min_gap_seconds: int = 60
    divisions: int = 6
    on_frame_error: str = "abort"
    match: str = "index"
    workers: int = 4
    output_name: str = "output.json"

    def __post_init__(self):
        if self.divisions < 1:
            raise ValueError(f"divisions must be at least 1, got {self.divisions}")
        if self.min_gap_seconds < 0:
            raise ValueError(f"min_gap_seconds must not be negative, got {self.min_gap_seconds}")
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        if self.on_frame_error not in ON_FRAME_ERROR_MODES:
            raise ValueError(
                f"Invalid on_frame_error: '{self.on_frame_error}'. Expected one of {ON_FRAME_ERROR_MODES}."
            )
        if self.match not in MATCH_MODES:
            raise ValueError(f"Invalid match mode: '{self.match}'. Expected one of {MATCH_MODES}.")
        parse_month_day(self.start_date)
        parse_month_day(self.end_date)
        parse_hour_minute(self.start_time)
        parse_hour_minute(self.end_time)

    def replace(self, **overrides) -> "ConversionConfig":
        """Return a copy with the given fields changed. None values are ignored.

        Example:
            config.replace(completion=True, divisions=None)  # divisions unchanged
        """
        changes = {key: value for key, value in overrides.items() if value is not None}
        return dataclasses.replace(self, **changes)


def load_config() -> ConversionConfig:
    """Build a ConversionConfig from XBAND_* environment variables.

    Unset variables keep the defaults of ConversionConfig.

    Raises:
        ValueError: If a variable can't be converted or fails validation.
    """
    env = os.environ
    values = {}

    for field_name, env_name in (
        ("data_dir", "XBAND_DATA_DIR"),
        ("start_date", "XBAND_START_DATE"),
        ("end_date", "XBAND_END_DATE"),
        ("start_time", "XBAND_START_TIME"),
        ("end_time", "XBAND_END_TIME"),
        ("on_frame_error", "XBAND_ON_FRAME_ERROR"),
        ("match", "XBAND_MATCH"),
        ("output_name", "XBAND_OUTPUT_NAME"),
    ):
        if env_name in env:
            values[field_name] = env[env_name]

    for field_name, env_name in (
        ("min_gap_seconds", "XBAND_MIN_GAP_SECONDS"),
        ("divisions", "XBAND_DIVISIONS"),
        ("workers", "XBAND_WORKERS"),
    ):
        if env_name in env:
            values[field_name] = _parse_int(env_name, env[env_name])

    if "XBAND_COMPLETION" in env:
        values["completion"] = _parse_bool("XBAND_COMPLETION", env["XBAND_COMPLETION"])

    return ConversionConfig(**values)


def log_level() -> int:
    """Return the logging level named by XBAND_LOG_LEVEL (default INFO).

    Example:
        XBAND_LOG_LEVEL=debug  → logging.DEBUG

    Raises:
        ValueError: If the name isn't a standard logging level.
    """
    name = os.environ.get("XBAND_LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ValueError(f"XBAND_LOG_LEVEL must be a logging level such as DEBUG or INFO, got '{name}'")
    return level


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got '{value}'") from e


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be true or false, got '{value}'")
