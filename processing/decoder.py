"""Decode gzip-compressed X-band mesh files into Frames."""

import gzip
import logging
import re
import struct
import time
import zlib
from pathlib import Path

import numpy as np

from processing.models import Absent, Cell, Frame
from processing.palette import CELLS_PER_SIDE, cell_position, color_ramp

logger = logging.getLogger(__name__)

# Big-endian fixed headers: (field name, struct code).
FRAME_HEADER = (
    ("header1", "8s"),
    ("datetime", "16s"),
    ("system_status", "16s"),
    ("header2", "2s"),
    ("block_count", "H"),
    ("data_size", "I"),
    ("data_id4", "2s"),
    ("data_id5", "2s"),
    ("reserved", "12s"),
)

BLOCK_HEADER = (
    ("base_lat", "B"),
    ("base_lon", "B"),
    ("mesh2", "B"),
    ("cell_max", "B"),
)

BLOCK_DATA_SIZE = CELLS_PER_SIDE * CELLS_PER_SIDE * 2

VALID_FLAG = 0x8000
INTENSITY_MASK = 0x0FFF
INTENSITY_SCALE = 10.0

# "YYYY.MM.DD.HH.MM"; every field after the first is optional so a damaged
# timestamp still yields whatever leading fields are readable.
_TIME_PATTERN = re.compile(
    r"\s*(\d{1,4})(?:\.\s*(\d{1,2})(?:\.\s*(\d{1,2})(?:\.\s*(\d{1,2})(?:\.\s*(\d{1,2}))?)?)?)?"
)


class DecodeError(ValueError):
    """Base class for input files that cannot be decoded."""


class BadCompressionError(DecodeError):
    """The input is not a valid gzip stream."""


class TruncatedError(DecodeError):
    """The stream ended before the declared header/block structure was read."""


def structure_size(structure) -> int:
    return struct.calcsize(">" + "".join(code for _, code in structure))


def unpack_structure(buf: bytes, pos: int, structure, what: str) -> dict:
    """Unpack a big-endian structure at `pos`, raising TruncatedError if `buf` is too short."""
    size = structure_size(structure)
    if pos + size > len(buf):
        raise TruncatedError(f"{what}: need {size} bytes at offset {pos}, only {len(buf) - pos} left")
    values = struct.unpack(">" + "".join(code for _, code in structure), buf[pos:pos + size])
    return dict(zip([name for name, _ in structure], values))


FRAME_HEADER_SIZE = structure_size(FRAME_HEADER)
BLOCK_HEADER_SIZE = structure_size(BLOCK_HEADER)


def parse_header_time(raw: bytes) -> tuple[int, int, int, int, int]:
    """Parse the header timestamp into (year, month, day, hour, minute).

    Parsing is lenient: fields that cannot be read are returned as 0 instead
    of raising.

    Example:
        parse_header_time(b"2021.07.03.12.30\\x00") → (2021, 7, 3, 12, 30)
        parse_header_time(b"2021.07.xx")          → (2021, 7, 0, 0, 0)
        parse_header_time(b"garbage")             → (0, 0, 0, 0, 0)
    """
    text = raw.decode("ascii", errors="replace")
    match = _TIME_PATTERN.match(text)
    if match is None:
        return 0, 0, 0, 0, 0
    year, month, day, hour, minute = (int(g) if g is not None else 0 for g in match.groups())
    return year, month, day, hour, minute


def local_epoch(year: int, month: int, day: int, hour: int, minute: int) -> int:
    """Convert calendar components in the process's local timezone to Unix seconds.

    Out-of-range components are normalized (month 0 is December of the
    previous year, day 0 the last day of the previous month, and so on).
    Returns 0 if the platform cannot represent the result.
    """
    try:
        return int(time.mktime((year, month, day, hour, minute, 0, 0, 0, -1)))
    except (OverflowError, ValueError) as e:
        logger.warning("Unrepresentable header time %04d.%02d.%02d.%02d.%02d (%s)", year, month, day, hour, minute, e)
        return 0


def decode_file(file_path: Path) -> tuple[str, Frame]:
    """Decode one mesh file on disk. See decode_frame()."""
    file_path = Path(file_path)
    logger.debug("Decoding %s", file_path.name)
    with open(file_path, "rb") as f:
        try:
            return decode_frame(f)
        except DecodeError as e:
            raise type(e)(f"{file_path.name}: {e}") from e


def decode_frame(stream) -> tuple[str, Frame]:
    """Decode a gzip-compressed mesh stream.

    Returns:
        mesh_id: the 2-byte tile id as 4 lowercase hex digits, e.g. "5339".
        frame: Frame with one slot per flagged cell in scan order
               (block, data unit, row, column). Cells with positive rainfall
               are Cell slots; flagged cells with zero rainfall are Absent.

    Raises:
        BadCompressionError: If the stream is not valid gzip.
        TruncatedError: If the stream ends before the declared blocks are read.
    """
    buf = _decompress(stream.read())

    header = unpack_structure(buf, 0, FRAME_HEADER, "frame header")
    logger.debug("Frame header %s", header)

    elapsedtime = local_epoch(*parse_header_time(header["datetime"]))
    mesh_id = header["data_id4"].hex()

    slots: list[Cell | Absent] = []
    pos = FRAME_HEADER_SIZE
    for block_index in range(header["block_count"]):
        block = unpack_structure(buf, pos, BLOCK_HEADER, f"block {block_index} header")
        pos += BLOCK_HEADER_SIZE

        sub_lat = block["mesh2"] >> 4
        sub_lon = block["mesh2"] & 0x0F

        for unit in range(block["cell_max"]):
            if pos + BLOCK_DATA_SIZE > len(buf):
                raise TruncatedError(
                    f"block {block_index} unit {unit}: need {BLOCK_DATA_SIZE} bytes at offset {pos}, "
                    f"only {len(buf) - pos} left"
                )
            grid = np.frombuffer(buf, dtype=">u2", count=CELLS_PER_SIDE * CELLS_PER_SIDE, offset=pos)
            grid = grid.reshape(CELLS_PER_SIDE, CELLS_PER_SIDE)
            pos += BLOCK_DATA_SIZE

            slots.extend(_scan_unit(grid, block["base_lat"], block["base_lon"], sub_lat, sub_lon, unit))

    frame = Frame(elapsedtime=elapsedtime, slots=tuple(slots))
    logger.info(
        "Decoded mesh %s at %d: %d blocks, %d flagged, %d with rainfall",
        mesh_id,
        elapsedtime,
        header["block_count"],
        len(frame.slots),
        len(frame.cells),
    )
    return mesh_id, frame


def _decompress(data: bytes) -> bytes:
    if not data:
        raise BadCompressionError("empty input")
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as e:
        raise BadCompressionError(f"invalid gzip data: {e}") from e


def _scan_unit(grid: np.ndarray, base_lat: int, base_lon: int, sub_lat: int, sub_lon: int, unit: int) -> list:
    """Turn the flagged cells of one 40x40 unit into slots, in row-major order."""
    slots = []
    # np.nonzero walks a C-ordered array row by row.
    rows, cols = np.nonzero(grid & VALID_FLAG)
    intensities = (grid[rows, cols] & INTENSITY_MASK) / INTENSITY_SCALE
    for row, col, rainfall in zip(rows.tolist(), cols.tolist(), intensities.tolist()):
        position = cell_position(base_lat, base_lon, sub_lat, sub_lon, row, col, unit)
        if rainfall > 0:
            slots.append(Cell(position=position, color=color_ramp(rainfall), elevation=rainfall))
        else:
            slots.append(Absent(position=position))
    return slots
