"""Synthesize intermediate frames between two consecutive frames of a tile.

Replay tools expect evenly spaced frames. When two observed frames of the same
tile are far apart, the gap is split into `divisions` steps and each cell's
rainfall is moved linearly from its old value to its new one.

Cells are paired by slot index by default. That is only meaningful when both
frames list the same flagged cells in the same scan order, so frames with a
different number of slots are left alone. `match="position"` pairs cells by
their (lon, lat) instead.
"""

import logging

from processing.models import Absent, Cell, Frame
from processing.palette import color_ramp

logger = logging.getLogger(__name__)

# Synthesized cells below this rainfall rate (mm/h) are dropped.
MIN_ELEVATION = 0.1

MATCH_MODES = ("index", "position")


def interpolate(
    existing: list[Frame],
    next_frame: Frame,
    min_gap_seconds: int,
    divisions: int,
    match: str = "index",
) -> list[Frame]:
    """Return the synthetic frames to insert between existing[-1] and next_frame.

    Returns an empty list when there is no previous frame, when the gap is
    shorter than `min_gap_seconds`, or (index matching only) when the two
    frames have a different number of slots.

    Example:
        before = Frame(0, (Cell((139.0, 35.0), color_ramp(20.0), 20.0),))
        after = Frame(120, (Absent((139.0, 35.0)),))
        frames = interpolate([before], after, min_gap_seconds=60, divisions=6)
        [f.elapsedtime for f in frames]  → [20, 40, 60, 80, 100, 120]
        frames[0].cells[0].elevation     → 16.666...
    """
    if match not in MATCH_MODES:
        raise ValueError(f"Invalid match mode: '{match}'. Expected one of {MATCH_MODES}.")
    if divisions < 1:
        raise ValueError(f"divisions must be at least 1, got {divisions}")

    if not existing:
        return []

    before = existing[-1]
    delta = next_frame.elapsedtime - before.elapsedtime
    if delta < min_gap_seconds:
        return []

    if match == "index":
        if len(before.slots) != len(next_frame.slots):
            logger.debug(
                "Slot count changed %d -> %d between %d and %d, not interpolating",
                len(before.slots),
                len(next_frame.slots),
                before.elapsedtime,
                next_frame.elapsedtime,
            )
            return []
        pairs = list(zip(before.slots, next_frame.slots))
    else:
        pairs = _pair_by_position(before.slots, next_frame.slots)

    gap = delta // divisions
    if gap <= 0:
        return []
    count = delta // gap

    frames = []
    for i in range(count):
        fraction = (i + 1) / count
        cells = []
        for before_slot, after_slot in pairs:
            cell = _interpolate_cell(before_slot, after_slot, fraction)
            if cell is not None:
                cells.append(cell)
        frames.append(Frame(elapsedtime=before.elapsedtime + gap * (i + 1), slots=tuple(cells)))

    logger.debug(
        "Synthesized %d frames every %ds between %d and %d",
        count,
        gap,
        before.elapsedtime,
        next_frame.elapsedtime,
    )
    return frames


def _interpolate_cell(before: Cell | Absent | None, after: Cell | Absent | None, fraction: float) -> Cell | None:
    """Move one slot's rainfall `fraction` of the way from before to after.

    A missing or Absent side counts as 0 mm/h. The position comes from the
    side that has rainfall, preferring `before`.
    """
    before_cell = before if isinstance(before, Cell) else None
    after_cell = after if isinstance(after, Cell) else None

    if before_cell is None and after_cell is None:
        return None

    start = before_cell.elevation if before_cell is not None else 0.0
    end = after_cell.elevation if after_cell is not None else 0.0

    rainfall = start
    if start != end:
        step = abs(start - end) * fraction
        rainfall = start - step if start > end else start + step

    if rainfall < MIN_ELEVATION:
        return None

    position = before_cell.position if before_cell is not None else after_cell.position
    return Cell(position=position, color=color_ramp(rainfall), elevation=rainfall)


def _pair_by_position(before: tuple, after: tuple) -> list[tuple]:
    """Join two slot sequences on cell position.

    Positions from `before` come first in their scan order, followed by
    positions only present in `after`.
    """
    after_by_position = {slot.position: slot for slot in after}
    seen = set()
    pairs = []
    for slot in before:
        pairs.append((slot, after_by_position.get(slot.position)))
        seen.add(slot.position)
    for slot in after:
        if slot.position not in seen:
            pairs.append((None, slot))
    return pairs
