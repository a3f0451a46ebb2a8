"""Tests for processing/interpolate.py"""

import pytest

from processing.interpolate import MIN_ELEVATION, interpolate
from processing.models import Absent, Cell, Frame
from processing.palette import color_ramp


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

POS_A = (139.0, 35.0)
POS_B = (139.003125, 35.0)
POS_C = (139.00625, 35.0)


def _cell(elevation, position=POS_A):
    return Cell(position=position, color=color_ramp(elevation), elevation=elevation)


def _frame(elapsedtime, *slots):
    return Frame(elapsedtime=elapsedtime, slots=tuple(slots))


def _elevations(frame):
    return [cell.elevation for cell in frame.cells]


# --- When nothing is synthesized ---


def test_no_previous_frame_gives_nothing():
    assert interpolate([], _frame(120, _cell(10.0)), min_gap_seconds=60, divisions=6) == []


def test_gap_below_threshold_gives_nothing():
    existing = [_frame(0, _cell(10.0))]

    assert interpolate(existing, _frame(50, _cell(20.0)), min_gap_seconds=60, divisions=6) == []


def test_slot_count_mismatch_gives_nothing():
    """5 slots before, 6 after: the frames can't be matched by index."""
    before = _frame(0, *[_cell(10.0)] * 5)
    after = _frame(120, *[_cell(20.0)] * 6)

    assert interpolate([before], after, min_gap_seconds=60, divisions=6) == []


def test_gap_shorter_than_divisions_gives_nothing():
    """A 3 second gap split 6 ways has no whole-second step."""
    existing = [_frame(0, _cell(10.0))]

    assert interpolate(existing, _frame(3, _cell(20.0)), min_gap_seconds=0, divisions=6) == []


def test_only_last_existing_frame_is_used():
    existing = [_frame(0, _cell(50.0)), _frame(100, _cell(10.0))]

    frames = interpolate(existing, _frame(220, _cell(10.0)), min_gap_seconds=60, divisions=6)

    assert frames[0].elapsedtime == 120
    assert _elevations(frames[0]) == [10.0]


# --- Timing ---


def test_timestamps_are_evenly_spaced():
    """120 s split into 6 → a frame every 20 s, the last one landing on the next frame."""
    frames = interpolate([_frame(0, _cell(10.0))], _frame(120, _cell(10.0)), min_gap_seconds=60, divisions=6)

    assert [f.elapsedtime for f in frames] == [20, 40, 60, 80, 100, 120]


def test_uneven_gap_uses_floored_step():
    """130 s / 6 → 21 s steps; 130 // 21 = 6 frames."""
    frames = interpolate([_frame(1000, _cell(10.0))], _frame(1130, _cell(10.0)), min_gap_seconds=60, divisions=6)

    assert [f.elapsedtime for f in frames] == [1021, 1042, 1063, 1084, 1105, 1126]


def test_small_step_can_produce_more_frames_than_divisions():
    """11 s / 6 → 1 s steps, so 11 frames."""
    frames = interpolate([_frame(0, _cell(10.0))], _frame(11, _cell(10.0)), min_gap_seconds=0, divisions=6)

    assert len(frames) == 11


# --- Cell values ---


def test_rain_stopping_fades_out():
    """20 mm/h at t=0, absent at t=120: the first step is 20 - 20/6 ≈ 16.67."""
    before = _frame(0, _cell(20.0))
    after = _frame(120, Absent(POS_A))

    frames = interpolate([before], after, min_gap_seconds=60, divisions=6)

    assert len(frames) == 6
    assert frames[0].elapsedtime == 20
    assert frames[0].cells[0].elevation == pytest.approx(20.0 - 20.0 / 6)

    values = [f.cells[0].elevation for f in frames if f.cells]
    assert all(a > b for a, b in zip(values, values[1:]))
    assert all(v >= MIN_ELEVATION for v in values)
    # The final step reaches 0 and is dropped.
    assert frames[-1].cells == []


def test_values_below_threshold_are_dropped():
    """0.5 mm/h fading over 6 steps: 0.0833 and 0 fall under 0.1 and disappear."""
    frames = interpolate([_frame(0, _cell(0.5))], _frame(120, Absent(POS_A)), min_gap_seconds=60, divisions=6)

    assert [len(f.cells) for f in frames] == [1, 1, 1, 1, 0, 0]


def test_rain_starting_fades_in_at_after_position():
    before = _frame(0, Absent(POS_A))
    after = _frame(120, _cell(30.0, position=POS_B))

    frames = interpolate([before], after, min_gap_seconds=60, divisions=6)

    assert frames[0].cells[0].elevation == pytest.approx(5.0)
    assert frames[-1].cells[0].elevation == pytest.approx(30.0)
    assert frames[0].cells[0].position == POS_B


def test_both_present_moves_toward_after_value():
    frames = interpolate([_frame(0, _cell(10.0))], _frame(120, _cell(40.0, position=POS_B)), min_gap_seconds=60, divisions=6)

    assert _elevations(frames[0]) == [pytest.approx(15.0)]
    assert _elevations(frames[2]) == [pytest.approx(25.0)]
    # Position comes from the earlier frame.
    assert frames[0].cells[0].position == POS_A


def test_both_present_decreasing():
    frames = interpolate([_frame(0, _cell(40.0))], _frame(120, _cell(10.0)), min_gap_seconds=60, divisions=6)

    assert _elevations(frames[0]) == [pytest.approx(35.0)]


def test_unchanged_value_stays_constant():
    frames = interpolate([_frame(0, _cell(25.0))], _frame(120, _cell(25.0)), min_gap_seconds=60, divisions=6)

    assert all(_elevations(f) == [25.0] for f in frames)


def test_absent_on_both_sides_emits_nothing():
    frames = interpolate([_frame(0, Absent(POS_A))], _frame(120, Absent(POS_A)), min_gap_seconds=60, divisions=6)

    assert len(frames) == 6
    assert all(f.slots == () for f in frames)


def test_colors_are_recomputed():
    frames = interpolate([_frame(0, _cell(10.0))], _frame(120, _cell(100.0)), min_gap_seconds=60, divisions=6)

    for frame in frames:
        for cell in frame.cells:
            assert cell.color == color_ramp(cell.elevation)


def test_synthesized_frames_only_hold_cells():
    before = _frame(0, _cell(10.0), Absent(POS_B), _cell(5.0, position=POS_C))
    after = _frame(120, Absent(POS_A), _cell(8.0, position=POS_B), _cell(5.0, position=POS_C))

    frames = interpolate([before], after, min_gap_seconds=60, divisions=6)

    for frame in frames:
        assert all(isinstance(slot, Cell) for slot in frame.slots)


def test_index_matching_pairs_by_slot_not_by_position():
    """Index matching ignores where the cells are: slot 0 pairs with slot 0."""
    before = _frame(0, _cell(10.0, position=POS_A))
    after = _frame(120, _cell(40.0, position=POS_C))

    frames = interpolate([before], after, min_gap_seconds=60, divisions=6)

    assert len(frames[0].cells) == 1
    assert frames[0].cells[0].position == POS_A


# --- Position matching ---


def test_position_matching_handles_different_slot_counts():
    before = _frame(0, _cell(10.0, position=POS_A))
    after = _frame(120, _cell(10.0, position=POS_A), _cell(30.0, position=POS_B))

    assert interpolate([before], after, min_gap_seconds=60, divisions=6) == []

    frames = interpolate([before], after, min_gap_seconds=60, divisions=6, match="position")

    first = {cell.position: cell.elevation for cell in frames[0].cells}
    assert first[POS_A] == pytest.approx(10.0)
    assert first[POS_B] == pytest.approx(5.0)


def test_position_matching_fades_out_cells_missing_after():
    before = _frame(0, _cell(12.0, position=POS_A), _cell(6.0, position=POS_B))
    after = _frame(120, _cell(6.0, position=POS_B))

    frames = interpolate([before], after, min_gap_seconds=60, divisions=6, match="position")

    first = {cell.position: cell.elevation for cell in frames[0].cells}
    assert first[POS_A] == pytest.approx(10.0)
    assert first[POS_B] == pytest.approx(6.0)


# --- Argument validation ---


def test_invalid_match_mode_raises():
    with pytest.raises(ValueError, match="match mode"):
        interpolate([], _frame(0), min_gap_seconds=60, divisions=6, match="nearest")


def test_zero_divisions_raises():
    with pytest.raises(ValueError, match="divisions"):
        interpolate([], _frame(0), min_gap_seconds=60, divisions=0)
