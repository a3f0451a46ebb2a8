"""Map X-band mesh cell indices to lon/lat and rainfall rates to RGB colors."""

# Each 40x40 sub-mesh is a quarter of a third-level mesh:
# 1 degree -> 1/8 (second level) -> 1/10 (third level) -> 1/4 of that.
CELLS_PER_SIDE = 40
UNIT_LAT = 2.0 / (3.0 * 8.0 * CELLS_PER_SIDE)  # 960 cells per 2 degrees of latitude
UNIT_LON = 1.0 / (8.0 * CELLS_PER_SIDE)  # 320 cells per degree of longitude

# Base latitude index is in units of 40 minutes; base longitude is offset from 100E.
LAT_INDEX_SCALE = 1.5
LON_BIAS = 100.0

WHITE = (255, 255, 255)

# Excess above the top band is clamped so the ramp bottoms out at dark red.
OVERFLOW_CEILING = 50.0

# (threshold, source color, target color, divisor), checked top-down with `rate > threshold`.
COLOR_RAMP = (
    (150.0, (180, 0, 104), (64, 0, 0), 500.0),
    (100.0, (255, 40, 0), (180, 0, 104), 500.0),
    (50.0, (255, 153, 0), (255, 40, 0), 500.0),
    (30.0, (250, 245, 0), (255, 153, 0), 200.0),
    (20.0, (0, 65, 255), (250, 245, 0), 100.0),
    (10.0, (33, 140, 255), (0, 65, 255), 100.0),
    (0.0, WHITE, (33, 140, 255), 100.0),
)


def cell_position(
    base_lat: int,
    base_lon: int,
    sub_lat: int,
    sub_lon: int,
    row: int,
    col: int,
    unit: int = 0,
) -> tuple[float, float]:
    """Return the (lon, lat) of one cell in a block.

    Rows are counted southward from the northern edge of the sub-mesh and
    columns eastward from its western edge. `unit` is the index of the 40x40
    data unit inside the block; each unit sits one sub-mesh further east.

    Example:
        cell_position(52, 39, 0, 0, 40, 0) → (139.0, 34.666...)
    """
    lat = base_lat / LAT_INDEX_SCALE + (((sub_lat + 1) * CELLS_PER_SIDE) - row) * UNIT_LAT
    lon = base_lon + LON_BIAS + (((sub_lon + unit) * CELLS_PER_SIDE) + col) * UNIT_LON
    return lon, lat


def color_ramp(rainfall: float) -> tuple[int, int, int]:
    """Return the display color for a rainfall rate in mm/h.

    Linear interpolation between the anchor colors of the band the value
    falls in. Zero and negative rates are white.

    Example:
        color_ramp(100.0) → (255, 40, 0)
        color_ramp(150.0) → (180, 0, 104)
        color_ramp(0.0)   → (255, 255, 255)
    """
    for threshold, source, target, divisor in COLOR_RAMP:
        if rainfall > threshold:
            excess = rainfall - threshold
            if threshold == COLOR_RAMP[0][0]:
                excess = min(excess, OVERFLOW_CEILING)
            rate = (excess * 10) / divisor
            return _blend(source, target, rate)
    return WHITE


def _blend(source: tuple[int, int, int], target: tuple[int, int, int], rate: float) -> tuple[int, int, int]:
    # int() truncates toward zero, matching the reference palette.
    return (
        int(source[0] + rate * (target[0] - source[0])),
        int(source[1] + rate * (target[1] - source[1])),
        int(source[2] + rate * (target[2] - source[2])),
    )
