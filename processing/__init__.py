from processing.decoder import BadCompressionError, DecodeError, TruncatedError, decode_file, decode_frame
from processing.interpolate import interpolate
from processing.models import Absent, Cell, Frame, TileSeries
from processing.palette import cell_position, color_ramp

__all__ = [
    "Absent",
    "BadCompressionError",
    "Cell",
    "DecodeError",
    "Frame",
    "TileSeries",
    "TruncatedError",
    "cell_position",
    "color_ramp",
    "decode_file",
    "decode_frame",
    "interpolate",
]
