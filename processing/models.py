"""Frame and tile-series types shared by the decoder, interpolation and output stages.

A decoded frame keeps one slot per flagged grid cell, in scan order. A slot is
either a Cell (positive rainfall) or Absent (flagged but with no rainfall).
Absent slots are never written out; they only exist so that two frames of the
same tile can be compared slot by slot during interpolation.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Cell:
    """One rainfall cell.

    Attributes:
        position: (lon, lat) in degrees
        color: (r, g, b) from the color ramp
        elevation: rainfall rate in mm/h (named for the downstream viewer)
    """

    position: tuple[float, float]
    color: tuple[int, int, int]
    elevation: float

    def to_dict(self) -> dict:
        return {
            "position": [self.position[0], self.position[1]],
            "color": [self.color[0], self.color[1], self.color[2]],
            "elevation": self.elevation,
        }


@dataclass(frozen=True, slots=True)
class Absent:
    """A flagged grid position that carried no rainfall."""

    position: tuple[float, float]


@dataclass(frozen=True, slots=True)
class Frame:
    """One snapshot of a tile at `elapsedtime` (Unix seconds)."""

    elapsedtime: int
    slots: tuple[Cell | Absent, ...] = ()

    @property
    def cells(self) -> list[Cell]:
        return [slot for slot in self.slots if isinstance(slot, Cell)]

    def to_dict(self) -> dict:
        return {
            "elapsedtime": self.elapsedtime,
            "gridcelldata": [cell.to_dict() for cell in self.cells],
        }

    def __repr__(self) -> str:
        """Compact repr that doesn't dump every cell."""
        return f"Frame(elapsedtime={self.elapsedtime}, slots={len(self.slots)}, cells={len(self.cells)})"


@dataclass(slots=True)
class TileSeries:
    """All frames of one mesh tile, in ascending elapsedtime."""

    mesh_id: str
    operation: list[Frame] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "meshId": self.mesh_id,
            "operation": [frame.to_dict() for frame in self.operation],
        }
