"""Serialize tile series into the JSON layout the replay viewer reads.

    [
      {
        "meshId": "5339",
        "operation": [
          {
            "elapsedtime": 1625283000,
            "gridcelldata": [
              {"position": [139.0, 35.0], "color": [0, 65, 255], "elevation": 20.0}
            ]
          }
        ]
      }
    ]
"""

import json
import logging
from pathlib import Path

from processing.models import TileSeries

logger = logging.getLogger(__name__)


def to_records(series: list[TileSeries]) -> list[dict]:
    """Convert tile series to plain dicts (Absent slots are left out)."""
    return [tile.to_dict() for tile in series]


def write_json(series: list[TileSeries], output_path: Path) -> Path:
    """Write tile series to `output_path` as JSON and return the path."""
    output_path = Path(output_path)
    records = to_records(series)
    with open(output_path, "w") as f:
        json.dump(records, f)
    logger.info("Wrote %d tile series to %s", len(records), output_path)
    return output_path
