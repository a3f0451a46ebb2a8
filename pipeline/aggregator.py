"""Aggregator: decode a batch of mesh files into one time series per mesh tile.

Usage:
    from pipeline.aggregator import Aggregator
    from pipeline.config import load_config

    config = load_config().replace(completion=True)
    series = Aggregator(config).run(paths)
    for tile in series:
        print(tile.mesh_id, len(tile.operation))

Decoding is independent per file, so files are decoded in a thread pool.
Interpolation depends on the previous frame of the same tile, so it runs
afterwards, one tile at a time, over frames sorted by their header timestamp.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from ingest.files import parse_filename
from pipeline.config import ConversionConfig
from processing.decoder import DecodeError, decode_file
from processing.interpolate import interpolate
from processing.models import Frame, TileSeries

logger = logging.getLogger(__name__)


class BatchAbortedError(RuntimeError):
    """A file failed to decode and the batch was configured to abort."""


class Aggregator:
    """Turn a list of mesh files into per-tile frame series.

    Example:
        aggregator = Aggregator(ConversionConfig(completion=True))
        series = aggregator.run([Path("xbanddata/5339-20210703-1230-G001-EL000100.gz")])
        series[0].mesh_id          # "5339"
        series[0].operation[0]     # Frame(elapsedtime=1625283000, ...)
    """

    def __init__(self, config: ConversionConfig | None = None):
        self.config = config if config is not None else ConversionConfig()

    def run(self, paths: list[Path]) -> list[TileSeries]:
        """Decode, group, order and (optionally) interpolate a batch of files.

        Steps:
          1. Decode every file in a thread pool.
          2. Group the frames by mesh id.
          3. Sort each tile's frames by header timestamp. The sort is stable,
             so files with equal timestamps keep the caller's order.
          4. If completion is enabled, insert synthetic frames wherever the
             gap to the previous frame is at least min_gap_seconds.

        Args:
            paths: Mesh files, usually from ingest.files.list_files().

        Returns:
            One TileSeries per mesh id, sorted by mesh id. Empty if paths is empty.

        Raises:
            BatchAbortedError: If a file fails to decode and on_frame_error is "abort".
        """
        # Step 1: Decode all files.
        t0 = time.time()
        decoded = self._decode_all(paths)
        logger.info("Decoded %d/%d files in %.1fs", len(decoded), len(paths), time.time() - t0)

        # Step 2: Group by mesh id, keeping input order within each tile.
        by_mesh: dict[str, list[Frame]] = {}
        for mesh_id, frame in decoded:
            by_mesh.setdefault(mesh_id, []).append(frame)

        # Steps 3-4: Order and fill gaps per tile.
        t0 = time.time()
        series = []
        for mesh_id in sorted(by_mesh):
            frames = sorted(by_mesh[mesh_id], key=lambda frame: frame.elapsedtime)
            series.append(TileSeries(mesh_id=mesh_id, operation=self._build_operation(frames)))
        logger.info(
            "Built %d tile series (%d frames) in %.1fs",
            len(series),
            sum(len(tile.operation) for tile in series),
            time.time() - t0,
        )
        return series

    def _decode_all(self, paths: list[Path]) -> list[tuple[str, Frame]]:
        """Decode files in parallel. Results come back in input order."""
        results: list[tuple[str, Frame] | None] = [None] * len(paths)

        with ThreadPoolExecutor(max_workers=self.config.workers) as executor:
            future_to_index = {executor.submit(decode_file, path): index for index, path in enumerate(paths)}

            for future in as_completed(future_to_index):
                index = future_to_index[future]
                path = Path(paths[index])
                try:
                    mesh_id, frame = future.result()
                except (DecodeError, OSError) as e:
                    if self.config.on_frame_error == "abort":
                        for pending in future_to_index:
                            pending.cancel()
                        logger.error("Failed to decode %s, aborting batch: %s", path.name, e)
                        raise BatchAbortedError(f"Failed to decode {path.name}: {e}") from e
                    logger.warning("Skipping %s: %s", path.name, e)
                    continue

                _check_file_time(path, frame)
                results[index] = (mesh_id, frame)

        return [result for result in results if result is not None]

    def _build_operation(self, frames: list[Frame]) -> list[Frame]:
        """Append frames in order, filling gaps with synthetic frames if enabled."""
        operation: list[Frame] = []
        for frame in frames:
            if self.config.completion:
                operation.extend(
                    interpolate(
                        operation,
                        frame,
                        min_gap_seconds=self.config.min_gap_seconds,
                        divisions=self.config.divisions,
                        match=self.config.match,
                    )
                )
            operation.append(frame)
        return operation


def _check_file_time(path: Path, frame: Frame) -> None:
    """Warn when the file name and the header disagree on the observation time.

    The header time is what gets emitted; the file name only decides which
    files are selected.
    """
    parsed = parse_filename(path.name)
    if parsed is None:
        return
    file_time = int(parsed[1].timestamp())
    if file_time != frame.elapsedtime:
        logger.warning(
            "%s: file name time %d differs from header time %d by %ds",
            path.name,
            file_time,
            frame.elapsedtime,
            frame.elapsedtime - file_time,
        )
