"""
Batch rotation: groups sealed frames into shards.

Frames move Building -> Sealed (added here) -> Persisted (written in a shard).
A batch is written exactly when it holds ``frames_per_shard`` frames, and
frames leave the batch only after the writer reports success, so a failed
write can be retried without losing anything.
"""

from typing import Callable, List, Optional, Sequence

from .models import LearningDataFrame
from .writers import ShardWriter


class ShardRotator:
    """Owns the pending batch and the shard counter of one generator run."""

    def __init__(
        self,
        writer: ShardWriter,
        frames_per_shard: int,
        *,
        log: Optional[Callable[[str], None]] = None,
    ):
        if frames_per_shard < 1:
            raise ValueError(f"frames_per_shard must be >= 1, got {frames_per_shard}")
        self.writer = writer
        self.frames_per_shard = frames_per_shard
        self.shard_index = 0
        self.total_frames_written = 0
        self.shard_paths: List[str] = []
        self._batch: List[LearningDataFrame] = []
        self._log = log or (lambda msg: None)

    @property
    def batch(self) -> Sequence[LearningDataFrame]:
        return tuple(self._batch)

    def __len__(self) -> int:
        return len(self._batch)

    def add(self, frame: LearningDataFrame) -> List[str]:
        """
        Append a sealed frame; write a shard if the batch is now full.

        Returns the paths of shards written by this call (usually none).
        Raises ShardWriteError if the write fails; the batch is left intact.
        """
        self._batch.append(frame)
        return self.flush_full()

    def add_pending(self, frame: LearningDataFrame) -> None:
        """Append a frame without checking the batch size."""
        self._batch.append(frame)

    def flush_full(self) -> List[str]:
        """Write one shard per full batch currently pending."""
        written = []
        while len(self._batch) >= self.frames_per_shard:
            written.append(self._write(self.frames_per_shard))
        return written

    def flush_all(self) -> List[str]:
        """Write everything pending, in shards of at most frames_per_shard."""
        written = self.flush_full()
        if self._batch:
            written.append(self._write(len(self._batch)))
        return written

    def _write(self, count: int) -> str:
        frames = self._batch[:count]
        path = self.writer.write(frames, self.shard_index)
        del self._batch[:count]
        self.shard_index += 1
        self.total_frames_written += len(frames)
        self.shard_paths.append(path)
        self._log(f"  Wrote shard {path} ({len(frames)} frames)")
        return path
