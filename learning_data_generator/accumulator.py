"""
Frame accumulation: turns decoded samples into labeled learning frames.

The accumulator always holds exactly one frame under construction. Chassis
samples overwrite its chassis feature; localization samples overwrite its
localization feature and feed the sliding window. When the window fills up,
the window is converted into the frame's trajectory label, the frame is
sealed into the rotator's batch, a fresh frame takes its place and the window
slides forward by ``window_step`` poses.
"""

from typing import Callable, List, Optional

from .config import GeneratorConfig
from .labeling import generate_trajectory_label
from .models import ChassisSample, FrameBuilder, LearningDataFrame, PoseSample
from .rotation import ShardRotator
from .window import SlidingWindow


class FrameAccumulator:
    """
    Builds learning frames from localization and chassis samples.

    Args:
        config: Generator options (window size, step, label interval)
        rotator: Receives sealed frames and writes shards
        log: Optional progress callback
    """

    def __init__(
        self,
        config: GeneratorConfig,
        rotator: ShardRotator,
        *,
        log: Optional[Callable[[str], None]] = None,
    ):
        self.config = config
        self.rotator = rotator
        self.window = SlidingWindow(config.label_sample_interval)
        self.labels_generated = 0
        self._current = FrameBuilder()
        self._closed = False
        self._log = log or (lambda msg: None)

    @property
    def current_frame(self) -> FrameBuilder:
        return self._current

    # ------------------------------------------------------------------
    # Sample handlers
    # ------------------------------------------------------------------

    def on_localization(self, sample: PoseSample) -> List[str]:
        """
        Record a pose; seal a labeled frame when the window is full.

        Returns the paths of any shards written as a consequence.
        """
        self._check_open()
        self._current.set_localization(sample)
        self.window.push(sample)

        if not self.window.is_full:
            return []

        label = generate_trajectory_label(
            self.window, self.config.trajectory_point_sample_interval
        )
        sealed = self._rotate(label)
        self.window.evict(self.config.window_step)
        self.labels_generated += 1
        return self.rotator.add(sealed)

    def on_chassis(self, sample: ChassisSample) -> None:
        self._check_open()
        self._current.set_chassis(sample)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def close(self) -> List[str]:
        """
        Terminal flush: persist the pending batch plus the current frame.

        The current frame is included when any feature was written to it,
        with whatever label it has (none, since it was never sealed by a
        full window). Safe to call again after a failed write.
        """
        if not self._closed:
            if not self._current.is_empty:
                self.rotator.add_pending(self._rotate(()))
            self._closed = True
        written = self.rotator.flush_all()
        self._log(f"  Total learning_data_frame number: {self.rotator.total_frames_written}")
        return written

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _rotate(self, label) -> LearningDataFrame:
        """Seal the current frame and swap in a new one in a single step."""
        sealed, self._current = self._current.seal(label), FrameBuilder()
        return sealed

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("accumulator already closed; no more samples accepted")
