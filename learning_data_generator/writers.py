"""
Shard persistence: writes a batch of sealed frames to one data file.

Two encodings are supported, chosen per writer:

  binary  numpy .npz archive stored as learning_data.<index>.bin
  text    indented JSON stored as learning_data.<index>.json

The encoding never changes frame content; load_shard() reads either back.
"""

import json
import os
from typing import Dict, List, Sequence

import numpy as np

from .constants import (
    BINARY_SUFFIX,
    ENCODING_BINARY,
    OUTPUT_ENCODINGS,
    SHARD_PREFIX,
    TEXT_SUFFIX,
)
from .models import (
    ChassisFeature,
    LearningDataFrame,
    LocalizationFeature,
    TrajectoryPoint,
)

# Column order of the binary arrays
LOCALIZATION_COLUMNS = ("x", "y", "z", "heading", "vx", "vy", "ax", "ay", "angular_velocity")
CHASSIS_COLUMNS = ("speed_mps", "throttle_percentage", "brake_percentage", "steering_percentage")
LABEL_COLUMNS = ("x", "y", "z", "theta", "v", "a")


class ShardWriteError(IOError):
    """A shard could not be persisted. The batch it held is still pending."""

    def __init__(self, path: str, cause: Exception):
        super().__init__(f"Failed to write shard {path}: {cause}")
        self.path = path
        self.cause = cause


class ShardWriter:
    """Names and writes shards under an output directory."""

    def __init__(self, output_dir: str, encoding: str = ENCODING_BINARY):
        if encoding not in OUTPUT_ENCODINGS:
            raise ValueError(f"Unknown output encoding: {encoding!r}")
        self.output_dir = output_dir
        self.encoding = encoding

    def shard_path(self, shard_index: int) -> str:
        suffix = BINARY_SUFFIX if self.encoding == ENCODING_BINARY else TEXT_SUFFIX
        return os.path.join(self.output_dir, f"{SHARD_PREFIX}.{shard_index}{suffix}")

    def write(self, frames: Sequence[LearningDataFrame], shard_index: int) -> str:
        """Persist ``frames`` as shard ``shard_index``. Returns the file path."""
        path = self.shard_path(shard_index)
        try:
            os.makedirs(self.output_dir, exist_ok=True)
            if self.encoding == ENCODING_BINARY:
                _write_binary(frames, path)
            else:
                _write_text(frames, path)
        except OSError as e:
            raise ShardWriteError(path, e) from e
        return path


# ---------------------------------------------------------------------------
# Text encoding
# ---------------------------------------------------------------------------

def _write_text(frames: Sequence[LearningDataFrame], path: str) -> None:
    doc = {"learning_data": [frame.to_dict() for frame in frames]}
    with open(path, "w") as f:
        json.dump(doc, f, indent=2)


def _read_text(path: str) -> List[LearningDataFrame]:
    with open(path, "r") as f:
        doc = json.load(f)
    return [LearningDataFrame.from_dict(d) for d in doc.get("learning_data", [])]


# ---------------------------------------------------------------------------
# Binary encoding
# ---------------------------------------------------------------------------

def _frames_to_arrays(frames: Sequence[LearningDataFrame]) -> Dict[str, np.ndarray]:
    n = len(frames)
    localization = np.zeros((n, len(LOCALIZATION_COLUMNS)), dtype=np.float64)
    has_localization = np.zeros(n, dtype=bool)
    chassis = np.zeros((n, len(CHASSIS_COLUMNS)), dtype=np.float64)
    gear = np.zeros(n, dtype=np.int32)
    has_chassis = np.zeros(n, dtype=bool)
    label_offsets = np.zeros(n + 1, dtype=np.int64)
    label_rows = []

    for i, frame in enumerate(frames):
        if frame.localization is not None:
            localization[i] = [getattr(frame.localization, c) for c in LOCALIZATION_COLUMNS]
            has_localization[i] = True
        if frame.chassis is not None:
            chassis[i] = [getattr(frame.chassis, c) for c in CHASSIS_COLUMNS]
            gear[i] = frame.chassis.gear_location
            has_chassis[i] = True
        label_rows.extend([getattr(p, c) for c in LABEL_COLUMNS] for p in frame.label)
        label_offsets[i + 1] = len(label_rows)

    labels = np.array(label_rows, dtype=np.float64).reshape(-1, len(LABEL_COLUMNS))
    return {
        "localization": localization,
        "has_localization": has_localization,
        "chassis": chassis,
        "gear_location": gear,
        "has_chassis": has_chassis,
        "label_points": labels,
        "label_offsets": label_offsets,
    }


def _write_binary(frames: Sequence[LearningDataFrame], path: str) -> None:
    arrays = _frames_to_arrays(frames)
    # Write through a file object so numpy keeps our .bin name
    with open(path, "wb") as f:
        np.savez(f, **arrays)


def _read_binary(path: str) -> List[LearningDataFrame]:
    with np.load(path, allow_pickle=False) as data:
        localization = data["localization"]
        has_localization = data["has_localization"]
        chassis = data["chassis"]
        gear = data["gear_location"]
        has_chassis = data["has_chassis"]
        labels = data["label_points"]
        offsets = data["label_offsets"]

    frames = []
    for i in range(len(has_localization)):
        loc = None
        if has_localization[i]:
            loc = LocalizationFeature(
                **{c: float(v) for c, v in zip(LOCALIZATION_COLUMNS, localization[i])}
            )
        ch = None
        if has_chassis[i]:
            ch = ChassisFeature(
                **{c: float(v) for c, v in zip(CHASSIS_COLUMNS, chassis[i])},
                gear_location=int(gear[i]),
            )
        label = tuple(
            TrajectoryPoint(**{c: float(v) for c, v in zip(LABEL_COLUMNS, row)})
            for row in labels[offsets[i]:offsets[i + 1]]
        )
        frames.append(LearningDataFrame(localization=loc, chassis=ch, label=label))
    return frames


def load_shard(path: str) -> List[LearningDataFrame]:
    """Read a shard written by ShardWriter, in either encoding."""
    if path.endswith(TEXT_SUFFIX):
        return _read_text(path)
    return _read_binary(path)
