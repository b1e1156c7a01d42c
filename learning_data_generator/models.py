"""
Data models for the learning data generator.

Samples and sealed frames are frozen dataclasses. The only mutable frame is
the FrameBuilder owned by the accumulator; sealing it yields an immutable
LearningDataFrame.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .constants import GEAR_NONE


# ---------------------------------------------------------------------------
# Record stream
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RecordMessage:
    """One message of a recorded session, still serialized."""
    channel: str                    # topic / channel name
    payload: bytes                  # raw serialized message
    msgtype: str = ""               # e.g. "apollo_msgs/msg/Chassis"
    timestamp_ns: int = 0           # record time
    msgdef: str = ""                # definition from the connection header, if any


# ---------------------------------------------------------------------------
# Decoded samples
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PoseSample:
    """Decoded localization pose."""
    x: float
    y: float
    z: float
    heading: float
    vx: float = 0.0
    vy: float = 0.0
    ax: float = 0.0
    ay: float = 0.0
    angular_velocity: float = 0.0   # yaw rate, rad/s

    @property
    def speed(self) -> float:
        return math.hypot(self.vx, self.vy)

    @property
    def acceleration(self) -> float:
        return math.hypot(self.ax, self.ay)


@dataclass(frozen=True)
class ChassisSample:
    """Decoded chassis telemetry."""
    speed_mps: float
    throttle_percentage: float
    brake_percentage: float
    steering_percentage: float
    gear_location: int = GEAR_NONE


# ---------------------------------------------------------------------------
# Frame contents
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LocalizationFeature:
    x: float
    y: float
    z: float
    heading: float
    vx: float
    vy: float
    ax: float
    ay: float
    angular_velocity: float

    @classmethod
    def from_sample(cls, sample: PoseSample) -> "LocalizationFeature":
        return cls(
            x=sample.x,
            y=sample.y,
            z=sample.z,
            heading=sample.heading,
            vx=sample.vx,
            vy=sample.vy,
            ax=sample.ax,
            ay=sample.ay,
            angular_velocity=sample.angular_velocity,
        )


@dataclass(frozen=True)
class ChassisFeature:
    speed_mps: float
    throttle_percentage: float
    brake_percentage: float
    steering_percentage: float
    gear_location: int

    @classmethod
    def from_sample(cls, sample: ChassisSample) -> "ChassisFeature":
        return cls(
            speed_mps=sample.speed_mps,
            throttle_percentage=sample.throttle_percentage,
            brake_percentage=sample.brake_percentage,
            steering_percentage=sample.steering_percentage,
            gear_location=sample.gear_location,
        )


@dataclass(frozen=True)
class TrajectoryPoint:
    """One label point: path point plus speed and acceleration magnitudes."""
    x: float
    y: float
    z: float
    theta: float
    v: float
    a: float


@dataclass(frozen=True)
class LearningDataFrame:
    """A sealed training example. Never mutated after sealing."""
    localization: Optional[LocalizationFeature] = None
    chassis: Optional[ChassisFeature] = None
    label: Tuple[TrajectoryPoint, ...] = ()

    def to_dict(self) -> Dict:
        return {
            "localization_feature": _feature_dict(self.localization),
            "chassis_feature": _feature_dict(self.chassis),
            "label_trajectory_points": [_feature_dict(p) for p in self.label],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "LearningDataFrame":
        loc = data.get("localization_feature")
        chassis = data.get("chassis_feature")
        return cls(
            localization=LocalizationFeature(**loc) if loc else None,
            chassis=ChassisFeature(**chassis) if chassis else None,
            label=tuple(
                TrajectoryPoint(**p) for p in data.get("label_trajectory_points", [])
            ),
        )


def _feature_dict(feature) -> Optional[Dict]:
    if feature is None:
        return None
    return dict(feature.__dict__)


class FrameBuilder:
    """
    The frame currently being built.

    Features are overwritten by every new sample; the label is attached once,
    when the frame is sealed.
    """

    def __init__(self):
        self.localization: Optional[LocalizationFeature] = None
        self.chassis: Optional[ChassisFeature] = None

    @property
    def is_empty(self) -> bool:
        return self.localization is None and self.chassis is None

    def set_localization(self, sample: PoseSample) -> None:
        self.localization = LocalizationFeature.from_sample(sample)

    def set_chassis(self, sample: ChassisSample) -> None:
        self.chassis = ChassisFeature.from_sample(sample)

    def seal(self, label: Tuple[TrajectoryPoint, ...] = ()) -> LearningDataFrame:
        return LearningDataFrame(
            localization=self.localization,
            chassis=self.chassis,
            label=tuple(label),
        )


# ---------------------------------------------------------------------------
# Pipeline output
# ---------------------------------------------------------------------------

@dataclass
class GenerationSummary:
    """Result of processing one record file."""
    source_file: str
    messages_read: int = 0
    localization_messages: int = 0
    chassis_messages: int = 0
    ignored_messages: int = 0       # channels nobody listens to
    decode_failures: int = 0
    labels_generated: int = 0
    frames_written: int = 0
    shard_paths: List[str] = field(default_factory=list)
    elapsed_sec: float = 0.0
    interrupted: bool = False
    aborted: bool = False           # reading stopped by a failed shard write
    error: str = ""
    metadata: Dict = field(default_factory=dict)

