"""
Message decoders: raw ROS1 payloads -> PoseSample / ChassisSample.

Deserialization goes through a rosbags ROS1 typestore extended with the
localization and chassis message definitions. Extraction is table driven:
POSE_EXTRACTORS and CHASSIS_EXTRACTORS map a message type to a function that
pulls the sample fields out of the deserialized message.
"""

import math
from typing import Any, Callable, Dict, Optional

from rosbags.typesys import Stores, get_types_from_msg, get_typestore

from .models import ChassisSample, PoseSample

# ---------------------------------------------------------------------------
# Message definitions
# ---------------------------------------------------------------------------

POSE_MSGTYPE = "apollo_msgs/msg/Pose"
LOCALIZATION_MSGTYPE = "apollo_msgs/msg/LocalizationEstimate"
CHASSIS_MSGTYPE = "apollo_msgs/msg/Chassis"
ODOMETRY_MSGTYPE = "nav_msgs/msg/Odometry"

POSE_MSGDEF = """\
geometry_msgs/Point position
float64 heading
geometry_msgs/Vector3 linear_velocity
geometry_msgs/Vector3 linear_acceleration
geometry_msgs/Vector3 angular_velocity
"""

LOCALIZATION_MSGDEF = """\
std_msgs/Header header
apollo_msgs/Pose pose
"""

CHASSIS_MSGDEF = """\
int32 GEAR_NEUTRAL=0
int32 GEAR_DRIVE=1
int32 GEAR_REVERSE=2
int32 GEAR_PARKING=3
int32 GEAR_LOW=4
int32 GEAR_INVALID=5
int32 GEAR_NONE=6
std_msgs/Header header
float32 speed_mps
float32 throttle_percentage
float32 brake_percentage
float32 steering_percentage
int32 gear_location
"""

APOLLO_MSGDEFS = (
    (POSE_MSGTYPE, POSE_MSGDEF),
    (LOCALIZATION_MSGTYPE, LOCALIZATION_MSGDEF),
    (CHASSIS_MSGTYPE, CHASSIS_MSGDEF),
)


# ---------------------------------------------------------------------------
# Field extractors
# ---------------------------------------------------------------------------

def _yaw_from_quaternion(q) -> float:
    siny_cosp = 2.0 * (q.w * q.z + q.x * q.y)
    cosy_cosp = 1.0 - 2.0 * (q.y * q.y + q.z * q.z)
    return math.atan2(siny_cosp, cosy_cosp)


def _pose_from_localization(msg) -> PoseSample:
    pose = msg.pose
    return PoseSample(
        x=float(pose.position.x),
        y=float(pose.position.y),
        z=float(pose.position.z),
        heading=float(pose.heading),
        vx=float(pose.linear_velocity.x),
        vy=float(pose.linear_velocity.y),
        ax=float(pose.linear_acceleration.x),
        ay=float(pose.linear_acceleration.y),
        angular_velocity=float(pose.angular_velocity.z),
    )


def _pose_from_odometry(msg) -> PoseSample:
    """Odometry carries no acceleration; it is reported as zero."""
    pose = msg.pose.pose
    twist = msg.twist.twist
    return PoseSample(
        x=float(pose.position.x),
        y=float(pose.position.y),
        z=float(pose.position.z),
        heading=_yaw_from_quaternion(pose.orientation),
        vx=float(twist.linear.x),
        vy=float(twist.linear.y),
        angular_velocity=float(twist.angular.z),
    )


POSE_EXTRACTORS: Dict[str, Callable[[Any], PoseSample]] = {
    LOCALIZATION_MSGTYPE: _pose_from_localization,
    ODOMETRY_MSGTYPE: _pose_from_odometry,
}

CHASSIS_EXTRACTORS: Dict[str, Callable[[Any], ChassisSample]] = {
    CHASSIS_MSGTYPE: lambda msg: ChassisSample(
        speed_mps=float(msg.speed_mps),
        throttle_percentage=float(msg.throttle_percentage),
        brake_percentage=float(msg.brake_percentage),
        steering_percentage=float(msg.steering_percentage),
        gear_location=int(msg.gear_location),
    ),
}


# ---------------------------------------------------------------------------
# Decoder
# ---------------------------------------------------------------------------

class MessageDecoder:
    """
    Deserializes ROS1 payloads and extracts pose / chassis samples.

    Every decode_* method returns None instead of raising when the payload
    cannot be deserialized or lacks the expected fields.
    """

    def __init__(self):
        self.typestore = get_typestore(Stores.ROS1_NOETIC)
        types: Dict = {}
        for msgtype, msgdef in APOLLO_MSGDEFS:
            types.update(get_types_from_msg(msgdef, msgtype))
        self.typestore.register(types)
        # Types whose definition could not be registered from a recording
        self._unknown_types = set()

    def ensure_type(self, msgtype: str, msgdef: str = "") -> bool:
        """Register ``msgtype`` from its definition if the typestore lacks it."""
        if msgtype in self.typestore.fielddefs:
            return True
        if not msgdef or msgtype in self._unknown_types:
            return False
        try:
            self.typestore.register(get_types_from_msg(msgdef, msgtype))
        except Exception as e:
            self._unknown_types.add(msgtype)
            print(f"  [WARN] Could not register message type {msgtype}: {e}")
            return False
        return True

    def deserialize(self, rawdata: bytes, msgtype: str, msgdef: str = ""):
        """Attempt to deserialize a ROS1 message; None on failure."""
        if not self.ensure_type(msgtype, msgdef):
            return None
        try:
            return self.typestore.deserialize_ros1(rawdata, msgtype)
        except Exception:
            return None

    def serialize(self, msg, msgtype: str) -> bytes:
        return bytes(self.typestore.serialize_ros1(msg, msgtype))

    def decode_pose(
        self, rawdata: bytes, msgtype: str = "", msgdef: str = ""
    ) -> Optional[PoseSample]:
        msgtype = msgtype or LOCALIZATION_MSGTYPE
        return self._extract(POSE_EXTRACTORS, rawdata, msgtype, msgdef)

    def decode_chassis(
        self, rawdata: bytes, msgtype: str = "", msgdef: str = ""
    ) -> Optional[ChassisSample]:
        msgtype = msgtype or CHASSIS_MSGTYPE
        return self._extract(CHASSIS_EXTRACTORS, rawdata, msgtype, msgdef)

    def _extract(self, extractors: Dict[str, Callable], rawdata: bytes,
                 msgtype: str, msgdef: str):
        extractor = extractors.get(msgtype)
        if extractor is None:
            return None
        msg = self.deserialize(rawdata, msgtype, msgdef)
        if msg is None:
            return None
        try:
            return extractor(msg)
        except (AttributeError, TypeError, ValueError):
            return None
