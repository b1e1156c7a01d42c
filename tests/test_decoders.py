import math

import numpy as np
import pytest

from learning_data_generator.decoders import (
    CHASSIS_MSGTYPE,
    LOCALIZATION_MSGTYPE,
    ODOMETRY_MSGTYPE,
)


def test_decode_localization(decoder, messages):
    sample = decoder.decode_pose(messages.localization_bytes(3), LOCALIZATION_MSGTYPE)

    assert sample.x == 3.0
    assert sample.y == 6.0
    assert sample.z == 0.5
    assert sample.heading == pytest.approx(0.03)
    assert (sample.vx, sample.vy) == (3.0, 4.0)
    assert sample.ax == pytest.approx(0.6)
    assert sample.ay == pytest.approx(0.8)
    assert sample.angular_velocity == pytest.approx(0.1)
    assert sample.speed == pytest.approx(5.0)


def test_decode_defaults_to_channel_message_type(decoder, messages):
    assert decoder.decode_pose(messages.localization_bytes(1)) is not None
    assert decoder.decode_chassis(messages.chassis_bytes(1)) is not None


def test_decode_chassis(decoder, messages):
    sample = decoder.decode_chassis(messages.chassis_bytes(0, speed=12.5, gear=2), CHASSIS_MSGTYPE)

    assert sample.speed_mps == 12.5
    assert sample.throttle_percentage == 20.0
    assert sample.brake_percentage == 0.0
    assert sample.steering_percentage == -3.5
    assert sample.gear_location == 2


def test_truncated_payload_returns_none(decoder, messages):
    payload = messages.localization_bytes(3)
    assert decoder.decode_pose(payload[:10], LOCALIZATION_MSGTYPE) is None


def test_wrong_type_for_channel_returns_none(decoder, messages):
    assert decoder.decode_pose(messages.chassis_bytes(0), CHASSIS_MSGTYPE) is None
    assert decoder.decode_chassis(messages.chassis_bytes(0), "unknown_msgs/msg/Thing") is None


def test_decode_odometry_heading_from_quaternion(decoder):
    types = decoder.typestore.types
    Odometry = types[ODOMETRY_MSGTYPE]
    Header = types["std_msgs/msg/Header"]
    Time = types["builtin_interfaces/msg/Time"]
    PoseWithCovariance = types["geometry_msgs/msg/PoseWithCovariance"]
    TwistWithCovariance = types["geometry_msgs/msg/TwistWithCovariance"]
    Pose = types["geometry_msgs/msg/Pose"]
    Twist = types["geometry_msgs/msg/Twist"]
    Point = types["geometry_msgs/msg/Point"]
    Quaternion = types["geometry_msgs/msg/Quaternion"]
    Vector3 = types["geometry_msgs/msg/Vector3"]

    yaw = math.pi / 2
    msg = Odometry(
        header=Header(seq=0, stamp=Time(sec=0, nanosec=0), frame_id="odom"),
        child_frame_id="base_link",
        pose=PoseWithCovariance(
            pose=Pose(
                position=Point(x=1.0, y=2.0, z=0.0),
                orientation=Quaternion(x=0.0, y=0.0, z=math.sin(yaw / 2), w=math.cos(yaw / 2)),
            ),
            covariance=np.zeros(36, dtype=np.float64),
        ),
        twist=TwistWithCovariance(
            twist=Twist(
                linear=Vector3(x=1.5, y=0.0, z=0.0),
                angular=Vector3(x=0.0, y=0.0, z=0.2),
            ),
            covariance=np.zeros(36, dtype=np.float64),
        ),
    )

    sample = decoder.decode_pose(decoder.serialize(msg, ODOMETRY_MSGTYPE), ODOMETRY_MSGTYPE)

    assert sample.heading == pytest.approx(yaw)
    assert (sample.x, sample.y) == (1.0, 2.0)
    assert sample.vx == 1.5
    assert (sample.ax, sample.ay) == (0.0, 0.0)
    assert sample.angular_velocity == pytest.approx(0.2)


def test_unregistered_type_without_definition_is_not_decoded(decoder):
    assert not decoder.ensure_type("vendor_msgs/msg/Unknown")
    assert decoder.deserialize(b"\x00" * 8, "vendor_msgs/msg/Unknown") is None
