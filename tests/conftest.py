"""Shared fixtures for the learning data generator tests."""

import pytest
from rosbags.rosbag1 import Writer

from learning_data_generator.config import GeneratorConfig
from learning_data_generator.decoders import (
    CHASSIS_MSGTYPE,
    LOCALIZATION_MSGTYPE,
    MessageDecoder,
)
from learning_data_generator.models import ChassisSample, PoseSample
from learning_data_generator.writers import ShardWriteError


class MemoryWriter:
    """ShardWriter stand-in that keeps shards in memory."""

    def __init__(self, fail_times: int = 0):
        self.shards = []            # list of (shard_index, [frames])
        self.fail_times = fail_times
        self.attempts = 0

    def write(self, frames, shard_index):
        self.attempts += 1
        path = f"mem://learning_data.{shard_index}.bin"
        if self.fail_times > 0:
            self.fail_times -= 1
            raise ShardWriteError(path, OSError("disk full"))
        self.shards.append((shard_index, list(frames)))
        return path


def make_pose(i: int) -> PoseSample:
    """Pose whose fields encode its sequence number."""
    return PoseSample(
        x=float(i),
        y=2.0 * i,
        z=0.5,
        heading=0.01 * i,
        vx=3.0,
        vy=4.0,
        ax=0.6,
        ay=0.8,
        angular_velocity=0.1,
    )


def make_chassis(speed: float = 5.0, gear: int = 1) -> ChassisSample:
    return ChassisSample(
        speed_mps=speed,
        throttle_percentage=20.0,
        brake_percentage=0.0,
        steering_percentage=-3.5,
        gear_location=gear,
    )


@pytest.fixture
def memory_writer():
    return MemoryWriter()


@pytest.fixture
def small_config(tmp_path):
    return GeneratorConfig(
        label_sample_interval=4,
        frames_per_shard=2,
        trajectory_point_sample_interval=2,
        window_step=1,
        output_dir=str(tmp_path / "out"),
    )


@pytest.fixture(scope="session")
def decoder():
    return MessageDecoder()


class MessageFactory:
    """Builds rosbags message objects for the localization / chassis types."""

    def __init__(self, decoder: MessageDecoder):
        self.decoder = decoder
        self.types = decoder.typestore.types

    def header(self, seq: int):
        Header = self.types["std_msgs/msg/Header"]
        Time = self.types["builtin_interfaces/msg/Time"]
        return Header(seq=seq, stamp=Time(sec=seq, nanosec=0), frame_id="map")

    def localization(self, i: int):
        Point = self.types["geometry_msgs/msg/Point"]
        Vector3 = self.types["geometry_msgs/msg/Vector3"]
        Pose = self.types["apollo_msgs/msg/Pose"]
        Estimate = self.types[LOCALIZATION_MSGTYPE]
        pose = Pose(
            position=Point(x=float(i), y=2.0 * i, z=0.5),
            heading=0.01 * i,
            linear_velocity=Vector3(x=3.0, y=4.0, z=0.0),
            linear_acceleration=Vector3(x=0.6, y=0.8, z=0.0),
            angular_velocity=Vector3(x=0.0, y=0.0, z=0.1),
        )
        return Estimate(header=self.header(i), pose=pose)

    def chassis(self, i: int, speed: float = 5.0, gear: int = 1):
        Chassis = self.types[CHASSIS_MSGTYPE]
        return Chassis(
            header=self.header(i),
            speed_mps=speed,
            throttle_percentage=20.0,
            brake_percentage=0.0,
            steering_percentage=-3.5,
            gear_location=gear,
        )

    def localization_bytes(self, i: int) -> bytes:
        return self.decoder.serialize(self.localization(i), LOCALIZATION_MSGTYPE)

    def chassis_bytes(self, i: int, speed: float = 5.0, gear: int = 1) -> bytes:
        return self.decoder.serialize(self.chassis(i, speed, gear), CHASSIS_MSGTYPE)


@pytest.fixture(scope="session")
def messages(decoder):
    return MessageFactory(decoder)


@pytest.fixture
def write_bag(decoder):
    """Write (topic, msgtype, timestamp_ns, rawdata) tuples to a ROS1 bag."""

    def _write(path, entries, compression=None):
        writer = Writer(path)
        if compression is not None:
            writer.set_compression(compression)
        with writer:
            connections = {}
            for topic, msgtype, ts_ns, rawdata in entries:
                if topic not in connections:
                    connections[topic] = writer.add_connection(
                        topic, msgtype, typestore=decoder.typestore
                    )
                writer.write(connections[topic], ts_ns, rawdata)
        return path

    return _write
