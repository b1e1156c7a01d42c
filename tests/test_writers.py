import json
import os

import pytest

from conftest import make_chassis, make_pose
from learning_data_generator.labeling import generate_trajectory_label
from learning_data_generator.models import FrameBuilder, LearningDataFrame
from learning_data_generator.writers import ShardWriteError, ShardWriter, load_shard


def sample_frames():
    full = FrameBuilder()
    full.set_localization(make_pose(3))
    full.set_chassis(make_chassis(speed=7.5, gear=2))
    labeled = full.seal(generate_trajectory_label([make_pose(i) for i in range(5)], 2))

    chassis_only = FrameBuilder()
    chassis_only.set_chassis(make_chassis())

    return [labeled, chassis_only.seal(), LearningDataFrame()]


@pytest.mark.parametrize("encoding,suffix", [("binary", ".bin"), ("text", ".json")])
def test_shard_roundtrip(tmp_path, encoding, suffix):
    writer = ShardWriter(str(tmp_path / "data"), encoding)
    frames = sample_frames()

    path = writer.write(frames, 4)

    assert path == os.path.join(str(tmp_path / "data"), f"learning_data.4{suffix}")
    assert load_shard(path) == frames


def test_text_shard_layout(tmp_path):
    path = ShardWriter(str(tmp_path), "text").write(sample_frames()[:1], 0)

    with open(path) as f:
        doc = json.load(f)

    (frame,) = doc["learning_data"]
    assert frame["chassis_feature"]["gear_location"] == 2
    assert frame["localization_feature"]["x"] == 3.0
    assert [p["x"] for p in frame["label_trajectory_points"]] == [0.0, 2.0, 4.0]


def test_write_failure_raises_shard_write_error(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("")
    writer = ShardWriter(str(blocker / "data"), "binary")

    with pytest.raises(ShardWriteError) as exc_info:
        writer.write(sample_frames(), 0)
    assert exc_info.value.path.endswith("learning_data.0.bin")


def test_unknown_encoding_rejected(tmp_path):
    with pytest.raises(ValueError):
        ShardWriter(str(tmp_path), "yaml")
