"""
Generator configuration: option set, validation and YAML loading.
"""

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional

from .constants import (
    DEFAULT_CHASSIS_CHANNEL,
    DEFAULT_FRAMES_PER_SHARD,
    DEFAULT_LABEL_SAMPLE_INTERVAL,
    DEFAULT_LOCALIZATION_CHANNEL,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_TRAJECTORY_POINT_INTERVAL,
    DEFAULT_WINDOW_STEP,
    ENCODING_BINARY,
    OUTPUT_ENCODINGS,
)


@dataclass(frozen=True)
class GeneratorConfig:
    """Options recognized by the feature generator."""
    label_sample_interval: int = DEFAULT_LABEL_SAMPLE_INTERVAL
    frames_per_shard: int = DEFAULT_FRAMES_PER_SHARD
    trajectory_point_sample_interval: int = DEFAULT_TRAJECTORY_POINT_INTERVAL
    window_step: int = DEFAULT_WINDOW_STEP
    output_encoding: str = ENCODING_BINARY
    output_dir: str = DEFAULT_OUTPUT_DIR
    localization_channel: str = DEFAULT_LOCALIZATION_CHANNEL
    chassis_channel: str = DEFAULT_CHASSIS_CHANNEL

    def validate(self) -> "GeneratorConfig":
        """Raise ValueError on inconsistent options; return self otherwise."""
        for name in (
            "label_sample_interval",
            "frames_per_shard",
            "trajectory_point_sample_interval",
            "window_step",
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if self.window_step > self.label_sample_interval:
            raise ValueError(
                f"window_step ({self.window_step}) must not exceed "
                f"label_sample_interval ({self.label_sample_interval})"
            )
        if self.output_encoding not in OUTPUT_ENCODINGS:
            raise ValueError(
                f"output_encoding must be one of {OUTPUT_ENCODINGS}, "
                f"got {self.output_encoding!r}"
            )
        if self.localization_channel == self.chassis_channel:
            raise ValueError("localization and chassis channels must differ")
        return self

    def with_overrides(self, **overrides: Any) -> "GeneratorConfig":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeneratorConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown config option(s): {', '.join(unknown)}")
        return cls(**data).validate()


def load_config(yaml_path: Optional[str] = None) -> GeneratorConfig:
    """
    Load generator options from a YAML mapping.

    Returns the defaults when no path is given. A path that does not exist,
    or a document that is not a mapping, raises ValueError.
    """
    if yaml_path is None:
        return GeneratorConfig().validate()

    if not os.path.exists(yaml_path):
        raise ValueError(f"Config file not found: {yaml_path}")

    import yaml

    with open(yaml_path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        return GeneratorConfig().validate()
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {yaml_path}")
    return GeneratorConfig.from_dict(data)
