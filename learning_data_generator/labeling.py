"""
Trajectory label derivation.

A label is the window subsampled every ``n`` poses, starting with the oldest
pose. Each selected pose becomes one TrajectoryPoint carrying its position,
heading and the planar magnitudes of its velocity and acceleration.
"""

from typing import Iterable, Tuple

import numpy as np

from .models import PoseSample, TrajectoryPoint


def label_point_count(window_length: int, interval: int) -> int:
    """Number of label points produced from a window: ceil(length / interval)."""
    if window_length <= 0:
        return 0
    return -(-window_length // interval)


def generate_trajectory_label(
    window: Iterable[PoseSample],
    interval: int,
) -> Tuple[TrajectoryPoint, ...]:
    """
    Derive the trajectory label for a window of poses.

    Args:
        window: Pose samples, oldest first
        interval: Keep every ``interval``-th pose (indices 0, n, 2n, ...)

    Returns:
        Label points in window order. Empty for an empty window.
    """
    if interval < 1:
        raise ValueError(f"trajectory point interval must be >= 1, got {interval}")

    selected = list(window)[::interval]
    if not selected:
        return ()

    poses = np.array(
        [(p.x, p.y, p.z, p.heading, p.vx, p.vy, p.ax, p.ay) for p in selected],
        dtype=np.float64,
    )
    v = np.hypot(poses[:, 4], poses[:, 5])
    a = np.hypot(poses[:, 6], poses[:, 7])

    return tuple(
        TrajectoryPoint(
            x=float(row[0]),
            y=float(row[1]),
            z=float(row[2]),
            theta=float(row[3]),
            v=float(speed),
            a=float(accel),
        )
        for row, speed, accel in zip(poses, v, a)
    )
