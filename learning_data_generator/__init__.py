"""
Learning Data Generator

Turns recorded vehicle sessions (localization poses + chassis telemetry) into
sharded datasets of labeled learning frames for planning model training.

Each frame carries the latest localization and chassis features plus a
trajectory label sampled from a sliding window of upcoming poses.
"""

__version__ = "0.1.0"
