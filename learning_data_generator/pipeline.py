"""
Pipeline orchestrator: one forward pass over a recorded session.

read → demultiplex/decode → accumulate frames → label + rotate → write shards
"""

import os
import time
from typing import Optional

from .accumulator import FrameAccumulator
from .config import GeneratorConfig
from .decoders import MessageDecoder
from .demux import MessageDemultiplexer
from .models import GenerationSummary
from .record_reader import RecordSource, open_record
from .rotation import ShardRotator
from .writers import ShardWriteError, ShardWriter


class FeatureGenerator:
    """
    Wires demultiplexer, accumulator, rotator and writer for one run.

    All accumulating state (current frame, window, batch, shard counter)
    lives in this instance: it starts empty and is torn down by close(),
    which performs the terminal flush.
    """

    def __init__(
        self,
        config: GeneratorConfig,
        *,
        decoder: Optional[MessageDecoder] = None,
        writer: Optional[ShardWriter] = None,
        verbose: bool = False,
    ):
        self.config = config.validate()
        self.verbose = verbose
        self.decoder = decoder or MessageDecoder()
        self.writer = writer or ShardWriter(config.output_dir, config.output_encoding)
        self.rotator = ShardRotator(self.writer, config.frames_per_shard, log=self.log)
        self.accumulator = FrameAccumulator(config, self.rotator, log=self.log)
        self.demux = MessageDemultiplexer(log=self.log)
        self.demux.register(
            config.localization_channel,
            self.decoder.decode_pose,
            self.accumulator.on_localization,
        )
        self.demux.register(
            config.chassis_channel,
            self.decoder.decode_chassis,
            self.accumulator.on_chassis,
        )
        self.messages_read = 0

    def log(self, msg: str) -> None:
        if self.verbose:
            print(msg)

    def process(self, source: RecordSource) -> None:
        """Feed every message of ``source`` through the demultiplexer."""
        for message in source.messages():
            self.messages_read += 1
            self.demux.dispatch(message)

    def close(self) -> None:
        self.accumulator.close()

    def summary(self, source_file: str = "") -> GenerationSummary:
        return GenerationSummary(
            source_file=source_file,
            messages_read=self.messages_read,
            localization_messages=self.demux.dispatched[self.config.localization_channel],
            chassis_messages=self.demux.dispatched[self.config.chassis_channel],
            ignored_messages=self.demux.ignored,
            decode_failures=sum(self.demux.decode_failures.values()),
            labels_generated=self.accumulator.labels_generated,
            frames_written=self.rotator.total_frames_written,
            shard_paths=list(self.rotator.shard_paths),
        )


def run_pipeline(
    record_path: str,
    config: Optional[GeneratorConfig] = None,
    *,
    verbose: bool = False,
    source: Optional[RecordSource] = None,
    writer: Optional[ShardWriter] = None,
) -> GenerationSummary:
    """
    Generate learning data shards from one recorded session.

    Args:
        record_path: Path to the .bag recording
        config: Generator options (defaults when None)
        verbose: Print progress details
        source: Pre-built record source; opened from record_path when None
        writer: Shard writer; built from config when None

    Returns:
        GenerationSummary with message counts and written shard paths

    Reading stops early on KeyboardInterrupt or on a failed shard write; the
    terminal flush still runs and retries any pending batch. A write failure
    is reported on the summary (``aborted``/``error``) when that retry
    succeeds. A ShardWriteError from the terminal flush propagates.
    """
    config = (config or GeneratorConfig()).validate()
    generator = FeatureGenerator(config, writer=writer, verbose=verbose)
    log = generator.log

    t_start = time.time()
    log(f"\n--- Generating learning data from {os.path.basename(record_path)} ---")
    log(f"  label window={config.label_sample_interval}, step={config.window_step}, "
        f"point interval={config.trajectory_point_sample_interval}, "
        f"frames/shard={config.frames_per_shard}, encoding={config.output_encoding}")

    if source is None:
        source = open_record(record_path, channels=generator.demux.channels)

    interrupted = False
    write_error: Optional[ShardWriteError] = None
    try:
        generator.process(source)
    except KeyboardInterrupt:
        interrupted = True
        print("  [WARN] Interrupted; flushing pending frames")
    except ShardWriteError as e:
        write_error = e
        print(f"  [WARN] {e}; stopped reading, retrying pending frames")
    finally:
        generator.close()

    summary = generator.summary(os.path.basename(record_path))
    summary.elapsed_sec = time.time() - t_start
    summary.interrupted = interrupted
    summary.aborted = write_error is not None
    summary.error = str(write_error) if write_error is not None else ""
    summary.metadata = source.get_metadata()

    log(f"  Messages: {summary.messages_read} read, "
        f"{summary.localization_messages} localization, "
        f"{summary.chassis_messages} chassis, "
        f"{summary.decode_failures} undecodable")
    log(f"  Labels: {summary.labels_generated}, frames written: {summary.frames_written}, "
        f"shards: {len(summary.shard_paths)}")
    log(f"\n=== Generation complete in {summary.elapsed_sec:.2f}s ===")

    return summary
