"""
CLI entry point for the learning data generator.

Usage:
    python -m learning_data_generator generate <record.bag> [options]
    python -m learning_data_generator batch <directory> [options]
"""

import argparse
import glob
import os
import sys

from .config import load_config
from .constants import ENCODING_TEXT, RECORD_EXTENSIONS
from .pipeline import run_pipeline
from .record_reader import RecordReadError
from .writers import ShardWriteError


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML file with generator options",
    )
    parser.add_argument(
        "--output-dir", "-o",
        default=None,
        help="Output directory for learning_data.<n> shards",
    )
    parser.add_argument(
        "--label-sample-interval",
        type=int,
        default=None,
        help="Localization messages per trajectory label (default: 100)",
    )
    parser.add_argument(
        "--frames-per-shard",
        type=int,
        default=None,
        help="Frames written per shard file (default: 100)",
    )
    parser.add_argument(
        "--trajectory-point-interval",
        type=int,
        default=None,
        help="Localization messages per label point (default: 10)",
    )
    parser.add_argument(
        "--window-step",
        type=int,
        default=None,
        help="Oldest localization messages dropped after each label (default: 5)",
    )
    parser.add_argument(
        "--text",
        action="store_true",
        help="Write JSON text shards instead of binary",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Print detailed progress",
    )


def _build_config(args):
    config = load_config(args.config)
    return config.with_overrides(
        output_dir=args.output_dir,
        label_sample_interval=args.label_sample_interval,
        frames_per_shard=args.frames_per_shard,
        trajectory_point_sample_interval=args.trajectory_point_interval,
        window_step=args.window_step,
        output_encoding=ENCODING_TEXT if args.text else None,
    ).validate()


def _print_summary(summary) -> None:
    print(f"  {summary.source_file}: {summary.messages_read} messages, "
          f"{summary.labels_generated} labels, {summary.frames_written} frames "
          f"in {len(summary.shard_paths)} shard(s)")
    if summary.aborted:
        print(f"  [WARN] Stopped reading early: {summary.error}")
    if summary.decode_failures:
        print(f"  [WARN] {summary.decode_failures} message(s) could not be decoded")


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="learning_data_generator",
        description="Generate planning learning data from recorded sessions",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- generate command ---
    generate_parser = subparsers.add_parser(
        "generate",
        help="Process a single record file",
    )
    generate_parser.add_argument(
        "input",
        help="Path to .bag record file",
    )
    _add_common_options(generate_parser)

    # --- batch command ---
    batch_parser = subparsers.add_parser(
        "batch",
        help="Process every record file in a directory",
    )
    batch_parser.add_argument(
        "directory",
        help="Directory containing .bag record files",
    )
    _add_common_options(batch_parser)

    args = parser.parse_args(argv)

    try:
        config = _build_config(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command == "generate":
        if not os.path.exists(args.input):
            print(f"Error: File not found: {args.input}", file=sys.stderr)
            sys.exit(1)

        try:
            summary = run_pipeline(args.input, config, verbose=args.verbose)
        except (RecordReadError, ShardWriteError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        _print_summary(summary)

    elif args.command == "batch":
        if not os.path.isdir(args.directory):
            print(f"Error: Directory not found: {args.directory}", file=sys.stderr)
            sys.exit(1)

        files = []
        for ext in RECORD_EXTENSIONS:
            files += glob.glob(os.path.join(args.directory, f"*{ext}"))

        if not files:
            print(f"No record files found in {args.directory}")
            sys.exit(1)

        print(f"Found {len(files)} files to process")
        failed = 0
        for i, filepath in enumerate(sorted(files), 1):
            basename = os.path.splitext(os.path.basename(filepath))[0]
            file_config = config.with_overrides(
                output_dir=os.path.join(config.output_dir, basename)
            )
            print(f"\n[{i}/{len(files)}] Processing {os.path.basename(filepath)}...")
            try:
                summary = run_pipeline(filepath, file_config, verbose=args.verbose)
            except (RecordReadError, ShardWriteError) as e:
                print(f"  ERROR: {e}")
                failed += 1
                continue
            _print_summary(summary)

        print(f"\nBatch complete. Results in {config.output_dir}/")
        if failed:
            print(f"  {failed} file(s) failed")


if __name__ == "__main__":
    main()
