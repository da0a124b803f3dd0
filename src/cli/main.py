"""Pixrow CLI entry points.
This module exposes scan and describe commands for image fragments.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
import sys
from typing import Any, Sequence

from core.config import PixrowConfig
from core.constants import DEFAULT_COLUMN_TYPES
from core.errors import PixrowError
from core.types import FileSplit, ImageTableSchema
from ingest.descriptor_parser import parse_fragment_descriptor
from pixrow import PixrowClient


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="pixrow", description="Pixrow image fragment CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_scan_command(subparsers)
    _add_describe_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Pixrow CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        if args.command == "scan":
            return _run_scan_command(args)
        if args.command == "describe":
            return _run_describe_command(args)
    except PixrowError as error:
        print(f"error={error}", file=sys.stderr)
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _add_scan_command(subparsers: Any) -> None:
    """Register scan subcommand."""
    parser = subparsers.add_parser("scan", help="Scan one fragment into a CSV row")
    parser.add_argument("data_source", help="Descriptor 'prefix|path,index/total|...'")
    parser.add_argument(
        "--columns",
        default=",".join(DEFAULT_COLUMN_TYPES),
        help="Comma-separated types of the six destination columns",
    )
    parser.add_argument("--threads", type=int, help="Override ACCESSOR_THREADS")
    parser.add_argument(
        "--normalize",
        action="store_true",
        help="Emit pixels as normalized floats",
    )
    parser.add_argument(
        "--split-start",
        type=int,
        default=0,
        help="Start offset of this worker's split; only offset 0 emits the row",
    )
    parser.add_argument("--output", help="Write CSV to this file instead of stdout")


def _add_describe_command(subparsers: Any) -> None:
    """Register describe subcommand."""
    parser = subparsers.add_parser("describe", help="Print the parsed fragment descriptors")
    parser.add_argument("data_source", help="Descriptor 'prefix|path,index/total|...'")


def _run_scan_command(args: argparse.Namespace) -> int:
    """Handle scan command.

    Args:
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    config = PixrowConfig.from_env()
    if args.threads is not None:
        config = config.with_options({"ACCESSOR_THREADS": str(args.threads)})
    if args.normalize:
        config = replace(config, normalize=True)
    schema = ImageTableSchema.from_ddl(args.columns.split(","))
    client = PixrowClient(config)
    split = FileSplit(path=args.data_source, start=args.split_start)
    if args.output:
        with open(args.output, "w", encoding="utf-8", newline="") as stream:
            row_count = client.write_csv(args.data_source, stream, schema, split)
    else:
        row_count = client.write_csv(args.data_source, sys.stdout, schema, split)
    print(f"rows={row_count}", file=sys.stderr)
    return 0


def _run_describe_command(args: argparse.Namespace) -> int:
    """Handle describe command."""
    request = parse_fragment_descriptor(args.data_source)
    print(f"prefix={request.prefix}")
    for descriptor in request.descriptors:
        print(f"{descriptor.path}\t{descriptor.label_index}/{descriptor.label_count}")
    return 0
