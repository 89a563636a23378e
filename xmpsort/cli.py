"""
Module: cli
Purpose: Command-line interface entry point.
"""

import argparse
import os
import sys
from typing import List, Sequence

from . import reporting
from .context import DEFAULT_EXTENSIONS, DEFAULT_QUARANTINE_ROOT, SortContext
from .exceptions import XmpSortError
from .reporting import RunLog
from .sorter import SortImageByExif
from .utils import (
    DEFAULT_MEMORY_FRACTION,
    DEFAULT_PIXEL_LIMIT,
    MAX_OVERRIDE_LIMIT,
    MEMORY_FRACTION_ENV,
    PIXEL_LIMIT_ENV,
    configure_memory_fraction,
    configure_pixel_limit,
)


def _pixel_limit_arg(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("Pixel limit must be an integer.") from exc
    if parsed < 1 or parsed > MAX_OVERRIDE_LIMIT:
        raise argparse.ArgumentTypeError(
            f"Pixel limit must be between 1 and {MAX_OVERRIDE_LIMIT}."
        )
    return parsed


def _memory_fraction_arg(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("Memory fraction must be a number.") from exc
    if not 0.0 < parsed <= 1.0:
        raise argparse.ArgumentTypeError("Memory fraction must be greater than 0 and at most 1.")
    return parsed


def _extensions_arg(value: str) -> List[str]:
    extensions = []
    for item in value.split(","):
        item = item.strip().lower()
        if not item:
            continue
        extensions.append(item if item.startswith(".") else f".{item}")
    if not extensions:
        raise argparse.ArgumentTypeError("At least one extension is required.")
    return extensions


def _expand_path(path: str) -> str:
    return os.path.abspath(os.path.expanduser(path))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="xmpsort",
        description=(
            "Rearrange photos and videos with their XMP sidecars into YYYY/MM/DD folders "
            "based on the capture time stored in their metadata."
        ),
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Write every file decision to the run log.",
    )
    parser.add_argument(
        "--log-file",
        default=reporting.LOG_FILE_NAME,
        help=f"Run log location (default {reporting.LOG_FILE_NAME}).",
    )
    parser.add_argument(
        "--max-pixels",
        type=_pixel_limit_arg,
        default=None,
        help=(
            f"Override Pillow decompression guard (default {DEFAULT_PIXEL_LIMIT} pixels). "
            f"Maximum allowed is {MAX_OVERRIDE_LIMIT}. Also configurable via ${PIXEL_LIMIT_ENV}."
        ),
    )
    parser.add_argument(
        "--memory-fraction",
        type=_memory_fraction_arg,
        default=None,
        help=(
            f"Share of available memory image comparison may use (default {DEFAULT_MEMORY_FRACTION}). "
            f"Also configurable via ${MEMORY_FRACTION_ENV}."
        ),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    rearrange_parser = subparsers.add_parser(
        "rearrange",
        help="Sort files into YYYY/MM/DD folders by capture time",
        description=(
            "Scan the source directory and place photos and videos in subdirectories of the "
            "destination given by their capture time. XMP files are placed accordingly. "
            "Without --force nothing on disk changes; the summary shows what would happen."
        ),
    )
    rearrange_parser.add_argument("source", type=_expand_path, help="Directory to sort")
    rearrange_parser.add_argument(
        "destination", type=_expand_path, help="Root of the dated folder tree"
    )
    rearrange_parser.add_argument(
        "--force",
        action="store_true",
        help="Allow possibly destructive operations. Defaults to a dry run.",
    )
    rearrange_parser.add_argument(
        "--move",
        action="store_true",
        help="Move files instead of copying them.",
    )
    rearrange_parser.add_argument(
        "--extensions",
        type=_extensions_arg,
        default=list(DEFAULT_EXTENSIONS),
        help="Comma separated file endings to sort (default: %(default)s).",
    )
    rearrange_parser.add_argument(
        "--quarantine-root",
        default=DEFAULT_QUARANTINE_ROOT,
        help=(
            "Folder for files that could not be placed, relative to the destination "
            "(default: %(default)s)."
        ),
    )
    rearrange_parser.add_argument(
        "--report",
        default=None,
        help=f"JSON report location (default {os.path.join(reporting.ARTIFACTS_DIR, reporting.REPORT_FILE_NAME)}).",
    )
    return parser


def _rearrange(args: argparse.Namespace, log: RunLog) -> int:
    if not os.path.isdir(args.source):
        log.error(f"Source directory does not exist: {args.source}")
        print(f"Source directory does not exist: {args.source}", file=sys.stderr)
        return 1
    ctx = SortContext(
        source=args.source,
        destination=args.destination,
        force=args.force,
        move=args.move,
        extensions=tuple(args.extensions),
        quarantine_root=args.quarantine_root,
        verbose=args.verbose,
        log=log,
    )
    sorter = SortImageByExif(ctx)
    snapshot = sorter.run()
    report_path = args.report or reporting.artifact_path(reporting.REPORT_FILE_NAME)
    reporting.write_json_report(
        snapshot,
        sorter.errors.errors,
        report_path,
        source=ctx.source,
        destination=ctx.destination,
    )
    print(reporting.format_summary(snapshot))
    if sorter.resolution and sorter.resolution.quarantine_directories:
        print("Quarantine:")
        for kind, directory in sorter.resolution.quarantine_directories.items():
            print(f"  {kind}: {directory}")
    print(f"Report: {os.path.abspath(report_path)}")
    print(f"Log: {log.outfile}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """
    Argument parser entry point.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    log_path = reporting.ensure_log_initialized(args.log_file)
    log = RunLog(log_path, verbose=args.verbose)
    try:
        limit, source = configure_pixel_limit(args.max_pixels, log)
        configure_memory_fraction(args.memory_fraction, log)
        if source != "default":
            log.info(f"Pixel safety limit set to {limit:,} via {source}")
        if args.command == "rearrange":
            return _rearrange(args, log)
        parser.error(f"Unknown command: {args.command}")
    except XmpSortError as exc:
        log.error(str(exc))
        print(f"xmpsort failed: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
