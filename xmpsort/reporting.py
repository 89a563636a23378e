"""
Module: reporting
Purpose: Logging and report generation utilities.
"""

import json
import os
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, List

from .models.errors import ErrorRecord, describe_error_kind
from .models.statistics import StatisticsSnapshot


ARTIFACTS_DIR = "artifacts"
LOG_FILE_NAME = os.path.join(ARTIFACTS_DIR, "xmpsort.log")
REPORT_FILE_NAME = "sort_report.json"


def artifact_path(filename: str) -> str:
    return os.path.abspath(os.path.join(ARTIFACTS_DIR, filename))


def ensure_log_initialized(outfile: str = LOG_FILE_NAME) -> str:
    """Ensure the xmpsort log file exists and return its absolute path."""
    path = os.path.abspath(outfile)
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    with open(path, "a", encoding="utf-8"):
        pass
    return path


def write_log(entries: List[str], outfile: str = LOG_FILE_NAME):
    """
    Append entries to logfile.
    """
    directory = os.path.dirname(os.path.abspath(outfile)) or "."
    os.makedirs(directory, exist_ok=True)
    timestamp = datetime.now(timezone.utc).replace(tzinfo=None).isoformat()
    with open(outfile, "a", encoding="utf-8") as handle:
        for entry in entries:
            normalized = entry if entry.startswith("[") else f"[INFO] {entry}"
            handle.write(f"[{timestamp}] {normalized}\n")


class RunLog:
    """
    Run-scoped log handed to every component through the sort context.

    All entries end up in the same append-only file as `write_log`. Debug
    entries are only written when `verbose` is set.
    """

    def __init__(self, outfile: str = LOG_FILE_NAME, verbose: bool = False):
        self.outfile = os.path.abspath(outfile)
        self.verbose = verbose
        self.error_count = 0
        self.warning_count = 0

    def debug(self, message: str) -> None:
        if self.verbose:
            write_log([f"[DEBUG] {message}"], self.outfile)

    def info(self, message: str) -> None:
        write_log([f"[INFO] {message}"], self.outfile)

    def warning(self, message: str) -> None:
        self.warning_count += 1
        write_log([f"[WARNING] {message}"], self.outfile)

    def error(self, message: str) -> None:
        self.error_count += 1
        write_log([f"[ERROR] {message}"], self.outfile)

    def exception(self, exc: BaseException, context: str | None = None) -> None:
        prefix = f"{context}: " if context else ""
        self.error(f"{prefix}{type(exc).__name__}: {exc}")


class EnhancedJSONEncoder(json.JSONEncoder):
    def default(self, o: Any) -> Any:
        if is_dataclass(o):
            return asdict(o)
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


def write_json_report(
    snapshot: StatisticsSnapshot,
    errors: Iterable[ErrorRecord],
    outfile: str,
    *,
    source: str | None = None,
    destination: str | None = None,
):
    """
    Save structured JSON summary of a sorting run.
    """
    os.makedirs(os.path.dirname(os.path.abspath(outfile)) or ".", exist_ok=True)
    report = {
        "schema_version": "1.0",
        "source": source,
        "destination": destination,
        "mode": "EXECUTE" if snapshot.is_changing else "DRY_RUN",
        "statistics": snapshot,
        "errors": list(errors),
    }
    with open(outfile, "w", encoding="utf-8") as handle:
        json.dump(report, handle, indent=2, cls=EnhancedJSONEncoder)


def format_summary(snapshot: StatisticsSnapshot) -> str:
    """
    Render the end-of-run statistics as plain text lines.
    """
    mode = "EXECUTE" if snapshot.is_changing else "DRY RUN (use --force to apply)"
    rows = [
        ("Mode", mode),
        ("Images found", snapshot.found_images),
        ("XMPs found", snapshot.found_xmps),
        ("Images copied", snapshot.copied_images),
        ("XMPs copied", snapshot.copied_xmps),
        ("Images moved", snapshot.moved_images),
        ("XMPs moved", snapshot.moved_xmps),
        ("Duplicate images skipped", snapshot.skipped_images),
        ("Duplicate XMPs skipped", snapshot.skipped_xmps),
        ("Files deleted", snapshot.deleted_files),
        ("Files quarantined", snapshot.quarantined_files),
        ("Directories found", snapshot.directories_found),
        ("Directories deleted", snapshot.directories_deleted),
        ("Errors", snapshot.errors),
    ]
    for kind, count in snapshot.errors_by_kind.items():
        if count:
            rows.append((f"  {describe_error_kind(kind)}", count))
    width = max(len(label) for label, _ in rows)
    return "\n".join(f"{label.ljust(width)} : {value}" for label, value in rows)
