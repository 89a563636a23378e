"""
Module: sorter
Purpose: Sort images and their XMP sidecars into a YYYY/MM/DD tree by
capture time, then resolve everything that could not be placed.
"""

from typing import Dict, Optional

from .error_collection import ErrorCollection
from .exceptions import FileOperationError, MetadataError
from .fileops import CopyFileOperation, MoveFileOperation, ensure_directory
from .metadata import describe_metadata, read_metadata, resolve_capture_time
from .models.errors import (
    UNCLASSIFIED,
    ErrorRecord,
    MetadataErrorRecord,
    file_already_exists,
    image_processing_failure,
    metadata_error,
    no_time_found,
)
from .models.fileinfo import FileInfo
from .models.statistics import StatisticsSnapshot
from .organizer import delete_empty_directories, determine_target_directory, determine_target_path
from .resolver import ResolutionSummary, resolve_errors
from .scanner import iter_media_files, scan_file


class SortImageByExif:
    """
    One sorting run over `ctx.source`.

    Files are placed by copy, or by move when `ctx.move` is set. Nothing in
    the walk raises past a single file: collisions and metadata problems
    become error records, resolved once the walk is complete.
    """

    def __init__(self, ctx):
        self.ctx = ctx
        self.errors = ErrorCollection(ctx.log)
        self.resolution: Optional[ResolutionSummary] = None
        operation = MoveFileOperation if ctx.move else CopyFileOperation
        self.placement = operation(ctx)

    @property
    def _excluded(self) -> list[str]:
        return [self.ctx.destination, self.ctx.quarantine_directory]

    def run(self) -> StatisticsSnapshot:
        ctx = self.ctx
        operation = "move" if ctx.move else "copy"
        ctx.log.info(
            f"Starting sort with search path: '{ctx.source}' and destination path "
            f"'{ctx.destination}'. force: {not ctx.is_simulation}, operation: {operation}"
        )
        for path in iter_media_files(ctx.source, ctx.extensions, exclude=self._excluded, log=ctx.log):
            self.process_file(path)

        self.errors.freeze()
        self.resolution = resolve_errors(self.errors, ctx)
        delete_empty_directories(ctx, ctx.source, exclude=self._excluded)

        snapshot = ctx.statistics.snapshot()
        ctx.log.info(
            f"Sort finished: {snapshot.found_images} images, {snapshot.found_xmps} XMPs, "
            f"{snapshot.errors} errors"
        )
        return snapshot

    def add_error(self, error: ErrorRecord) -> ErrorRecord:
        is_new = error.file not in self.errors
        record = self.errors.add(error)
        if is_new:
            self.ctx.statistics.count_error(record.kind)
        return record

    def process_file(self, path: str) -> None:
        """
        Read, date and place a single file. Failures end up as error records
        or log entries; they never propagate.
        """
        try:
            info = scan_file(path)
            self.ctx.statistics.found_images += 1
            self.ctx.statistics.found_xmps += len(info.sidecars)
            try:
                readout = read_metadata(info.path)
            except MetadataError as exc:
                self.add_error(image_processing_failure(info.path, exc))
                return

            diagnostics_record = None
            if readout.has_errors:
                diagnostics_record = self.add_error(metadata_error(info.path, readout.diagnostics))

            info.capture_time = resolve_capture_time(readout)
            if info.capture_time is None:
                self.add_error(no_time_found(info.path, describe_metadata(readout)))
                return

            placed = self.place(info)
            if isinstance(diagnostics_record, MetadataErrorRecord):
                diagnostics_record.placed_at = placed.get(info.path)
        except Exception as exc:
            self.ctx.log.exception(exc, f"Failed to process '{path}'")
            self.ctx.statistics.count_error(UNCLASSIFIED)

    def place(self, info: FileInfo) -> Dict[str, str]:
        """
        Copy or move the file and its sidecars into the dated folder.

        Returns a mapping of source path to placed path for every file that
        landed. An occupied destination becomes a FileAlreadyExists record.
        """
        target_directory = determine_target_directory(info.capture_time, self.ctx.destination)
        ensure_directory(self.ctx, target_directory)
        placed: Dict[str, str] = {}
        for source in [info.path, *info.sidecars]:
            if not self.ctx.fs.exists(source):
                self.ctx.log.debug(f"'{source}' was already placed with another image")
                continue
            target = determine_target_path(source, info.capture_time, self.ctx.destination)
            if self.ctx.fs.exists(target):
                self.add_error(file_already_exists(target, source))
                continue
            try:
                placed[source] = self.placement.change_file(source, target)
            except FileOperationError as exc:
                self.ctx.log.exception(exc, f"Failed to place '{source}'")
                self.ctx.statistics.count_error(UNCLASSIFIED)
        return placed


def sort_images_by_exif(ctx) -> StatisticsSnapshot:
    return SortImageByExif(ctx).run()
