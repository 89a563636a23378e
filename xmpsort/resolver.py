"""
Module: resolver
Purpose: Resolve collected errors after the sorting pass: delete confirmed
duplicates and copy everything else into a quarantine tree for inspection.
"""

import os
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Set

from .comparator import are_duplicates
from .exceptions import FileOperationError
from .fileops import DeleteFileOperation, QuarantineCopyOperation, ensure_directory
from .models.decomposition import FileDecomposition, decompose_at
from .models.errors import (
    FILE_ALREADY_EXISTS,
    IMAGE_PROCESSING_FAILURE,
    METADATA_ERROR,
    NO_TIME_FOUND,
    UNCLASSIFIED,
    ErrorRecord,
    FileAlreadyExistsRecord,
    describe_error_kind,
)

# Kinds that get a quarantine folder, in processing order.
QUARANTINE_KINDS = (FILE_ALREADY_EXISTS, NO_TIME_FOUND, METADATA_ERROR)


@dataclass
class ResolutionSummary:
    """
    Outcome of one resolver pass.
    """

    quarantine_directories: Dict[str, str] = field(default_factory=dict)
    renamed_directories: Dict[str, str] = field(default_factory=dict)
    duplicates_deleted: List[str] = field(default_factory=list)
    quarantined: List[str] = field(default_factory=list)
    left_in_place: List[str] = field(default_factory=list)
    failures: int = 0


class CollisionResolver:
    """
    Walks a frozen error collection kind by kind.

    Each kind with at least one record gets a fresh quarantine folder
    "<quarantine root>/<kind>"; a folder left by an earlier run is renamed
    aside first. Records are handled in discovery order, and a failure on
    one record is logged without stopping the others.
    """

    def __init__(self, ctx):
        self.ctx = ctx
        self.copy_operation = QuarantineCopyOperation(ctx)
        self.delete_operation = DeleteFileOperation(ctx)
        self.summary = ResolutionSummary()
        self._copied_targets: Set[str] = set()

    def resolve(self, errors: Iterable[ErrorRecord]) -> ResolutionSummary:
        records = tuple(errors)
        for kind in QUARANTINE_KINDS:
            self._collect_collisions(kind, [r for r in records if r.kind == kind])
        for record in records:
            if record.kind == IMAGE_PROCESSING_FAILURE:
                self.ctx.log.warning(
                    f"{describe_error_kind(record.kind)}: '{record.file}' left in place ({record.error_message})"
                )
                self.summary.left_in_place.append(record.file)
        return self.summary

    def _collect_collisions(self, kind: str, records: List[ErrorRecord]) -> None:
        if not records:
            return
        target_directory = os.path.join(self.ctx.quarantine_directory, kind)
        self.ctx.log.warning(
            f"{len(records)} {kind} issues will be located in the directory '{target_directory}'"
        )
        try:
            renamed = rename_possibly_existing_directory(self.ctx, target_directory)
            if renamed:
                self.summary.renamed_directories[kind] = renamed
            ensure_directory(self.ctx, target_directory)
        except (OSError, FileOperationError) as exc:
            self.ctx.log.exception(exc, f"Cannot prepare quarantine directory {target_directory}")
            for _ in records:
                self._count_failure()
            return
        self.summary.quarantine_directories[kind] = target_directory

        handler = self._handler_for(kind)
        for record in records:
            try:
                handler(decompose_at(target_directory, record.file), record)
            except Exception as exc:
                self.ctx.log.exception(exc, f"Failed to resolve {record.kind} for '{record.file}'")
                self._count_failure()

    def _count_failure(self) -> None:
        self.summary.failures += 1
        self.ctx.statistics.count_error(UNCLASSIFIED)

    def _handler_for(self, kind: str) -> Callable[[FileDecomposition, ErrorRecord], None]:
        if kind == FILE_ALREADY_EXISTS:
            return self._handle_collision_or_duplicate
        if kind in (NO_TIME_FOUND, METADATA_ERROR):
            return self._create_directory_and_copy_file
        raise ValueError(f"No quarantine handling for error kind {kind}")

    def _handle_collision_or_duplicate(self, target_file: FileDecomposition, error: FileAlreadyExistsRecord) -> None:
        if are_duplicates(error.target_path, error.incoming_path, self.ctx):
            self.ctx.log.debug(f"{error.incoming_path} is duplicate of {error.target_path}")
            self.delete_operation.delete(error.incoming_path)
            self.summary.duplicates_deleted.append(error.incoming_path)
            return
        self._handle_collision(target_file, error)

    def _handle_collision(self, target_file: FileDecomposition, error: FileAlreadyExistsRecord) -> None:
        # a/1.jpg, b/1.jpg and c/1.jpg all dated 2023-01-18:
        #   a/1.jpg lands at 2023/01/18/1.jpg, b and c produce two records
        #   record b: copy 2023/01/18/1.jpg -> 1/1.jpg, then b/1.jpg -> 1/1_1.jpg
        #   record c: target already copied, c/1.jpg -> 1/1_2.jpg
        self.ctx.log.debug(f"Handling collision between {error.target_path} and {error.incoming_path}")
        ensure_directory(self.ctx, target_file.directory)
        target_key = os.path.normcase(os.path.abspath(error.target_path))
        if target_key not in self._copied_targets:
            self._copy_file_with_appended_number(error.target_path, target_file)
            self._copied_targets.add(target_key)
        self._copy_file_with_appended_number(error.incoming_path, target_file)

    def _create_directory_and_copy_file(self, target_file: FileDecomposition, error: ErrorRecord) -> None:
        ensure_directory(self.ctx, target_file.directory)
        source = error.file
        placed_at = getattr(error, "placed_at", None)
        if placed_at and not self.ctx.fs.exists(source):
            source = placed_at
        self._copy_file_with_appended_number(source, target_file)

    def _copy_file_with_appended_number(self, error_file: str, target_file: FileDecomposition) -> str:
        fullname = next_free_name(self.ctx, target_file)
        self.ctx.log.debug(f"Collision for '{error_file}'. Arrange next to others as '{fullname}'")
        self.copy_operation.change_file(error_file, fullname)
        self.summary.quarantined.append(fullname)
        return fullname


def next_free_name(ctx, target_file: FileDecomposition) -> str:
    """
    Name for the next file in a quarantine subfolder.

    The suffix is the number of files already ending in the extension:
    "<name><ext>" for the first, then "<name>_1<ext>", "<name>_2<ext>", ...
    A name that is somehow taken is never reused.
    """
    directory = target_file.directory
    count = sum(
        1
        for name in ctx.fs.listdir(directory)
        if name.endswith(target_file.extension) and ctx.fs.is_file(os.path.join(directory, name))
    )
    while True:
        suffix = f"_{count}" if count > 0 else ""
        candidate = os.path.join(directory, f"{target_file.name}{suffix}{target_file.extension}")
        if not ctx.fs.exists(candidate):
            return candidate
        count += 1


def rename_possibly_existing_directory(ctx, directory: str) -> str | None:
    """
    Move an existing quarantine folder aside as "<dir>_<lastWriteTime>".

    Returns the new name, or None when nothing had to be renamed.
    """
    if not ctx.fs.exists(directory):
        return None
    stamp = ctx.fs.last_write_time(directory).strftime("%Y%m%dT%H%M%S")
    new_name = f"{directory}_{stamp}"
    counter = 1
    while ctx.fs.exists(new_name):
        new_name = f"{directory}_{stamp}_{counter}"
        counter += 1
    ctx.log.debug(f"Renaming {directory} to {new_name}")
    ctx.fs.rename(directory, new_name)
    return new_name


def resolve_errors(errors: Iterable[ErrorRecord], ctx) -> ResolutionSummary:
    """
    Resolve all collected errors of a sorting run.

    Args:
        errors: Frozen error collection (or any iterable of records).
        ctx: SortContext of the run.

    Returns:
        ResolutionSummary describing what was deleted and quarantined.
    """
    return CollisionResolver(ctx).resolve(errors)
