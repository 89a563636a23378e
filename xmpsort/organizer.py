"""
Module: organizer
Purpose: Dated target paths and clean-up of emptied source folders.
"""

import os
from datetime import datetime
from typing import Iterable


def determine_target_directory(capture_time: datetime, destination: str) -> str:
    """
    Compute the YYYY/MM/DD folder for a capture time.

    Args:
        capture_time: Resolved capture time of the file.
        destination: Root of the dated tree.

    Returns:
        Absolute directory path.
    """
    return os.path.abspath(
        os.path.join(
            destination,
            f"{capture_time.year:04d}",
            f"{capture_time.month:02d}",
            f"{capture_time.day:02d}",
        )
    )


def determine_target_path(path: str, capture_time: datetime, destination: str) -> str:
    return os.path.join(determine_target_directory(capture_time, destination), os.path.basename(path))


def _is_within(path: str, root: str) -> bool:
    try:
        return os.path.commonpath([path, root]) == root
    except ValueError:
        return False


def delete_empty_directories(ctx, directory: str, *, exclude: Iterable[str] = ()) -> None:
    """
    Delete empty folders below `directory` bottom-up, then `directory` itself.

    A folder that only contained folders deleted in this pass is deleted as
    well. Found and deleted folders are counted in ctx.statistics; deletion
    goes through ctx.fs so a dry run only simulates it.
    """
    excluded = [os.path.abspath(path) for path in exclude]
    _delete_empty(ctx, os.path.abspath(directory), excluded, is_root=True)


def _delete_if_empty(ctx, directory: str) -> None:
    ctx.statistics.directories_found += 1
    try:
        if ctx.fs.listdir(directory):
            return
        ctx.fs.rmdir(directory)
    except OSError as exc:
        ctx.log.error(f"Failed to remove empty directory {directory}: {exc}")
        return
    ctx.statistics.directories_deleted += 1
    ctx.log.debug(f"Deleted empty directory {directory}")


def _delete_empty(ctx, directory: str, excluded: list[str], *, is_root: bool) -> None:
    try:
        names = ctx.fs.listdir(directory)
    except OSError as exc:
        ctx.log.error(f"Failed to list directory {directory}: {exc}")
        return
    for name in names:
        child = os.path.join(directory, name)
        if os.path.islink(child) or not ctx.fs.is_dir(child):
            continue
        if any(_is_within(child, path) for path in excluded):
            continue
        _delete_empty(ctx, child, excluded, is_root=False)
        _delete_if_empty(ctx, child)
    if is_root:
        _delete_if_empty(ctx, directory)
