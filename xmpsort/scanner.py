"""
Module: scanner
Purpose: Source tree scanning and XMP sidecar lookup.
"""

import os
from typing import Iterable, Iterator, List

from .exceptions import ScanError
from .models.fileinfo import FileInfo


def _is_within(path: str, root: str) -> bool:
    try:
        return os.path.commonpath([path, root]) == root
    except ValueError:
        return False


def iter_media_files(
    source: str,
    extensions: Iterable[str],
    *,
    exclude: Iterable[str] = (),
    log=None,
) -> Iterator[str]:
    """
    Recursively yield files under `source` whose name ends with one of
    `extensions` (case-insensitive), in a stable sorted order.

    Args:
        source: Directory to walk.
        extensions: Accepted name endings such as ".jpg".
        exclude: Directories that are skipped entirely, e.g. a destination
            nested inside the source.
        log: Optional RunLog receiving skip warnings.

    Raises:
        ScanError: If `source` is missing or not a directory.
    """
    normalized = os.path.abspath(source)
    if not os.path.exists(normalized):
        raise ScanError(f"Source directory does not exist: {normalized}")
    if not os.path.isdir(normalized):
        raise ScanError(f"Source path is not a directory: {normalized}")
    endings = tuple(ext.lower() for ext in extensions)
    excluded = [os.path.abspath(path) for path in exclude]

    for root, dirs, files in os.walk(normalized, topdown=True, followlinks=False):
        safe_dirs: List[str] = []
        for dirname in sorted(dirs):
            dir_path = os.path.join(root, dirname)
            if os.path.islink(dir_path):
                if log is not None:
                    log.warning(f"Skipping symlinked directory during scan: {dir_path}")
                continue
            if any(_is_within(dir_path, path) for path in excluded):
                continue
            safe_dirs.append(dirname)
        dirs[:] = safe_dirs
        for name in sorted(files):
            if not name.lower().endswith(endings):
                continue
            file_path = os.path.join(root, name)
            if os.path.islink(file_path):
                if log is not None:
                    log.warning(f"Skipping symlinked file during scan: {file_path}")
                continue
            yield file_path


def find_sidecars(path: str) -> List[str]:
    """
    Return XMP sidecars next to `path`: "<stem>.xmp" and "<name>.xmp",
    matched case-insensitively.

    Both "img.xmp" and "img.jpg.xmp" belong to "img.jpg"; "img1.xmp" and
    "img.nef.xmp" do not.
    """
    directory = os.path.dirname(os.path.abspath(path))
    stem = os.path.splitext(os.path.basename(path))[0]
    wanted = {f"{stem}.xmp".lower(), f"{os.path.basename(path)}.xmp".lower()}
    try:
        names = os.listdir(directory)
    except OSError:
        return []
    return [
        os.path.join(directory, name)
        for name in sorted(names)
        if name.lower() in wanted
        and os.path.isfile(os.path.join(directory, name))
    ]


def scan_file(path: str) -> FileInfo:
    """
    Build a FileInfo for `path` with its sidecars attached.

    Raises:
        ScanError: If the file size cannot be read.
    """
    normalized = os.path.abspath(path)
    try:
        size = os.path.getsize(normalized)
    except OSError as exc:
        raise ScanError(f"Failed to read file info for {normalized}: {exc}") from exc
    ext = os.path.splitext(normalized)[1].lstrip(".").lower()
    return FileInfo(
        path=normalized,
        size=size,
        format=ext,
        sidecars=find_sidecars(normalized),
    )
