"""
Module: fileops
Purpose: Filesystem access for sorting runs, with a dry-run overlay and
counted copy/move/delete operations.
"""

import os
import shutil
from datetime import datetime
from typing import Dict, List, Set

from .exceptions import FileOperationError
from .models.fileinfo import is_sidecar_path


class FileSystem:
    """
    Direct filesystem access. Every call mutates or reads the disk.
    """

    is_changing = True

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def is_dir(self, path: str) -> bool:
        return os.path.isdir(path)

    def is_file(self, path: str) -> bool:
        return os.path.isfile(path)

    def listdir(self, path: str) -> List[str]:
        return sorted(os.listdir(path))

    def makedirs(self, path: str) -> None:
        os.makedirs(path, exist_ok=True)

    def copy(self, src: str, dst: str) -> None:
        shutil.copy2(src, dst)
        if not os.path.exists(dst):
            raise FileNotFoundError(f"Copy verification failed for {dst}")

    def move(self, src: str, dst: str) -> None:
        shutil.move(src, dst)
        if not os.path.exists(dst):
            raise FileNotFoundError(f"Move verification failed for {dst}")

    def delete(self, path: str) -> None:
        os.remove(path)

    def rmdir(self, path: str) -> None:
        os.rmdir(path)

    def rename(self, src: str, dst: str) -> None:
        if os.path.exists(dst):
            raise FileExistsError(f"Cannot rename {src}: {dst} already exists")
        os.rename(src, dst)

    def last_write_time(self, path: str) -> datetime:
        return datetime.fromtimestamp(os.path.getmtime(path))

    def real_path(self, path: str) -> str:
        return path


class DryRunFileSystem(FileSystem):
    """
    Records planned changes in memory and answers queries as if they had
    been applied. The disk is only ever read.

    Planned files remember which real file holds their content so that
    comparisons made later in the run read the right bytes.
    """

    is_changing = False

    def __init__(self):
        self._files: Dict[str, str] = {}
        self._dirs: Set[str] = set()
        self._hidden: Set[str] = set()

    @staticmethod
    def _norm(path: str) -> str:
        return os.path.abspath(path)

    def _is_hidden(self, path: str) -> bool:
        current = path
        while True:
            if current in self._hidden:
                return True
            parent = os.path.dirname(current)
            if parent == current:
                return False
            current = parent

    def _hide(self, path: str) -> None:
        prefix = path + os.sep
        self._hidden.add(path)
        self._files = {
            key: value
            for key, value in self._files.items()
            if key != path and not key.startswith(prefix)
        }
        self._dirs = {d for d in self._dirs if d != path and not d.startswith(prefix)}

    def exists(self, path: str) -> bool:
        p = self._norm(path)
        if p in self._files or p in self._dirs:
            return True
        if self._is_hidden(p):
            return False
        return os.path.exists(p)

    def is_dir(self, path: str) -> bool:
        p = self._norm(path)
        if p in self._dirs:
            return True
        if p in self._files or self._is_hidden(p):
            return False
        return os.path.isdir(p)

    def is_file(self, path: str) -> bool:
        p = self._norm(path)
        if p in self._files:
            return True
        if p in self._dirs or self._is_hidden(p):
            return False
        return os.path.isfile(p)

    def listdir(self, path: str) -> List[str]:
        p = self._norm(path)
        if not self.is_dir(p):
            raise FileNotFoundError(f"No such directory: {p}")
        names: Set[str] = set()
        if not self._is_hidden(p) and os.path.isdir(p):
            for name in os.listdir(p):
                if not self._is_hidden(os.path.join(p, name)):
                    names.add(name)
        for planned in list(self._files) + list(self._dirs):
            if os.path.dirname(planned) == p:
                names.add(os.path.basename(planned))
        return sorted(names)

    def makedirs(self, path: str) -> None:
        p = self._norm(path)
        while not self.is_dir(p):
            if self.is_file(p):
                raise FileExistsError(f"Cannot create directory over file: {p}")
            self._dirs.add(p)
            parent = os.path.dirname(p)
            if parent == p:
                break
            p = parent

    def _require_file(self, path: str) -> str:
        if not self.is_file(path):
            raise FileNotFoundError(f"No such file: {path}")
        return self.real_path(path)

    def _require_parent(self, path: str) -> None:
        parent = os.path.dirname(path)
        if not self.is_dir(parent):
            raise FileNotFoundError(f"No such directory: {parent}")

    def copy(self, src: str, dst: str) -> None:
        s, d = self._norm(src), self._norm(dst)
        backing = self._require_file(s)
        self._require_parent(d)
        self._files[d] = backing

    def move(self, src: str, dst: str) -> None:
        s, d = self._norm(src), self._norm(dst)
        backing = self._require_file(s)
        self._require_parent(d)
        self._hide(s)
        self._files[d] = backing

    def delete(self, path: str) -> None:
        p = self._norm(path)
        self._require_file(p)
        self._hide(p)

    def rmdir(self, path: str) -> None:
        p = self._norm(path)
        if self.listdir(p):
            raise OSError(f"Directory not empty: {p}")
        self._hide(p)

    def rename(self, src: str, dst: str) -> None:
        s, d = self._norm(src), self._norm(dst)
        if not self.exists(s):
            raise FileNotFoundError(f"No such file or directory: {s}")
        if self.exists(d):
            raise FileExistsError(f"Cannot rename {s}: {d} already exists")
        was_dir = self.is_dir(s)
        backing = None if was_dir else self.real_path(s)
        self._hide(s)
        if was_dir:
            self._dirs.add(d)
        else:
            self._files[d] = backing

    def last_write_time(self, path: str) -> datetime:
        p = self._norm(path)
        if p not in self._dirs and p not in self._files and not self._is_hidden(p) and os.path.exists(p):
            return datetime.fromtimestamp(os.path.getmtime(p))
        return datetime.now()

    def real_path(self, path: str) -> str:
        p = self._norm(path)
        return self._files.get(p, p)


def create_filesystem(force: bool) -> FileSystem:
    return FileSystem() if force else DryRunFileSystem()


class FileOperation:
    """
    Base class for counted file mutations routed through the context's
    filesystem layer.
    """

    verb = "change"

    def __init__(self, ctx):
        self.fs = ctx.fs
        self.log = ctx.log
        self.statistics = ctx.statistics

    def _label(self) -> str:
        return self.verb if self.fs.is_changing else f"SIMULATION - {self.verb}"

    def change_file(self, src: str, dst: str) -> str:
        normalized_src = os.path.abspath(src)
        normalized_dst = os.path.abspath(dst)
        self.log.debug(f"{self._label()}: {normalized_src} -> {normalized_dst}")
        try:
            self._apply(normalized_src, normalized_dst)
        except OSError as exc:
            self.log.error(f"Failed to {self.verb} {normalized_src} to {normalized_dst}: {exc}")
            raise FileOperationError(
                f"Failed to {self.verb} {normalized_src} to {normalized_dst}"
            ) from exc
        self._count(normalized_src)
        return normalized_dst

    def _apply(self, src: str, dst: str) -> None:
        raise NotImplementedError

    def _count(self, src: str) -> None:
        raise NotImplementedError


class CopyFileOperation(FileOperation):
    verb = "copy"

    def _apply(self, src: str, dst: str) -> None:
        self.fs.copy(src, dst)

    def _count(self, src: str) -> None:
        if is_sidecar_path(src):
            self.statistics.copied_xmps += 1
        else:
            self.statistics.copied_images += 1


class MoveFileOperation(FileOperation):
    verb = "move"

    def _apply(self, src: str, dst: str) -> None:
        self.fs.move(src, dst)

    def _count(self, src: str) -> None:
        if is_sidecar_path(src):
            self.statistics.moved_xmps += 1
        else:
            self.statistics.moved_images += 1


class QuarantineCopyOperation(CopyFileOperation):
    """Copy into the quarantine tree; counted separately from placed files."""

    def _count(self, src: str) -> None:
        self.statistics.quarantined_files += 1


class DeleteFileOperation(FileOperation):
    verb = "delete"

    def delete(self, path: str) -> None:
        normalized = os.path.abspath(path)
        self.log.debug(f"{self._label()}: {normalized}")
        try:
            self.fs.delete(normalized)
        except OSError as exc:
            self.log.error(f"Failed to delete {normalized}: {exc}")
            raise FileOperationError(f"Failed to delete {normalized}") from exc
        self.statistics.deleted_files += 1


def ensure_directory(ctx, path: str) -> None:
    """
    Create directory if it does not exist.

    Raises:
        FileOperationError: If the directory cannot be created.
    """
    normalized = os.path.abspath(path)
    if ctx.fs.is_dir(normalized):
        return
    ctx.log.debug(f"Creating directory '{normalized}'")
    try:
        ctx.fs.makedirs(normalized)
    except OSError as exc:
        ctx.log.error(f"Failed to create directory: {normalized} ({exc})")
        raise FileOperationError(f"Unable to create directory: {normalized}") from exc
