import os

import pytest

from xmpsort import fileops
from xmpsort.exceptions import FileOperationError


def test_create_filesystem_respects_force():
    assert isinstance(fileops.create_filesystem(True), fileops.FileSystem)
    assert not isinstance(fileops.create_filesystem(True), fileops.DryRunFileSystem)
    assert isinstance(fileops.create_filesystem(False), fileops.DryRunFileSystem)


def test_dry_run_copy_is_visible_but_not_written(tmp_path):
    src = tmp_path / "a.jpg"
    src.write_bytes(b"data")
    target_dir = tmp_path / "dest" / "2023"
    fs = fileops.DryRunFileSystem()

    fs.makedirs(str(target_dir))
    fs.copy(str(src), str(target_dir / "a.jpg"))

    assert fs.is_dir(str(tmp_path / "dest"))
    assert fs.is_file(str(target_dir / "a.jpg"))
    assert fs.listdir(str(target_dir)) == ["a.jpg"]
    assert fs.real_path(str(target_dir / "a.jpg")) == str(src)
    assert not (tmp_path / "dest").exists()


def test_dry_run_move_hides_source(tmp_path):
    folder = tmp_path / "src"
    folder.mkdir()
    (folder / "a.jpg").write_bytes(b"data")
    (tmp_path / "dest").mkdir()
    fs = fileops.DryRunFileSystem()

    fs.move(str(folder / "a.jpg"), str(tmp_path / "dest" / "a.jpg"))

    assert not fs.exists(str(folder / "a.jpg"))
    assert fs.listdir(str(folder)) == []
    assert (folder / "a.jpg").exists()
    fs.rmdir(str(folder))
    assert not fs.exists(str(folder))
    assert folder.exists()


def test_dry_run_copy_requires_existing_parent(tmp_path):
    src = tmp_path / "a.jpg"
    src.write_bytes(b"data")
    fs = fileops.DryRunFileSystem()

    with pytest.raises(FileNotFoundError):
        fs.copy(str(src), str(tmp_path / "missing" / "a.jpg"))


def test_dry_run_rmdir_refuses_non_empty(tmp_path):
    folder = tmp_path / "full"
    folder.mkdir()
    (folder / "keep.jpg").write_bytes(b"x")
    fs = fileops.DryRunFileSystem()

    with pytest.raises(OSError):
        fs.rmdir(str(folder))


def test_dry_run_rename_directory_moves_planned_children_out_of_view(tmp_path):
    quarantine = tmp_path / "ErrorFiles" / "NoTimeFound"
    quarantine.mkdir(parents=True)
    (quarantine / "old.jpg").write_bytes(b"x")
    fs = fileops.DryRunFileSystem()

    fs.rename(str(quarantine), str(quarantine) + "_20230118T101732")

    assert not fs.exists(str(quarantine))
    assert fs.is_dir(str(quarantine) + "_20230118T101732")
    with pytest.raises(FileExistsError):
        fs.rename(str(tmp_path / "ErrorFiles"), str(quarantine) + "_20230118T101732")


def test_real_rename_refuses_existing_target(tmp_path):
    (tmp_path / "a").mkdir()
    (tmp_path / "b").mkdir()
    with pytest.raises(FileExistsError):
        fileops.FileSystem().rename(str(tmp_path / "a"), str(tmp_path / "b"))


def test_copy_operation_counts_images_and_sidecars(tmp_path, make_ctx):
    ctx = make_ctx(force=True)
    (tmp_path / "in").mkdir()
    (tmp_path / "out").mkdir()
    image = tmp_path / "in" / "a.jpg"
    sidecar = tmp_path / "in" / "a.jpg.xmp"
    image.write_bytes(b"img")
    sidecar.write_text("<x/>")

    operation = fileops.CopyFileOperation(ctx)
    placed = operation.change_file(str(image), str(tmp_path / "out" / "a.jpg"))
    operation.change_file(str(sidecar), str(tmp_path / "out" / "a.jpg.xmp"))

    assert placed == str(tmp_path / "out" / "a.jpg")
    assert (tmp_path / "out" / "a.jpg").read_bytes() == b"img"
    assert image.exists()
    assert ctx.statistics.copied_images == 1
    assert ctx.statistics.copied_xmps == 1


def test_move_operation_counts_and_removes_source(tmp_path, make_ctx):
    ctx = make_ctx(force=True, move=True)
    (tmp_path / "in").mkdir()
    (tmp_path / "out").mkdir()
    image = tmp_path / "in" / "a.jpg"
    image.write_bytes(b"img")

    fileops.MoveFileOperation(ctx).change_file(str(image), str(tmp_path / "out" / "a.jpg"))

    assert not image.exists()
    assert ctx.statistics.moved_images == 1


def test_failed_operation_raises_file_operation_error(tmp_path, make_ctx, log_path):
    ctx = make_ctx(force=True)
    with pytest.raises(FileOperationError):
        fileops.CopyFileOperation(ctx).change_file(
            str(tmp_path / "missing.jpg"), str(tmp_path / "out.jpg")
        )
    assert ctx.statistics.copied_images == 0
    assert "[ERROR] Failed to copy" in log_path.read_text()


def test_simulated_operations_are_labelled_in_log(tmp_path, make_ctx, log_path):
    ctx = make_ctx(force=False)
    image = tmp_path / "a.jpg"
    image.write_bytes(b"img")

    fileops.DeleteFileOperation(ctx).delete(str(image))

    assert image.exists()
    assert not ctx.fs.exists(str(image))
    assert ctx.statistics.deleted_files == 1
    assert "SIMULATION - delete" in log_path.read_text()


def test_ensure_directory_creates_nested_folders(tmp_path, make_ctx):
    ctx = make_ctx(force=True)
    target = tmp_path / "dest" / "2023" / "01" / "18"
    fileops.ensure_directory(ctx, str(target))
    assert target.is_dir()


def test_ensure_directory_over_file_raises(tmp_path, make_ctx):
    ctx = make_ctx(force=True)
    blocker = tmp_path / "dest"
    blocker.write_text("file")
    with pytest.raises(FileOperationError):
        fileops.ensure_directory(ctx, os.path.join(str(blocker), "2023"))
