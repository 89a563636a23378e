import os

from PIL import Image

from xmpsort import resolver
from xmpsort.error_collection import ErrorCollection
from xmpsort.models.decomposition import decompose_at
from xmpsort.models.errors import (
    FILE_ALREADY_EXISTS,
    METADATA_ERROR,
    NO_TIME_FOUND,
    UNCLASSIFIED,
    file_already_exists,
    image_processing_failure,
    metadata_error,
    no_time_found,
)


def collect(*records):
    errors = ErrorCollection()
    for record in records:
        errors.add(record)
    return errors.freeze()


def test_collision_copies_target_then_incoming(tmp_path, save_jpeg, make_ctx):
    ctx = make_ctx(force=True)
    target = save_jpeg(tmp_path / "dest" / "2023" / "01" / "18" / "1.jpg", color="red")
    incoming = save_jpeg(tmp_path / "source" / "B" / "1.jpg", color="blue")

    summary = resolver.resolve_errors(collect(file_already_exists(str(target), str(incoming))), ctx)

    folder = tmp_path / "dest" / "ErrorFiles" / FILE_ALREADY_EXISTS / "1"
    assert sorted(os.listdir(folder)) == ["1.jpg", "1_1.jpg"]
    assert (folder / "1.jpg").read_bytes() == target.read_bytes()
    assert (folder / "1_1.jpg").read_bytes() == incoming.read_bytes()
    assert incoming.exists()
    assert summary.quarantine_directories == {
        FILE_ALREADY_EXISTS: str(tmp_path / "dest" / "ErrorFiles" / FILE_ALREADY_EXISTS)
    }
    assert ctx.statistics.quarantined_files == 2


def test_repeated_collisions_copy_target_once(tmp_path, save_jpeg, make_ctx):
    ctx = make_ctx(force=True)
    target = save_jpeg(tmp_path / "dest" / "2023" / "01" / "18" / "1.jpg", color="red")
    b = save_jpeg(tmp_path / "source" / "B" / "1.jpg", color="blue")
    c = save_jpeg(tmp_path / "source" / "C" / "1.jpg", color="green")

    resolver.resolve_errors(
        collect(
            file_already_exists(str(target), str(b)),
            file_already_exists(str(target), str(c)),
        ),
        ctx,
    )

    folder = tmp_path / "dest" / "ErrorFiles" / FILE_ALREADY_EXISTS / "1"
    assert sorted(os.listdir(folder)) == ["1.jpg", "1_1.jpg", "1_2.jpg"]
    assert (folder / "1_2.jpg").read_bytes() == c.read_bytes()


def test_duplicate_deletes_only_incoming(tmp_path, save_jpeg, make_ctx):
    ctx = make_ctx(force=True)
    target = save_jpeg(tmp_path / "dest" / "2023" / "01" / "18" / "1.jpg")
    incoming = tmp_path / "source" / "B" / "1.jpg"
    incoming.parent.mkdir(parents=True)
    incoming.write_bytes(target.read_bytes())

    summary = resolver.resolve_errors(collect(file_already_exists(str(target), str(incoming))), ctx)

    assert not incoming.exists()
    assert target.exists()
    assert not (tmp_path / "dest" / "ErrorFiles" / FILE_ALREADY_EXISTS / "1").exists()
    assert summary.duplicates_deleted == [str(incoming)]
    assert ctx.statistics.deleted_files == 1
    assert ctx.statistics.skipped_images == 1


def test_no_time_found_is_copied_into_named_folder(tmp_path, save_jpeg, make_ctx):
    ctx = make_ctx(force=True)
    image = save_jpeg(tmp_path / "source" / "img1234.jpg", taken=None)

    resolver.resolve_errors(collect(no_time_found(str(image), [])), ctx)

    quarantined = tmp_path / "dest" / "ErrorFiles" / NO_TIME_FOUND / "img1234" / "img1234.jpg"
    assert quarantined.read_bytes() == image.read_bytes()
    assert image.exists()


def test_metadata_error_falls_back_to_placed_copy(tmp_path, save_jpeg, make_ctx):
    ctx = make_ctx(force=True)
    placed = save_jpeg(tmp_path / "dest" / "2023" / "01" / "18" / "a.jpg")
    record = metadata_error(str(tmp_path / "source" / "a.jpg"), ["Possibly corrupted field"])
    record.placed_at = str(placed)

    resolver.resolve_errors(collect(record), ctx)

    assert (tmp_path / "dest" / "ErrorFiles" / METADATA_ERROR / "a" / "a.jpg").exists()


def test_existing_quarantine_folder_is_renamed_aside(tmp_path, save_jpeg, make_ctx):
    ctx = make_ctx(force=True)
    previous = tmp_path / "dest" / "ErrorFiles" / NO_TIME_FOUND
    (previous / "old").mkdir(parents=True)
    (previous / "old" / "old.jpg").write_bytes(b"from an earlier run")
    image = save_jpeg(tmp_path / "source" / "new.jpg", taken=None)

    summary = resolver.resolve_errors(collect(no_time_found(str(image), [])), ctx)

    renamed = summary.renamed_directories[NO_TIME_FOUND]
    assert os.path.basename(renamed).startswith(f"{NO_TIME_FOUND}_")
    assert os.path.exists(os.path.join(renamed, "old", "old.jpg"))
    assert os.listdir(previous) == ["new"]


def test_kinds_without_records_get_no_folder(tmp_path, save_jpeg, make_ctx):
    ctx = make_ctx(force=True)
    image = save_jpeg(tmp_path / "source" / "a.jpg", taken=None)

    summary = resolver.resolve_errors(collect(no_time_found(str(image), [])), ctx)

    assert list(summary.quarantine_directories) == [NO_TIME_FOUND]
    assert not (tmp_path / "dest" / "ErrorFiles" / FILE_ALREADY_EXISTS).exists()


def test_image_processing_failures_stay_in_place(tmp_path, make_ctx):
    ctx = make_ctx(force=True)
    broken = tmp_path / "source" / "broken.jpg"
    broken.parent.mkdir(parents=True)
    broken.write_bytes(b"xx")

    summary = resolver.resolve_errors(collect(image_processing_failure(str(broken), "bad container")), ctx)

    assert summary.left_in_place == [str(broken)]
    assert summary.quarantine_directories == {}
    assert broken.exists()


def test_failure_on_one_record_does_not_stop_others(tmp_path, save_jpeg, make_ctx):
    ctx = make_ctx(force=True)
    good = save_jpeg(tmp_path / "source" / "good.jpg", taken=None)
    missing = tmp_path / "source" / "vanished.jpg"

    summary = resolver.resolve_errors(
        collect(no_time_found(str(missing), []), no_time_found(str(good), [])), ctx
    )

    assert summary.failures == 1
    assert ctx.statistics.errors_by_kind[UNCLASSIFIED] == 1
    assert (tmp_path / "dest" / "ErrorFiles" / NO_TIME_FOUND / "good" / "good.jpg").exists()


def test_next_free_name_never_reuses_taken_names(tmp_path, make_ctx):
    ctx = make_ctx(force=True)
    folder = tmp_path / "q" / "1"
    folder.mkdir(parents=True)
    (folder / "1_1.jpg").write_bytes(b"x")
    decomposition = decompose_at(str(tmp_path / "q"), "/any/1.jpg")

    first = resolver.next_free_name(ctx, decomposition)
    assert first == str(folder / "1_2.jpg")
    (folder / "1.jpg").write_bytes(b"x")
    (folder / "1_2.jpg").write_bytes(b"x")
    assert resolver.next_free_name(ctx, decomposition) == str(folder / "1_3.jpg")


def test_resolving_the_same_collection_twice_keeps_first_quarantine(tmp_path, save_jpeg, make_ctx):
    target = save_jpeg(tmp_path / "dest" / "2023" / "01" / "18" / "1.jpg", color="red")
    incoming = save_jpeg(tmp_path / "source" / "B" / "1.jpg", color="blue")
    errors = collect(file_already_exists(str(target), str(incoming)))

    resolver.resolve_errors(errors, make_ctx(force=True))
    second = resolver.resolve_errors(errors, make_ctx(force=True))

    quarantine_root = tmp_path / "dest" / "ErrorFiles"
    renamed = second.renamed_directories[FILE_ALREADY_EXISTS]
    assert sorted(os.listdir(quarantine_root)) == sorted([FILE_ALREADY_EXISTS, os.path.basename(renamed)])
    for folder in (quarantine_root / FILE_ALREADY_EXISTS, quarantine_root / os.path.basename(renamed)):
        assert sorted(os.listdir(folder / "1")) == ["1.jpg", "1_1.jpg"]
    assert incoming.exists()


def test_edited_copy_of_large_image_is_quarantined_not_deleted(tmp_path, make_ctx):
    ctx = make_ctx(force=True)
    target = tmp_path / "dest" / "2023" / "01" / "18" / "1.png"
    incoming = tmp_path / "source" / "B" / "1.png"
    target.parent.mkdir(parents=True)
    incoming.parent.mkdir(parents=True)
    image = Image.new("RGB", (2000, 1500), color="black")
    image.save(target)
    image.putpixel((1000, 750), (255, 255, 255))
    image.save(incoming)

    summary = resolver.resolve_errors(collect(file_already_exists(str(target), str(incoming))), ctx)

    assert incoming.exists()
    assert summary.duplicates_deleted == []
    folder = tmp_path / "dest" / "ErrorFiles" / FILE_ALREADY_EXISTS / "1"
    assert sorted(os.listdir(folder)) == ["1.png", "1_1.png"]
