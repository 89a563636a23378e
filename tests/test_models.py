import os

import pytest

from xmpsort.models.decomposition import decompose_at, split_name_and_extension
from xmpsort.models.errors import (
    IMAGE_PROCESSING_FAILURE,
    describe_error_kind,
    image_processing_failure,
)
from xmpsort.models.fileinfo import is_sidecar_path
from xmpsort.models.statistics import Statistics


@pytest.mark.parametrize(
    "filename, expected",
    [
        ("img1234.jpg.xmp", ("img1234", ".jpg.xmp")),
        ("1.jpg", ("1", ".jpg")),
        ("README", ("README", "")),
        (".hidden", (".hidden", "")),
    ],
)
def test_split_name_and_extension(filename, expected):
    assert split_name_and_extension(filename) == expected


def test_decompose_at_places_file_in_named_subfolder(tmp_path):
    quarantine = str(tmp_path / "ErrorFiles" / "FileAlreadyExists")
    decomposition = decompose_at(quarantine, "/photos/2023/01/18/img1234.jpg.xmp")

    assert decomposition.directory == os.path.join(quarantine, "img1234")
    assert decomposition.full_path == os.path.join(quarantine, "img1234", "img1234.jpg.xmp")
    assert decomposition.name == "img1234"
    assert decomposition.extension == ".jpg.xmp"


def test_sidecar_detection_is_case_insensitive():
    assert is_sidecar_path("a.XMP")
    assert is_sidecar_path("a.jpg.xmp")
    assert not is_sidecar_path("a.jpg")


def test_statistics_snapshot_is_a_frozen_copy():
    stats = Statistics()
    stats.found_images = 3
    stats.count_error("NoTimeFound")
    snapshot = stats.snapshot()

    stats.found_images = 10
    stats.count_error("NoTimeFound")

    assert snapshot.found_images == 3
    assert snapshot.errors == 1
    assert snapshot.errors_by_kind == {"NoTimeFound": 1}
    with pytest.raises(AttributeError):
        snapshot.found_images = 4


def test_image_processing_failure_keeps_cause():
    record = image_processing_failure("/x/broken.jpg", OSError("truncated"))
    assert record.kind == IMAGE_PROCESSING_FAILURE
    assert record.cause == "truncated"
    assert record.error_message == "truncated"
    assert describe_error_kind(record.kind) == "Unreadable metadata container"
    assert describe_error_kind(None) == "Unclassified error"
