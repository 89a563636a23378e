"""Pytest configuration and fixtures."""

import struct

import pytest
from PIL import Image

from xmpsort.context import SortContext
from xmpsort.reporting import RunLog


def _save_jpeg(path, color="red", size=(16, 16), taken="2023:01:18 10:17:32"):
    path.parent.mkdir(parents=True, exist_ok=True)
    image = Image.new("RGB", size, color=color)
    if taken:
        exif = Image.Exif()
        exif[306] = taken
        image.save(path, format="JPEG", exif=exif)
    else:
        image.save(path, format="JPEG")
    return path


CANON_UUID = bytes.fromhex("85c0b687820f11e08111f4ce462b6a48")


def _box(kind, payload):
    return struct.pack(">I4s", 8 + len(payload), kind) + payload


def _save_cr3(path, taken="2021:06:01 12:00:00", original=None, payload=b"\x00" * 16):
    path.parent.mkdir(parents=True, exist_ok=True)
    ifd0 = Image.Exif()
    if taken:
        ifd0[306] = taken
    entries = _box(b"CMT1", ifd0.tobytes())
    if original:
        exif_ifd = Image.Exif()
        exif_ifd[36867] = original
        entries += _box(b"CMT2", exif_ifd.tobytes())
    moov = _box(b"moov", _box(b"uuid", CANON_UUID + entries))
    path.write_bytes(_box(b"ftyp", b"crx \x00\x00\x00\x01crx isom") + moov + _box(b"mdat", payload))
    return path


@pytest.fixture
def save_jpeg():
    """Write a small JPEG, optionally carrying an EXIF DateTime."""
    return _save_jpeg


@pytest.fixture
def save_cr3():
    """Write a minimal Canon CR3 container with EXIF blocks in its Canon uuid box."""
    return _save_cr3


@pytest.fixture
def log_path(tmp_path):
    return tmp_path / "artifacts" / "xmpsort.log"


@pytest.fixture
def make_ctx(tmp_path, log_path):
    """Build a SortContext rooted in tmp_path with a verbose run log."""

    def factory(**kwargs):
        kwargs.setdefault("source", str(tmp_path / "source"))
        kwargs.setdefault("destination", str(tmp_path / "dest"))
        kwargs.setdefault("log", RunLog(str(log_path), verbose=True))
        return SortContext(**kwargs)

    return factory
