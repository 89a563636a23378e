"""
Module: metadata
Purpose: Metadata reading and capture-time resolution for images and videos.
"""

import os
import struct
import warnings
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from hachoir.core import config as hachoir_config
from hachoir.metadata import extractMetadata
from hachoir.parser import createParser
from PIL import ExifTags, Image, IptcImagePlugin

from .exceptions import MetadataError, OversizedImageError
from .utils import enforce_pixel_limit, ensure_heif_registered

hachoir_config.quiet = True

VIDEO_FORMATS = {"mp4", "mov", "m4v", "avi", "3gp", "mts"}
# Canon raw files: ISO base media containers carrying TIFF-encoded EXIF blocks.
CANON_RAW_FORMATS = {"cr3"}

TAG_DATETIME = "EXIF:DateTime"
TAG_DATETIME_DIGITIZED = "EXIF:DateTimeDigitized"
TAG_DATETIME_ORIGINAL = "EXIF:DateTimeOriginal"
TAG_IPTC_DATE_CREATED = "IPTC:DateCreated"
TAG_IPTC_TIME_CREATED = "IPTC:TimeCreated"
TAG_IPTC_DIGITAL_DATE = "IPTC:DigitalCreationDate"
TAG_IPTC_DIGITAL_TIME = "IPTC:DigitalCreationTime"
TAG_VIDEO_CREATION_DATE = "QuickTime:CreationDate"

_IPTC_TAGS = {
    (2, 55): TAG_IPTC_DATE_CREATED,
    (2, 60): TAG_IPTC_TIME_CREATED,
    (2, 62): TAG_IPTC_DIGITAL_DATE,
    (2, 63): TAG_IPTC_DIGITAL_TIME,
}
# QuickTime stores zero timestamps as its epoch.
_QUICKTIME_EPOCH_YEAR = 1904
_CANON_UUID = bytes.fromhex("85c0b687820f11e08111f4ce462b6a48")
# IFD0 and the EXIF sub-IFD, each stored as a standalone TIFF stream.
_CANON_EXIF_BOXES = (b"CMT1", b"CMT2")


@dataclass
class MetadataReadout:
    """
    Tags read from one file plus the diagnostics raised while parsing it.
    """

    path: str
    media_kind: str
    tags: Dict[str, str] = field(default_factory=dict)
    diagnostics: List[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.diagnostics)


def _text(value) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace").strip("\x00 ").strip()
    if isinstance(value, (list, tuple)):
        return ", ".join(_text(item) for item in value)
    return str(value).strip("\x00 ").strip()


def _merge_exif(exif, readout: MetadataReadout) -> None:
    for tag_id, value in exif.items():
        name = ExifTags.TAGS.get(tag_id, str(tag_id))
        readout.tags[f"EXIF:{name}"] = _text(value)


def _read_image(path: str, readout: MetadataReadout) -> None:
    ensure_heif_registered()
    enforce_pixel_limit()
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        with Image.open(path) as image:
            exif = image.getexif()
            _merge_exif(exif, readout)
            try:
                sub_ifd = exif.get_ifd(ExifTags.IFD.Exif)
            except Exception as exc:
                readout.diagnostics.append(f"Unreadable EXIF sub-IFD: {exc}")
                sub_ifd = {}
            _merge_exif(sub_ifd, readout)
            try:
                iptc = IptcImagePlugin.getiptcinfo(image) or {}
            except Exception as exc:
                readout.diagnostics.append(f"Unreadable IPTC block: {exc}")
                iptc = {}
            for key, tag in _IPTC_TAGS.items():
                if key in iptc:
                    readout.tags[tag] = _text(iptc[key])
    for warning in caught:
        if issubclass(warning.category, Image.DecompressionBombWarning):
            continue
        readout.diagnostics.append(str(warning.message))


def _iter_boxes(handle, start: int, end: int):
    """
    Yield (type, payload start, box end) for the ISO base media boxes
    between `start` and `end`.
    """
    offset = start
    while offset + 8 <= end:
        handle.seek(offset)
        size, kind = struct.unpack(">I4s", handle.read(8))
        header = 8
        if size == 1:
            size = struct.unpack(">Q", handle.read(8))[0]
            header = 16
        elif size == 0:
            size = end - offset
        if size < header or offset + size > end:
            raise MetadataError(f"Malformed {kind!r} box at offset {offset}")
        yield kind, offset + header, offset + size
        offset += size


def _canon_exif_blocks(path: str) -> List[bytes]:
    blocks: List[bytes] = []
    with open(path, "rb") as handle:
        end = handle.seek(0, os.SEEK_END)
        boxes = list(_iter_boxes(handle, 0, end))
        if not boxes or boxes[0][0] != b"ftyp":
            raise MetadataError(f"Not an ISO base media file: {path}")
        for kind, body, stop in boxes:
            if kind != b"moov":
                continue
            for child, child_body, child_stop in _iter_boxes(handle, body, stop):
                handle.seek(child_body)
                if child != b"uuid" or handle.read(16) != _CANON_UUID:
                    continue
                for entry, entry_body, entry_stop in _iter_boxes(handle, child_body + 16, child_stop):
                    if entry in _CANON_EXIF_BOXES:
                        handle.seek(entry_body)
                        blocks.append(handle.read(entry_stop - entry_body))
    return blocks


def _read_canon_raw(path: str, readout: MetadataReadout) -> None:
    for block in _canon_exif_blocks(path):
        exif = Image.Exif()
        try:
            exif.load(block)
        except Exception as exc:
            readout.diagnostics.append(f"Unreadable Canon metadata block: {exc}")
            continue
        _merge_exif(exif, readout)


def _read_video(path: str, readout: MetadataReadout) -> None:
    parser = createParser(path)
    if not parser:
        raise MetadataError(f"Unable to parse video container: {path}")
    with parser:
        try:
            metadata = extractMetadata(parser)
        except Exception as exc:
            readout.diagnostics.append(f"Metadata extraction error: {exc}")
            metadata = None
    if not metadata:
        return
    for item in metadata:
        if item.values:
            readout.tags[f"QuickTime:{item.key}"] = _text(item.values[0].value)
    created = metadata.getValues("creation_date")
    if created:
        readout.tags[TAG_VIDEO_CREATION_DATE] = created[0].isoformat(sep=" ")


def read_metadata(path: str) -> MetadataReadout:
    """
    Read metadata tags and parse diagnostics from an image, a Canon raw file
    or a video.

    Args:
        path: File to inspect.

    Returns:
        MetadataReadout with the tags found and any parse diagnostics.

    Raises:
        OversizedImageError: When the image exceeds the decoder pixel cap.
        MetadataError: When the metadata container cannot be opened at all.
    """
    normalized = os.path.abspath(path)
    ext = os.path.splitext(normalized)[1].lstrip(".").lower()
    if ext in VIDEO_FORMATS:
        media_kind = "video"
    elif ext in CANON_RAW_FORMATS:
        media_kind = "raw"
    else:
        media_kind = "image"
    readout = MetadataReadout(path=normalized, media_kind=media_kind)
    try:
        if media_kind == "video":
            _read_video(normalized, readout)
        elif media_kind == "raw":
            _read_canon_raw(normalized, readout)
        else:
            _read_image(normalized, readout)
    except MetadataError:
        raise
    except Image.DecompressionBombError as exc:
        raise OversizedImageError(f"Decompression bomb detected for {path}") from exc
    except Exception as exc:
        raise MetadataError(f"Unreadable metadata container {path}: {exc}") from exc
    return readout


def _parse_exif_datetime(value: str | None) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.strptime(value[:19], "%Y:%m:%d %H:%M:%S")
    except ValueError:
        return None


def _parse_iptc(date_value: str | None, time_value: str | None) -> Optional[datetime]:
    if not date_value:
        return None
    try:
        day = datetime.strptime(date_value[:8], "%Y%m%d")
    except ValueError:
        return None
    digits = "".join(ch for ch in (time_value or "")[:6] if ch.isdigit())
    if len(digits) == 6:
        try:
            clock = datetime.strptime(digits, "%H%M%S")
            return day.replace(hour=clock.hour, minute=clock.minute, second=clock.second)
        except ValueError:
            pass
    return day


def _parse_video_datetime(value: str | None) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.year <= _QUICKTIME_EPOCH_YEAR:
        return None
    return parsed.replace(tzinfo=None)


def resolve_capture_time(readout: MetadataReadout) -> Optional[datetime]:
    """
    Pick the capture time from the available tags.

    Precedence: EXIF DateTime, EXIF DateTimeDigitized, EXIF DateTimeOriginal,
    IPTC DateCreated, IPTC DigitalCreationDate, video creation date.
    Returns None when no usable timestamp exists.
    """
    tags = readout.tags
    for tag in (TAG_DATETIME, TAG_DATETIME_DIGITIZED, TAG_DATETIME_ORIGINAL):
        parsed = _parse_exif_datetime(tags.get(tag))
        if parsed:
            return parsed
    parsed = _parse_iptc(tags.get(TAG_IPTC_DATE_CREATED), tags.get(TAG_IPTC_TIME_CREATED))
    if parsed:
        return parsed
    parsed = _parse_iptc(tags.get(TAG_IPTC_DIGITAL_DATE), tags.get(TAG_IPTC_DIGITAL_TIME))
    if parsed:
        return parsed
    return _parse_video_datetime(tags.get(TAG_VIDEO_CREATION_DATE))


def describe_metadata(readout: MetadataReadout) -> List[str]:
    """
    Render every tag as "<tag> = <value>" for error diagnostics.
    """
    return [f"{tag} = {value}" for tag, value in sorted(readout.tags.items())]
