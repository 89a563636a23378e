"""
Module: fileinfo
Purpose: Dataclass representing a media file found in the source tree.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class FileInfo:
    """
    Dataclass representing a single image or video and its XMP sidecars.
    """

    path: str
    size: int
    format: str
    sidecars: List[str] = field(default_factory=list)
    capture_time: Optional[datetime] = None

    def __hash__(self):
        return hash(self.path)

    def __eq__(self, other):
        if not isinstance(other, FileInfo):
            return NotImplemented
        return self.path == other.path


SIDECAR_EXTENSION = "xmp"


def is_sidecar_path(path: str) -> bool:
    """
    Return True for XMP sidecar files, including compound names like "a.jpg.xmp".
    """
    return path.lower().endswith(SIDECAR_EXTENSION)
