"""
Module: errors
Purpose: Error records collected while sorting files into the dated tree.
"""

from dataclasses import dataclass, field
from typing import List, Optional

FILE_ALREADY_EXISTS = "FileAlreadyExists"
NO_TIME_FOUND = "NoTimeFound"
METADATA_ERROR = "MetadataError"
IMAGE_PROCESSING_FAILURE = "ImageProcessingFailure"
UNCLASSIFIED = "Unclassified"

ERROR_KINDS = (
    FILE_ALREADY_EXISTS,
    NO_TIME_FOUND,
    METADATA_ERROR,
    IMAGE_PROCESSING_FAILURE,
)

_KIND_LABELS = {
    FILE_ALREADY_EXISTS: "Destination already occupied",
    NO_TIME_FOUND: "Missing capture time",
    METADATA_ERROR: "Metadata could not be parsed cleanly",
    IMAGE_PROCESSING_FAILURE: "Unreadable metadata container",
    UNCLASSIFIED: "Exception during processing",
}


def describe_error_kind(kind: str | None) -> str:
    """
    Return a human-readable description for an error kind.
    """
    if not kind:
        return "Unclassified error"
    return _KIND_LABELS.get(kind, kind)


@dataclass
class ErrorRecord:
    """Base class for all error records."""
    kind: str
    file: str
    messages: List[str]

    def add_message(self, message: str) -> None:
        self.messages.append(message)

    @property
    def error_message(self) -> str:
        return "\n".join(self.messages)


@dataclass
class FileAlreadyExistsRecord(ErrorRecord):
    """The incoming file could not be placed because the target is occupied."""
    other_file: str
    kind: str = field(default=FILE_ALREADY_EXISTS, init=False)

    @property
    def target_path(self) -> str:
        return self.other_file

    @property
    def incoming_path(self) -> str:
        return self.file


@dataclass
class NoTimeFoundRecord(ErrorRecord):
    """No capture time could be resolved from the file metadata."""
    kind: str = field(default=NO_TIME_FOUND, init=False)


@dataclass
class MetadataErrorRecord(ErrorRecord):
    """The metadata reader reported diagnostics for the file."""
    placed_at: Optional[str] = None
    kind: str = field(default=METADATA_ERROR, init=False)


@dataclass
class ImageProcessingFailureRecord(ErrorRecord):
    """The metadata container of the file could not be opened."""
    cause: Optional[str] = None
    kind: str = field(default=IMAGE_PROCESSING_FAILURE, init=False)


def file_already_exists(target_path: str, incoming_path: str) -> FileAlreadyExistsRecord:
    return FileAlreadyExistsRecord(
        file=incoming_path,
        other_file=target_path,
        messages=[f"Skipping existing {target_path}"],
    )


def no_time_found(path: str, diagnostics: List[str]) -> NoTimeFoundRecord:
    return NoTimeFoundRecord(file=path, messages=["No time found.", *diagnostics])


def metadata_error(path: str, diagnostics: List[str]) -> MetadataErrorRecord:
    return MetadataErrorRecord(file=path, messages=[f"*** ERROR *** {path}: {d}" for d in diagnostics])


def image_processing_failure(path: str, cause: BaseException | str) -> ImageProcessingFailureRecord:
    text = str(cause)
    return ImageProcessingFailureRecord(file=path, messages=[text], cause=text)
