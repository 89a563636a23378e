"""
Module: exceptions
Purpose: Custom exception hierarchy for xmpsort.
"""


class XmpSortError(Exception):
    """Base exception for xmpsort."""

    pass


class ConfigurationError(XmpSortError):
    pass


class ScanError(XmpSortError):
    pass


class MetadataError(XmpSortError):
    pass


class OversizedImageError(MetadataError):
    pass


class HashingError(XmpSortError):
    pass


class ComparisonError(XmpSortError):
    pass


class FileOperationError(XmpSortError):
    pass


class ErrorCollectionFrozenError(XmpSortError):
    """Raised when an error is added after the collection was handed to the resolver."""

    pass
