"""Hashing helpers for duplicate detection."""

import hashlib
import os

from .exceptions import HashingError


def compute_sha256(path: str) -> str:
    """
    Compute SHA256 for exact duplicate detection.

    Args:
        path: Path to the file.

    Returns:
        Hexadecimal SHA256 digest.

    Raises:
        HashingError: If hashing fails.
    """
    try:
        normalized = os.path.abspath(path)
        sha = hashlib.sha256()
        with open(normalized, "rb") as handle:
            for chunk in iter(lambda: handle.read(65536), b""):
                sha.update(chunk)
        return sha.hexdigest()
    except OSError as exc:
        raise HashingError(f"Failed to compute SHA256 for {path}: {exc}") from exc


def same_content(path_a: str, path_b: str) -> bool:
    """
    Return True when both files hash to the same SHA256 digest.

    Raises:
        HashingError: If either file cannot be hashed.
    """
    try:
        if os.path.getsize(path_a) != os.path.getsize(path_b):
            return False
    except OSError as exc:
        raise HashingError(f"Failed to read size of {path_a} or {path_b}: {exc}") from exc
    return compute_sha256(path_a) == compute_sha256(path_b)
