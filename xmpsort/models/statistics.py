"""
Module: statistics
Purpose: Counters collected while sorting and resolving errors.
"""

from dataclasses import asdict, dataclass, field
from typing import Dict


@dataclass(frozen=True)
class StatisticsSnapshot:
    """
    Read-only view of the counters at the end of a run.
    """

    found_images: int
    found_xmps: int
    copied_images: int
    copied_xmps: int
    moved_images: int
    moved_xmps: int
    skipped_images: int
    skipped_xmps: int
    deleted_files: int
    quarantined_files: int
    directories_found: int
    directories_deleted: int
    errors: int
    errors_by_kind: Dict[str, int]
    is_changing: bool

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class Statistics:
    """
    Mutable counters shared by the driver, the resolver and the comparator.
    """

    is_changing: bool = False
    found_images: int = 0
    found_xmps: int = 0
    copied_images: int = 0
    copied_xmps: int = 0
    moved_images: int = 0
    moved_xmps: int = 0
    skipped_images: int = 0
    skipped_xmps: int = 0
    deleted_files: int = 0
    quarantined_files: int = 0
    directories_found: int = 0
    directories_deleted: int = 0
    errors: int = 0
    errors_by_kind: Dict[str, int] = field(default_factory=dict)

    def count_error(self, kind: str) -> None:
        self.errors += 1
        self.errors_by_kind[kind] = self.errors_by_kind.get(kind, 0) + 1

    def snapshot(self) -> StatisticsSnapshot:
        values = asdict(self)
        values["errors_by_kind"] = dict(self.errors_by_kind)
        return StatisticsSnapshot(**values)
