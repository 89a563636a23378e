"""
Module: error_collection
Purpose: Per-file error records gathered during a sorting pass.
"""

import os
from typing import Dict, Tuple

from .exceptions import ErrorCollectionFrozenError
from .models.errors import ErrorRecord


class ErrorCollection:
    """
    Ordered error records keyed by the canonical path of the failing file.

    Adding a second error for the same file appends its messages to the
    existing record. Records are never removed. Once frozen the collection
    only serves as a read-only view.
    """

    def __init__(self, log=None):
        self._log = log
        self._records: Dict[str, ErrorRecord] = {}
        self._frozen = False

    @staticmethod
    def canonical(path: str) -> str:
        return os.path.normcase(os.path.abspath(path))

    def add(self, error: ErrorRecord) -> ErrorRecord:
        if self._frozen:
            raise ErrorCollectionFrozenError(
                f"Cannot add {error.kind} for {error.file}: collection is frozen"
            )
        key = self.canonical(error.file)
        existing = self._records.get(key)
        if existing is None:
            self._records[key] = error
            if self._log is not None:
                self._log.warning(f"{error.kind} for '{error.file}': {error.error_message}")
            return error
        for message in error.messages:
            existing.add_message(message)
        if self._log is not None:
            self._log.debug(f"Appended {error.kind} messages to existing record for '{error.file}'")
        return existing

    def freeze(self) -> "ErrorCollection":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def errors(self) -> Tuple[ErrorRecord, ...]:
        return tuple(self._records.values())

    def of_kind(self, kind: str) -> Tuple[ErrorRecord, ...]:
        return tuple(record for record in self._records.values() if record.kind == kind)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self.errors)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self.canonical(path) in self._records

