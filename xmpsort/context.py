"""
Module: context
Purpose: Run context passed explicitly into every sorting component.
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .fileops import FileSystem, create_filesystem
from .models.statistics import Statistics
from .reporting import LOG_FILE_NAME, RunLog

DEFAULT_EXTENSIONS: Tuple[str, ...] = (
    ".jpg",
    ".jpeg",
    ".nef",
    ".gif",
    ".mp4",
    ".mov",
    ".png",
    ".cr3",
    ".heic",
)
DEFAULT_QUARANTINE_ROOT = "ErrorFiles"


@dataclass
class SortContext:
    """
    Everything a sorting run needs: paths, safety flags, the run log, the
    filesystem layer and the shared statistics.

    Attributes:
        source: Directory tree to sort.
        destination: Root of the dated YYYY/MM/DD tree.
        force: Apply changes to disk. When False every change is simulated.
        move: Move files instead of copying them.
        extensions: Candidate file name endings, matched case-insensitively.
        quarantine_root: Root of the ErrorFiles tree. Relative paths are
            resolved against the destination.
    """

    source: str
    destination: str
    force: bool = False
    move: bool = False
    extensions: Tuple[str, ...] = DEFAULT_EXTENSIONS
    quarantine_root: str = DEFAULT_QUARANTINE_ROOT
    verbose: bool = False
    log: Optional[RunLog] = None
    fs: Optional[FileSystem] = None
    statistics: Statistics = field(default_factory=Statistics)

    def __post_init__(self):
        self.source = os.path.abspath(self.source)
        self.destination = os.path.abspath(self.destination)
        self.extensions = tuple(ext.lower() for ext in self.extensions)
        if self.log is None:
            self.log = RunLog(LOG_FILE_NAME, verbose=self.verbose)
        if self.fs is None:
            self.fs = create_filesystem(self.force)
        self.statistics.is_changing = self.fs.is_changing

    @property
    def is_simulation(self) -> bool:
        return not self.fs.is_changing

    @property
    def quarantine_directory(self) -> str:
        return os.path.abspath(os.path.join(self.destination, self.quarantine_root))
