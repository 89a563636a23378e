"""
Module: decomposition
Purpose: Split a file name into the parts used to lay out quarantine folders.
"""

import os
from typing import NamedTuple


class FileDecomposition(NamedTuple):
    full_path: str
    directory: str
    name: str
    extension: str


def split_name_and_extension(filename: str) -> tuple[str, str]:
    """
    Split at the first dot so compound extensions stay together.

    "img1234.jpg.xmp" -> ("img1234", ".jpg.xmp"). Names without a dot, or
    with a leading dot only, keep the whole name and get no extension.
    """
    dot = filename.find(".")
    if dot <= 0:
        return filename, ""
    return filename[:dot], filename[dot:]


def decompose_at(directory: str, path: str) -> FileDecomposition:
    """
    Place the file name of `path` into its own subfolder of `directory`.

    Returns the FileDecomposition for "<directory>/<name>/<name><ext>".
    """
    filename = os.path.basename(path)
    name, extension = split_name_and_extension(filename)
    subdirectory = os.path.join(os.path.abspath(directory), name)
    return FileDecomposition(
        full_path=os.path.join(subdirectory, filename),
        directory=subdirectory,
        name=name,
        extension=extension,
    )
