"""
Archive Utilities
=================
Zip helpers for artifact extraction and run log parsing.

Both functions take a seekable file object (the spooled download), so the
archive itself never has to be read into memory.
"""
import logging
import os
import zipfile
from typing import BinaryIO, List

logger = logging.getLogger(__name__)


def extract_zip(source: BinaryIO, destination: str) -> List[str]:
    """
    Extract every member of the zip in `source` under `destination`.

    Members whose resolved path would land outside `destination` are rejected
    before anything is written. Returns the extracted member names.
    """
    root = os.path.abspath(destination)
    os.makedirs(root, exist_ok=True)

    with zipfile.ZipFile(source) as archive:
        names = archive.namelist()
        for name in names:
            target = os.path.abspath(os.path.join(root, name))
            if target != root and not target.startswith(root + os.sep):
                raise ValueError(f'Archive member "{name}" escapes {root}')
        archive.extractall(root)

    logger.debug("Extracted %d entries into %s", len(names), root)
    return names


def read_log_entries(source: BinaryIO, prefix: str, suffix: str) -> str:
    """
    Concatenate the text of archive entries named `prefix*suffix`.

    Entries are visited in archive order; non-matching ones are never opened.
    """
    parts: List[str] = []
    with zipfile.ZipFile(source) as archive:
        for info in archive.infolist():
            if info.is_dir():
                continue
            if not (info.filename.startswith(prefix) and info.filename.endswith(suffix)):
                continue
            with archive.open(info) as entry:
                parts.append(entry.read().decode("utf-8", errors="replace"))
    return "".join(parts)
