"""
Utilities for naming and placing downloaded part files.
"""

from pathlib import Path, PurePosixPath
from typing import Optional

from pathvalidate import sanitize_filename


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


def part_filename(part_key: str, disposition_name: Optional[str] = None) -> str:
    """
    Picks a file name for a downloaded part.

    The server-provided Content-Disposition name wins. Otherwise the last
    segment of the part key is used when it carries an extension, e.g.
    '/library/parts/42/1700000000/file.mkv' -> 'file.mkv'. As a last resort
    the whole key path becomes the name, e.g. '/library/parts/1' ->
    'library_parts_1', so two parts never share a fallback name.
    """
    if disposition_name:
        name = sanitize_filename(disposition_name, platform="auto")
        if name:
            return name

    key_path = PurePosixPath(part_key.split("?", 1)[0])
    if key_path.suffix:
        name = sanitize_filename(key_path.name, platform="auto")
        if name:
            return name

    segments = [segment for segment in key_path.parts if segment != "/"]
    name = sanitize_filename("_".join(segments), platform="auto")
    return name or "part"
