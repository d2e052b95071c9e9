from __future__ import annotations

import os
from pathlib import Path

from vidscribe.core.errors import FolderScanError
from vidscribe.infra.config import VIDEO_EXTENSIONS


def is_video_file(name: str, extensions: tuple[str, ...] = VIDEO_EXTENSIONS) -> bool:
    return os.path.splitext(name)[1].lower() in extensions


def list_video_files(
    folder: Path,
    extensions: tuple[str, ...] = VIDEO_EXTENSIONS,
) -> list[str]:
    """Return names of video files directly inside ``folder``, sorted by name.

    Subdirectories are not descended into and entries that are not regular
    files are skipped even when their name carries a video extension.
    """
    try:
        with os.scandir(folder) as entries:
            names = [
                entry.name
                for entry in entries
                if entry.is_file() and is_video_file(entry.name, extensions)
            ]
    except OSError as exc:
        raise FolderScanError(f"Cannot list folder {folder}: {exc}") from exc
    return sorted(names)
