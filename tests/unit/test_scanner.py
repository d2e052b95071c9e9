from __future__ import annotations

from pathlib import Path

import pytest

from vidscribe.core.errors import FolderScanError
from vidscribe.core.scanner import is_video_file, list_video_files


def test_list_video_files_filters_case_insensitively(tmp_path: Path) -> None:
    for name in ("c.mkv", "a.mp4", "b.txt", "D.MPEG", "e.Webm", "noext"):
        (tmp_path / name).write_bytes(b"x")
    (tmp_path / "folder.mp4").mkdir()
    nested = tmp_path / "nested"
    nested.mkdir()
    (nested / "deep.mp4").write_bytes(b"x")

    assert list_video_files(tmp_path) == ["D.MPEG", "a.mp4", "c.mkv", "e.Webm"]


def test_list_video_files_respects_custom_extensions(tmp_path: Path) -> None:
    (tmp_path / "a.mp4").write_bytes(b"x")
    (tmp_path / "b.ts").write_bytes(b"x")

    assert list_video_files(tmp_path, (".ts",)) == ["b.ts"]


def test_list_video_files_raises_for_missing_folder(tmp_path: Path) -> None:
    with pytest.raises(FolderScanError, match="Cannot list folder"):
        list_video_files(tmp_path / "absent")


def test_is_video_file_uses_last_suffix() -> None:
    assert is_video_file("movie.final.M4V")
    assert not is_video_file("movie.mp4.part")
