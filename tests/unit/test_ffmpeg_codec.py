from __future__ import annotations

import threading
import time
from pathlib import Path

import pytest

from vidscribe.core.errors import ExtractionError
from vidscribe.core.events import HistorySink
from vidscribe.core.pipeline import JobRunner
from vidscribe.infra.config import build_app_config
from vidscribe.infra.ffmpeg import FfmpegCodec, build_extract_command


class _UnusedRecognizer:
    def recognize(self, audio_path: Path, model_id: str) -> str:
        raise AssertionError("recognition must not run after a terminated extraction")


def test_extract_command_targets_mono_16k_pcm() -> None:
    command = build_extract_command(Path("/usr/bin/ffmpeg"), Path("in.mp4"), Path("out.wav"))

    assert command[0] == "/usr/bin/ffmpeg"
    assert command[command.index("-acodec") + 1] == "pcm_s16le"
    assert command[command.index("-ar") + 1] == "16000"
    assert command[command.index("-ac") + 1] == "1"
    assert "-vn" in command
    assert command[-1] == "out.wav"


def test_extract_without_ffmpeg_raises(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr("vidscribe.infra.ffmpeg.get_ffmpeg_path", lambda: None)
    source = tmp_path / "a.mp4"
    source.write_bytes(b"x")

    with pytest.raises(ExtractionError, match="ffmpeg not found"):
        FfmpegCodec().extract(source, tmp_path / "a.wav")


def test_extract_rejects_missing_source(tmp_path: Path) -> None:
    codec = FfmpegCodec(ffmpeg_path=Path("/nonexistent/ffmpeg"))

    with pytest.raises(ExtractionError, match="not readable"):
        codec.extract(tmp_path / "missing.mp4", tmp_path / "a.wav")


def test_extract_reports_ffmpeg_failure(tmp_path: Path) -> None:
    fake_ffmpeg = tmp_path / "ffmpeg"
    fake_ffmpeg.write_text("#!/bin/sh\necho 'Invalid data found' >&2\nexit 1\n", encoding="utf-8")
    fake_ffmpeg.chmod(0o755)
    source = tmp_path / "a.mp4"
    source.write_bytes(b"x")

    with pytest.raises(ExtractionError, match="exited with code 1: Invalid data found"):
        FfmpegCodec(ffmpeg_path=fake_ffmpeg).extract(source, tmp_path / "out" / "a.wav")


def test_terminate_is_noop_when_idle() -> None:
    assert FfmpegCodec().terminate() is False


def test_runner_stop_terminates_running_ffmpeg(tmp_path: Path) -> None:
    fake_ffmpeg = tmp_path / "ffmpeg"
    fake_ffmpeg.write_text("#!/bin/sh\nexec sleep 30\n", encoding="utf-8")
    fake_ffmpeg.chmod(0o755)
    folder = tmp_path / "videos"
    folder.mkdir()
    for name in ("a.mp4", "b.mp4", "c.mp4"):
        (folder / name).write_bytes(b"x")
    temp_dir = tmp_path / "tmp"
    temp_dir.mkdir()

    codec = FfmpegCodec(ffmpeg_path=fake_ffmpeg)
    runner = JobRunner(
        codec=codec,
        recognizer=_UnusedRecognizer(),
        sink=HistorySink(),
        config=build_app_config(temp_dir=temp_dir),
    )
    stopped: dict[str, bool] = {}

    def stop_when_ffmpeg_runs() -> None:
        deadline = time.monotonic() + 10
        while codec._process is None and time.monotonic() < deadline:
            time.sleep(0.01)
        stopped["result"] = runner.stop()

    stopper = threading.Thread(target=stop_when_ffmpeg_runs)
    stopper.start()
    started = time.monotonic()
    summary = runner.run(folder, "base")
    elapsed = time.monotonic() - started
    stopper.join(timeout=10)

    assert stopped["result"] is True
    assert elapsed < 10
    assert [(r.file, r.success) for r in summary.results] == [("a.mp4", False)]
    assert "terminated" in (summary.results[0].error or "")
    assert summary.cancelled is True
    assert list(temp_dir.iterdir()) == []
