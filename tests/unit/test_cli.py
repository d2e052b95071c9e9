from __future__ import annotations

import json
import threading
import time
from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from vidscribe.app.typer_cli import _run_job, app
from vidscribe.core.events import ProgressChannel
from vidscribe.core.pipeline import JobRunner
from vidscribe.infra.config import build_app_config

runner = CliRunner()


class _Codec:
    def extract(self, source_path: Path, dest_path: Path) -> None:
        if source_path.name.startswith("bad"):
            raise RuntimeError("corrupt container")
        dest_path.write_bytes(b"RIFF")


class _Recognizer:
    def __init__(self, config) -> None:
        self.config = config

    def recognize(self, audio_path: Path, model_id: str) -> str:
        return f"hello from {model_id}"


def test_scan_lists_video_files(tmp_path: Path) -> None:
    (tmp_path / "a.mp4").write_bytes(b"x")
    (tmp_path / "b.txt").write_bytes(b"x")

    result = runner.invoke(app, ["scan", str(tmp_path)])

    assert result.exit_code == 0
    assert "a.mp4" in result.output
    assert "b.txt" not in result.output
    assert "1 video file(s) found." in result.output


def test_transcribe_runs_batch_and_writes_report(tmp_path: Path, monkeypatch) -> None:
    folder = tmp_path / "videos"
    folder.mkdir()
    (folder / "bad.mp4").write_bytes(b"x")
    (folder / "good.mkv").write_bytes(b"x")
    report = tmp_path / "report.json"
    monkeypatch.setattr("vidscribe.app.typer_cli.FfmpegCodec", _Codec)
    monkeypatch.setattr("vidscribe.app.typer_cli.WhisperRecognizer", _Recognizer)
    monkeypatch.setattr("vidscribe.app.typer_cli.setup_logging", lambda *_, **__: None)

    result = runner.invoke(
        app,
        [
            "transcribe",
            str(folder),
            "--model",
            "small",
            "--temp-dir",
            str(tmp_path),
            "--report",
            str(report),
            "--skip-checks",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "[done] Processed 1 files, 1 failed" in result.output
    assert (folder / "good.txt").read_text(encoding="utf-8") == "hello from small"
    payload = json.loads(report.read_text(encoding="utf-8"))
    assert payload["processed"] == 1
    assert [item["file"] for item in payload["results"]] == ["bad.mp4", "good.mkv"]
    assert payload["results"][0]["success"] is False


def test_transcribe_rejects_unknown_model(tmp_path: Path) -> None:
    result = runner.invoke(app, ["transcribe", str(tmp_path), "--model", "enormous"])

    assert result.exit_code != 0
    assert "Unsupported model" in result.output


def test_transcribe_reports_failed_preflight(tmp_path: Path, monkeypatch) -> None:
    from vidscribe.core.errors import PreflightError

    (tmp_path / "a.mp4").write_bytes(b"x")

    def not_ready(config, model_id):
        raise PreflightError("Runtime is not ready (ffmpeg: path=None)")

    monkeypatch.setattr("vidscribe.app.typer_cli.FfmpegCodec", _Codec)
    monkeypatch.setattr("vidscribe.app.typer_cli.WhisperRecognizer", _Recognizer)
    monkeypatch.setattr("vidscribe.app.typer_cli.setup_logging", lambda *_, **__: None)
    monkeypatch.setattr("vidscribe.app.typer_cli.ensure_runtime_ready", not_ready)

    result = runner.invoke(app, ["transcribe", str(tmp_path), "--temp-dir", str(tmp_path)])

    assert result.exit_code == 2
    assert "[failed] Runtime is not ready" in result.output
    assert not (tmp_path / "a.txt").exists()


class _BlockingRecognizer:
    def __init__(self) -> None:
        self.entered = threading.Event()
        self.release = threading.Event()

    def recognize(self, audio_path: Path, model_id: str) -> str:
        self.entered.set()
        self.release.wait(timeout=10)
        return "partial batch"


def test_second_interrupt_exits_without_waiting(tmp_path: Path, monkeypatch) -> None:
    folder = tmp_path / "videos"
    folder.mkdir()
    (folder / "a.mp4").write_bytes(b"x")
    (folder / "b.mp4").write_bytes(b"x")
    temp_dir = tmp_path / "tmp"
    temp_dir.mkdir()
    recognizer = _BlockingRecognizer()
    channel = ProgressChannel()
    job_runner = JobRunner(
        codec=_Codec(),
        recognizer=recognizer,
        sink=channel,
        config=build_app_config(temp_dir=temp_dir),
    )
    interrupts: list[int] = []

    def interrupted_consume(channel, progress, task_id) -> None:
        recognizer.entered.wait(timeout=10)
        interrupts.append(1)
        raise KeyboardInterrupt

    monkeypatch.setattr("vidscribe.app.typer_cli._consume", interrupted_consume)

    with pytest.raises(typer.Exit) as exc_info:
        _run_job(job_runner, folder, "base", channel)

    assert exc_info.value.exit_code == 130
    assert len(interrupts) == 2

    recognizer.release.set()
    deadline = time.monotonic() + 10
    while job_runner.is_running and time.monotonic() < deadline:
        time.sleep(0.01)
    assert job_runner.is_running is False
    assert (folder / "a.txt").read_text(encoding="utf-8").startswith("partial batch")
    assert not (folder / "b.txt").exists()
