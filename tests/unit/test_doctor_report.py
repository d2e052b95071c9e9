from __future__ import annotations

import pytest

from vidscribe.core.errors import PreflightError
from vidscribe.infra.config import build_app_config
from vidscribe.infra.doctor import collect_doctor_report, ensure_runtime_ready, render_doctor_report


def test_doctor_report_has_required_checks(monkeypatch) -> None:
    monkeypatch.setattr("vidscribe.infra.doctor._is_model_cached", lambda *_: False)
    report = collect_doctor_report(build_app_config())
    names = {check.name for check in report.checks}
    assert names == {"Python policy", "ffmpeg", "Model", "HuggingFace cache", "Device"}
    assert render_doctor_report(report).startswith("vidscribe doctor:")


def test_preflight_fails_without_ffmpeg(monkeypatch) -> None:
    monkeypatch.setattr("vidscribe.infra.doctor._is_model_cached", lambda *_: True)
    monkeypatch.setattr("vidscribe.infra.doctor.get_ffmpeg_path", lambda: None)
    monkeypatch.setattr("vidscribe.infra.doctor.get_ffmpeg_version", lambda: None)

    with pytest.raises(PreflightError, match="ffmpeg"):
        ensure_runtime_ready(build_app_config(device="cpu"), "base")
