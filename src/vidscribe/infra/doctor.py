from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from vidscribe.core.errors import ConfigurationError, PreflightError
from vidscribe.infra.config import AppConfig, normalize_model_id, resolve_model_repository
from vidscribe.infra.device import detect_device_report
from vidscribe.infra.ffmpeg import get_ffmpeg_path, get_ffmpeg_version


@dataclass(frozen=True)
class DoctorCheck:
    name: str
    ok: bool
    detail: str


@dataclass(frozen=True)
class DoctorReport:
    checks: tuple[DoctorCheck, ...]

    @property
    def ok(self) -> bool:
        return all(check.ok for check in self.checks)

    @property
    def failures(self) -> tuple[DoctorCheck, ...]:
        return tuple(check for check in self.checks if not check.ok)


def _cache_check(path: Path) -> DoctorCheck:
    if path.exists():
        ok = path.is_dir()
    else:
        ok = path.parent.exists()
    return DoctorCheck(
        name="HuggingFace cache",
        ok=ok,
        detail=f"path={path}",
    )


def _is_model_cached(repo_id: str, cache_dir: Path) -> bool:
    from huggingface_hub import try_to_load_from_cache

    cached = try_to_load_from_cache(
        repo_id=repo_id,
        filename="config.json",
        cache_dir=str(cache_dir / "hub"),
    )
    return isinstance(cached, str)


def _model_check(model_id: str, cache_dir: Path) -> DoctorCheck:
    try:
        repo_id = resolve_model_repository(model_id)
    except ConfigurationError as exc:
        return DoctorCheck(name="Model", ok=False, detail=str(exc))
    cached = _is_model_cached(repo_id, cache_dir)
    state = "cached" if cached else "not cached (downloaded on first use)"
    return DoctorCheck(
        name="Model",
        ok=True,
        detail=f"id={model_id} repo={repo_id} {state}",
    )


def collect_doctor_report(config: AppConfig, model_id: str | None = None) -> DoctorReport:
    python_check = DoctorCheck(
        name="Python policy",
        ok=config.python_policy.status in {"preferred", "fallback", "custom"},
        detail=config.python_policy.message,
    )

    ffmpeg_path = get_ffmpeg_path()
    version = get_ffmpeg_version() or "unknown"
    ffmpeg_check = DoctorCheck(
        name="ffmpeg",
        ok=ffmpeg_path is not None,
        detail=f"path={ffmpeg_path} version={version}",
    )

    model_check = _model_check(model_id or config.model_id, config.hf_cache)
    cache_check = _cache_check(config.hf_cache)

    device_report = detect_device_report(config.device)
    device_check = DoctorCheck(
        name="Device",
        ok=device_report.request_satisfied,
        detail=(
            f"requested={device_report.requested} selected={device_report.selected} "
            f"available={','.join(device_report.available)}"
        ),
    )

    return DoctorReport(
        checks=(python_check, ffmpeg_check, model_check, cache_check, device_check),
    )


def render_doctor_report(report: DoctorReport) -> str:
    header = "vidscribe doctor: OK" if report.ok else "vidscribe doctor: FAIL"
    lines = [header]
    for check in report.checks:
        status = "PASS" if check.ok else "FAIL"
        lines.append(f"- [{status}] {check.name}: {check.detail}")
    return "\n".join(lines)


def ensure_runtime_ready(config: AppConfig, model_id: str) -> DoctorReport:
    """Fail fast before a batch starts when codec or model prerequisites are missing."""
    report = collect_doctor_report(config, normalize_model_id(model_id))
    if not report.ok:
        failed = "; ".join(f"{check.name}: {check.detail}" for check in report.failures)
        raise PreflightError(f"Runtime is not ready ({failed})")
    return report
