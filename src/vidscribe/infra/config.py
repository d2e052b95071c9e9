from __future__ import annotations

import os
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path

from vidscribe.core.errors import ConfigurationError

PYTHON_POLICY_CHAIN: tuple[tuple[int, int], ...] = ((3, 13), (3, 12), (3, 11), (3, 10))
VIDEO_EXTENSIONS: tuple[str, ...] = (
    ".mp4",
    ".avi",
    ".mov",
    ".mkv",
    ".flv",
    ".wmv",
    ".webm",
    ".m4v",
    ".mpg",
    ".mpeg",
)
DEFAULT_MODEL_ID = "base"
# Short model ids accepted on the command line, mapped to Whisper checkpoints.
MODEL_REPOSITORIES: dict[str, str] = {
    "tiny": "openai/whisper-tiny",
    "base": "openai/whisper-base",
    "small": "openai/whisper-small",
    "medium": "openai/whisper-medium",
    "large": "openai/whisper-large-v3",
}
SUPPORTED_DEVICES = {"auto", "cpu", "cuda", "mps"}


@dataclass(frozen=True)
class PythonPolicyEvaluation:
    current: tuple[int, int]
    status: str
    message: str


@dataclass(frozen=True)
class AppConfig:
    device: str
    hf_cache: Path
    model_id: str
    temp_dir: Path
    output_dir: Path | None
    log_dir: Path | None
    video_extensions: tuple[str, ...]
    asr_batch_size: int
    asr_max_new_tokens: int
    python_policy: PythonPolicyEvaluation


def _format_version(version: tuple[int, int]) -> str:
    return f"{version[0]}.{version[1]}"


def resolve_hf_cache_dir(custom_path: Path | None = None) -> Path:
    if custom_path is not None:
        return custom_path.expanduser().resolve()
    env_path = os.getenv("HF_HOME") or os.getenv("TRANSFORMERS_CACHE")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return (Path.home() / ".cache" / "huggingface").resolve()


def resolve_temp_dir(custom_path: Path | None = None) -> Path:
    if custom_path is not None:
        return custom_path.expanduser().resolve()
    env_path = os.getenv("VIDSCRIBE_TEMP_DIR")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return Path(tempfile.gettempdir()).resolve()


def resolve_log_dir(custom_path: Path | None = None) -> Path | None:
    if custom_path is not None:
        return custom_path.expanduser().resolve()
    env_path = os.getenv("VIDSCRIBE_LOG_DIR")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return None


def evaluate_python_policy(version: tuple[int, int] | None = None) -> PythonPolicyEvaluation:
    current = version or (sys.version_info.major, sys.version_info.minor)
    highest = PYTHON_POLICY_CHAIN[0]
    lowest = PYTHON_POLICY_CHAIN[-1]
    chain = " -> ".join(_format_version(item) for item in PYTHON_POLICY_CHAIN)
    if current >= highest:
        return PythonPolicyEvaluation(
            current=current,
            status="preferred",
            message=f"Python {_format_version(current)} is on or above preferred target {_format_version(highest)}.",
        )
    if current in PYTHON_POLICY_CHAIN[1:]:
        return PythonPolicyEvaluation(
            current=current,
            status="fallback",
            message=f"Python {_format_version(current)} is allowed by fallback policy (priority: {chain}).",
        )
    if current < lowest:
        return PythonPolicyEvaluation(
            current=current,
            status="unsupported",
            message=(
                f"Python {_format_version(current)} is below minimum policy "
                f"{_format_version(lowest)}. Upgrade to {_format_version(lowest)}+."
            ),
        )
    return PythonPolicyEvaluation(
        current=current,
        status="custom",
        message=(
            f"Python {_format_version(current)} is not in explicit policy chain "
            f"({chain}). Verify dependency compatibility."
        ),
    )


def normalize_device(value: str) -> str:
    device = value.strip().lower()
    if device not in SUPPORTED_DEVICES:
        raise ConfigurationError(
            f"Unsupported device '{value}'. Allowed: {', '.join(sorted(SUPPORTED_DEVICES))}"
        )
    return device


def normalize_model_id(value: str) -> str:
    model_id = value.strip().lower()
    if model_id not in MODEL_REPOSITORIES:
        raise ConfigurationError(
            f"Unsupported model '{value}'. Allowed: {', '.join(MODEL_REPOSITORIES)}"
        )
    return model_id


def resolve_model_repository(model_id: str) -> str:
    return MODEL_REPOSITORIES[normalize_model_id(model_id)]


def normalize_video_extensions(values: tuple[str, ...] | list[str]) -> tuple[str, ...]:
    extensions: list[str] = []
    for value in values:
        ext = value.strip().lower()
        if not ext:
            continue
        if not ext.startswith("."):
            ext = f".{ext}"
        if ext not in extensions:
            extensions.append(ext)
    if not extensions:
        raise ConfigurationError("At least one video extension is required.")
    return tuple(extensions)


def _positive(name: str, value: int) -> int:
    if value <= 0:
        raise ConfigurationError(f"{name} must be > 0, got {value}")
    return value


def build_app_config(
    *,
    device: str = "auto",
    hf_cache: Path | None = None,
    model_id: str | None = None,
    temp_dir: Path | None = None,
    output_dir: Path | None = None,
    log_dir: Path | None = None,
    video_extensions: tuple[str, ...] = VIDEO_EXTENSIONS,
    asr_batch_size: int = 4,
    asr_max_new_tokens: int = 440,
) -> AppConfig:
    return AppConfig(
        device=normalize_device(device),
        hf_cache=resolve_hf_cache_dir(hf_cache),
        model_id=normalize_model_id(
            model_id or os.getenv("VIDSCRIBE_MODEL") or DEFAULT_MODEL_ID
        ),
        temp_dir=resolve_temp_dir(temp_dir),
        output_dir=output_dir.expanduser().resolve() if output_dir is not None else None,
        log_dir=resolve_log_dir(log_dir),
        video_extensions=normalize_video_extensions(video_extensions),
        asr_batch_size=_positive("asr_batch_size", asr_batch_size),
        asr_max_new_tokens=_positive("asr_max_new_tokens", asr_max_new_tokens),
        python_policy=evaluate_python_policy(),
    )
