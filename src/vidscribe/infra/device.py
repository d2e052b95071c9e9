from __future__ import annotations

import platform
import shutil
from dataclasses import dataclass

DEVICE_PREFERENCE: tuple[str, ...] = ("cuda", "mps", "cpu")


@dataclass(frozen=True)
class DeviceReport:
    requested: str
    available: tuple[str, ...]
    selected: str
    request_satisfied: bool


def _has_command(command: str) -> bool:
    return shutil.which(command) is not None


def _is_apple_silicon() -> bool:
    return platform.system() == "Darwin" and platform.machine().lower() in {"arm64", "aarch64"}


def detect_available_devices() -> tuple[str, ...]:
    """Cheap accelerator probe that does not import torch."""
    devices = ["cpu"]
    if _has_command("nvidia-smi"):
        devices.append("cuda")
    if _is_apple_silicon():
        devices.append("mps")
    return tuple(devices)


def choose_device(requested: str, available: tuple[str, ...]) -> str:
    if requested != "auto":
        return requested if requested in available else "cpu"
    for candidate in DEVICE_PREFERENCE:
        if candidate in available:
            return candidate
    return "cpu"


def detect_device_report(requested: str) -> DeviceReport:
    available = detect_available_devices()
    return DeviceReport(
        requested=requested,
        available=available,
        selected=choose_device(requested, available),
        request_satisfied=requested == "auto" or requested in available,
    )


def resolve_torch_device(requested: str) -> tuple[str, str]:
    """Return ``(device, dtype_name)`` for model loading, verified against torch."""
    import torch

    available = ["cpu"]
    if torch.cuda.is_available():
        available.append("cuda")
    mps_backend = getattr(torch.backends, "mps", None)
    if mps_backend is not None and mps_backend.is_available():
        available.append("mps")
    device = choose_device(requested, tuple(available))
    dtype_name = "float16" if device == "cuda" else "float32"
    return device, dtype_name
