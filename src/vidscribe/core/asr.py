from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import numpy as np
import soundfile as sf
import torch
from transformers import AutoModelForSpeechSeq2Seq, AutoProcessor

from vidscribe.core.errors import RecognitionError
from vidscribe.infra.config import AppConfig, resolve_model_repository
from vidscribe.infra.device import resolve_torch_device

logger = logging.getLogger(__name__)

WHISPER_SAMPLE_RATE = 16_000
WINDOW_SECONDS = 30
MIN_WINDOW_SECONDS = 0.30


@dataclass(frozen=True)
class _ASRRuntime:
    model: Any
    processor: Any
    device: str


@lru_cache(maxsize=2)
def _load_runtime(
    repo_id: str,
    cache_dir: str,
    device: str,
    dtype_name: str,
) -> _ASRRuntime:
    logger.info("Loading %s on %s (%s)", repo_id, device, dtype_name)
    model = AutoModelForSpeechSeq2Seq.from_pretrained(
        repo_id,
        cache_dir=cache_dir,
        dtype=getattr(torch, dtype_name),
    )
    model.eval()
    if device != "cpu":
        model.to(device)
    processor = AutoProcessor.from_pretrained(repo_id, cache_dir=cache_dir)
    return _ASRRuntime(model=model, processor=processor, device=device)


def read_audio(audio_path: Path) -> np.ndarray:
    audio, sr = sf.read(str(audio_path), dtype="float32", always_2d=False)
    if audio.ndim == 2:
        audio = audio.mean(axis=1)
    if sr != WHISPER_SAMPLE_RATE:
        raise RecognitionError(
            f"Expected {WHISPER_SAMPLE_RATE}Hz audio, got {sr}Hz at {audio_path}."
        )
    return audio.astype(np.float32, copy=False)


def split_windows(audio: np.ndarray) -> list[np.ndarray]:
    """Cut audio into Whisper-sized windows. Very short tails are dropped."""
    window = WINDOW_SECONDS * WHISPER_SAMPLE_RATE
    min_samples = int(MIN_WINDOW_SECONDS * WHISPER_SAMPLE_RATE)
    windows: list[np.ndarray] = []
    for start in range(0, audio.shape[0], window):
        clip = audio[start : start + window]
        if clip.shape[0] < min_samples and windows:
            break
        windows.append(clip)
    return windows


def join_texts(texts: list[str]) -> str:
    return "\n".join(text.strip() for text in texts if text.strip())


class WhisperRecognizer:
    """Speech recognizer backed by Whisper checkpoints from the Hugging Face hub."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config

    def _runtime(self, model_id: str) -> _ASRRuntime:
        device, dtype_name = resolve_torch_device(self._config.device)
        return _load_runtime(
            repo_id=resolve_model_repository(model_id),
            cache_dir=str(self._config.hf_cache / "hub"),
            device=device,
            dtype_name=dtype_name,
        )

    def _decode(self, runtime: _ASRRuntime, windows: list[np.ndarray]) -> list[str]:
        texts: list[str] = []
        batch_size = self._config.asr_batch_size
        for idx in range(0, len(windows), batch_size):
            batch = windows[idx : idx + batch_size]
            inputs = runtime.processor(
                batch,
                sampling_rate=WHISPER_SAMPLE_RATE,
                return_tensors="pt",
            )
            features = inputs.input_features.to(runtime.device, dtype=runtime.model.dtype)
            with torch.no_grad():
                generated = runtime.model.generate(
                    features,
                    task="transcribe",
                    max_new_tokens=self._config.asr_max_new_tokens,
                )
            texts.extend(
                runtime.processor.batch_decode(generated, skip_special_tokens=True)
            )
        return texts

    def recognize(self, audio_path: Path, model_id: str) -> str:
        try:
            audio = read_audio(audio_path)
            windows = split_windows(audio)
            if not windows:
                return ""
            runtime = self._runtime(model_id)
            text = join_texts(self._decode(runtime, windows))
        except RecognitionError:
            raise
        except Exception as exc:
            raise RecognitionError(f"{type(exc).__name__}: {exc}") from exc
        logger.debug("Recognized %d windows from %s", len(windows), audio_path)
        return text
