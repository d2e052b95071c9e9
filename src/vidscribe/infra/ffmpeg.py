from __future__ import annotations

import logging
import shutil
import subprocess
import threading
from pathlib import Path

from vidscribe.core.errors import ExtractionError

logger = logging.getLogger(__name__)

TARGET_SAMPLE_RATE = 16_000
TARGET_CHANNELS = 1
TARGET_CODEC = "pcm_s16le"


def get_ffmpeg_path() -> Path | None:
    path = shutil.which("ffmpeg")
    return Path(path) if path else None


def get_ffmpeg_version() -> str | None:
    ffmpeg = get_ffmpeg_path()
    if ffmpeg is None:
        return None
    proc = subprocess.run(
        [str(ffmpeg), "-version"],
        capture_output=True,
        text=True,
        check=False,
    )
    if proc.returncode != 0 or not proc.stdout:
        return None
    return proc.stdout.splitlines()[0].strip()


def build_extract_command(
    ffmpeg: Path,
    input_path: Path,
    output_path: Path,
    *,
    sample_rate: int = TARGET_SAMPLE_RATE,
    channels: int = TARGET_CHANNELS,
) -> list[str]:
    return [
        str(ffmpeg),
        "-y",
        "-hide_banner",
        "-loglevel",
        "error",
        "-i",
        str(input_path),
        "-vn",
        "-acodec",
        TARGET_CODEC,
        "-ac",
        str(channels),
        "-ar",
        str(sample_rate),
        "-f",
        "wav",
        str(output_path),
    ]


class FfmpegCodec:
    """Extracts mono 16 kHz PCM audio with an ffmpeg child process.

    The running process is tracked so ``terminate`` can stop it from another
    thread.
    """

    def __init__(
        self,
        ffmpeg_path: Path | None = None,
        *,
        sample_rate: int = TARGET_SAMPLE_RATE,
        channels: int = TARGET_CHANNELS,
    ) -> None:
        self._ffmpeg_path = ffmpeg_path
        self._sample_rate = sample_rate
        self._channels = channels
        self._lock = threading.Lock()
        self._process: subprocess.Popen[str] | None = None

    def extract(self, source_path: Path, dest_path: Path) -> None:
        ffmpeg = self._ffmpeg_path or get_ffmpeg_path()
        if ffmpeg is None:
            raise ExtractionError("ffmpeg not found in PATH.")
        if not source_path.is_file():
            raise ExtractionError(f"Source video is not readable: {source_path}")
        dest_path.parent.mkdir(parents=True, exist_ok=True)

        command = build_extract_command(
            ffmpeg,
            source_path,
            dest_path,
            sample_rate=self._sample_rate,
            channels=self._channels,
        )
        logger.debug("Running %s", " ".join(command))
        proc = subprocess.Popen(
            command,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
        )
        with self._lock:
            self._process = proc
        try:
            _, stderr = proc.communicate()
        finally:
            with self._lock:
                self._process = None

        if proc.returncode < 0:
            raise ExtractionError(f"ffmpeg was terminated (signal {-proc.returncode}).")
        if proc.returncode != 0:
            detail = (stderr or "").strip() or "unknown ffmpeg error"
            raise ExtractionError(f"ffmpeg exited with code {proc.returncode}: {detail}")
        if not dest_path.exists():
            raise ExtractionError(f"ffmpeg produced no output at {dest_path}")

    def terminate(self) -> bool:
        """Terminate the in-flight ffmpeg process. Returns True if one was signalled."""
        with self._lock:
            proc = self._process
        if proc is None or proc.poll() is not None:
            return False
        logger.info("Terminating ffmpeg process %s", proc.pid)
        try:
            proc.terminate()
        except ProcessLookupError:
            return False
        return True
