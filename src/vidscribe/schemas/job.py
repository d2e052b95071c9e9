from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

TEMP_AUDIO_SUFFIX = "_temp_audio.wav"
TRANSCRIPT_EXTENSION = ".txt"


@dataclass(frozen=True)
class WorkItem:
    index: int
    total: int
    source_path: Path
    audio_path: Path
    transcript_path: Path

    @property
    def name(self) -> str:
        return self.source_path.name


@dataclass(frozen=True)
class ItemResult:
    file: str
    success: bool
    transcript_path: Path | None = None
    error: str | None = None


@dataclass(frozen=True)
class JobSummary:
    processed: int
    failed: int
    results: tuple[ItemResult, ...] = ()
    cancelled: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "failed": self.failed,
            "cancelled": self.cancelled,
            "results": [
                {
                    "file": result.file,
                    "success": result.success,
                    "transcript_path": (
                        str(result.transcript_path) if result.transcript_path else None
                    ),
                    "error": result.error,
                }
                for result in self.results
            ],
        }


@dataclass
class Job:
    """One folder-wide batch. Lives only for the duration of ``JobRunner.run``."""

    folder: Path
    model_id: str
    files: list[str] = field(default_factory=list)
    processed: int = 0
    failed: int = 0
    stopped: bool = False
    results: list[ItemResult] = field(default_factory=list)
    _cancel_flag: threading.Event = field(
        default_factory=threading.Event, repr=False, compare=False
    )

    @property
    def cancelled(self) -> bool:
        return self._cancel_flag.is_set()

    def cancel(self) -> None:
        self._cancel_flag.set()

    def record(self, result: ItemResult) -> None:
        self.results.append(result)
        if result.success:
            self.processed += 1
        else:
            self.failed += 1

    def summary(self) -> JobSummary:
        return JobSummary(
            processed=self.processed,
            failed=self.failed,
            results=tuple(self.results),
            cancelled=self.stopped,
        )


def build_work_item(
    source_path: Path,
    *,
    index: int,
    total: int,
    temp_dir: Path,
    output_dir: Path | None = None,
) -> WorkItem:
    stem = source_path.stem
    transcript_dir = output_dir if output_dir is not None else source_path.parent
    return WorkItem(
        index=index,
        total=total,
        source_path=source_path,
        audio_path=temp_dir / f"{stem}{TEMP_AUDIO_SUFFIX}",
        transcript_path=transcript_dir / f"{stem}{TRANSCRIPT_EXTENSION}",
    )
