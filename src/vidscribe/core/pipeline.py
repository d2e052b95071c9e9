from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Protocol

from vidscribe.core.errors import (
    AlreadyRunningError,
    ExtractionError,
    FolderScanError,
    ItemError,
    PersistenceError,
    RecognitionError,
)
from vidscribe.core.events import LoggingSink, ProgressSink
from vidscribe.core.scanner import list_video_files
from vidscribe.infra.config import AppConfig, build_app_config, normalize_model_id
from vidscribe.infra.storage import remove_file, write_transcript
from vidscribe.schemas.job import ItemResult, Job, JobSummary, WorkItem, build_work_item
from vidscribe.schemas.progress import ERROR, INFO, SUCCESS, WARNING, ProgressEvent

logger = logging.getLogger(__name__)

Emit = Callable[[str, str], None]
TranscriptWriter = Callable[[Path, str], None]
Preflight = Callable[[str], object]


class MediaCodec(Protocol):
    def extract(self, source_path: Path, dest_path: Path) -> None:
        ...


class SpeechRecognizer(Protocol):
    def recognize(self, audio_path: Path, model_id: str) -> str:
        ...


def _cleanup(item: WorkItem, emit: Emit) -> None:
    try:
        removed = remove_file(item.audio_path)
    except OSError as exc:
        logger.warning("Could not remove temporary audio %s: %s", item.audio_path, exc)
        emit(WARNING, f"Warning: Could not clean up temporary file: {exc}")
        return
    if removed:
        emit(INFO, "Temporary files cleaned up")


def process_item(
    item: WorkItem,
    model_id: str,
    *,
    codec: MediaCodec,
    recognizer: SpeechRecognizer,
    writer: TranscriptWriter,
    emit: Emit,
) -> Path:
    """Extract, recognize and persist one file.

    The intermediate audio artifact is removed before this returns, whichever
    stage failed. Cleanup problems are reported as warnings only.
    """
    try:
        emit(INFO, f"Extracting audio from {item.name}...")
        try:
            codec.extract(item.source_path, item.audio_path)
        except Exception as exc:
            emit(ERROR, f"Error extracting audio: {exc}")
            raise ExtractionError(f"Audio extraction failed: {exc}") from exc

        emit(INFO, f"Transcribing audio with {model_id} model...")
        try:
            text = recognizer.recognize(item.audio_path, model_id)
        except Exception as exc:
            emit(ERROR, f"Error transcribing audio: {exc}")
            raise RecognitionError(f"Recognition failed: {exc}") from exc

        try:
            writer(item.transcript_path, text)
        except Exception as exc:
            emit(ERROR, f"Error saving transcript: {exc}")
            raise PersistenceError(f"Failed to write transcript: {exc}") from exc
        emit(SUCCESS, f"Transcript saved: {item.transcript_path.name}")
    finally:
        _cleanup(item, emit)
    return item.transcript_path


class JobRunner:
    """Runs one folder-wide transcription job at a time.

    ``run`` blocks on the calling thread; ``stop`` may be called from any other
    thread and takes effect before the next file starts.
    """

    def __init__(
        self,
        *,
        codec: MediaCodec,
        recognizer: SpeechRecognizer,
        sink: ProgressSink | None = None,
        writer: TranscriptWriter = write_transcript,
        config: AppConfig | None = None,
        preflight: Preflight | None = None,
    ) -> None:
        self._codec = codec
        self._recognizer = recognizer
        self._sink = sink or LoggingSink()
        self._writer = writer
        self._config = config or build_app_config()
        self._preflight = preflight
        self._lock = threading.Lock()
        self._running = False
        self._stop_requested = False
        self._job: Job | None = None

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def _emit(self, level: str, message: str) -> None:
        self._sink.publish(ProgressEvent(level=level, message=message))

    def _acquire(self) -> None:
        with self._lock:
            if self._running:
                raise AlreadyRunningError("Transcription already in progress")
            self._running = True
            self._stop_requested = False
            self._job = None

    def _release(self) -> None:
        with self._lock:
            self._running = False
            self._stop_requested = False
            self._job = None

    def _attach(self, job: Job) -> None:
        with self._lock:
            self._job = job
            if self._stop_requested:
                job.cancel()

    def run(self, folder: Path, model_id: str) -> JobSummary:
        model_id = normalize_model_id(model_id)
        self._acquire()
        try:
            if self._preflight is not None:
                self._preflight(model_id)
            try:
                files = list_video_files(folder, self._config.video_extensions)
            except FolderScanError as exc:
                self._emit(ERROR, f"Error processing folder: {exc}")
                raise
            job = Job(folder=folder, model_id=model_id, files=files)
            self._attach(job)
            return self._execute(job)
        finally:
            self._release()

    def _execute(self, job: Job) -> JobSummary:
        if not job.files:
            self._emit(WARNING, "No video files found in folder")
            return job.summary()

        total = len(job.files)
        self._emit(INFO, f"Found {total} video files to process using the {job.model_id} model")

        for index, name in enumerate(job.files, start=1):
            if job.cancelled:
                job.stopped = True
                self._emit(WARNING, "Processing stopped by user")
                break

            item = build_work_item(
                job.folder / name,
                index=index,
                total=total,
                temp_dir=self._config.temp_dir,
                output_dir=self._config.output_dir,
            )
            self._emit(INFO, f"[{item.index}/{item.total}] Processing: {item.name}")
            try:
                transcript_path = process_item(
                    item,
                    job.model_id,
                    codec=self._codec,
                    recognizer=self._recognizer,
                    writer=self._writer,
                    emit=self._emit,
                )
            except ItemError as exc:
                job.record(ItemResult(file=name, success=False, error=str(exc)))
                self._emit(ERROR, f"Failed to process {name}: {exc}")
            else:
                job.record(ItemResult(file=name, success=True, transcript_path=transcript_path))
                self._emit(SUCCESS, f"Completed: {name}")

        self._emit(INFO, f"Processing complete! Processed: {job.processed}, Failed: {job.failed}")
        if job.processed > 0:
            self._emit(SUCCESS, "Transcription batch completed successfully!")
        return job.summary()

    def stop(self) -> bool:
        """Request cancellation. Returns False when no job is running."""
        with self._lock:
            if not self._running:
                return False
            self._stop_requested = True
            if self._job is not None:
                self._job.cancel()
        for collaborator in (self._codec, self._recognizer):
            terminate = getattr(collaborator, "terminate", None)
            if callable(terminate):
                terminate()
        logger.info("Stop requested")
        return True
