from __future__ import annotations

import logging
import threading
from pathlib import Path

import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from vidscribe.core.asr import WhisperRecognizer
from vidscribe.core.errors import VidscribeError
from vidscribe.core.events import FanoutSink, LoggingSink, ProgressChannel, parse_progress_marker
from vidscribe.core.pipeline import JobRunner
from vidscribe.core.scanner import list_video_files
from vidscribe.infra.config import DEFAULT_MODEL_ID, MODEL_REPOSITORIES, AppConfig, build_app_config
from vidscribe.infra.doctor import collect_doctor_report, ensure_runtime_ready, render_doctor_report
from vidscribe.infra.ffmpeg import FfmpegCodec
from vidscribe.infra.log_setup import setup_logging
from vidscribe.infra.storage import write_json
from vidscribe.schemas.job import JobSummary
from vidscribe.schemas.progress import ERROR, SUCCESS, WARNING, ProgressEvent

app = typer.Typer(
    name="vidscribe",
    add_completion=False,
    help="Batch transcription of video folders into text files.",
)
console = Console()

_LEVEL_STYLES = {SUCCESS: "green", WARNING: "yellow", ERROR: "red"}
_MODEL_HELP = f"{'|'.join(MODEL_REPOSITORIES)} (default: {DEFAULT_MODEL_ID})"


def _build_config(**kwargs: object) -> AppConfig:
    try:
        return build_app_config(**kwargs)  # type: ignore[arg-type]
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _require_folder(folder: Path) -> None:
    if not folder.exists() or not folder.is_dir():
        raise typer.BadParameter(f"Input directory not found: {folder}")


def _render_event(event: ProgressEvent) -> None:
    timestamp = event.timestamp.astimezone().strftime("%H:%M:%S")
    style = _LEVEL_STYLES.get(event.level)
    console.print(f"[{timestamp}] {event.message}", style=style, markup=False, highlight=False)


def _consume(channel: ProgressChannel, progress: Progress, task_id: object) -> None:
    for event in channel:
        marker = parse_progress_marker(event.message)
        if marker is not None:
            current, total = marker
            progress.update(
                task_id,
                total=total,
                completed=current - 1,
                description=f"Processing file {current} of {total}",
            )
        _render_event(event)


def _run_job(runner: JobRunner, folder: Path, model: str, channel: ProgressChannel) -> JobSummary:
    outcome: dict[str, object] = {}

    def _worker() -> None:
        try:
            outcome["summary"] = runner.run(folder, model)
        except Exception as exc:
            outcome["error"] = exc
        finally:
            channel.close()

    thread = threading.Thread(target=_worker, name="vidscribe-job", daemon=True)
    thread.start()
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=False,
    ) as progress:
        task_id = progress.add_task(description="Scanning folder...", total=None)
        try:
            _consume(channel, progress, task_id)
        except KeyboardInterrupt:
            if runner.stop():
                console.print("Stopping after the current file...", style="yellow")
            try:
                _consume(channel, progress, task_id)
                thread.join()
            except KeyboardInterrupt:
                console.print("Interrupted again, exiting without waiting.", style="red")
                raise typer.Exit(code=130)
        thread.join()
        task = progress.tasks[0]
        if task.total:
            progress.update(task_id, completed=task.total, description="Done")

    error = outcome.get("error")
    if isinstance(error, VidscribeError):
        typer.echo(f"[failed] {error}")
        raise typer.Exit(code=2) from error
    if isinstance(error, Exception):
        raise error
    summary: JobSummary = outcome["summary"]  # type: ignore[assignment]
    return summary


@app.command("transcribe")
def transcribe_command(
    folder: Path = typer.Argument(..., help="Directory containing video files."),
    model: str | None = typer.Option(None, "--model", "-m", help=_MODEL_HELP),
    device: str = typer.Option("auto", "--device", help="auto|cpu|cuda|mps"),
    output_dir: Path | None = typer.Option(
        None, "--output-dir", "-o", help="Write transcripts here instead of next to each video."
    ),
    temp_dir: Path | None = typer.Option(
        None, "--temp-dir", help="Directory for intermediate audio (default: system temp)."
    ),
    hf_cache: Path | None = typer.Option(
        None, "--hf-cache", help="Custom Hugging Face cache path."
    ),
    report: Path | None = typer.Option(
        None, "--report", help="Write the job summary as JSON to this path."
    ),
    log_dir: Path | None = typer.Option(
        None, "--log-dir", help="Also write a rotating log file into this directory."
    ),
    skip_checks: bool = typer.Option(
        False, "--skip-checks", help="Do not run readiness checks before the batch."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """Transcribe every video file in FOLDER."""
    _require_folder(folder)
    config = _build_config(
        device=device,
        hf_cache=hf_cache,
        model_id=model,
        temp_dir=temp_dir,
        output_dir=output_dir,
        log_dir=log_dir,
    )
    setup_logging(
        logging.DEBUG if verbose else logging.INFO,
        console_level=logging.DEBUG if verbose else logging.WARNING,
        log_dir=config.log_dir,
    )

    channel = ProgressChannel()
    runner = JobRunner(
        codec=FfmpegCodec(),
        recognizer=WhisperRecognizer(config),
        sink=FanoutSink(LoggingSink(), channel),
        config=config,
        preflight=None if skip_checks else (lambda model_id: ensure_runtime_ready(config, model_id)),
    )
    summary = _run_job(runner, folder, config.model_id, channel)

    if report is not None:
        write_json(report, summary.to_payload())
    status = "stopped" if summary.cancelled else "done"
    typer.echo(
        f"[{status}] Processed {summary.processed} files, {summary.failed} failed\n"
        f"- folder: {folder}\n"
        f"- model: {config.model_id}"
        + (f"\n- report: {report}" if report is not None else "")
    )
    if summary.failed and not summary.processed:
        raise typer.Exit(code=2)


@app.command("scan")
def scan_command(
    folder: Path = typer.Argument(..., help="Directory to scan for video files."),
) -> None:
    """List the video files a transcribe run would process."""
    _require_folder(folder)
    try:
        files = list_video_files(folder)
    except VidscribeError as exc:
        typer.echo(f"[failed] {exc}")
        raise typer.Exit(code=2) from exc
    for name in files:
        typer.echo(name)
    typer.echo(f"{len(files)} video file(s) found.")


@app.command("doctor")
def doctor_command(
    model: str | None = typer.Option(None, "--model", "-m", help=_MODEL_HELP),
    device: str = typer.Option("auto", "--device", help="auto|cpu|cuda|mps"),
    hf_cache: Path | None = typer.Option(
        None, "--hf-cache", help="Custom Hugging Face cache path."
    ),
) -> None:
    """Check runtime readiness (Python/ffmpeg/model/cache/device)."""
    config = _build_config(device=device, hf_cache=hf_cache, model_id=model)
    report = collect_doctor_report(config)
    typer.echo(render_doctor_report(report))
    if not report.ok:
        raise typer.Exit(code=1)


def run() -> None:
    """Console-script entrypoint."""
    app()
