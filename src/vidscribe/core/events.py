from __future__ import annotations

import logging
import queue
import re
from collections import deque
from typing import Callable, Iterator, Protocol

from vidscribe.schemas.progress import ERROR, SUCCESS, WARNING, ProgressEvent

DEFAULT_HISTORY_LIMIT = 1000
_PROGRESS_MARKER = re.compile(r"\[(\d+)/(\d+)\]")
_LOG_LEVELS = {WARNING: logging.WARNING, ERROR: logging.ERROR}


class ProgressSink(Protocol):
    def publish(self, event: ProgressEvent) -> None:
        ...


class LoggingSink:
    """Forwards events to the stdlib logger. ``success`` is logged at INFO."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("vidscribe.progress")

    def publish(self, event: ProgressEvent) -> None:
        level = _LOG_LEVELS.get(event.level, logging.INFO)
        if event.level == SUCCESS:
            self._logger.log(level, "[success] %s", event.message)
        else:
            self._logger.log(level, "%s", event.message)


class CallbackSink:
    def __init__(self, callback: Callable[[ProgressEvent], None]) -> None:
        self._callback = callback

    def publish(self, event: ProgressEvent) -> None:
        self._callback(event)


class HistorySink:
    """Keeps the most recent ``max_entries`` events, oldest evicted first."""

    def __init__(self, max_entries: int = DEFAULT_HISTORY_LIMIT) -> None:
        if max_entries <= 0:
            raise ValueError(f"max_entries must be > 0, got {max_entries}")
        self._events: deque[ProgressEvent] = deque(maxlen=max_entries)

    def publish(self, event: ProgressEvent) -> None:
        self._events.append(event)

    @property
    def events(self) -> list[ProgressEvent]:
        return list(self._events)

    def messages(self, level: str | None = None) -> list[str]:
        return [
            event.message
            for event in self._events
            if level is None or event.level == level
        ]

    def clear(self) -> None:
        self._events.clear()


class ProgressChannel:
    """Unbounded producer/consumer channel.

    The producer publishes from the worker thread; a consumer iterates the
    channel on another thread until ``close`` is called.
    """

    _CLOSED = object()

    def __init__(self) -> None:
        self._queue: queue.Queue[object] = queue.Queue()

    def publish(self, event: ProgressEvent) -> None:
        self._queue.put(event)

    def close(self) -> None:
        self._queue.put(self._CLOSED)

    def __iter__(self) -> Iterator[ProgressEvent]:
        while True:
            item = self._queue.get()
            if item is self._CLOSED:
                return
            yield item  # type: ignore[misc]


class FanoutSink:
    def __init__(self, *sinks: ProgressSink) -> None:
        self._sinks = sinks

    def publish(self, event: ProgressEvent) -> None:
        for sink in self._sinks:
            sink.publish(event)


def parse_progress_marker(message: str) -> tuple[int, int] | None:
    match = _PROGRESS_MARKER.search(message)
    if not match:
        return None
    current, total = int(match.group(1)), int(match.group(2))
    if total <= 0:
        return None
    return current, total


def progress_percentage(message: str) -> int | None:
    marker = parse_progress_marker(message)
    if marker is None:
        return None
    current, total = marker
    return round(current / total * 100)
