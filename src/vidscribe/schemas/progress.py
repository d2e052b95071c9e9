from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

INFO = "info"
SUCCESS = "success"
WARNING = "warning"
ERROR = "error"
PROGRESS_LEVELS: tuple[str, ...] = (INFO, SUCCESS, WARNING, ERROR)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ProgressEvent:
    level: str
    message: str
    timestamp: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if self.level not in PROGRESS_LEVELS:
            raise ValueError(
                f"Unsupported progress level '{self.level}'. Allowed: {', '.join(PROGRESS_LEVELS)}"
            )
