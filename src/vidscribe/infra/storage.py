from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def ensure_directory(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def write_json(path: Path, payload: dict[str, Any]) -> None:
    ensure_directory(path.parent)
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def write_transcript(path: Path, text: str) -> None:
    """Persist transcript text as UTF-8, creating the parent directory."""
    ensure_directory(path.parent)
    path.write_text(text, encoding="utf-8")
    logger.debug("Wrote transcript %s (%d chars)", path, len(text))


def remove_file(path: Path) -> bool:
    """Delete ``path`` if it exists. Returns True when a file was removed."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True
