"""File output for generated documents."""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path

from foodworker.core.logging import get_logger

logger = get_logger(__name__)

FILE_STAMP_FORMAT = "%Y%m%d_%H%M%S"


def file_stamp(now: datetime) -> str:
    return now.strftime(FILE_STAMP_FORMAT)


def sanitize(value: str, pattern: str, replacement: str = "") -> str:
    """Replace every match of ``pattern`` in ``value`` (used for file names)."""
    return re.sub(pattern, replacement, value)


def write_document(directory: Path, filename: str, content: str) -> Path:
    """Write ``content`` to ``directory / filename``, creating the directory.

    Raises:
        OSError: If the directory cannot be created or the file written
    """
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    path.write_text(content, encoding="utf-8")
    logger.debug("document_written", path=str(path), size=len(content))
    return path
