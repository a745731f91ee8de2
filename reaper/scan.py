"""
Directory scanning for reaper.

Every directory entry whose name is an RFC 3339 timestamp with an offset
(e.g. ``2024-03-01T04:00:00+00:00``) is a backup. Other entries are
ignored: never kept, never deleted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from reaper.errors import ScanError

_RFC3339_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$"
)


@dataclass(frozen=True)
class Artifact:
    """A backup on disk and the instant its name encodes."""

    path: Path
    timestamp: datetime

    @property
    def name(self) -> str:
        return self.path.name


def parse_timestamp(name: str) -> datetime | None:
    """
    Parse a backup name as a point in time.

    Args:
        name: File or directory name

    Returns:
        The instant in UTC, or None if the name is not an RFC 3339 timestamp
    """
    # fromisoformat accepts basic, week-date and truncated ISO 8601 forms too
    if not _RFC3339_RE.match(name):
        return None

    try:
        parsed = datetime.fromisoformat(name.upper())
    except ValueError:
        return None

    if parsed.tzinfo is None or parsed.utcoffset() is None:
        return None

    return parsed.astimezone(timezone.utc)


def scan_directory(path: Path) -> list[Artifact]:
    """
    List the backups in a directory.

    Args:
        path: Directory to scan

    Returns:
        Artifacts sorted by timestamp ascending (ties by name)

    Raises:
        ScanError: If the directory does not exist or cannot be listed
    """
    path = Path(path)
    logger.info(f"Scanning directory {path}")

    if not path.exists():
        raise ScanError(f"Backup directory does not exist: {path}")
    if not path.is_dir():
        raise ScanError(f"Backup path is not a directory: {path}")

    artifacts = []
    try:
        entries = list(path.iterdir())
    except OSError as e:
        raise ScanError(f"Failed to read directory {path}: {e}") from e

    for entry in entries:
        timestamp = parse_timestamp(entry.name)
        if timestamp is None:
            logger.trace(f'ignoring "{entry.name}", not a timestamp')
            continue
        logger.trace(f'found "{entry.name}"')
        artifacts.append(Artifact(path=entry, timestamp=timestamp))

    artifacts.sort(key=lambda a: (a.timestamp, a.name))
    logger.debug(f"Found {len(artifacts)} backups in {path}")
    return artifacts
