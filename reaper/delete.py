"""
Backup removal strategies for reaper.

Plain backups are unlinked (files) or removed recursively (directories).
Btrfs snapshots are removed with ``btrfs subvolume delete``. A dry run
only logs.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Callable

from loguru import logger

from reaper.errors import DeletionError

Deleter = Callable[[Path], None]


def delete_path(path: Path) -> None:
    """
    Remove a file or directory tree.

    Raises:
        DeletionError: If removal fails
    """
    try:
        if path.is_dir() and not path.is_symlink():
            logger.trace(f"rm -r {path}")
            shutil.rmtree(path)
        else:
            logger.trace(f"rm {path}")
            path.unlink()
    except OSError as e:
        raise DeletionError(f"Failed to remove {path}: {e}") from e


def delete_subvolume(path: Path) -> None:
    """
    Remove a btrfs subvolume.

    Raises:
        DeletionError: If the btrfs tool is missing or exits non-zero
    """
    logger.trace(f"btrfs subvolume delete {path}")
    try:
        result = subprocess.run(
            ["btrfs", "subvolume", "delete", str(path)],
            capture_output=True,
            text=True,
        )
    except OSError as e:
        raise DeletionError(f"Failed to run 'btrfs subvolume delete': {e}") from e

    if result.returncode != 0:
        stderr = result.stderr.strip() or "no output"
        raise DeletionError(
            f"Failed to delete subvolume {path}: "
            f"btrfs subvolume delete exited with code {result.returncode}: {stderr}"
        )


def dry_run_delete(path: Path) -> None:
    logger.debug(f"dry run enabled, {path} not deleted")


def get_deleter(btrfs: bool = False, dry_run: bool = False) -> Deleter:
    """
    Pick the removal strategy for a run.

    Args:
        btrfs: Treat backups as btrfs subvolumes
        dry_run: Log instead of deleting

    Returns:
        Callable removing one backup path
    """
    if dry_run:
        return dry_run_delete
    if btrfs:
        return delete_subvolume
    return delete_path
