"""
One retention run: scan, decide, delete.

The reference instant is captured by the caller and threaded through, so
a run is reproducible given the same directory listing.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from loguru import logger

from reaper.config import Config
from reaper.delete import Deleter, dry_run_delete, get_deleter
from reaper.errors import DeletionError
from reaper.retention.engine import RetentionEngine, RetentionPlan, SortedTimestamps
from reaper.scan import Artifact, scan_directory


@dataclass
class RunResult:
    """
    Result of a retention run.

    Attributes:
        dry_run: Whether deletions were suppressed
        kept: Backups that survived
        deleted: Backups removed (or that would be removed in a dry run)
        errors: Error messages from failed deletions
        duration_seconds: Time taken for the run
    """

    dry_run: bool
    kept: list[Artifact] = field(default_factory=list)
    deleted: list[Artifact] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        """Check if every deletion succeeded."""
        return len(self.errors) == 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "dry_run": self.dry_run,
            "kept": [a.name for a in self.kept],
            "deleted": [a.name for a in self.deleted],
            "errors": self.errors,
            "duration_seconds": self.duration_seconds,
        }


def plan_artifacts(
    engine: RetentionEngine,
    now: datetime,
    artifacts: list[Artifact],
) -> RetentionPlan:
    """
    Run the engine over the distinct timestamps of ``artifacts``.

    Artifacts sharing an instant share its decision.
    """
    timestamps = SortedTimestamps.from_iterable(a.timestamp for a in artifacts)
    return engine.plan(now, timestamps)


def run_retention(
    config: Config,
    now: datetime,
    dry_run: bool = False,
    deleter: Deleter | None = None,
) -> RunResult:
    """
    Apply the configured retention policy to the backup directory.

    Args:
        config: Validated configuration
        now: Reference instant for the decision
        dry_run: If True, report decisions without deleting
        deleter: Override the removal strategy picked from config (ignored in a dry run)

    Returns:
        RunResult with kept and deleted backups

    Raises:
        ScanError: If the backup directory cannot be listed
        InvalidPolicyError: If a tier fails its runtime check
        DurationOverflowError: If tier arithmetic overflows
    """
    start_time = time.time()
    deleter = dry_run_delete if dry_run else (deleter or get_deleter(btrfs=config.btrfs))
    result = RunResult(dry_run=dry_run)

    artifacts = scan_directory(config.path)
    engine = RetentionEngine(config.policy, anchor=config.anchor)
    plan = plan_artifacts(engine, now, artifacts)

    logger.info("final decision:")
    for artifact in sorted(artifacts, key=lambda a: (a.timestamp, a.name), reverse=True):
        if plan.is_kept(artifact.timestamp):
            logger.debug(f"  {artifact.name} KEEP")
            result.kept.append(artifact)
            continue

        logger.info(f"  {artifact.name} DELETE")
        try:
            deleter(artifact.path)
        except DeletionError as e:
            logger.error(str(e))
            result.errors.append(str(e))
            continue
        result.deleted.append(artifact)

    result.duration_seconds = time.time() - start_time
    logger.info(
        f"Retention run (dry_run={dry_run}): kept={len(result.kept)}, "
        f"deleted={len(result.deleted)}, errors={len(result.errors)}"
    )
    return result
