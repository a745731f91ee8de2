"""
Retention decision engine for reaper.

Walks backup timestamps from newest to oldest against the tiers of a
retention policy and keeps exactly one representative, the newest, per
chunk per tier. Everything it does not keep is up for deletion.

The engine performs no I/O and keeps no state between calls: the same
``now``, policy and timestamps always give the same keep-set.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from loguru import logger

from reaper.errors import UnsortedInputError
from reaper.retention.clock import ChunkClock, shift
from reaper.retention.policy import RetentionPolicy, Tier

ANCHORS = ("now", "epoch")


def _to_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None or instant.utcoffset() is None:
        raise ValueError(f"Timestamp {instant.isoformat()} has no timezone offset")
    return instant.astimezone(timezone.utc)


class SortedTimestamps(Sequence):
    """
    Timezone-aware timestamps sorted ascending, normalized to UTC.

    Ordering is checked once here so the engine can rely on it.
    """

    def __init__(self, timestamps: Iterable[datetime]):
        """
        Wrap already-sorted timestamps.

        Args:
            timestamps: Aware datetimes in ascending order (repeats allowed)

        Raises:
            UnsortedInputError: If the timestamps are out of order
            ValueError: If a timestamp is naive
        """
        items = tuple(_to_utc(t) for t in timestamps)
        for previous, current in zip(items, items[1:]):
            if current < previous:
                raise UnsortedInputError(
                    f"Timestamps must be sorted ascending: "
                    f"{current.isoformat()} follows {previous.isoformat()}"
                )
        self._items = items

    @classmethod
    def from_iterable(cls, timestamps: Iterable[datetime]) -> SortedTimestamps:
        """Sort and de-duplicate arbitrary aware timestamps."""
        return cls(sorted({_to_utc(t) for t in timestamps}))

    def __getitem__(self, index):
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"SortedTimestamps({len(self._items)} items)"


@dataclass(frozen=True)
class RetentionPlan:
    """
    Outcome of one retention decision.

    Attributes:
        now: Reference instant the decision was made against
        keep: Timestamps whose backups must survive this run
        delete: Remaining timestamps, newest first
    """

    now: datetime
    keep: frozenset[datetime]
    delete: tuple[datetime, ...]

    def is_kept(self, timestamp: datetime) -> bool:
        return timestamp in self.keep

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "now": self.now.isoformat(),
            "keep": [t.isoformat() for t in sorted(self.keep, reverse=True)],
            "delete": [t.isoformat() for t in self.delete],
        }


class RetentionEngine:
    """
    Computes keep-sets for a retention policy.

    With ``anchor="now"`` chunk windows cascade back from the run's
    reference instant, so boundaries move from run to run. With
    ``anchor="epoch"`` chunks are aligned to the Unix epoch (daily chunks
    end at midnight UTC) while tier periods still cascade from now.
    """

    def __init__(self, policy: RetentionPolicy, anchor: str = "now"):
        """
        Initialize the retention engine.

        Args:
            policy: Validated retention policy
            anchor: Chunk alignment, "now" or "epoch"
        """
        if anchor not in ANCHORS:
            raise ValueError(f"Unknown anchor: {anchor!r}. Valid anchors: {', '.join(ANCHORS)}")
        self._policy = policy
        self._anchor = anchor

    @property
    def policy(self) -> RetentionPolicy:
        return self._policy

    @property
    def anchor(self) -> str:
        return self._anchor

    def keep_set(
        self,
        now: datetime,
        timestamps: SortedTimestamps | Sequence[datetime],
    ) -> frozenset[datetime]:
        """
        Decide which timestamps to keep.

        Args:
            now: Reference instant, captured once per run
            timestamps: Backup timestamps sorted ascending

        Returns:
            Timestamps to keep; every other input timestamp may be deleted

        Raises:
            UnsortedInputError: If ``timestamps`` is not sorted ascending
            InvalidPolicyError: If a tier fails its runtime invariant check
            DurationOverflowError: If tier arithmetic leaves the datetime range
        """
        if not isinstance(timestamps, SortedTimestamps):
            timestamps = SortedTimestamps(timestamps)
        now = _to_utc(now)

        # Newest timestamp at the end so pop() yields newest first
        pending = list(timestamps)

        if self._anchor == "epoch":
            keep = self._walk_epoch(now, pending)
        else:
            keep = self._walk_now(now, pending)

        for timestamp in reversed(pending):
            logger.trace(f"{timestamp.isoformat()} is beyond the retention horizon")

        logger.debug(f"Keeping {len(keep)} of {len(timestamps)} backups (anchor={self._anchor})")
        return frozenset(keep)

    def plan(
        self,
        now: datetime,
        timestamps: SortedTimestamps | Sequence[datetime],
    ) -> RetentionPlan:
        """Decide and split ``timestamps`` into keep and delete sets."""
        if not isinstance(timestamps, SortedTimestamps):
            timestamps = SortedTimestamps(timestamps)
        keep = self.keep_set(now, timestamps)
        delete = tuple(sorted(set(timestamps) - keep, reverse=True))
        return RetentionPlan(now=_to_utc(now), keep=keep, delete=delete)

    def _begin_tier(self, tier: Tier, cursor: datetime) -> datetime:
        # Fatal if a tier slipped past construction-time validation
        tier.validate()
        period_end = shift(cursor, -tier.period_length)
        logger.trace(f"tier {tier.describe()}: ({period_end.isoformat()}, {cursor.isoformat()}]")
        return period_end

    def _walk_now(self, now: datetime, pending: list[datetime]) -> set[datetime]:
        keep: set[datetime] = set()
        cursor = now

        for tier in self._policy:
            if not pending:
                logger.trace("no backups left, remaining tiers skipped")
                break

            period_end = self._begin_tier(tier, cursor)
            clock = ChunkClock(tier.chunk_size)

            while cursor > period_end and pending:
                if pending[-1] <= cursor:
                    # Jump over chunks that cannot hold anything
                    cursor = clock.rewind(cursor, pending[-1])
                    if cursor <= period_end:
                        break

                window = clock.window(cursor)
                chunk_end, chunk_start = window
                cursor = chunk_end
                survivor = None

                while pending:
                    timestamp = pending.pop()
                    if timestamp > chunk_start:
                        logger.trace(f"{timestamp.isoformat()} is ahead of its chunk, keeping")
                        keep.add(timestamp)
                    elif clock.contains(window, timestamp):
                        if survivor is None:
                            survivor = timestamp
                            logger.trace(f"{timestamp.isoformat()} keeps chunk ending {chunk_start.isoformat()}")
                        else:
                            logger.trace(f"{timestamp.isoformat()} superseded by {survivor.isoformat()}")
                    else:
                        pending.append(timestamp)
                        break

                if survivor is not None:
                    keep.add(survivor)

            cursor = period_end

        return keep

    def _walk_epoch(self, now: datetime, pending: list[datetime]) -> set[datetime]:
        keep: set[datetime] = set()
        cursor = now

        for tier in self._policy:
            if not pending:
                logger.trace("no backups left, remaining tiers skipped")
                break

            period_end = self._begin_tier(tier, cursor)
            clock = ChunkClock(tier.chunk_size)
            window = None

            while pending:
                timestamp = pending.pop()
                if timestamp > cursor:
                    logger.trace(f"{timestamp.isoformat()} is ahead of its tier, keeping")
                    keep.add(timestamp)
                    continue
                if timestamp <= period_end:
                    pending.append(timestamp)
                    break

                # Descending walk: the first timestamp seen in a window is its newest
                if window is None or not clock.contains(window, timestamp):
                    window = clock.epoch_window(timestamp)
                    keep.add(timestamp)
                    logger.trace(f"{timestamp.isoformat()} keeps epoch chunk ending {window[1].isoformat()}")
                else:
                    logger.trace(f"{timestamp.isoformat()} superseded in epoch chunk")

            cursor = period_end

        return keep
