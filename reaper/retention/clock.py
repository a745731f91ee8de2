"""
Chunk windows for retention tiers.

A chunk is a half-open window ``(start, end]``: an instant equal to
``start`` belongs to the next older chunk. Windows are either anchored
to a moving reference instant (the engine's cursor) or to the Unix epoch.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from reaper.errors import DurationOverflowError, InvalidPolicyError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

Window = tuple[datetime, datetime]


def shift(instant: datetime, delta: timedelta) -> datetime:
    """
    Add ``delta`` to ``instant``, failing loudly on overflow.

    Args:
        instant: Starting instant
        delta: Offset to apply (may be negative)

    Returns:
        The shifted instant

    Raises:
        DurationOverflowError: If the result falls outside the datetime range
    """
    try:
        return instant + delta
    except OverflowError as e:
        raise DurationOverflowError(
            f"Shifting {instant.isoformat()} by {delta} leaves the representable range"
        ) from e


@dataclass(frozen=True)
class ChunkClock:
    """
    Maps instants to chunk windows of a fixed width.

    Attributes:
        chunk_size: Width of one chunk
    """

    chunk_size: timedelta

    def __post_init__(self) -> None:
        if self.chunk_size <= timedelta(0):
            raise InvalidPolicyError(f"chunk_size must be positive, got {self.chunk_size}")

    def window(self, reference: datetime) -> Window:
        """
        Chunk window ending at ``reference``.

        Args:
            reference: Newest instant of the window (inclusive)

        Returns:
            Tuple of (start, end) where end == reference
        """
        return shift(reference, -self.chunk_size), reference

    @staticmethod
    def contains(window: Window, instant: datetime) -> bool:
        """Check half-open membership: start < instant <= end."""
        start, end = window
        return start < instant <= end

    def rewind(self, reference: datetime, instant: datetime) -> datetime:
        """
        End of the reference-anchored window holding ``instant``.

        Steps back from ``reference`` by whole chunks until the window
        ``(end - chunk_size, end]`` contains ``instant``.

        Args:
            reference: Anchor of the first window
            instant: Instant at or before ``reference``

        Returns:
            The end of the containing window
        """
        if instant > reference:
            raise ValueError(f"{instant.isoformat()} is ahead of {reference.isoformat()}")
        steps = (reference - instant) // self.chunk_size
        return shift(reference, -self.chunk_size * steps)

    def index(self, instant: datetime) -> int:
        """
        Epoch-anchored chunk index of ``instant``.

        Chunk ``k`` is the window ``(EPOCH + (k-1)*chunk_size, EPOCH + k*chunk_size]``,
        so boundaries line up across runs. EPOCH is the Unix epoch, a
        Thursday: daily chunks end at midnight UTC and weekly chunks run
        Thursday to Thursday. An instant exactly on a boundary belongs to
        the older chunk, so a backup taken at midnight closes the previous
        day.
        """
        return -((EPOCH - instant) // self.chunk_size)

    def epoch_window(self, instant: datetime) -> Window:
        """Epoch-anchored window containing ``instant``."""
        end = shift(EPOCH, self.chunk_size * self.index(instant))
        return self.window(end)
