"""
Retention policy model for reaper.

A policy is an ordered cascade of tiers. Each tier governs a span of time
(``period_length``) measured back from where the previous tier ended, split
into ``chunk_size``-wide chunks that each keep at most one backup.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable

from reaper.errors import ConfigError, DurationOverflowError, InvalidPolicyError

_DURATION_UNITS = {
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}

_DURATION_RE = re.compile(r"^(\d+)([a-zA-Z])$")


def parse_duration(text: str) -> timedelta:
    """
    Parse a simple duration such as ``"90s"``, ``"24h"`` or ``"2w"``.

    Args:
        text: Non-negative integer followed by one of s, m, h, d, w
            (case-insensitive, surrounding whitespace ignored)

    Returns:
        The duration as a timedelta

    Raises:
        ConfigError: If the text is not a valid duration
        DurationOverflowError: If the magnitude does not fit a timedelta
    """
    if not isinstance(text, str):
        raise ConfigError(f"Duration must be a string like '24h', got {text!r}")

    match = _DURATION_RE.match(text.strip())
    if match is None:
        raise ConfigError(f"Invalid duration: {text!r} (expected e.g. '30s', '24h', '7d')")

    value, suffix = match.groups()
    unit = _DURATION_UNITS.get(suffix.lower())
    if unit is None:
        raise ConfigError(
            f"Unknown duration unit {suffix!r} in {text!r}. "
            f"Valid units: {', '.join(_DURATION_UNITS)}"
        )

    try:
        return timedelta(**{unit: int(value)})
    except OverflowError as e:
        raise DurationOverflowError(f"Duration {text!r} is too large") from e


@dataclass(frozen=True)
class Tier:
    """
    One row of a retention policy.

    Attributes:
        period_length: Total span governed by this tier
        chunk_size: Width of one retention bucket; at most one backup survives per chunk
    """

    period_length: timedelta
    chunk_size: timedelta

    def __post_init__(self) -> None:
        """Validate the tier invariant."""
        self.validate()

    def validate(self) -> None:
        """
        Check that chunk_size is positive and fits inside period_length.

        Raises:
            InvalidPolicyError: If the invariant does not hold
        """
        if self.chunk_size <= timedelta(0):
            raise InvalidPolicyError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.period_length < self.chunk_size:
            raise InvalidPolicyError(
                f"period_length ({self.period_length}) is shorter than "
                f"chunk_size ({self.chunk_size})"
            )

    @classmethod
    def parse(cls, period_length: str, chunk_size: str) -> Tier:
        """Build a tier from duration strings such as ``("7d", "1d")``."""
        return cls(
            period_length=parse_duration(period_length),
            chunk_size=parse_duration(chunk_size),
        )

    @property
    def chunk_count(self) -> int:
        """Number of whole chunks in the period."""
        return self.period_length // self.chunk_size

    def describe(self) -> str:
        return f"length={self.period_length}, chunk_size={self.chunk_size}"


@dataclass(frozen=True)
class RetentionPolicy:
    """
    Ordered cascade of retention tiers, nearest to now first.

    Tiers are not required to be contiguous or to grow in chunk size; only
    each tier's own invariant is enforced.
    """

    tiers: tuple[Tier, ...]

    def __post_init__(self) -> None:
        if not self.tiers:
            raise InvalidPolicyError("Retention policy needs at least one tier")
        for tier in self.tiers:
            if not isinstance(tier, Tier):
                raise InvalidPolicyError(f"Expected a Tier, got {tier!r}")

    @classmethod
    def of(cls, tiers: Iterable[Tier]) -> RetentionPolicy:
        return cls(tuple(tiers))

    def __iter__(self):
        return iter(self.tiers)

    def __len__(self) -> int:
        return len(self.tiers)

    @property
    def horizon(self) -> timedelta:
        """Total span covered by all tiers, measured back from now."""
        try:
            return sum((tier.period_length for tier in self.tiers), timedelta(0))
        except OverflowError as e:
            raise DurationOverflowError("Combined tier periods are too large") from e

    @property
    def max_survivors(self) -> int:
        """
        Upper bound on backups kept with now-anchored chunks.

        A trailing partial chunk still holds a survivor, so each tier counts
        its chunks rounded up. Future-dated backups are not included.
        """
        return sum(-(-tier.period_length // tier.chunk_size) for tier in self.tiers)
