"""
Tests for the retention policy model.

Tests cover:
- parse_duration() units and error cases
- Tier invariants and derived values
- RetentionPolicy validation and horizon
"""

from datetime import timedelta

import pytest

from reaper.errors import ConfigError, DurationOverflowError, InvalidPolicyError
from reaper.retention.policy import RetentionPolicy, Tier, parse_duration


class TestParseDuration:
    """Tests for parse_duration()."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("30s", timedelta(seconds=30)),
            ("15m", timedelta(minutes=15)),
            ("24h", timedelta(hours=24)),
            ("7d", timedelta(days=7)),
            ("2w", timedelta(weeks=2)),
            ("0s", timedelta(0)),
        ],
    )
    def test_units(self, text, expected):
        assert parse_duration(text) == expected

    def test_case_insensitive_and_trimmed(self):
        """Units ignore case and surrounding whitespace is dropped."""
        assert parse_duration(" 6H ") == timedelta(hours=6)
        assert parse_duration("1D") == timedelta(days=1)

    @pytest.mark.parametrize("text", ["", "h", "12", "1.5h", "-1h", "1 h", "1hr", "10y"])
    def test_invalid(self, text):
        with pytest.raises(ConfigError):
            parse_duration(text)

    def test_unknown_unit_lists_valid_units(self):
        with pytest.raises(ConfigError, match="Valid units: s, m, h, d, w"):
            parse_duration("3y")

    def test_non_string(self):
        """TOML integers are not durations."""
        with pytest.raises(ConfigError, match="must be a string"):
            parse_duration(24)

    def test_overflow(self):
        """Magnitudes beyond timedelta range raise DurationOverflowError."""
        with pytest.raises(DurationOverflowError):
            parse_duration("99999999999999w")

    def test_overflow_is_config_error(self):
        with pytest.raises(ConfigError):
            parse_duration("99999999999999w")


class TestTier:
    """Tests for Tier."""

    def test_parse(self):
        tier = Tier.parse("7d", "1d")

        assert tier.period_length == timedelta(days=7)
        assert tier.chunk_size == timedelta(days=1)

    def test_chunk_count(self):
        """chunk_count floors partial chunks."""
        assert Tier.parse("7d", "1d").chunk_count == 7
        assert Tier.parse("90m", "1h").chunk_count == 1

    def test_equal_period_and_chunk(self):
        """A single-chunk tier is valid."""
        assert Tier.parse("1h", "1h").chunk_count == 1

    def test_zero_chunk_rejected(self):
        with pytest.raises(InvalidPolicyError, match="positive"):
            Tier.parse("1h", "0s")

    def test_chunk_larger_than_period_rejected(self):
        with pytest.raises(InvalidPolicyError, match="shorter than"):
            Tier.parse("1h", "2h")

    def test_frozen(self):
        tier = Tier.parse("1d", "1h")

        with pytest.raises(AttributeError):
            tier.chunk_size = timedelta(hours=2)

    def test_describe(self):
        assert Tier.parse("1d", "1h").describe() == "length=1 day, 0:00:00, chunk_size=1:00:00"


class TestRetentionPolicy:
    """Tests for RetentionPolicy."""

    def test_empty_rejected(self):
        with pytest.raises(InvalidPolicyError, match="at least one tier"):
            RetentionPolicy.of([])

    def test_rejects_non_tiers(self):
        with pytest.raises(InvalidPolicyError):
            RetentionPolicy.of([(timedelta(days=1), timedelta(hours=1))])

    def test_order_preserved(self):
        tiers = [Tier.parse("1d", "1h"), Tier.parse("30d", "1d"), Tier.parse("52w", "1w")]

        policy = RetentionPolicy.of(tiers)

        assert list(policy) == tiers
        assert len(policy) == 3

    def test_no_ordering_between_tiers(self):
        """Coarse tiers may come before fine ones."""
        policy = RetentionPolicy.of([Tier.parse("30d", "1d"), Tier.parse("1d", "1h")])

        assert len(policy) == 2

    def test_horizon(self):
        policy = RetentionPolicy.of([Tier.parse("6h", "1s"), Tier.parse("6h", "1h"), Tier.parse("8d", "2d")])

        assert policy.horizon == timedelta(days=8, hours=12)

    def test_horizon_overflow(self):
        policy = RetentionPolicy.of([Tier.parse("999999999d", "1d"), Tier.parse("999999999d", "1d")])

        with pytest.raises(DurationOverflowError):
            policy.horizon

    def test_max_survivors_rounds_partial_chunks_up(self):
        policy = RetentionPolicy.of([Tier.parse("1d", "1h"), Tier.parse("90m", "1h")])

        assert policy.max_survivors == 24 + 2
