"""
Tiered retention decisions for reaper.

Decides which timestamped backups survive a grandfather-father-son
thinning policy.

Usage:
    from datetime import datetime, timezone
    from reaper.retention import RetentionEngine, RetentionPolicy, Tier

    policy = RetentionPolicy.of([
        Tier.parse("24h", "1h"),
        Tier.parse("30d", "1d"),
    ])
    engine = RetentionEngine(policy)
    keep = engine.keep_set(datetime.now(timezone.utc), sorted_timestamps)
"""

from reaper.retention.clock import ChunkClock, shift
from reaper.retention.engine import RetentionEngine, RetentionPlan, SortedTimestamps
from reaper.retention.policy import RetentionPolicy, Tier, parse_duration

__all__ = [
    "ChunkClock",
    "RetentionEngine",
    "RetentionPlan",
    "RetentionPolicy",
    "SortedTimestamps",
    "Tier",
    "parse_duration",
    "shift",
]
