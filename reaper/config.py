"""
Configuration loading for reaper.

A run is configured by a TOML file:

    path = "/srv/backups"
    btrfs = false
    anchor = "now"

    [[periods]]
    period_length = "24h"
    chunk_size = "1h"

    [[periods]]
    period_length = "30d"
    chunk_size = "1d"

The config file path comes from the command line or the REAPER_CONFIG
environment variable.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

from reaper.errors import ConfigError
from reaper.retention.engine import ANCHORS
from reaper.retention.policy import RetentionPolicy, Tier

CONFIG_ENV_VAR = "REAPER_CONFIG"


@dataclass(frozen=True)
class Config:
    """
    Validated configuration for one retention run.

    Attributes:
        path: Directory holding the timestamp-named backups
        policy: Retention tiers, nearest to now first
        btrfs: Delete backups as btrfs subvolumes instead of plain files
        anchor: Chunk alignment, "now" (cascade from run time) or "epoch"
    """

    path: Path
    policy: RetentionPolicy
    btrfs: bool = False
    anchor: str = "now"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.anchor not in ANCHORS:
            raise ConfigError(
                f"Invalid anchor: '{self.anchor}'. Valid anchors: {', '.join(ANCHORS)}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: Path | None = None) -> Config:
        """
        Build a Config from parsed TOML.

        Args:
            data: Parsed TOML document
            base_dir: Directory relative backup paths resolve against

        Returns:
            Validated Config

        Raises:
            ConfigError: If keys are missing, ill-typed, or durations are invalid
        """
        path = data.get("path")
        if not isinstance(path, str) or not path:
            raise ConfigError("'path' must be a non-empty string")

        btrfs = data.get("btrfs", False)
        if not isinstance(btrfs, bool):
            raise ConfigError(f"'btrfs' must be true or false, got {btrfs!r}")

        anchor = data.get("anchor", "now")
        if not isinstance(anchor, str):
            raise ConfigError(f"'anchor' must be a string, got {anchor!r}")

        periods = data.get("periods")
        if not isinstance(periods, list) or not periods:
            raise ConfigError("'periods' must be a non-empty array of tables")

        tiers = []
        for number, period in enumerate(periods, start=1):
            if not isinstance(period, dict):
                raise ConfigError(f"periods[{number}] must be a table")
            missing = {"period_length", "chunk_size"} - period.keys()
            if missing:
                raise ConfigError(f"periods[{number}] is missing {', '.join(sorted(missing))}")
            try:
                tiers.append(Tier.parse(period["period_length"], period["chunk_size"]))
            except ConfigError as e:
                raise type(e)(f"periods[{number}]: {e}") from e

        backup_dir = Path(path).expanduser()
        if not backup_dir.is_absolute() and base_dir is not None:
            backup_dir = base_dir / backup_dir

        return cls(
            path=backup_dir,
            policy=RetentionPolicy.of(tiers),
            btrfs=btrfs,
            anchor=anchor,
        )


def resolve_config_path(config_path: str | Path | None = None) -> Path:
    """
    Pick the config file from an explicit path or REAPER_CONFIG.

    Raises:
        ConfigError: If neither is given
    """
    if config_path:
        return Path(config_path).expanduser()

    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()

    raise ConfigError(f"No config file given and {CONFIG_ENV_VAR} is not set")


def load_config(config_path: str | Path | None = None) -> Config:
    """
    Read and validate a TOML config file.

    Args:
        config_path: Path to the file (defaults to REAPER_CONFIG)

    Returns:
        Validated Config

    Raises:
        ConfigError: If the file cannot be read or is invalid
    """
    config_file = resolve_config_path(config_path)

    try:
        with open(config_file, "rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"Failed to read config file {config_file}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse config file {config_file}: {e}") from e

    config = Config.from_dict(data, base_dir=config_file.parent)

    logger.debug(f"Loaded config from {config_file}")
    logger.debug("periods:")
    for tier in config.policy:
        logger.debug(f"  {tier.describe()}")

    return config
