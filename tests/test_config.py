"""Tests for TOML configuration loading."""

from datetime import timedelta
from pathlib import Path

import pytest

from reaper.config import CONFIG_ENV_VAR, Config, load_config, resolve_config_path
from reaper.errors import ConfigError, DurationOverflowError, InvalidPolicyError

VALID_CONFIG = """
path = "/srv/backups"
btrfs = true

[[periods]]
period_length = "24h"
chunk_size = "1h"

[[periods]]
period_length = "30d"
chunk_size = "1d"
"""


@pytest.fixture
def write_config(tmp_path):
    """Write a config file and return its path."""

    def _write(text: str, name: str = "reaper.toml") -> Path:
        config_file = tmp_path / name
        config_file.write_text(text)
        return config_file

    return _write


class TestLoadConfig:
    """Tests for load_config()."""

    def test_valid_config(self, write_config):
        config = load_config(write_config(VALID_CONFIG))

        assert config.path == Path("/srv/backups")
        assert config.btrfs is True
        assert config.anchor == "now"
        assert [t.period_length for t in config.policy] == [timedelta(hours=24), timedelta(days=30)]
        assert [t.chunk_size for t in config.policy] == [timedelta(hours=1), timedelta(days=1)]

    def test_defaults(self, write_config):
        """btrfs and anchor are optional."""
        config = load_config(write_config(
            'path = "/srv/backups"\n[[periods]]\nperiod_length = "1d"\nchunk_size = "1h"\n'
        ))

        assert config.btrfs is False
        assert config.anchor == "now"

    def test_epoch_anchor(self, write_config):
        config = load_config(write_config(
            'path = "/b"\nanchor = "epoch"\n[[periods]]\nperiod_length = "1d"\nchunk_size = "1h"\n'
        ))

        assert config.anchor == "epoch"

    def test_relative_path_resolves_against_config_dir(self, write_config, tmp_path):
        config = load_config(write_config(
            'path = "snapshots"\n[[periods]]\nperiod_length = "1d"\nchunk_size = "1h"\n'
        ))

        assert config.path == tmp_path / "snapshots"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Failed to read config file"):
            load_config(tmp_path / "missing.toml")

    def test_invalid_toml(self, write_config):
        with pytest.raises(ConfigError, match="Failed to parse config file"):
            load_config(write_config("path = \n"))

    def test_env_var_fallback(self, write_config, monkeypatch):
        """REAPER_CONFIG is used when no path is given."""
        monkeypatch.setenv(CONFIG_ENV_VAR, str(write_config(VALID_CONFIG)))

        config = load_config()

        assert config.path == Path("/srv/backups")


class TestConfigFromDict:
    """Tests for Config.from_dict() validation."""

    def base(self, **overrides):
        data = {
            "path": "/srv/backups",
            "periods": [{"period_length": "1d", "chunk_size": "1h"}],
        }
        data.update(overrides)
        return data

    def test_missing_path(self):
        data = self.base()
        del data["path"]

        with pytest.raises(ConfigError, match="'path'"):
            Config.from_dict(data)

    def test_btrfs_must_be_bool(self):
        with pytest.raises(ConfigError, match="'btrfs'"):
            Config.from_dict(self.base(btrfs="yes"))

    def test_unknown_anchor(self):
        with pytest.raises(ConfigError, match="Invalid anchor"):
            Config.from_dict(self.base(anchor="midnight"))

    def test_missing_periods(self):
        with pytest.raises(ConfigError, match="'periods'"):
            Config.from_dict(self.base(periods=[]))

    def test_period_missing_key(self):
        with pytest.raises(ConfigError, match=r"periods\[1\] is missing chunk_size"):
            Config.from_dict(self.base(periods=[{"period_length": "1d"}]))

    def test_bad_duration_names_period(self):
        with pytest.raises(ConfigError, match=r"periods\[2\]"):
            Config.from_dict(self.base(periods=[
                {"period_length": "1d", "chunk_size": "1h"},
                {"period_length": "1 day", "chunk_size": "1h"},
            ]))

    def test_chunk_larger_than_period(self):
        """Tier invariants are enforced before any run."""
        with pytest.raises(InvalidPolicyError, match=r"periods\[1\]"):
            Config.from_dict(self.base(periods=[{"period_length": "1h", "chunk_size": "1d"}]))

    def test_zero_chunk(self):
        with pytest.raises(InvalidPolicyError):
            Config.from_dict(self.base(periods=[{"period_length": "1h", "chunk_size": "0s"}]))

    def test_duration_overflow(self):
        with pytest.raises(DurationOverflowError):
            Config.from_dict(self.base(periods=[
                {"period_length": "99999999999999w", "chunk_size": "1h"},
            ]))


class TestResolveConfigPath:
    """Tests for resolve_config_path()."""

    def test_explicit_path_wins(self, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV_VAR, "/etc/other.toml")

        assert resolve_config_path("/etc/reaper.toml") == Path("/etc/reaper.toml")

    def test_no_path_no_env(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)

        with pytest.raises(ConfigError, match=CONFIG_ENV_VAR):
            resolve_config_path()
