"""Unit tests for configuration loading and saving."""

from pathlib import Path
from unittest.mock import patch

import pytest
from molectl.core.config import (
    ConfigError,
    ConfigParseError,
    MolectlConfig,
    load_config,
    save_config,
)
from molectl.core.paths import get_config_path
from molectl.policy import ProtectionPolicy


class TestMolectlConfig:
    """Tests for MolectlConfig model."""

    def test_defaults(self) -> None:
        """Defaults match the documented values."""
        config = MolectlConfig()
        assert config.inactivity_days == 60
        assert config.admin_batch_size == 10
        assert config.include_hidden is False
        assert config.yield_every == 100
        assert config.skip_running_apps is True
        assert config.verify_with_lookup is True
        assert config.log_max_bytes == 10 * 1024 * 1024
        assert config.elevation == "sudo"

    def test_rejects_invalid_values(self) -> None:
        """Out-of-range values and unknown keys are rejected."""
        with pytest.raises(ValueError):
            MolectlConfig(admin_batch_size=0)
        with pytest.raises(ValueError):
            MolectlConfig(elevation="doas")  # type: ignore[arg-type]
        with pytest.raises(ValueError):
            MolectlConfig(colour="red")  # type: ignore[call-arg]

    def test_effective_dirs_expand_home(self, isolated_home: Path) -> None:
        """Configured folders have their tilde expanded."""
        config = MolectlConfig(orphan_dirs=["~/Library/Caches"], service_dirs=["/Library/LaunchAgents"])
        assert config.effective_orphan_dirs == (isolated_home / "Library" / "Caches",)
        assert config.effective_service_dirs == (Path("/Library/LaunchAgents"),)

    def test_platform_default_dirs(self, isolated_home: Path) -> None:
        """Unset folders fall back to per-platform defaults."""
        with patch("molectl.core.config.is_darwin", return_value=True):
            assert isolated_home / "Library" / "Caches" in MolectlConfig().effective_orphan_dirs
        with patch("molectl.core.config.is_darwin", return_value=False):
            assert isolated_home / ".cache" in MolectlConfig().effective_orphan_dirs
            assert isolated_home / ".config" / "autostart" in MolectlConfig().effective_service_dirs

    @pytest.mark.parametrize("darwin", [True, False])
    def test_default_service_dirs_are_removable(self, isolated_home: Path, darwin: bool) -> None:
        """No default service folder sits under a built-in protected prefix."""
        policy = ProtectionPolicy()
        with patch("molectl.core.config.is_darwin", return_value=darwin):
            service_dirs = MolectlConfig().effective_service_dirs
        for directory in service_dirs:
            assert not policy.rejects(directory / "com.removed.agent.plist"), directory

    def test_launch_agents_only_scanned_as_services(self, isolated_home: Path) -> None:
        """Launch agents are a service folder, never a data folder."""
        agents = isolated_home / "Library" / "LaunchAgents"
        with patch("molectl.core.config.is_darwin", return_value=True):
            assert agents in MolectlConfig().effective_service_dirs
            assert agents not in MolectlConfig().effective_orphan_dirs


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_file_gives_defaults(self) -> None:
        """A missing config file yields the defaults."""
        assert load_config() == MolectlConfig()

    def test_partial_file(self, tmp_path: Path) -> None:
        """Only the given keys override the defaults."""
        path = tmp_path / "config.toml"
        path.write_text('inactivity_days = 30\nelevation = "osascript"\n', encoding="utf-8")

        config = load_config(path)

        assert config.inactivity_days == 30
        assert config.elevation == "osascript"
        assert config.admin_batch_size == 10

    def test_invalid_toml(self, tmp_path: Path) -> None:
        """Broken TOML raises ConfigParseError."""
        path = tmp_path / "config.toml"
        path.write_text("inactivity_days = ", encoding="utf-8")
        with pytest.raises(ConfigParseError):
            load_config(path)

    def test_invalid_content(self, tmp_path: Path) -> None:
        """Schema violations raise ConfigError."""
        path = tmp_path / "config.toml"
        path.write_text("inactivity_days = -1\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid config"):
            load_config(path)


class TestSaveConfig:
    """Tests for save_config."""

    def test_round_trip(self) -> None:
        """Saved settings load back unchanged."""
        config = MolectlConfig(inactivity_days=14, include_hidden=True)

        saved = save_config(config)

        assert saved == get_config_path()
        assert load_config() == config

    def test_only_non_defaults_written(self, tmp_path: Path) -> None:
        """Default values are left out of the file."""
        path = save_config(MolectlConfig(yield_every=50), tmp_path / "config.toml")
        content = path.read_text(encoding="utf-8")
        assert "yield_every = 50" in content
        assert "inactivity_days" not in content
