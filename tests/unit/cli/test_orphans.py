"""Unit tests for the orphans commands."""

import json
import os
import time
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from molectl.cli.main import app
from molectl.ownership.installed import InstalledAppIndex
from typer.testing import CliRunner

runner = CliRunner()


def _folder(parent: Path, name: str, size: int, age_days: int = 90) -> Path:
    folder = parent / name
    folder.mkdir(parents=True)
    (folder / "data.bin").write_bytes(b"x" * size)
    stamp = time.time() - age_days * 86400
    os.utime(folder, (stamp, stamp))
    return folder


def _index(*identifiers: str) -> MagicMock:
    index = MagicMock(spec=InstalledAppIndex)
    index.identifiers = AsyncMock(return_value=frozenset(identifiers))
    return index


@pytest.fixture
def support(isolated_home: Path) -> Path:
    """Candidate folder with one orphan, one installed app and one recent folder."""
    path = isolated_home / "Library" / "Application Support"
    _folder(path, "com.removed.tool", 2048)
    _folder(path, "com.installed.app", 4096)
    _folder(path, "com.recent.thing", 1024, age_days=1)

    config = isolated_home / ".config" / "molectl" / "config.toml"
    config.parent.mkdir(parents=True)
    config.write_text(
        f'verify_with_lookup = false\norphan_dirs = ["{path}"]\nservice_dirs = []\n',
        encoding="utf-8",
    )
    return path


class TestOrphansScan:
    """Tests for molectl orphans scan."""

    def test_table(self, support: Path) -> None:
        """Only inactive folders of uninstalled apps are listed."""
        with patch("molectl.cli.types.InstalledAppIndex", return_value=_index("com.installed.app")):
            result = runner.invoke(app, ["orphans", "scan"])

        assert result.exit_code == 0
        assert "Orphaned Application Data" in result.output
        assert "Found 1 orphaned entries (2.00 KB total)" in result.output

    def test_json(self, support: Path) -> None:
        """JSON output describes each orphan."""
        with patch("molectl.cli.types.InstalledAppIndex", return_value=_index("com.installed.app")):
            result = runner.invoke(app, ["orphans", "scan", "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [entry["identifier"] for entry in data] == ["com.removed.tool"]
        assert data[0]["app"] == "tool"
        assert data[0]["size"] == 2048
        assert data[0]["requires_admin"] is False

    def test_days_override(self, support: Path) -> None:
        """--days 0 also reports recently used folders."""
        with patch("molectl.cli.types.InstalledAppIndex", return_value=_index("com.installed.app")):
            result = runner.invoke(app, ["orphans", "scan", "--days", "0", "--format", "json"])

        data = json.loads(result.stdout)
        assert sorted(entry["identifier"] for entry in data) == ["com.recent.thing", "com.removed.tool"]

    def test_none_found(self, support: Path) -> None:
        """A clean system reports no orphans."""
        index = _index("com.installed.app", "com.removed.tool")
        with patch("molectl.cli.types.InstalledAppIndex", return_value=index):
            result = runner.invoke(app, ["orphans", "scan"])

        assert result.exit_code == 0
        assert "No orphaned application data found." in result.output

    def test_services_not_listed_twice(self, isolated_home: Path) -> None:
        """A descriptor seen by both the data and the service pass is listed once."""
        agents = isolated_home / "Library" / "LaunchAgents"
        agents.mkdir(parents=True)
        plist = agents / "com.gone.agent.plist"
        plist.write_bytes(b"x" * 512)
        stamp = time.time() - 90 * 86400
        os.utime(plist, (stamp, stamp))
        config = isolated_home / ".config" / "molectl" / "config.toml"
        config.parent.mkdir(parents=True)
        config.write_text(
            f'verify_with_lookup = false\norphan_dirs = ["{agents}"]\nservice_dirs = ["{agents}"]\n',
            encoding="utf-8",
        )

        with patch("molectl.cli.types.InstalledAppIndex", return_value=_index()):
            result = runner.invoke(app, ["orphans", "scan", "--services", "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [entry["path"] for entry in data] == [str(plist)]

class TestOrphansClean:
    """Tests for molectl orphans clean."""

    def test_dry_run(self, support: Path) -> None:
        """Dry runs report the orphans without removing them."""
        with (
            patch("molectl.cli.types.InstalledAppIndex", return_value=_index("com.installed.app")),
            patch("molectl.cleaning.trash.send2trash") as mock_send,
        ):
            result = runner.invoke(app, ["orphans", "clean", "--dry-run"])

        assert result.exit_code == 0
        assert "Would free 2.00 KB (1 item)" in result.output
        mock_send.assert_not_called()
        assert (support / "com.removed.tool").exists()

    def test_clean_with_yes(self, support: Path) -> None:
        """--yes trashes the orphans."""
        with (
            patch("molectl.cli.types.InstalledAppIndex", return_value=_index("com.installed.app")),
            patch("molectl.cleaning.trash.send2trash") as mock_send,
        ):
            result = runner.invoke(app, ["orphans", "clean", "--yes"])

        assert result.exit_code == 0
        mock_send.assert_called_once_with(str(support / "com.removed.tool"))
