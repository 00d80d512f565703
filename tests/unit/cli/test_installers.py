"""Unit tests for the installers commands."""

import json
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import patch

import pytest
from molectl.cli.main import app
from molectl.scanning.installers import InstallerLocation, InstallerSource
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture
def downloads(isolated_home: Path) -> Iterator[Path]:
    """Downloads folder with one disk image and one unrelated file."""
    folder = isolated_home / "Downloads"
    folder.mkdir()
    (folder / "Slack.dmg").write_bytes(b"x" * 2048)
    (folder / "report.pdf").write_bytes(b"x" * 4096)
    locations = (InstallerLocation(folder, InstallerSource.DOWNLOADS),)
    with patch("molectl.scanning.installers.default_locations", return_value=locations):
        yield folder


class TestInstallersScan:
    """Tests for molectl installers scan."""

    def test_table(self, downloads: Path) -> None:
        """Installer files are listed with their total."""
        result = runner.invoke(app, ["installers", "scan"])

        assert result.exit_code == 0
        assert "Installer Files" in result.output
        assert "Found 1 installers (2.00 KB total)" in result.output

    def test_json(self, downloads: Path) -> None:
        """JSON output describes each installer."""
        result = runner.invoke(app, ["installers", "scan", "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data == [
            {"path": str(downloads / "Slack.dmg"), "name": "Slack.dmg", "location": "Downloads", "size": 2048}
        ]

    def test_none_found(self, downloads: Path) -> None:
        """Without installers a success message is shown."""
        (downloads / "Slack.dmg").unlink()
        result = runner.invoke(app, ["installers", "scan"])

        assert result.exit_code == 0
        assert "No installer files found." in result.output


class TestInstallersClean:
    """Tests for molectl installers clean."""

    def test_dry_run(self, downloads: Path) -> None:
        """Dry runs report installers without removing them."""
        with patch("molectl.cleaning.trash.send2trash") as mock_send:
            result = runner.invoke(app, ["installers", "clean", "--dry-run"])

        assert result.exit_code == 0
        assert "Would free 2.00 KB (1 item)" in result.output
        mock_send.assert_not_called()

    def test_clean_with_yes(self, downloads: Path) -> None:
        """--yes moves installers to the trash through the orchestrator."""
        with patch("molectl.cleaning.trash.send2trash") as mock_send:
            result = runner.invoke(app, ["installers", "clean", "--yes"])

        assert result.exit_code == 0
        mock_send.assert_called_once_with(str(downloads / "Slack.dmg"))
        assert "Freed 2.00 KB (1 item)" in result.output

    def test_confirmation_declined(self, downloads: Path) -> None:
        """Declining the prompt removes nothing."""
        with patch("molectl.cleaning.trash.send2trash") as mock_send:
            result = runner.invoke(app, ["installers", "clean"], input="n\n")

        assert result.exit_code == 0
        assert "Aborted." in result.output
        mock_send.assert_not_called()
