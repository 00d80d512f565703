"""Unit tests for the purge command."""

import os
import time
from pathlib import Path
from unittest.mock import patch

import pytest
from molectl.cli.main import app
from typer.testing import CliRunner

runner = CliRunner()


def _artifact(root: Path, project: str, name: str, size: int, age_days: int) -> Path:
    artifact = root / project / name
    artifact.mkdir(parents=True)
    (artifact / "blob").write_bytes(b"x" * size)
    stamp = time.time() - age_days * 86400
    os.utime(artifact, (stamp, stamp))
    return artifact


@pytest.fixture
def projects(tmp_path: Path) -> Path:
    root = tmp_path / "code"
    _artifact(root, "web", "node_modules", 2048, age_days=30)
    _artifact(root, "api", ".venv", 1024, age_days=1)
    return root


class TestPurgeCommand:
    """Tests for molectl purge."""

    def test_dry_run_skips_recent(self, projects: Path) -> None:
        """Recently modified artifacts are listed but not purged."""
        with patch("molectl.cleaning.trash.send2trash") as mock_send:
            result = runner.invoke(app, ["purge", str(projects), "--dry-run"])

        assert result.exit_code == 0
        assert "Project Artifacts" in result.output
        assert "Would free 2.00 KB (1 item)" in result.output
        mock_send.assert_not_called()

    def test_include_recent(self, projects: Path) -> None:
        """--include-recent selects every artifact."""
        result = runner.invoke(app, ["purge", str(projects), "--dry-run", "--include-recent"])

        assert result.exit_code == 0
        assert "Would free 3.00 KB (2 items)" in result.output

    def test_yes_moves_to_trash(self, projects: Path) -> None:
        """--yes trashes the selected artifacts."""
        with patch("molectl.cleaning.trash.send2trash") as mock_send:
            result = runner.invoke(app, ["purge", str(projects), "--yes"])

        assert result.exit_code == 0
        mock_send.assert_called_once_with(str(projects / "web" / "node_modules"))

    def test_only_recent(self, tmp_path: Path) -> None:
        """When everything is recent nothing is purged."""
        root = tmp_path / "code"
        _artifact(root, "api", "target", 512, age_days=0)

        result = runner.invoke(app, ["purge", str(root), "--yes"])

        assert result.exit_code == 0
        assert "--include-recent" in result.output

    def test_no_artifacts(self, tmp_path: Path) -> None:
        """An empty folder reports nothing found."""
        result = runner.invoke(app, ["purge", str(tmp_path)])
        assert result.exit_code == 0
        assert "No build artifacts found." in result.output

    def test_invalid_path(self, tmp_path: Path) -> None:
        """A missing folder exits with an error."""
        result = runner.invoke(app, ["purge", str(tmp_path / "missing")])
        assert result.exit_code == 1
        assert "Not a directory" in result.output
