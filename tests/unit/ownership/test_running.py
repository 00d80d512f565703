"""Unit tests for running-owner detection."""

import plistlib
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from molectl.ownership.running import (
    RunningOwnerDetector,
    collect_running_ids,
    extract_identifier,
    owner_identifiers,
    read_bundle_identifier,
)


def _bundle(root: Path, name: str, identifier: str) -> Path:
    bundle = root / f"{name}.app"
    contents = bundle / "Contents"
    contents.mkdir(parents=True)
    with open(contents / "Info.plist", "wb") as f:
        plistlib.dump({"CFBundleIdentifier": identifier}, f)
    return bundle


class TestExtractIdentifier:
    """Tests for extract_identifier."""

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/Users/me/Library/Caches/com.tinyspeck.slackmacgap", "com.tinyspeck.slackmacgap"),
            ("/Users/me/Library/Caches/com.spotify.client/Data/x", "com.spotify.client"),
            ("/a/com.outer.app/org.inner.tool/file", "org.inner.tool"),
            ("/Users/me/Library/Caches/Google/Chrome", None),
            ("/tmp/a.b", None),
            ("/tmp/x.y.z", None),
        ],
    )
    def test_extract(self, path: str, expected: str | None) -> None:
        """The deepest component with three or more parts is returned."""
        assert extract_identifier(path) == expected


class TestOwnerIdentifiers:
    """Tests for owner_identifiers."""

    def test_identifier_preferred(self) -> None:
        """An identifier in the path wins over aliases."""
        assert owner_identifiers("/Caches/Google/com.google.Chrome") == ("com.google.Chrome",)

    def test_alias_lookup(self) -> None:
        """Well-known folder names resolve through the alias table."""
        assert "com.google.Chrome" in owner_identifiers("/Users/me/Library/Caches/Google/Chrome")

    def test_unknown(self) -> None:
        """Unknown folders have no owner."""
        assert owner_identifiers("/tmp/random/folder") == ()


class TestReadBundleIdentifier:
    """Tests for read_bundle_identifier."""

    def test_reads_plist(self, tmp_path: Path) -> None:
        """The CFBundleIdentifier of a bundle is returned."""
        bundle = _bundle(tmp_path, "Slack", "com.tinyspeck.slackmacgap")
        assert read_bundle_identifier(bundle) == "com.tinyspeck.slackmacgap"

    def test_missing_plist(self, tmp_path: Path) -> None:
        """Bundles without Info.plist yield None."""
        (tmp_path / "Broken.app").mkdir()
        assert read_bundle_identifier(tmp_path / "Broken.app") is None


class TestCollectRunningIds:
    """Tests for collect_running_ids."""

    def test_names_and_bundle_ids(self, tmp_path: Path) -> None:
        """Process names and bundle identifiers are collected."""
        bundle = _bundle(tmp_path, "Slack", "com.tinyspeck.slackmacgap")
        procs = [
            MagicMock(info={"name": "Slack", "exe": str(bundle / "Contents" / "MacOS" / "Slack")}),
            MagicMock(info={"name": "bash", "exe": "/bin/bash"}),
            MagicMock(info={"name": None, "exe": None}),
        ]
        with (
            patch("molectl.ownership.running.psutil.process_iter", return_value=procs),
            patch("molectl.ownership.running.sys.platform", "darwin"),
        ):
            ids = collect_running_ids()

        assert ids == {"Slack", "com.tinyspeck.slackmacgap", "bash"}


class TestRunningOwnerDetector:
    """Tests for RunningOwnerDetector."""

    def test_running_owner_case_insensitive(self) -> None:
        """Identifiers are compared case-insensitively."""
        detector = RunningOwnerDetector(["COM.Spotify.Client"])
        assert detector.running_owner("/Caches/com.spotify.client") == "com.spotify.client"
        assert detector.is_owner_running("/Caches/com.spotify.client/Data")

    def test_not_running(self) -> None:
        """Paths whose owner is not running report None."""
        detector = RunningOwnerDetector(["com.spotify.client"])
        assert detector.running_owner("/Caches/com.tinyspeck.slackmacgap") is None
        assert detector.running_owner("/tmp/plain") is None

    def test_alias_owner(self) -> None:
        """Alias folders are matched against running process names."""
        detector = RunningOwnerDetector(["firefox"])
        assert detector.running_owner("/home/me/.cache/mozilla/firefox") == "firefox"

    async def test_refresh_uses_source(self) -> None:
        """refresh replaces the snapshot with the source's answer."""
        detector = RunningOwnerDetector(source=lambda: {"com.example.app"})
        assert detector.running_ids == frozenset()

        ids = await detector.refresh()

        assert ids == {"com.example.app"}
        assert detector.is_owner_running("/x/com.example.app")
