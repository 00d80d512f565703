"""Unit tests for application bundles and their leftovers."""

import plistlib
from pathlib import Path

import pytest
from molectl.models.items import Category
from molectl.ownership.remnants import (
    AppUninstaller,
    InstalledApp,
    RemnantLocation,
    RemnantType,
    brew_cask_names,
    default_remnant_locations,
    remnant_patterns,
)
from molectl.policy import ProtectionPolicy, ProtectionRule
from molectl.scanning.traversal import ScanCancelledError, TraversalEngine


def _bundle(parent: Path, name: str, identifier: str | None, size: int = 1000, version: str = "1.0") -> Path:
    bundle = parent / f"{name}.app"
    contents = bundle / "Contents"
    contents.mkdir(parents=True)
    info: dict[str, str] = {"CFBundleShortVersionString": version}
    if identifier is not None:
        info["CFBundleIdentifier"] = identifier
    with open(contents / "Info.plist", "wb") as f:
        plistlib.dump(info, f)
    (contents / "binary").write_bytes(b"x" * size)
    return bundle


def _remnant(parent: Path, name: str, size: int = 100) -> Path:
    path = parent / name
    path.mkdir(parents=True)
    (path / "data").write_bytes(b"x" * size)
    return path


@pytest.fixture
def library(isolated_home: Path) -> Path:
    library = isolated_home / "Library"
    _remnant(library / "Application Support", "Slack", 400)
    _remnant(library / "Caches", "com.tinyspeck.slackmacgap", 300)
    _remnant(library / "Caches", "com.other.app", 999)
    _remnant(library / "Saved Application State", "com.tinyspeck.slackmacgap.savedState", 50)
    (library / "Preferences").mkdir()
    (library / "Preferences" / "com.tinyspeck.slackmacgap.plist").write_bytes(b"x" * 20)
    return library


def _locations(library: Path) -> list[RemnantLocation]:
    return [
        RemnantLocation(library / "Application Support", RemnantType.APPLICATION_SUPPORT),
        RemnantLocation(library / "Caches", RemnantType.CACHES),
        RemnantLocation(library / "Preferences", RemnantType.PREFERENCES),
        RemnantLocation(library / "Saved Application State", RemnantType.SAVED_STATE),
    ]


def _uninstaller(
    apps: Path,
    library: Path,
    *,
    policy: ProtectionPolicy | None = None,
    caskrooms: tuple[Path, ...] = (),
    engine: TraversalEngine | None = None,
) -> AppUninstaller:
    return AppUninstaller(
        engine or TraversalEngine(),
        policy or ProtectionPolicy(),
        app_dirs=[apps],
        locations=_locations(library),
        caskrooms=caskrooms,
    )


class TestRemnantPatterns:
    """Tests for remnant_patterns."""

    def test_variants(self) -> None:
        """Identifier and name variants are folded and deduplicated."""
        assert remnant_patterns("com.Example.App", "Visual Studio Code") == (
            "com.example.app",
            "visual studio code",
            "visualstudiocode",
            "visual-studio-code",
            "visual_studio_code",
        )

    def test_short_names_dropped(self) -> None:
        """Very short names would match unrelated folders and are skipped."""
        assert remnant_patterns(None, "Go") == ()
        assert remnant_patterns("io.go", "Go") == ("io.go",)


class TestInstalledApp:
    """Tests for InstalledApp.matches."""

    def test_matches(self, tmp_path: Path) -> None:
        """Name, bundle name, identifier and path all select the app."""
        app = InstalledApp(path=tmp_path / "Slack.app", name="Slack", identifier="com.tinyspeck.slackmacgap")
        assert app.matches("slack")
        assert app.matches("Slack.app")
        assert app.matches("COM.TINYSPECK.SLACKMACGAP")
        assert app.matches(str(tmp_path / "Slack.app"))
        assert not app.matches("Discord")


class TestDefaults:
    """Tests for platform defaults and cask detection."""

    def test_remnant_locations(self, isolated_home: Path) -> None:
        """macOS searches the Library folders, Linux the XDG folders."""
        darwin = {location.path for location in default_remnant_locations("darwin")}
        linux = {location.path for location in default_remnant_locations("linux")}
        assert isolated_home / "Library" / "Group Containers" in darwin
        assert Path("/Library/LaunchDaemons") in darwin
        assert isolated_home / ".config" / "autostart" in linux
        assert isolated_home / ".var" / "app" in linux

    def test_brew_cask_names(self, tmp_path: Path) -> None:
        """Cask names are mapped with dashes read as spaces."""
        caskroom = tmp_path / "Caskroom"
        (caskroom / "visual-studio-code").mkdir(parents=True)
        (caskroom / "slack").mkdir()

        casks = brew_cask_names([tmp_path / "missing", caskroom])

        assert casks["visual studio code"] == "visual-studio-code"
        assert casks["slack"] == "slack"
        assert brew_cask_names([tmp_path / "missing"]) == {}


class TestListApps:
    """Tests for AppUninstaller.list_apps."""

    async def test_lists_bundles(self, tmp_path: Path, library: Path) -> None:
        """Bundles are described from Info.plist and sorted largest first."""
        apps = tmp_path / "Applications"
        _bundle(apps, "Slack", "com.tinyspeck.slackmacgap", size=5000, version="4.36")
        _bundle(apps / "Utilities", "Tiny", None, size=10)
        caskroom = tmp_path / "Caskroom"
        (caskroom / "slack").mkdir(parents=True)

        result = await _uninstaller(apps, library, caskrooms=(caskroom,)).list_apps()

        assert [app.name for app in result] == ["Slack", "Tiny"]
        slack = result[0]
        assert slack.identifier == "com.tinyspeck.slackmacgap"
        assert slack.version == "4.36"
        assert slack.size > 5000
        assert slack.brew_cask == "slack"
        assert result[1].identifier is None
        assert result[1].brew_cask is None

    async def test_no_app_dirs_on_linux(self, library: Path) -> None:
        """Without application folders nothing is listed."""
        uninstaller = AppUninstaller(TraversalEngine(), ProtectionPolicy(), platform="linux", caskrooms=())
        assert await uninstaller.list_apps() == []

    async def test_cancel(self, tmp_path: Path, library: Path) -> None:
        """A pending cancel aborts the listing and is then cleared."""
        apps = tmp_path / "Applications"
        _bundle(apps, "Slack", "com.tinyspeck.slackmacgap")
        uninstaller = _uninstaller(apps, library)
        uninstaller.cancel()

        with pytest.raises(ScanCancelledError):
            await uninstaller.list_apps()

        assert len(await uninstaller.list_apps()) == 1


class TestFindRemnants:
    """Tests for AppUninstaller.find_remnants."""

    async def test_matches_identifier_and_name(self, tmp_path: Path, library: Path) -> None:
        """Entries named after the identifier or the app are leftovers."""
        items = await _uninstaller(tmp_path, library).find_remnants("com.tinyspeck.slackmacgap", "Slack")

        assert [item.name for item in items] == [
            "Slack",
            "com.tinyspeck.slackmacgap",
            "com.tinyspeck.slackmacgap.savedState",
            "com.tinyspeck.slackmacgap.plist",
        ]
        assert [item.subtitle for item in items] == ["Application Support", "Caches", "Saved State", "Preferences"]
        assert all(item.category is Category.APP_REMNANTS for item in items)
        assert all(item.requires_admin is False for item in items)
        assert items[0].size == 400

    async def test_protected_remnants_left_out(self, tmp_path: Path, library: Path) -> None:
        """Leftovers under a protected path are not planned."""
        policy = ProtectionPolicy(user=ProtectionRule(paths=frozenset({str(library / "Application Support")})))

        items = await _uninstaller(tmp_path, library, policy=policy).find_remnants(
            "com.tinyspeck.slackmacgap", "Slack"
        )

        assert "Slack" not in [item.name for item in items]
        assert len(items) == 3

    async def test_outside_home_requires_admin(self, tmp_path: Path) -> None:
        """Leftovers outside the home directory need admin rights."""
        agents = tmp_path / "LaunchDaemons"
        agents.mkdir()
        (agents / "com.example.helper.plist").write_bytes(b"x" * 10)
        uninstaller = AppUninstaller(
            TraversalEngine(),
            ProtectionPolicy(),
            app_dirs=[],
            locations=[RemnantLocation(agents, RemnantType.LAUNCH_DAEMONS)],
            caskrooms=(),
        )

        items = await uninstaller.find_remnants("com.example.helper", "Helper")

        assert [item.requires_admin for item in items] == [True]
        assert items[0].subtitle == "Launch Daemons"


class TestPlan:
    """Tests for AppUninstaller.plan."""

    async def test_bundle_then_remnants(self, tmp_path: Path, library: Path) -> None:
        """The bundle comes first, followed by its leftovers."""
        apps = tmp_path / "Applications"
        bundle = _bundle(apps, "Slack", "com.tinyspeck.slackmacgap", version="4.36")
        uninstaller = _uninstaller(apps, library)
        app = (await uninstaller.list_apps())[0]

        items = await uninstaller.plan(app)

        assert items[0].path == bundle
        assert items[0].category is Category.APPLICATIONS
        assert items[0].display_name == "Slack"
        assert items[0].subtitle == "4.36"
        assert items[0].requires_admin is False
        assert len(items) == 5
        assert all(item.category is Category.APP_REMNANTS for item in items[1:])

    async def test_keep_remnants(self, tmp_path: Path, library: Path) -> None:
        """Without remnants only the bundle is planned."""
        apps = tmp_path / "Applications"
        _bundle(apps, "Slack", "com.tinyspeck.slackmacgap")
        uninstaller = _uninstaller(apps, library)
        app = (await uninstaller.list_apps())[0]

        items = await uninstaller.plan(app, include_remnants=False)

        assert [item.category for item in items] == [Category.APPLICATIONS]

    async def test_protected_app_refused(self, tmp_path: Path, library: Path) -> None:
        """Protected applications cannot be uninstalled."""
        app = InstalledApp(path=tmp_path / "Safari.app", name="Safari", identifier="com.apple.Safari")

        with pytest.raises(PermissionError, match="protected application"):
            await _uninstaller(tmp_path, library).plan(app)
