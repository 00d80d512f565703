"""molectl configuration and settings.

Configuration is stored in ~/.config/molectl/config.toml. Every key is
optional; a missing file yields the defaults:

    inactivity_days = 60
    admin_batch_size = 10
    include_hidden = false
    yield_every = 100
    skip_running_apps = true
    verify_with_lookup = true
    log_max_bytes = 10485760
    elevation = "sudo"
    orphan_dirs = ["~/Library/Caches", "~/Library/Logs"]
    service_dirs = ["~/Library/LaunchAgents"]
"""

import os
import sys
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated, Literal

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from molectl.core.paths import expand_home, get_config_path

ElevationMethod = Literal["sudo", "osascript"]

DEFAULT_LOG_MAX_BYTES = 10 * 1024 * 1024

# Library folders that may hold data left behind by removed applications
_DARWIN_ORPHAN_DIRS: tuple[str, ...] = (
    "~/Library/Caches",
    "~/Library/Logs",
    "~/Library/Saved Application State",
    "~/Library/WebKit",
    "~/Library/HTTPStorages",
    "~/Library/Cookies",
)

_LINUX_ORPHAN_DIRS: tuple[str, ...] = (
    "~/.cache",
    "~/.local/share",
    "~/.var/app",
)

# Auto-start definitions; never listed among the orphan dirs above
_DARWIN_SERVICE_DIRS: tuple[str, ...] = (
    "~/Library/LaunchAgents",
    "/Library/LaunchAgents",
    "/Library/LaunchDaemons",
)

# /etc/xdg/autostart is left out: everything under /etc is protected
_LINUX_SERVICE_DIRS: tuple[str, ...] = (
    "~/.config/autostart",
    "~/.config/systemd/user",
)


def is_darwin() -> bool:
    """Whether molectl runs on macOS."""
    return sys.platform == "darwin"


class MolectlConfig(BaseModel):
    """Validated molectl settings.

    Attributes:
        inactivity_days: Minimum age before data counts as orphaned.
        admin_batch_size: Paths per privileged removal call.
        include_hidden: Include dot-entries when listing directories.
        yield_every: Processed entries between scheduler yields.
        skip_running_apps: Skip items whose owning app is running.
        verify_with_lookup: Consult the identifier-presence lookup before
            reporting an orphan.
        log_max_bytes: Size ceiling of the operation log before rotation.
        elevation: How privileged removals are authorised.
        orphan_dirs: Folders examined for orphaned app data.
        service_dirs: Folders examined for orphaned auto-start services.
    """

    model_config = ConfigDict(extra="forbid")

    inactivity_days: Annotated[int, Field(ge=0, description="Inactivity threshold in days")] = 60
    admin_batch_size: Annotated[int, Field(ge=1, le=100, description="Paths per elevated call")] = 10
    include_hidden: Annotated[bool, Field(description="List hidden entries")] = False
    yield_every: Annotated[int, Field(ge=1, description="Entries between yields")] = 100
    skip_running_apps: Annotated[bool, Field(description="Skip running owners")] = True
    verify_with_lookup: Annotated[bool, Field(description="Use presence lookup")] = True
    log_max_bytes: Annotated[
        int, Field(ge=1024, description="Operation log rotation ceiling")
    ] = DEFAULT_LOG_MAX_BYTES
    elevation: Annotated[ElevationMethod, Field(description="Privilege elevation method")] = "sudo"
    orphan_dirs: Annotated[
        list[str] | None, Field(description="Orphan candidate folders (None = platform default)")
    ] = None
    service_dirs: Annotated[
        list[str] | None, Field(description="Service folders (None = platform default)")
    ] = None

    @property
    def effective_orphan_dirs(self) -> tuple[Path, ...]:
        """Orphan candidate folders with ``~`` expanded."""
        if self.orphan_dirs is not None:
            raw: tuple[str, ...] = tuple(self.orphan_dirs)
        else:
            raw = _DARWIN_ORPHAN_DIRS if is_darwin() else _LINUX_ORPHAN_DIRS
        return tuple(Path(expand_home(p)) for p in raw)

    @property
    def effective_service_dirs(self) -> tuple[Path, ...]:
        """Service folders with ``~`` expanded."""
        if self.service_dirs is not None:
            raw: tuple[str, ...] = tuple(self.service_dirs)
        else:
            raw = _DARWIN_SERVICE_DIRS if is_darwin() else _LINUX_SERVICE_DIRS
        return tuple(Path(expand_home(p)) for p in raw)


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigParseError(ConfigError):
    """Raised when the config file cannot be parsed."""


def load_config(path: Path | None = None) -> MolectlConfig:
    """Load configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default path.

    Returns:
        Validated MolectlConfig; defaults when the file does not exist.

    Raises:
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the file is unreadable or violates the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        return MolectlConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return MolectlConfig.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise ConfigError(f"Invalid config content: {e}") from e


def save_config(config: MolectlConfig, path: Path | None = None) -> Path:
    """Save configuration to a TOML file atomically.

    Only values that differ from the defaults are written.

    Args:
        config: The configuration to save.
        path: Destination. If None, uses the default path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump(exclude_defaults=True, exclude_none=True)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(mode="wb", dir=config_path.parent, delete=False, suffix=".tmp") as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path
