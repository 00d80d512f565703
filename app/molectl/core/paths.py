"""XDG-compliant path management for molectl.

This module provides standardized paths following the XDG Base Directory
Specification. All per-user files live in the configuration directory.

XDG defaults:
- Config: ~/.config/molectl/  (config.toml, whitelist.toml, operations.log)
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "molectl"

OPERATIONS_LOG_NAME = "operations.log"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/molectl/ (or XDG_CONFIG_HOME/molectl/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_config_path() -> Path:
    """Get the main configuration file path.

    Returns:
        Path to ~/.config/molectl/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_whitelist_path() -> Path:
    """Get the user whitelist file path.

    Returns:
        Path to ~/.config/molectl/whitelist.toml.
    """
    return get_config_dir() / "whitelist.toml"


def get_operations_log_path() -> Path:
    """Get the operation log file path.

    The operation log is the durable audit trail of every clean attempt.
    It lives next to the configuration so a single directory holds all
    per-user data.

    Returns:
        Path to ~/.config/molectl/operations.log.
    """
    return get_config_dir() / OPERATIONS_LOG_NAME


def _ensure_dir(path: Path, name: str) -> Path:
    """Create directory if it doesn't exist.

    Args:
        path: Directory path to create.
        name: Human-readable name for error messages.

    Returns:
        The created/existing directory path.

    Raises:
        RuntimeError: If directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create {name} directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create {name} directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path


def ensure_config_dir() -> Path:
    """Create the configuration directory if it doesn't exist.

    Returns:
        Path to the configuration directory.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_config_dir(), "config")


def ensure_dir(path: Path, name: str = "log") -> Path:
    """Create an arbitrary directory, raising RuntimeError on failure.

    Args:
        path: Directory path to create.
        name: Human-readable name for error messages.

    Returns:
        The created/existing directory path.
    """
    return _ensure_dir(path, name)


def contract_home(path: Path | str) -> str:
    """Format a path with a leading tilde when it lives under the home directory.

    Args:
        path: Path to format.

    Returns:
        Tilde-prefixed path string for home paths, absolute string otherwise.
    """
    target = Path(path)
    try:
        relative = target.relative_to(Path.home())
    except ValueError:
        return str(target)
    return f"~/{relative}"


def expand_home(path: str) -> str:
    """Expand a leading ``~`` to the current user's home directory.

    Only a leading ``~`` (alone or followed by ``/``) is expanded, other
    tildes in the path are left untouched.

    Args:
        path: Path string, possibly starting with ``~``.

    Returns:
        Path string with the home reference expanded.
    """
    if path == "~":
        return str(Path.home())
    if path.startswith("~/"):
        return str(Path.home()) + path[1:]
    return path
