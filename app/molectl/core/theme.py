"""Theme management for the molectl CLI.

Colours come from the bundled data/theme.toml and may be overridden
key-by-key in ~/.config/molectl/theme.toml.
"""

import logging
import tomllib
from importlib import resources
from pathlib import Path
from typing import Any, cast

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from rich.theme import Theme

from molectl.core.paths import get_config_dir

logger = logging.getLogger(__name__)


class ThemeColors(BaseModel):
    """Colour configuration for the molectl CLI.

    All colours must be hex codes (#RRGGBB or #RGB).
    """

    model_config = ConfigDict(extra="forbid")

    text: str = "#ffffff"
    muted: str = "#a4b0be"
    header: str = "#7bb2d9"
    border: str = "#34495e"

    success: str = "#2ecc71"
    warning: str = "#f1c40f"
    error: str = "#e74c3c"
    info: str = "#48c9d0"

    risk_low: str = "#2ecc71"
    risk_medium: str = "#f39c12"
    risk_high: str = "#e74c3c"

    size: str = "#48c9d0"
    path: str = "#95a5a6"

    @field_validator("*", mode="before")
    @classmethod
    def validate_hex_color(cls, v: object, info: Any) -> str:
        """Validate that all colour values are hex codes."""
        if not isinstance(v, str):
            msg = f"{info.field_name}: color must be a string"
            raise ValueError(msg)
        color = v.strip()
        if not color.startswith("#"):
            msg = f"{info.field_name}: color must start with '#'"
            raise ValueError(msg)
        color_part = color[1:]
        if len(color_part) not in (3, 6):
            msg = f"{info.field_name}: color must be #RGB or #RRGGBB format"
            raise ValueError(msg)
        try:
            int(color_part, 16)
        except ValueError:
            msg = f"{info.field_name}: invalid hex color '{color}'"
            raise ValueError(msg) from None
        return color


def get_user_theme_path() -> Path:
    """Path of the optional user theme override."""
    return get_config_dir() / "theme.toml"


def get_bundled_theme_path() -> Path:
    """Path of the bundled default theme."""
    return Path(str(resources.files("molectl.data").joinpath("theme.toml")))


def _load_toml_colors(path: Path) -> dict[str, str] | None:
    """Read the ``[colors]`` table of a theme file.

    Returns:
        Colour name to hex value, or None if the file is missing or broken.
    """
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        return None
    except tomllib.TOMLDecodeError as e:
        logger.warning("Failed to parse theme file %s: %s", path, e)
        return None
    except OSError as e:
        logger.warning("Failed to read theme file %s: %s", path, e)
        return None

    colors_raw: object = data.get("colors", {})
    if not isinstance(colors_raw, dict):
        logger.warning("Invalid 'colors' section in %s", path)
        return None
    return {
        key: value
        for key, value in cast(dict[str, object], colors_raw).items()
        if isinstance(value, str)
    }


def load_theme(user_path: Path | None = None) -> ThemeColors:
    """Load theme colours, user overrides taking priority over the bundled file.

    Args:
        user_path: Override for the user theme location (tests).

    Returns:
        Validated ThemeColors; the built-in defaults if validation fails.
    """
    colors = _load_toml_colors(get_bundled_theme_path())
    if colors is None:
        logger.error("Failed to load bundled theme, installation may be corrupted")
        colors = {}

    overrides = _load_toml_colors(user_path or get_user_theme_path())
    if overrides is not None:
        logger.debug("Loaded user theme overrides")
        colors = {**colors, **overrides}

    try:
        return ThemeColors(**colors)
    except ValidationError as e:
        logger.warning("Theme validation failed, using defaults: %s", e)
        return ThemeColors()


def get_rich_theme(colors: ThemeColors | None = None) -> Theme:
    """Convert ThemeColors into a Rich Theme."""
    if colors is None:
        colors = load_theme()

    styles: dict[str, str] = {
        "text": colors.text,
        "muted": colors.muted,
        "header": colors.header,
        "border": colors.border,
        "success": colors.success,
        "warning": colors.warning,
        "error": f"bold {colors.error}",
        "info": colors.info,
        "risk_low": colors.risk_low,
        "risk_medium": colors.risk_medium,
        "risk_high": f"bold {colors.risk_high}",
        "size": colors.size,
        "path": colors.path,
        "bold_header": f"bold {colors.header}",
    }
    return Theme(styles)


_cached_theme: Theme | None = None


def get_theme() -> Theme:
    """Get the Rich theme, loading and caching it on first use."""
    global _cached_theme
    if _cached_theme is None:
        _cached_theme = get_rich_theme()
    return _cached_theme
