"""Catalog of well-known reclaimable locations.

The catalog is data, not code: molectl/data/targets.toml holds one array
of tables per platform. Entries are validated with pydantic and turned
into immutable ScanTargets.
"""

import logging
import sys
import tomllib
from importlib import resources
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from molectl.core.config import ConfigError
from molectl.core.paths import expand_home
from molectl.models.items import Category, ScanTarget

logger = logging.getLogger(__name__)


class CatalogEntry(BaseModel):
    """One location in targets.toml."""

    model_config = ConfigDict(extra="forbid")

    path: Annotated[str, Field(min_length=1, description="Location, leading ~ allowed")]
    category: Category
    admin: bool = False
    expand: bool = False
    description: str | None = None

    def to_target(self) -> ScanTarget:
        """Convert to a ScanTarget with the home reference expanded."""
        return ScanTarget(
            path=Path(expand_home(self.path)),
            category=self.category,
            requires_admin=self.admin,
            expand=self.expand,
            description=self.description,
        )


def _platform_key() -> str:
    return "darwin" if sys.platform == "darwin" else "linux"


def get_bundled_catalog_path() -> Path:
    """Path of the catalog shipped with molectl."""
    return Path(str(resources.files("molectl.data").joinpath("targets.toml")))


def load_targets(
    path: Path | None = None,
    *,
    platform: str | None = None,
    categories: set[Category] | None = None,
) -> list[ScanTarget]:
    """Load scan targets for a platform.

    Args:
        path: Catalog file. Defaults to the bundled catalog.
        platform: ``"darwin"`` or ``"linux"``. Defaults to the running OS.
        categories: Keep only targets of these categories.

    Returns:
        Targets in catalog order.

    Raises:
        ConfigError: If the catalog cannot be read or is invalid.
    """
    catalog_path = path or get_bundled_catalog_path()
    key = platform or _platform_key()

    try:
        with open(catalog_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Failed to read scan catalog {catalog_path}: {e}") from e

    raw_entries = data.get(key, [])
    if not isinstance(raw_entries, list):
        raise ConfigError(f"Catalog section '{key}' must be an array of tables")

    try:
        entries = [CatalogEntry.model_validate(raw) for raw in raw_entries]
    except ValidationError as e:
        raise ConfigError(f"Invalid scan catalog entry: {e}") from e

    targets = [entry.to_target() for entry in entries]
    if categories is not None:
        targets = [target for target in targets if target.category in categories]
    logger.debug("Loaded %d scan targets for %s", len(targets), key)
    return targets
