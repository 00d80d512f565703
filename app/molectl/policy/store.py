"""Persistence of the user layer of the protection whitelist.

The user whitelist is stored in ~/.config/molectl/whitelist.toml:

    paths = ["~/Library/Caches/com.example.keep"]
    apps = ["com.example.editor"]
    cache_names = ["JetBrains"]
    orphan_ids = ["com.example.*"]

Built-in entries are never written to this file and can never be removed.
"""

import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from molectl.core.paths import get_whitelist_path
from molectl.policy.whitelist import BUILTIN_RULE, ProtectionPolicy, ProtectionRule, RuleKind


class WhitelistError(Exception):
    """Raised when the user whitelist cannot be read, written or changed."""


class WhitelistFile(BaseModel):
    """Schema of whitelist.toml."""

    model_config = ConfigDict(extra="forbid")

    paths: Annotated[list[str], Field(default_factory=list, description="Protected path prefixes")]
    apps: Annotated[list[str], Field(default_factory=list, description="Protected app identifiers")]
    cache_names: Annotated[
        list[str], Field(default_factory=list, description="Protected cache-name substrings")
    ]
    orphan_ids: Annotated[
        list[str], Field(default_factory=list, description="Identifiers never reported as orphans")
    ]

    def to_rule(self) -> ProtectionRule:
        """Convert to an immutable ProtectionRule."""
        return ProtectionRule(
            paths=frozenset(self.paths),
            apps=frozenset(self.apps),
            cache_names=frozenset(self.cache_names),
            orphan_ids=frozenset(self.orphan_ids),
        )

    @classmethod
    def from_rule(cls, rule: ProtectionRule) -> "WhitelistFile":
        """Build a serializable model from a rule, entries sorted."""
        return cls(
            paths=sorted(rule.paths),
            apps=sorted(rule.apps),
            cache_names=sorted(rule.cache_names),
            orphan_ids=sorted(rule.orphan_ids),
        )


class WhitelistStore:
    """Loads and saves the user whitelist and applies edits to it.

    Args:
        path: Optional override for the whitelist file location.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path if path is not None else get_whitelist_path()

    @property
    def path(self) -> Path:
        """Location of the whitelist file."""
        return self._path

    def load(self) -> ProtectionRule:
        """Read the user rule; a missing file yields an empty rule.

        Raises:
            WhitelistError: If the file is unreadable or invalid.
        """
        if not self._path.exists():
            return ProtectionRule()

        try:
            with open(self._path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise WhitelistError(f"Invalid TOML syntax in {self._path}: {e}") from e
        except OSError as e:
            raise WhitelistError(f"Failed to read whitelist: {e}") from e

        try:
            return WhitelistFile.model_validate(data).to_rule()
        except ValidationError as e:
            raise WhitelistError(f"Invalid whitelist content: {e}") from e

    def save(self, rule: ProtectionRule) -> Path:
        """Write the user rule atomically.

        Raises:
            WhitelistError: If the file cannot be written.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = WhitelistFile.from_rule(rule).model_dump()

        tmp_path: Path | None = None
        try:
            with NamedTemporaryFile(mode="wb", dir=self._path.parent, delete=False, suffix=".tmp") as f:
                tmp_path = Path(f.name)
                tomli_w.dump(data, f)
            os.replace(str(tmp_path), str(self._path))
        except OSError as e:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
            raise WhitelistError(f"Failed to write whitelist: {e}") from e

        return self._path

    def load_policy(self) -> ProtectionPolicy:
        """Build a ProtectionPolicy from the built-in rule and the user file."""
        return ProtectionPolicy(builtin=BUILTIN_RULE, user=self.load())

    def add(self, kind: RuleKind, value: str) -> bool:
        """Add a user entry.

        Returns:
            False if the entry was already present (built-in or user).
        """
        value = value.strip()
        if not value:
            raise WhitelistError("Whitelist entry cannot be empty")

        rule = self.load()
        if value in rule.entries(kind) or value in BUILTIN_RULE.entries(kind):
            return False

        self.save(rule.with_entry(kind, value))
        return True

    def remove(self, kind: RuleKind, value: str) -> bool:
        """Remove a user entry.

        Returns:
            False if the entry was not in the user layer.

        Raises:
            WhitelistError: If the entry is built-in.
        """
        if value in BUILTIN_RULE.entries(kind):
            raise WhitelistError(f"Built-in {kind.value} entry cannot be removed: {value}")

        rule = self.load()
        if value not in rule.entries(kind):
            return False

        self.save(rule.without_entry(kind, value))
        return True
