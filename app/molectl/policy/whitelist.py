"""Protection policy: paths, apps and identifiers that must never be removed.

The policy combines a static built-in rule with a user-extensible rule.
All checks are pure functions of the configured rules: they touch neither
the filesystem nor global state.

Independently of any whitelist entry, paths containing a directory
traversal sequence or a raw control character are rejected outright.
"""

import fnmatch
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path, PurePosixPath

from molectl.core.paths import expand_home


class RuleKind(str, Enum):
    """The four protection domains."""

    PATH = "path"
    APP = "app"
    CACHE = "cache"
    ORPHAN = "orphan"


@dataclass(frozen=True, slots=True)
class ProtectionRule:
    """A set of protection entries.

    Attributes:
        paths: Protected path prefixes; a leading ``~`` means the home directory.
        apps: Protected application identifiers (exact match).
        cache_names: Protected cache-name substrings (case-insensitive).
        orphan_ids: Identifier patterns never reported as orphaned
            (glob-style, case-insensitive).
    """

    paths: frozenset[str] = field(default_factory=frozenset)
    apps: frozenset[str] = field(default_factory=frozenset)
    cache_names: frozenset[str] = field(default_factory=frozenset)
    orphan_ids: frozenset[str] = field(default_factory=frozenset)

    def entries(self, kind: RuleKind) -> frozenset[str]:
        """Entries of one protection domain."""
        return getattr(self, _FIELD_BY_KIND[kind])

    def with_entry(self, kind: RuleKind, value: str) -> "ProtectionRule":
        """Return a copy with ``value`` added to the ``kind`` domain."""
        name = _FIELD_BY_KIND[kind]
        return replace(self, **{name: self.entries(kind) | {value}})

    def without_entry(self, kind: RuleKind, value: str) -> "ProtectionRule":
        """Return a copy with ``value`` removed from the ``kind`` domain."""
        name = _FIELD_BY_KIND[kind]
        return replace(self, **{name: self.entries(kind) - {value}})

    def merged(self, other: "ProtectionRule") -> "ProtectionRule":
        """Union of two rules."""
        return ProtectionRule(
            paths=self.paths | other.paths,
            apps=self.apps | other.apps,
            cache_names=self.cache_names | other.cache_names,
            orphan_ids=self.orphan_ids | other.orphan_ids,
        )


_FIELD_BY_KIND: dict[RuleKind, str] = {
    RuleKind.PATH: "paths",
    RuleKind.APP: "apps",
    RuleKind.CACHE: "cache_names",
    RuleKind.ORPHAN: "orphan_ids",
}


BUILTIN_RULE = ProtectionRule(
    paths=frozenset(
        {
            # System critical
            "/System",
            "/usr",
            "/bin",
            "/sbin",
            "/etc",
            "/boot",
            "/private/var",
            "/Library/Apple",
            # User critical
            "~/Library/Keychains",
            "~/Library/Application Scripts",
            "~/.ssh",
            "~/.gnupg",
            "~/.config/molectl",
            "~/.config/dconf",
            "~/.local/share/keyrings",
        }
    ),
    apps=frozenset(
        {
            "com.apple.finder",
            "com.apple.Safari",
            "com.apple.AppStore",
            "com.apple.systempreferences",
            "com.apple.Terminal",
            "com.apple.dt.Xcode",
        }
    ),
    cache_names=frozenset(
        {
            "CloudKit",
            "com.apple.Safari",
            "com.apple.Finder",
            "com.apple.metadata",
            "com.apple.nsurlsessiond",
        }
    ),
    orphan_ids=frozenset(
        {
            "com.apple.*",
            "group.com.apple.*",
            "org.freedesktop.*",
            "org.gnome.*",
            "org.kde.*",
            "com.google.Keystone*",
            "com.microsoft.autoupdate*",
        }
    ),
)

_REPEATED_SLASHES = re.compile(r"/{2,}")


def contains_path_injection(path: str) -> bool:
    """Check whether a path contains a traversal sequence or control character.

    Args:
        path: Path string to validate.

    Returns:
        True if the path contains ``../``, has a ``..`` component, or holds
        any C0 control character or DEL. Names that merely start with two
        dots, such as ``..cache``, are accepted.
    """
    if "../" in path or ".." in PurePosixPath(path).parts:
        return True
    return any(ord(char) < 32 or ord(char) == 127 for char in path)


def _collapse_slashes(path: str) -> str:
    return _REPEATED_SLASHES.sub("/", path)


@dataclass(frozen=True, slots=True)
class ProtectionPolicy:
    """Built-in protection rule plus a user layer.

    The user layer is replaced, never mutated, so a policy instance can be
    shared safely between components.

    Attributes:
        builtin: Static rule shipped with molectl.
        user: Rule loaded from the user's whitelist file.
    """

    builtin: ProtectionRule = BUILTIN_RULE
    user: ProtectionRule = field(default_factory=ProtectionRule)

    @property
    def effective(self) -> ProtectionRule:
        """Union of the built-in and user rules."""
        return self.builtin.merged(self.user)

    def with_user_rule(self, user: ProtectionRule) -> "ProtectionPolicy":
        """Return a policy with a different user layer."""
        return replace(self, user=user)

    def is_protected_path(self, path: Path | str) -> bool:
        """Check if a path lies under any protected prefix.

        Both the candidate path and the configured prefixes have a leading
        ``~`` expanded to the home directory and runs of slashes collapsed
        before a plain prefix match.

        Args:
            path: Candidate path.

        Returns:
            True if the path starts with a protected prefix.
        """
        candidate = _collapse_slashes(expand_home(str(path)))
        for prefix in self.effective.paths:
            expanded = _collapse_slashes(expand_home(prefix))
            if expanded.startswith("/") and candidate.startswith(expanded):
                return True
        return False

    def is_protected_app(self, identifier: str) -> bool:
        """Check if an application identifier is protected."""
        return identifier in self.effective.apps

    def is_protected_cache(self, name: str) -> bool:
        """Check if a cache name contains a protected substring (case-insensitive)."""
        lowered = name.casefold()
        return any(entry.casefold() in lowered for entry in self.effective.cache_names)

    def is_protected_orphan(self, identifier: str) -> bool:
        """Check if an identifier matches a protected orphan pattern (case-insensitive)."""
        lowered = identifier.casefold()
        return any(fnmatch.fnmatchcase(lowered, pattern.casefold()) for pattern in self.effective.orphan_ids)

    def rejects(self, path: Path | str) -> bool:
        """Whether a removal of ``path`` must be refused.

        Combines the injection check with the protected-path whitelist.
        """
        return contains_path_injection(str(path)) or self.is_protected_path(path)
