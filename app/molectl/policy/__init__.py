"""Protection policy: built-in whitelist, user layer and injection checks."""

from molectl.policy.store import WhitelistError, WhitelistFile, WhitelistStore
from molectl.policy.whitelist import (
    BUILTIN_RULE,
    ProtectionPolicy,
    ProtectionRule,
    RuleKind,
    contains_path_injection,
)

__all__ = [
    "BUILTIN_RULE",
    "ProtectionPolicy",
    "ProtectionRule",
    "RuleKind",
    "WhitelistError",
    "WhitelistFile",
    "WhitelistStore",
    "contains_path_injection",
]
