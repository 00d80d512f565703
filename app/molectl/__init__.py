"""molectl - find and safely reclaim disk space held by caches and leftovers."""

__version__ = "0.1.0"
