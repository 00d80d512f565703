"""Bundled data files (theme, scan-target catalog)."""
