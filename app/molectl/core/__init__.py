"""Core infrastructure: paths, configuration, theme and the operation log."""
