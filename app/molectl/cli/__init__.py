"""Command-line interface for molectl."""
