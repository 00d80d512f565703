"""Shared utilities: subprocess helpers and console formatting."""
