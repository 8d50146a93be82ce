"""Command-line interface for pyrebuild."""
