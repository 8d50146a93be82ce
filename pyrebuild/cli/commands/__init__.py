"""CLI commands for pyrebuild."""

from . import build, generations, config_cmd

__all__ = [
    "build",
    "generations",
    "config_cmd",
]
