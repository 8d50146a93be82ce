"""The `pyrebuild` typer app, its global options and logging setup."""

import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

app = typer.Typer(
    name="pyrebuild",
    help="Build NixOS flake configurations and inspect system generations.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

# Set by main_callback from --json
_json_mode = False

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def get_json_mode() -> bool:
    """Whether --json was given for this invocation."""
    return _json_mode


def setup_logging(verbose: bool = False, debug: bool = False, level: str = "") -> None:
    """Configure logging for the CLI.

    WARNING by default, INFO with --verbose, DEBUG with --debug. An explicit
    level (PYREBUILD_LOG_LEVEL or the config file) wins over both flags.
    """
    resolved = logging.WARNING
    if verbose:
        resolved = logging.INFO
    if debug:
        resolved = logging.DEBUG
    if level and level.upper().strip() in _LOG_LEVELS:
        resolved = getattr(logging, level.upper().strip())

    # stderr only; stdout carries the --json document
    logging.basicConfig(
        level=resolved,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    logging.getLogger("pyrebuild").setLevel(resolved)


def _version_callback(value: bool) -> None:
    if value:
        from .. import __version__

        print(f"pyrebuild {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output machine-readable JSON instead of human-friendly text",
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show informational logs"),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Show debug-level logs (very verbose)"),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = False,
):
    """pyrebuild: build NixOS flakes and list system generations.

    Use --json for machine-readable output suitable for scripting.
    """
    from ..config import get_config

    global _json_mode
    _json_mode = json_output
    setup_logging(verbose=verbose, debug=debug, level=get_config().log_level)


# Import commands to register them with the app
from .commands import (  # noqa: E402, F401
    build,
    generations,
    config_cmd,
)
