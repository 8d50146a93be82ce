"""List the generations recorded in a system profile."""

from __future__ import annotations

from pathlib import Path

import typer

from ...config import get_config
from ...errors import ProfileListingError
from ...generations import GenerationTable, current_generation
from ..app import app, console, get_json_mode
from ..utils import ExitCode, Output

COLUMNS = [
    "Generation",
    "Build time (UTC)",
    "NixOS version",
    "Kernel",
    "Revision",
    "Specialisations",
    "Current",
]


@app.command("list-generations")
def list_generations_command(
    profile_name: str | None = typer.Option(
        None,
        "--profile-name",
        help="Profile to inspect (links named <name>-N-link). Default: system",
    ),
    profiles_dir: Path | None = typer.Option(
        None,
        "--profiles-dir",
        help="Directory holding the profile's generation links",
    ),
):
    """Output available generations.

    Entries that cannot be decoded are skipped; use --debug to see why.

    Examples:
        pyrebuild list-generations
        pyrebuild --json list-generations
        pyrebuild list-generations --profile-name work
    """
    out = Output(console=console, json_mode=get_json_mode())
    config = get_config()

    name = profile_name or config.profiles.profile_name
    directory = profiles_dir or config.resolve_profile_dir(name)
    current = current_generation(directory, name)

    try:
        table = GenerationTable.build(directory, current, profile_name=name)
    except ProfileListingError as e:
        out.fail(e, exit_code=ExitCode.FILE_NOT_FOUND)
        raise typer.Exit(out.finish())

    out.set_data("profile", str(directory / name))
    out.set_data("current", current)
    out.set_data("generations", table.to_document())

    if not len(table):
        out.warning(f"No generations found in {directory}")
    else:
        out.blank()
        out.table(f"Generations of {name}", COLUMNS, table.rows())

    raise typer.Exit(out.finish())
