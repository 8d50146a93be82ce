"""`pyrebuild config`: inspect and edit ~/.config/pyrebuild/config.json."""

from dataclasses import fields

import typer
from rich.markup import escape
from rich.table import Table

from ..app import app, console
from ...config import (
    CONFIG_FILE,
    RebuildConfig,
    coerce_value,
    get_config,
    reset_config,
)

SECTIONS = {
    "flake": "reference resolution",
    "profiles": "generation inventory",
    "build": "external programs",
}

VALID_KEYS = {
    f"{section}.{f.name}"
    for section in SECTIONS
    for f in fields(getattr(RebuildConfig(), section))
} | {"log_level"}


@app.command("config")
def config_command(
    action: str = typer.Argument(..., help="One of: show, set, reset"),
    key: str | None = typer.Argument(
        None, help="Dotted key, e.g. flake.default_dir or profiles.profiles_dir"
    ),
    value: str | None = typer.Argument(None, help="New value for `set`"),
):
    """Show, change or reset the saved configuration.

    Environment variables (PYREBUILD_FLAKE_DIR, PYREBUILD_PROFILES_DIR, ...)
    still override whatever is saved here.

    Examples:
        pyrebuild config show
        pyrebuild config set flake.default_dir /home/me/nixos-config
        pyrebuild config set flake.toplevel_suffix config.system.build.toplevel
        pyrebuild config set build.allow_root true
        pyrebuild config reset
    """
    if action == "show":
        _show_config(get_config())
    elif action == "set":
        if not key or value is None:
            console.print("[red]Usage:[/red] pyrebuild config set <key> <value>")
            _print_keys()
            raise typer.Exit(1)
        _set_config(key, value)
    elif action == "reset":
        RebuildConfig().save()
        reset_config()
        console.print("[green]✓[/green] Config reset to defaults")
    else:
        console.print(f"[red]Unknown action:[/red] {escape(action)} (expected show, set or reset)")
        raise typer.Exit(1)


def _print_keys() -> None:
    console.print("Available keys:")
    for k in sorted(VALID_KEYS):
        console.print(f"  {k}")


def _format_value(value: object) -> str:
    if isinstance(value, list):
        return ".".join(str(v) for v in value)
    return str(value)


def _show_config(config: RebuildConfig) -> None:
    data = config.to_dict()
    for section, purpose in SECTIONS.items():
        table = Table(
            title=f"[bold cyan]{section}[/bold cyan] ({purpose})",
            show_header=False,
            title_justify="left",
        )
        table.add_column("key")
        table.add_column("value")
        for k, v in data[section].items():
            table.add_row(k, escape(_format_value(v)))
        console.print(table)

    if config.log_level:
        console.print(f"log_level = {escape(config.log_level)}")

    state = "" if CONFIG_FILE.exists() else " [dim](not created yet)[/dim]"
    console.print(f"Config file: {escape(str(CONFIG_FILE))}{state}")


def _set_config(key: str, value: str) -> None:
    if key not in VALID_KEYS:
        console.print(f"[red]Unknown key:[/red] {escape(key)}")
        _print_keys()
        raise typer.Exit(1)

    config = get_config()
    section_name, _, field_name = key.rpartition(".")
    target = getattr(config, section_name) if section_name else config

    try:
        parsed = coerce_value(target, field_name, value)
    except ValueError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1)

    setattr(target, field_name, parsed)
    config.save()
    reset_config()
    console.print(f"[green]✓[/green] Set {escape(key)} = {escape(value)}")
