"""Build and resolve commands."""

from __future__ import annotations

import os
from pathlib import Path

import typer
from rich.markup import escape

from ...config import RebuildConfig, get_config
from ...errors import CommandError, ResolutionError
from ...flake import RawReference, ReferenceResolver, ResolvedReference, ResolverConfig
from ...system.activation import switch_to_configuration
from ...system.build import BuildAction, result_directory, run_nix_build
from ..app import app, console, get_json_mode
from ..utils import ExitCode, Output

FLAKE_HELP = (
    "Flake reference `<dir>[#attr]`. Defaults to the directory of "
    "/etc/nixos/flake.nix and nixosConfigurations.<hostname>"
)


def _is_root() -> bool:
    return hasattr(os, "geteuid") and os.geteuid() == 0


def _resolve(
    flake: str | None,
    config: RebuildConfig,
    out: Output,
    action: BuildAction = BuildAction.BUILD,
) -> ResolvedReference:
    """Parse and resolve `flake`, reporting failures through `out`."""
    try:
        raw = RawReference.parse(flake or "")
        resolver_config = ResolverConfig.from_config(config).with_target(action.build_target)
        return ReferenceResolver(resolver_config).resolve(raw)
    except ResolutionError as e:
        out.fail(e)
        raise typer.Exit(out.finish())


@app.command("resolve")
def resolve_command(
    flake: str | None = typer.Option(None, "--flake", help=FLAKE_HELP),
):
    """Print the fully resolved flake reference without building it.

    Examples:
        pyrebuild resolve
        pyrebuild resolve --flake ~/nixos-config#laptop
    """
    out = Output(console=console, json_mode=get_json_mode())
    resolved = _resolve(flake, get_config(), out)

    out.set_data("reference", resolved.format())
    out.set_data("source", str(resolved.source))
    out.set_data("attribute", resolved.attribute.format())
    out.text(escape(resolved.format()), soft_wrap=True)
    raise typer.Exit(out.finish())


@app.command("build")
def build_command(
    action: BuildAction = typer.Argument(
        ...,
        help="switch, boot, test, build, dry-build, dry-activate, build-vm, build-vm-with-bootloader",
    ),
    flake: str | None = typer.Option(None, "--flake", help=FLAKE_HELP),
    res_dir: Path | None = typer.Option(
        None,
        "--res-dir",
        help="Directory for the `result` link (default: cwd for `build`, a temp dir otherwise)",
    ),
):
    """Build a configuration and optionally activate it.

    Examples:
        pyrebuild build switch
        pyrebuild build boot --flake /srv/nixos#server
        pyrebuild build build --res-dir ./out
    """
    out = Output(console=console, json_mode=get_json_mode())
    config = get_config()

    if _is_root() and not config.build.allow_root:
        out.error(
            "This program should not be run as root!",
            suggestion="Activation escalates with sudo on its own",
            exit_code=ExitCode.PERMISSION_ERROR,
        )
        raise typer.Exit(out.finish())

    resolved = _resolve(flake, config, out, action)
    out.set_data("action", action.value)
    out.set_data("reference", resolved.format())

    if res_dir is None and action is BuildAction.BUILD:
        res_dir = Path.cwd()

    with result_directory(res_dir, config.build.result_dir_prefix) as out_dir:
        try:
            result_link = run_nix_build(
                resolved,
                out_dir,
                nix_bin=config.build.nix_bin,
                dry_run=action is BuildAction.DRY_BUILD,
            )
        except CommandError as e:
            out.fail(e, exit_code=ExitCode.BUILD_ERROR)
            raise typer.Exit(out.finish())

        if result_link is not None:
            out.set_data("result", str(result_link))
        out.success(f"Built {resolved}")

        if action.activates and result_link is not None:
            try:
                switch_to_configuration(result_link, action, sudo_bin=config.build.sudo_bin)
            except CommandError as e:
                out.fail(e, exit_code=ExitCode.ACTIVATION_ERROR)
                raise typer.Exit(out.finish())
            out.success(f"{action.value} complete")

    raise typer.Exit(out.finish())
