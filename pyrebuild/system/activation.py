"""Handing a built configuration to its `switch-to-configuration` program."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from ..errors import CommandError
from .build import BuildAction
from .process import run_command

logger = logging.getLogger(__name__)

SWITCH_BIN = Path("bin") / "switch-to-configuration"


def switch_to_configuration(
    result_link: Path,
    action: BuildAction,
    sudo_bin: str = "sudo",
    environ: Mapping[str, str] | None = None,
) -> None:
    """Run `<result>/bin/switch-to-configuration <action>` as root.

    The program runs with an empty environment apart from LOCALE_ARCHIVE.

    Raises:
        CommandError: the program is missing or exits non-zero
    """
    if not action.activates:
        raise ValueError(f"{action.value} does not activate a configuration")

    env = os.environ if environ is None else environ
    try:
        switch_bin = (result_link / SWITCH_BIN).resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise CommandError(
            f"No switch-to-configuration in {result_link}: {exc}"
        ) from exc

    locale_archive = env.get("LOCALE_ARCHIVE", "")
    run_command(
        [
            sudo_bin,
            "env",
            "-i",
            f"LOCALE_ARCHIVE={locale_archive}",
            str(switch_bin),
            action.value,
        ]
    )
    logger.info("%s finished for %s", action.value, switch_bin)
