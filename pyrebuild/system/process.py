"""Thin wrapper for running external programs with trace logging."""

from __future__ import annotations

import logging
import subprocess
from typing import Sequence

from ..errors import CommandError

logger = logging.getLogger(__name__)


def run_command(cmd: Sequence[str], **kwargs) -> subprocess.CompletedProcess:
    """Run `cmd`, logging it and its result.

    Raises:
        CommandError: the program could not be started or exited non-zero
    """
    args = [str(a) for a in cmd]
    logger.debug("RUN: %s", " ".join(args))
    try:
        proc = subprocess.run(args, check=False, **kwargs)
    except OSError as exc:
        raise CommandError(f"Failed to start {args[0]}: {exc}") from exc
    logger.debug("RES: %s exited with %d", args[0], proc.returncode)
    if proc.returncode != 0:
        raise CommandError(
            f"{' '.join(args)} exited with status {proc.returncode}",
            returncode=proc.returncode,
        )
    return proc
