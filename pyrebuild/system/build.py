"""Building a resolved flake reference with `nix build`."""

from __future__ import annotations

import logging
import shutil
import tempfile
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Iterator

from ..flake import ResolvedReference
from .process import run_command

logger = logging.getLogger(__name__)

RESULT_LINK = "result"


class BuildAction(str, Enum):
    """What to do with a configuration once built."""

    SWITCH = "switch"  # activate now and make it the boot default
    BOOT = "boot"  # boot default on next reboot
    TEST = "test"  # activate now, not part of next reboot
    BUILD = "build"  # only leave a `result` link
    DRY_BUILD = "dry-build"  # show what would be built or fetched
    DRY_ACTIVATE = "dry-activate"  # show what activation would change
    BUILD_VM = "build-vm"
    BUILD_VM_WITH_BOOTLOADER = "build-vm-with-bootloader"

    @property
    def activates(self) -> bool:
        """Whether switch-to-configuration runs after the build."""
        return self in (
            BuildAction.SWITCH,
            BuildAction.BOOT,
            BuildAction.TEST,
            BuildAction.DRY_ACTIVATE,
        )

    @property
    def build_target(self) -> str:
        """Final segment of the `config.system.build.<target>` attribute."""
        if self is BuildAction.BUILD_VM:
            return "vm"
        if self is BuildAction.BUILD_VM_WITH_BOOTLOADER:
            return "vmWithBootLoader"
        return "toplevel"


@contextmanager
def result_directory(res_dir: Path | None, prefix: str = "nixrsbuild-") -> Iterator[Path]:
    """Directory to hold the `result` link.

    An explicit `res_dir` is created if needed and left in place. Otherwise a
    temporary directory is used and removed afterwards, but only after
    checking it is the one we created under the system temp dir.
    """
    if res_dir is not None:
        res_dir.mkdir(parents=True, exist_ok=True)
        yield res_dir
        return

    tmp = Path(tempfile.mkdtemp(prefix=prefix))
    logger.debug("using tmpdir: %s", tmp)
    try:
        yield tmp
    finally:
        if tmp.parent == Path(tempfile.gettempdir()) and tmp.name.startswith(prefix):
            logger.debug("Cleaning up tempdir used to link to nix-store: %s", tmp)
            shutil.rmtree(tmp, ignore_errors=True)
        else:
            logger.warning("Not removing unexpected result directory %s", tmp)


def run_nix_build(
    reference: ResolvedReference,
    out_dir: Path,
    nix_bin: str = "nix",
    dry_run: bool = False,
) -> Path | None:
    """Build `reference`, returning the `result` link (None for a dry run).

    Raises:
        CommandError: nix could not be started or the build failed
    """
    logger.info("Building in flake mode.")
    cmd = [nix_bin, "build", reference.format()]
    if dry_run:
        run_command([*cmd, "--dry-run"])
        return None

    result_link = out_dir / RESULT_LINK
    run_command([*cmd, "--out-link", str(result_link)])
    logger.debug("outlink: %s", result_link)
    return result_link
