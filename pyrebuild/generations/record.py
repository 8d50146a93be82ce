"""Per-generation metadata extracted from a NixOS system profile.

A generation is a symlink `<profiles>/system-<N>-link` pointing at a store
entry `/nix/store/<digest>-nixos-system-...`. Its tree provides:
- `nixos-version`: version string (first line)
- `kernel` -> `.../bzImage`, whose sibling `lib/modules/<semver>/` names
  the kernel version
- `sw/bin/nixos-version --configuration-revision`: optional git revision
- `specialisation/<name>`: named variant configurations

Records are all-or-nothing. Missing revision or specialisations degrade
to None / [], everything else raises a GenerationError.
"""

from __future__ import annotations

import logging
import re
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from ..errors import (
    InvalidGenerationNameError,
    KernelVersionUnreadableError,
    MalformedStoreEntryError,
    TimestampUnavailableError,
    VersionUnreadableError,
)
from ..utils import read_first_line
from .store import StoreEntryName

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_NAME = "system"
LINK_SUFFIX = "-link"

VERSION_FILE = "nixos-version"
KERNEL_LINK = "kernel"
KERNEL_MODULES_SUBPATH = Path("lib") / "modules"
SPECIALISATION_DIR = "specialisation"
VERSION_QUERY_BIN = Path("sw") / "bin" / "nixos-version"

_SEMVER_RE = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

RevisionQuery = Callable[[Path], str | None]


# =============================================================================
# Generation numbers
# =============================================================================


def generation_number(link: Path | str, profile_name: str = DEFAULT_PROFILE_NAME) -> int:
    """Decode the generation number from a profile link name.

    e.g. /nix/var/nix/profiles/system-14-link -> 14

    Raises:
        InvalidGenerationNameError: name is not `<profile>-<digits>-link`
    """
    base = Path(link).name
    pattern = re.compile(
        rf"^{re.escape(profile_name)}-(?P<number>\d+){re.escape(LINK_SUFFIX)}$"
    )
    match = pattern.match(base)
    if not match:
        raise InvalidGenerationNameError(
            f"file in {Path(link).parent} must follow format "
            f"'{profile_name}-X{LINK_SUFFIX}': {base}"
        )
    return int(match.group("number"))


# =============================================================================
# Kernel version
# =============================================================================


class KernelVersion(BaseModel):
    """Semantic version of a kernel, e.g. `6.6.30`."""

    model_config = ConfigDict(frozen=True)

    major: int
    minor: int
    patch: int
    prerelease: str | None = None
    build: str | None = None

    @classmethod
    def parse(cls, value: str) -> KernelVersion:
        match = _SEMVER_RE.match(value)
        if not match:
            raise ValueError(f"could not parse semver from dirname: {value!r}")
        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch")),
            prerelease=match.group("prerelease"),
            build=match.group("build"),
        )

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.build:
            text += f"+{self.build}"
        return text


# =============================================================================
# Extraction steps
# =============================================================================


def build_time(gen_link: Path) -> datetime:
    """When the generation link was created.

    Uses the birth time where the platform reports one; otherwise the link's
    own mtime, which a symlink keeps from its creation. A platform without
    birth times (Linux `lstat`) therefore does not raise
    TimestampUnavailableError; only a failed stat does.

    The link itself is stat-ed, not the store entry it points at: store
    entries carry the normalised mtime of 1 (1970-01-01T00:00:01Z).
    """
    try:
        st = gen_link.lstat()
    except OSError as exc:
        raise TimestampUnavailableError(f"could not stat {gen_link}: {exc}") from exc
    stamp = getattr(st, "st_birthtime", None)
    if stamp is None:
        stamp = st.st_mtime
    return datetime.fromtimestamp(stamp, tz=timezone.utc)


def nixos_version(gen_dir: Path) -> str:
    ver_file = gen_dir / VERSION_FILE
    logger.debug("ver-file: %s", ver_file)
    try:
        return read_first_line(ver_file)
    except (OSError, UnicodeDecodeError) as exc:
        raise VersionUnreadableError(f"could not read {ver_file}: {exc}") from exc


def kernel_version(gen_dir: Path) -> KernelVersion:
    try:
        kern_dir = (gen_dir / KERNEL_LINK).resolve(strict=True)
        if not kern_dir.is_dir():
            kern_dir = kern_dir.parent
        modules_dir = kern_dir / KERNEL_MODULES_SUBPATH
        entries = sorted(entry.name for entry in modules_dir.iterdir() if entry.is_dir())
    except (OSError, RuntimeError) as exc:
        raise KernelVersionUnreadableError(
            f"could not list kernel modules of {gen_dir}: {exc}"
        ) from exc

    if not entries:
        raise KernelVersionUnreadableError(f"could not find semverdir in {modules_dir}")
    try:
        return KernelVersion.parse(entries[0])
    except ValueError as exc:
        raise KernelVersionUnreadableError(str(exc)) from exc


def configuration_revision(gen_dir: Path) -> str | None:
    """Ask the generation's own `nixos-version` for its configuration revision.

    Any failure (missing binary, non-zero exit, non-text output) means no
    revision.
    """
    cmd = [str(gen_dir / VERSION_QUERY_BIN), "--configuration-revision"]
    logger.debug("RUN: %s", cmd)
    try:
        proc = subprocess.run(cmd, capture_output=True, check=False)
    except OSError as exc:
        logger.debug("revision query failed for %s: %s", gen_dir, exc)
        return None
    logger.debug("RES: returncode=%s", proc.returncode)
    if proc.returncode != 0:
        return None
    try:
        revision = proc.stdout.decode("utf-8").strip()
    except UnicodeDecodeError:
        logger.debug("revision query for %s gave non-utf8 output", gen_dir)
        return None
    return revision or None


def specialisations(gen_dir: Path) -> list[str]:
    spec_dir = gen_dir / SPECIALISATION_DIR
    try:
        return sorted({entry.name for entry in spec_dir.iterdir()})
    except OSError as exc:
        logger.debug("no specialisations in %s: %s", gen_dir, exc)
        return []


# =============================================================================
# Record
# =============================================================================


class GenerationRecord(BaseModel):
    """Metadata of one profile generation."""

    model_config = ConfigDict(frozen=True)

    number: int = Field(ge=0)
    build_time: datetime
    nixos_version: str
    kernel_version: KernelVersion
    cfg_revision: str | None = None
    specialisations: list[str] = Field(default_factory=list)

    @field_serializer("kernel_version")
    def serialize_kernel_version(self, value: KernelVersion) -> str:
        return str(value)

    @classmethod
    def extract(
        cls,
        generation_dir: Path | str,
        profile_name: str = DEFAULT_PROFILE_NAME,
        revision_query: RevisionQuery = configuration_revision,
    ) -> GenerationRecord:
        """Build a record from a generation link (or its canonical store path).

        Raises:
            MalformedStoreEntryError: the link does not resolve to a store entry
            InvalidGenerationNameError: the link name carries no generation number
            TimestampUnavailableError, VersionUnreadableError,
            KernelVersionUnreadableError: required metadata is missing
        """
        gen_dir = Path(generation_dir)
        try:
            StoreEntryName.from_path(gen_dir)
        except MalformedStoreEntryError as exc:
            raise MalformedStoreEntryError(f"{gen_dir}: {exc}") from exc

        number = generation_number(gen_dir, profile_name)
        logger.debug("gen-number %d", number)

        created = build_time(gen_dir)
        logger.debug("creation-time %s", created)

        version = nixos_version(gen_dir)
        logger.debug("nix-os version: %r", version)

        kernel = kernel_version(gen_dir)
        logger.debug("kernel version: %s", kernel)

        return cls(
            number=number,
            build_time=created,
            nixos_version=version,
            kernel_version=kernel,
            cfg_revision=revision_query(gen_dir),
            specialisations=specialisations(gen_dir),
        )

    def to_document(self) -> dict:
        """JSON-ready metadata, without the number (the table keys by it)."""
        return self.model_dump(mode="json", exclude={"number"})
