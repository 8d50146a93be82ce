"""Canonical flake source directories.

A source directory is only accepted when its manifest (`flake.nix`) resolves,
through any chain of symlinks, to a regular file of the same name. The
directory kept is the one holding that resolved file, so a symlinked
`/etc/nixos/flake.nix` builds from the real checkout.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from ..errors import (
    ManifestIsDirectoryError,
    ManifestMissingError,
    ManifestNameMismatchError,
    SourceNotDirectoryError,
)

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST_NAME = "flake.nix"


@dataclass(frozen=True)
class CanonicalSourceDir:
    """A directory verified to contain a canonical manifest file.

    Construct through `resolve` or `default`; both fail rather than return
    an unverified directory.
    """

    path: Path

    def __str__(self) -> str:
        return str(self.path)

    @classmethod
    def resolve(
        cls,
        candidate_dir: Path | str,
        manifest_name: str = DEFAULT_MANIFEST_NAME,
    ) -> CanonicalSourceDir:
        """Verify `candidate_dir` and return the directory of its resolved manifest.

        Raises:
            SourceNotDirectoryError: candidate is not an existing directory
            ManifestMissingError: no manifest inside the candidate
            ManifestIsDirectoryError: manifest resolves to a directory
            ManifestNameMismatchError: manifest resolves to a differently named file
        """
        candidate = Path(candidate_dir)
        if not candidate.is_dir():
            raise SourceNotDirectoryError(f"Is not a dir: {candidate}")

        manifest = candidate / manifest_name
        try:
            exists = manifest.exists()
        except OSError as exc:
            raise ManifestMissingError(
                f"Error when checking for existence of {manifest_name} at {manifest}: {exc}"
            ) from exc
        if not exists:
            raise ManifestMissingError(
                f"flake-path must be a directory containing `{manifest_name}`: {candidate}"
            )

        return cls._from_manifest(manifest, manifest_name)

    @classmethod
    def default(
        cls,
        manifest_path: Path | str,
        manifest_name: str = DEFAULT_MANIFEST_NAME,
    ) -> CanonicalSourceDir:
        """Canonicalise a well-known manifest location directly.

        Used when the caller names no source, e.g. `/etc/nixos/flake.nix`.
        """
        manifest = Path(manifest_path)
        if not manifest.exists():
            raise ManifestMissingError(f"No {manifest_name} present at {manifest}")
        return cls._from_manifest(manifest, manifest_name)

    @classmethod
    def _from_manifest(cls, manifest: Path, manifest_name: str) -> CanonicalSourceDir:
        try:
            canonical = manifest.resolve(strict=True)
        except (OSError, RuntimeError) as exc:
            raise ManifestMissingError(
                f"Could not canonicalise path {manifest}: {exc}"
            ) from exc

        if canonical.is_dir():
            raise ManifestIsDirectoryError(
                f"Sym-link from {manifest} must resolve to `{manifest_name}`. "
                f"Resolved to a directory: {canonical}"
            )
        if canonical.name != manifest_name:
            raise ManifestNameMismatchError(
                f"Sym-link from {manifest} must resolve to a `{manifest_name}`. "
                f"Resolved to: {canonical}"
            )

        logger.debug("canonical manifest for %s: %s", manifest, canonical)
        return cls(path=canonical.parent)
