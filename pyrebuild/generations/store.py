"""Nix store entry names.

See https://nix.dev/manual/nix/2.24/protocols/store-path#store-path-proper:
a store entry is `/nix/store/<digest>-<name>` where the digest is a
32-character base32 string. The digest is kept as the opaque string.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..errors import MalformedStoreEntryError

STORE_DIR = Path("/nix/store")
DIGEST_LENGTH = 32


class StoreEntryKind(str, Enum):
    DIRECTORY = "directory"
    DERIVATION = "derivation"
    EXTENSIONLESS = "extensionless"
    OTHER = "other"


def classify(path: Path) -> StoreEntryKind:
    """Directory first, otherwise by file extension."""
    if path.is_dir():
        return StoreEntryKind.DIRECTORY
    suffix = path.suffix
    if suffix == ".drv":
        return StoreEntryKind.DERIVATION
    if not suffix:
        return StoreEntryKind.EXTENSIONLESS
    return StoreEntryKind.OTHER


@dataclass(frozen=True)
class StoreEntryName:
    """Decoded `<digest>-<name>` basename of a store entry."""

    digest: str
    name: str
    kind: StoreEntryKind | None = None

    @classmethod
    def decode(cls, basename: str, kind: StoreEntryKind | None = None) -> StoreEntryName:
        """Split a basename into digest and name.

        Raises:
            MalformedStoreEntryError: the first `-` is not at index 32, or
                nothing follows it.
        """
        if basename.find("-") != DIGEST_LENGTH:
            raise MalformedStoreEntryError(
                f"expected <[char; {DIGEST_LENGTH}]>-<name>. "
                f"`-` not found at idx {DIGEST_LENGTH}: {basename!r}"
            )
        digest, name = basename[:DIGEST_LENGTH], basename[DIGEST_LENGTH + 1 :]
        if not name:
            raise MalformedStoreEntryError(f"store entry has an empty name: {basename!r}")
        return cls(digest=digest, name=name, kind=kind)

    @classmethod
    def from_path(cls, path: Path | str) -> StoreEntryName:
        """Canonicalise `path` and decode the store entry it points at."""
        try:
            canonical = Path(path).resolve(strict=True)
        except (OSError, RuntimeError) as exc:
            raise MalformedStoreEntryError(f"could not canonicalise {path}: {exc}") from exc
        if not canonical.name:
            raise MalformedStoreEntryError(f"{path} canonicalised to the filesystem root")
        return cls.decode(canonical.name, kind=classify(canonical))

    @property
    def basename(self) -> str:
        return f"{self.digest}-{self.name}"

    @property
    def store_path(self) -> Path:
        return STORE_DIR / self.basename
