"""Ordered inventory of the generations recorded in a profile directory."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator

from ..errors import GenerationError, InvalidGenerationNameError, ProfileListingError
from .record import DEFAULT_PROFILE_NAME, GenerationRecord, generation_number

logger = logging.getLogger(__name__)

DEFAULT_PROFILES_DIR = Path("/nix/var/nix/profiles")

Extractor = Callable[[Path, str], GenerationRecord]


def current_generation(
    profile_dir: Path | str, profile_name: str = DEFAULT_PROFILE_NAME
) -> int | None:
    """Number of the generation the profile link currently points at.

    `<profile_dir>/system -> system-42-link` gives 42; an unreadable or
    foreign link gives None.
    """
    link = Path(profile_dir) / profile_name
    try:
        target = os.readlink(link)
    except OSError as exc:
        logger.debug("could not read profile link %s: %s", link, exc)
        return None
    try:
        return generation_number(target, profile_name)
    except InvalidGenerationNameError as exc:
        logger.debug("profile link %s: %s", link, exc)
        return None


class GenerationTable:
    """Generation records keyed by number, ascending, with one current number.

    The current number need not have a record: its generation may have
    failed extraction. It only affects rendering.
    """

    def __init__(self, records: Iterable[GenerationRecord], current: int | None = None):
        self._records = {r.number: r for r in sorted(records, key=lambda r: r.number)}
        self.current = current

    @classmethod
    def build(
        cls,
        profile_dir: Path | str,
        current_number: int | None = None,
        profile_name: str = DEFAULT_PROFILE_NAME,
        extractor: Extractor | None = None,
    ) -> GenerationTable:
        """Scan `profile_dir` and decode every generation link it holds.

        Entries that are not generation links, or whose generation cannot be
        decoded, are dropped. Generations may appear or vanish while the
        scan runs; those show up as dropped entries too.

        Raises:
            ProfileListingError: the directory itself cannot be listed
        """
        extract = extractor or (
            lambda path, name: GenerationRecord.extract(path, profile_name=name)
        )
        directory = Path(profile_dir)
        try:
            entries = sorted(directory.iterdir())
        except OSError as exc:
            raise ProfileListingError(f"could not list {directory}: {exc}") from exc

        records = []
        for entry in entries:
            try:
                generation_number(entry, profile_name)
                records.append(extract(entry, profile_name))
            except (GenerationError, OSError) as exc:
                logger.debug("dropping %s: %s", entry.name, exc)
        logger.info(
            "Found %d generation(s) in %s (%d entries scanned)",
            len(records),
            directory,
            len(entries),
        )
        return cls(records, current=current_number)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[GenerationRecord]:
        return iter(self._records.values())

    def __contains__(self, number: object) -> bool:
        return number in self._records

    def __getitem__(self, number: int) -> GenerationRecord:
        return self._records[number]

    @property
    def numbers(self) -> list[int]:
        return list(self._records)

    def is_current(self, number: int) -> bool:
        return self.current is not None and number == self.current

    def to_document(self) -> dict[str, dict[str, Any]]:
        """Structured form: `{"<number>": {...metadata, "current": true?}}`."""
        document: dict[str, dict[str, Any]] = {}
        for number, record in self._records.items():
            entry = record.to_document()
            if self.is_current(number):
                entry["current"] = True
            document[str(number)] = entry
        return document

    def rows(self) -> list[list[str]]:
        """Human-readable rows, one per generation, in ascending order."""
        rows = []
        for number, record in self._records.items():
            rows.append(
                [
                    str(number),
                    record.build_time.strftime("%Y-%m-%d %H:%M:%S"),
                    record.nixos_version,
                    str(record.kernel_version),
                    record.cfg_revision or "",
                    ", ".join(record.specialisations),
                    "*" if self.is_current(number) else "",
                ]
            )
        return rows
