"""Dot-delimited attribute paths selecting an output inside a flake.

e.g. `--flake /path/to/dir#fizz.buzz` carries the attribute path
`("fizz", "buzz")`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import MalformedReferenceError

logger = logging.getLogger(__name__)

_FORBIDDEN_CHARS = ('#', '"')
_SEPARATOR = "."


@dataclass(frozen=True)
class AttributePath:
    """Ordered sequence of attribute segments.

    The empty path is representable and means "no attribute selected".
    Instances are immutable: `prepend_if_absent` and `extend` return new
    paths.
    """

    segments: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        for segment in self.segments:
            if not segment:
                raise MalformedReferenceError("attribute segments must be non-empty")
            if any(ch in segment for ch in _FORBIDDEN_CHARS):
                raise MalformedReferenceError(
                    f"attribute segment {segment!r} contains '#' or '\"'"
                )
            if _SEPARATOR in segment:
                raise MalformedReferenceError(
                    f"attribute segment {segment!r} contains the separator '.'"
                )

    @classmethod
    def parse(cls, value: str) -> AttributePath:
        """Parse a dot-delimited attribute string.

        Examples:
            "foo" -> ("foo",)
            "foo.bar" -> ("foo", "bar")
            "" -> MalformedReferenceError
            'a"b' / "a#b" / "a..b" -> MalformedReferenceError
        """
        if not value or any(ch in value for ch in _FORBIDDEN_CHARS):
            logger.debug("malformed attr: %r", value)
            raise MalformedReferenceError(f"Malformed attribute path: {value!r}")
        try:
            return cls(tuple(value.split(_SEPARATOR)))
        except MalformedReferenceError:
            logger.debug("malformed attr: %r", value)
            raise MalformedReferenceError(
                f"Malformed attribute path: {value!r}"
            ) from None

    def format(self) -> str:
        return _SEPARATOR.join(self.segments)

    def __str__(self) -> str:
        return self.format()

    def __len__(self) -> int:
        return len(self.segments)

    def is_empty(self) -> bool:
        return not self.segments

    @property
    def first(self) -> str | None:
        return self.segments[0] if self.segments else None

    def prepend_if_absent(self, segment: str) -> AttributePath:
        """Return a path starting with `segment`, inserting it only if needed."""
        if self.first == segment:
            return self
        return AttributePath((segment, *self.segments))

    def extend(self, *segments: str) -> AttributePath:
        """Return a path with `segments` appended in order."""
        return AttributePath((*self.segments, *segments))
