"""Pure filesystem helpers with no dependencies on other pyrebuild modules."""

from .files import read_first_line, read_first_line_bytes

__all__ = [
    "read_first_line",
    "read_first_line_bytes",
]
