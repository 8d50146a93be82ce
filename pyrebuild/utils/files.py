"""Small file-reading helpers."""

from pathlib import Path


def read_first_line_bytes(path: Path | str) -> bytes:
    """Read the first line of a file as raw bytes, without its line ending.

    Useful for files such as `/proc/sys/kernel/hostname`.
    """
    with open(path, "rb") as f:
        return f.readline().rstrip(b"\r\n")


def read_first_line(path: Path | str) -> str:
    """Read the first line of a UTF-8 text file, without its line ending.

    Raises:
        OSError: the file cannot be opened or read
        UnicodeDecodeError: the line is not valid UTF-8
    """
    return read_first_line_bytes(path).decode("utf-8")
