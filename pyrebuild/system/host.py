"""Host identity lookup.

A host identity provider is any zero-argument callable returning the
machine name as `str` or raw `bytes`. Resolution decodes and validates the
result, so tests substitute a lambda instead of touching the real hostname.
"""

from __future__ import annotations

import logging
import socket
from pathlib import Path
from typing import Callable

from ..utils import read_first_line_bytes

logger = logging.getLogger(__name__)

HostIdentityProvider = Callable[[], str | bytes]

KERNEL_HOSTNAME_FILE = Path("/proc/sys/kernel/hostname")


def kernel_hostname(hostname_file: Path = KERNEL_HOSTNAME_FILE) -> bytes:
    """Hostname as reported by the kernel, falling back to gethostname()."""
    try:
        return read_first_line_bytes(hostname_file)
    except OSError as exc:
        logger.debug("Could not read %s (%s), using gethostname()", hostname_file, exc)
        return socket.gethostname().encode("utf-8", "surrogateescape")


def file_hostname_provider(hostname_file: Path | str) -> HostIdentityProvider:
    """Provider reading the hostname from `hostname_file`."""
    path = Path(hostname_file)
    return lambda: kernel_hostname(path)


def fixed_hostname_provider(name: str | bytes) -> HostIdentityProvider:
    return lambda: name
