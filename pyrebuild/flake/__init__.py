"""Flake reference parsing and resolution."""

from .attribute import AttributePath
from .source_dir import CanonicalSourceDir
from .reference import (
    CONFIG_GROUP,
    TOPLEVEL_SUFFIX,
    RawReference,
    ReferenceResolver,
    ResolvedReference,
    ResolverConfig,
)

__all__ = [
    "AttributePath",
    "CanonicalSourceDir",
    "CONFIG_GROUP",
    "TOPLEVEL_SUFFIX",
    "RawReference",
    "ReferenceResolver",
    "ResolvedReference",
    "ResolverConfig",
]
