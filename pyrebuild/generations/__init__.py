"""Generation inventory for NixOS system profiles."""

from .store import StoreEntryKind, StoreEntryName, classify
from .record import GenerationRecord, KernelVersion, generation_number
from .table import DEFAULT_PROFILES_DIR, GenerationTable, current_generation

__all__ = [
    "StoreEntryKind",
    "StoreEntryName",
    "classify",
    "GenerationRecord",
    "KernelVersion",
    "generation_number",
    "DEFAULT_PROFILES_DIR",
    "GenerationTable",
    "current_generation",
]
