"""Configuration management for pyrebuild.

Three sections:
- flake: where the default flake lives and how attributes are routed
- profiles: where generation links are recorded
- build: external programs used to build and activate

Config resolution order (highest priority first):
1. Programmatic (RebuildConfig constructed in code)
2. Environment variables (PYREBUILD_FLAKE_DIR, PYREBUILD_PROFILES_DIR, etc.)
3. Config file (~/.config/pyrebuild/config.json, managed by `pyrebuild config`)
4. Hardcoded defaults
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any


logger = logging.getLogger(__name__)


# =============================================================================
# Config file location
# =============================================================================

CONFIG_DIR = Path.home() / ".config" / "pyrebuild"
CONFIG_FILE = CONFIG_DIR / "config.json"


# =============================================================================
# Config sections
# =============================================================================


@dataclass
class FlakeConfig:
    """Flake reference defaults.

    - default_dir: flake used when `--flake` names no directory
    - config_group: top-level attribute holding host configurations
    - toplevel_suffix: attribute path routed to for a system build
    """

    default_dir: str = "/etc/nixos"
    manifest_name: str = "flake.nix"
    config_group: str = "nixosConfigurations"
    toplevel_suffix: list[str] = field(
        default_factory=lambda: ["config", "system", "build", "toplevel"]
    )
    hostname_file: str = "/proc/sys/kernel/hostname"


@dataclass
class ProfilesConfig:
    """Profile directory layout.

    Named profiles live in `<profiles_dir>/<profiles_subdir>/<name>`.
    """

    profiles_dir: str = "/nix/var/nix/profiles"
    profile_name: str = "system"
    profiles_subdir: str = "system-profiles"


@dataclass
class BuildConfig:
    nix_bin: str = "nix"
    sudo_bin: str = "sudo"
    result_dir_prefix: str = "nixrsbuild-"
    allow_root: bool = False


# =============================================================================
# Main config class
# =============================================================================


@dataclass
class RebuildConfig:
    """Top-level pyrebuild configuration.

    Examples:
        # Package use, no files needed
        config = RebuildConfig(flake=FlakeConfig(default_dir="/srv/flake"))

        # CLI use, loads from ~/.config/pyrebuild/config.json
        config = RebuildConfig.load()
    """

    flake: FlakeConfig = field(default_factory=FlakeConfig)
    profiles: ProfilesConfig = field(default_factory=ProfilesConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    log_level: str = ""

    @classmethod
    def load(cls) -> "RebuildConfig":
        """Defaults, overlaid by config.json, overlaid by PYREBUILD_* env vars."""
        config = cls()

        # config.json
        if CONFIG_FILE.exists():
            try:
                with open(CONFIG_FILE) as f:
                    data = json.load(f)
                _apply_dict(config, data)
            except (json.JSONDecodeError, OSError) as exc:
                logger.warning("Failed to load config from %s: %s", CONFIG_FILE, exc)

        # env vars
        if val := os.environ.get("PYREBUILD_FLAKE_DIR"):
            config.flake.default_dir = val
        if val := os.environ.get("PYREBUILD_MANIFEST_NAME"):
            config.flake.manifest_name = val
        if val := os.environ.get("PYREBUILD_PROFILES_DIR"):
            config.profiles.profiles_dir = val
        if val := os.environ.get("PYREBUILD_PROFILE_NAME"):
            config.profiles.profile_name = val
        if val := os.environ.get("PYREBUILD_NIX_BIN"):
            config.build.nix_bin = val
        if val := os.environ.get("PYREBUILD_SUDO_BIN"):
            config.build.sudo_bin = val
        if val := os.environ.get("PYREBUILD_ALLOW_ROOT"):
            try:
                config.build.allow_root = parse_bool(val)
            except ValueError:
                logger.warning("Invalid PYREBUILD_ALLOW_ROOT=%r, ignoring", val)
        if val := os.environ.get("PYREBUILD_LOG_LEVEL"):
            config.log_level = val

        return config

    def save(self) -> None:
        """Save config to ~/.config/pyrebuild/config.json."""
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        with open(CONFIG_FILE, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    def to_dict(self) -> dict[str, Any]:
        """Plain nested dict, as written to config.json."""
        result: dict[str, Any] = {
            "flake": asdict(self.flake),
            "profiles": asdict(self.profiles),
            "build": asdict(self.build),
        }
        if self.log_level:
            result["log_level"] = self.log_level
        return result

    @property
    def default_manifest(self) -> Path:
        return Path(self.flake.default_dir) / self.flake.manifest_name

    def resolve_profile_dir(self, profile_name: str | None = None) -> Path:
        """Directory holding the links of `profile_name`.

        The system profile lives directly in profiles_dir, named profiles in
        its system-profiles subdirectory.
        """
        base = Path(self.profiles.profiles_dir)
        name = profile_name or self.profiles.profile_name
        if name == ProfilesConfig.profile_name:
            return base
        return base / self.profiles.profiles_subdir


# =============================================================================
# Config dict application
# =============================================================================


def parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"Invalid boolean: {value!r}")


def parse_attribute_list(value: Any) -> list[str]:
    """A dotted string (`config.system.build.toplevel`) or a list of segments."""
    if isinstance(value, str):
        segments = [segment for segment in value.split(".") if segment]
    elif isinstance(value, list) and all(
        isinstance(s, str) and s and "." not in s for s in value
    ):
        segments = list(value)
    else:
        raise ValueError(f"Invalid attribute path: {value!r}")
    if not segments:
        raise ValueError(f"Invalid attribute path: {value!r}")
    return segments


def coerce_value(target: Any, field_name: str, value: Any) -> Any:
    """Check `value` against the type of `target.field_name`.

    Booleans accept JSON true/false or the strings parse_bool knows, list
    fields go through parse_attribute_list, everything else must be a string.

    Raises:
        ValueError: the value does not fit the field
    """
    current = getattr(target, field_name)
    if isinstance(current, bool):
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return parse_bool(value)
        raise ValueError(f"Invalid boolean: {value!r}")
    if isinstance(current, list):
        return parse_attribute_list(value)
    if not isinstance(value, str):
        raise ValueError(f"Expected a string, got {type(value).__name__}: {value!r}")
    return value


def _apply_dict(config: RebuildConfig, data: dict) -> None:
    """Apply a dict of values onto a RebuildConfig, skipping bad entries."""
    for section_name in ("flake", "profiles", "build"):
        section = getattr(config, section_name)
        values = data.get(section_name)
        if not isinstance(values, dict):
            continue
        for k, v in values.items():
            if not hasattr(section, k):
                logger.warning("Unknown config key %s.%s, ignoring", section_name, k)
                continue
            try:
                setattr(section, k, coerce_value(section, k, v))
            except ValueError as exc:
                logger.warning("Bad value for %s.%s, ignoring: %s", section_name, k, exc)
    if isinstance(data.get("log_level"), str):
        config.log_level = data["log_level"]


# =============================================================================
# Global config singleton
# =============================================================================

_config: RebuildConfig | None = None


def get_config() -> RebuildConfig:
    """Get the global RebuildConfig instance.

    Loaded lazily on first use and cached; configure() replaces it.
    """
    global _config
    if _config is None:
        _config = RebuildConfig.load()
    return _config


def configure(config: RebuildConfig) -> None:
    """Set the global RebuildConfig programmatically."""
    global _config
    _config = config


def reset_config() -> None:
    """Drop the cached config so the next get_config() reloads it."""
    global _config
    _config = None
