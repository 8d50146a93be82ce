"""Shared fixtures: fake Nix store trees and profile directories under tmp_path."""

from pathlib import Path

import pytest

from pyrebuild.config import reset_config

NIXOS_VERSION = "24.05.20240101.abcdef0 (Uakari)"


def _store_entry(store: Path, digest: str, name: str) -> Path:
    entry = store / f"{digest}-{name}"
    entry.mkdir(parents=True)
    return entry


def _generation(
    root: Path,
    number: int,
    *,
    profile_name: str = "system",
    kernel: str = "6.6.30",
    version: str = NIXOS_VERSION,
    specialisations: tuple[str, ...] = (),
) -> Path:
    """Create `<root>/profiles/<profile>-<number>-link` pointing into a fake store."""
    store = root / "store"
    profiles = root / "profiles"
    profiles.mkdir(parents=True, exist_ok=True)

    gen = _store_entry(store, f"{number:032d}", f"nixos-system-host-{number}")
    (gen / "nixos-version").write_text(version + "\n")

    kernel_dir = _store_entry(store, f"{number:031d}k", f"linux-{kernel}")
    (kernel_dir / "lib" / "modules" / kernel).mkdir(parents=True)
    (kernel_dir / "bzImage").write_text("")
    (gen / "kernel").symlink_to(kernel_dir / "bzImage")

    for spec in specialisations:
        (gen / "specialisation" / spec).mkdir(parents=True)

    link = profiles / f"{profile_name}-{number}-link"
    link.symlink_to(gen)
    return link


def _flake(directory: Path) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "flake.nix").write_text("{ outputs = _: { }; }\n")
    return directory


@pytest.fixture
def make_generation():
    """Factory: `make_generation(root, number, **options)` -> generation link."""
    return _generation


@pytest.fixture
def make_flake():
    """Factory: `make_flake(directory)` -> directory holding a flake.nix."""
    return _flake


@pytest.fixture
def nixos_version():
    return NIXOS_VERSION


@pytest.fixture
def profile_root(tmp_path):
    """A profile with generations 1, 2 and 14, a malformed entry, and 2 current."""
    _generation(tmp_path, 1)
    _generation(tmp_path, 2, specialisations=("gaming", "work"))
    _generation(tmp_path, 14, kernel="6.8.9")
    profiles = tmp_path / "profiles"
    (profiles / "system-x-link").symlink_to(tmp_path / "store")
    (profiles / "system").symlink_to("system-2-link")
    return profiles


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Point the config file into tmp_path and drop any cached config."""
    from pyrebuild import config as config_module
    from pyrebuild.cli.commands import config_cmd

    config_dir = tmp_path / "config"
    config_file = config_dir / "config.json"
    monkeypatch.setattr(config_module, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_file)
    monkeypatch.setattr(config_cmd, "CONFIG_FILE", config_file)
    for var in (
        "PYREBUILD_FLAKE_DIR",
        "PYREBUILD_MANIFEST_NAME",
        "PYREBUILD_PROFILES_DIR",
        "PYREBUILD_PROFILE_NAME",
        "PYREBUILD_NIX_BIN",
        "PYREBUILD_SUDO_BIN",
        "PYREBUILD_ALLOW_ROOT",
        "PYREBUILD_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
    reset_config()
    yield config_file
    reset_config()
