"""pyrebuild: resolve flake references and inventory NixOS generations."""

__version__ = "0.1.0"
