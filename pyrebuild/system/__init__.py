"""External collaborators: host identity, nix build, activation."""
