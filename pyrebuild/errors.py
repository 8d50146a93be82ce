"""Exception hierarchy for pyrebuild.

Two families mirror the two halves of the tool:
- ResolutionError: turning a `<dir>[#attr]` reference into a build target.
  All-or-nothing; any failure aborts the command.
- GenerationError: decoding one profile generation. Per-entry failures are
  dropped by the inventory, only ProfileListingError is fatal.

Every class carries a `kind` naming its failure category, used as the
`category` field of JSON error output.
"""


class RebuildError(Exception):
    """Base class for all pyrebuild errors."""

    kind = "RebuildError"


# =============================================================================
# Reference resolution
# =============================================================================


class ResolutionError(RebuildError):
    """Raised when a flake reference cannot be resolved."""

    kind = "ResolutionError"


class SourceNotDirectoryError(ResolutionError):
    """The candidate source is not an existing directory."""

    kind = "NotADirectory"


class ManifestMissingError(ResolutionError):
    """The source directory holds no manifest file."""

    kind = "ManifestMissing"


class ManifestIsDirectoryError(ResolutionError):
    """The manifest resolved to a directory."""

    kind = "ManifestIsDirectory"


class ManifestNameMismatchError(ResolutionError):
    """The manifest resolved to a file with a different name."""

    kind = "ManifestNameMismatch"


class MalformedReferenceError(ResolutionError, ValueError):
    """A reference or attribute path string is malformed."""

    kind = "MalformedReferenceString"


class InvalidHostIdentityError(ResolutionError):
    """The host identity lookup failed or gave non-text data."""

    kind = "InvalidHostIdentity"


# =============================================================================
# Generation inventory
# =============================================================================


class GenerationError(RebuildError):
    """Raised when a generation cannot be decoded."""

    kind = "GenerationError"


class MalformedStoreEntryError(GenerationError):
    """A store entry name is not `<32-char digest>-<name>`."""

    kind = "MalformedStoreEntryName"


class InvalidGenerationNameError(GenerationError):
    """A profile entry name is not `<profile>-<N>-link`."""

    kind = "InvalidGenerationName"


class TimestampUnavailableError(GenerationError):
    kind = "TimestampUnavailable"


class VersionUnreadableError(GenerationError):
    kind = "VersionUnreadable"


class KernelVersionUnreadableError(GenerationError):
    kind = "KernelVersionUnreadable"


class ProfileListingError(GenerationError):
    """The profile directory itself could not be listed."""

    kind = "ProfileListing"


# =============================================================================
# External collaborators
# =============================================================================


class CommandError(RebuildError):
    """An external program (nix build, switch-to-configuration) failed."""

    kind = "CommandFailed"

    def __init__(self, message: str, returncode: int | None = None):
        super().__init__(message)
        self.returncode = returncode
