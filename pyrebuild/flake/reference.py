"""Flake references: parsing `<dir>[#attr]` and resolving it to a build target.

Resolution rules:
- No source directory given: use the canonical directory of the default
  manifest (`/etc/nixos/flake.nix` unless configured otherwise).
- No attribute given: `nixosConfigurations.<hostname>`.
- Attribute given without the `nixosConfigurations` group: the group is
  prepended; a lone group gets `<hostname>` appended.
- The result is routed to the build target, e.g.
  `nixosConfigurations.<hostname>.config.system.build.toplevel`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path

from ..errors import InvalidHostIdentityError, MalformedReferenceError
from ..system.host import (
    HostIdentityProvider,
    file_hostname_provider,
    kernel_hostname,
)
from .attribute import AttributePath
from .source_dir import DEFAULT_MANIFEST_NAME, CanonicalSourceDir

logger = logging.getLogger(__name__)

CONFIG_GROUP = "nixosConfigurations"
TOPLEVEL_SUFFIX = ("config", "system", "build", "toplevel")


@dataclass(frozen=True)
class RawReference:
    """Destructured `<flake_dir>[#attribute]`, before any filesystem checks.

    `source` keeps the pre-`#` text verbatim so formatting reproduces the
    input; an empty source means "use the default directory".
    """

    source: str | None = None
    attribute: AttributePath | None = None

    @classmethod
    def parse(cls, value: str) -> RawReference:
        """Split a reference string at its first `#`.

        Examples:
            "/etc/nixos" -> source only
            "/etc/nixos#host" -> source and attribute ("host",)
            "#host" -> default source, attribute ("host",)
            "dir#" / "dir#a#b" / 'dir#a"' -> MalformedReferenceError
        """
        source, sep, attr = value.partition("#")
        if not sep:
            return cls(source=source or None)
        try:
            attribute = AttributePath.parse(attr)
        except MalformedReferenceError:
            raise MalformedReferenceError(f"Malformed flake reference: {value!r}") from None
        return cls(source=source or None, attribute=attribute)

    def format(self) -> str:
        text = self.source or ""
        if self.attribute is not None and not self.attribute.is_empty():
            text += f"#{self.attribute}"
        return text

    def __str__(self) -> str:
        return self.format()


@dataclass(frozen=True)
class ResolvedReference:
    """A verified source directory plus a fully routed attribute path."""

    source: CanonicalSourceDir
    attribute: AttributePath

    def format(self) -> str:
        if self.attribute.is_empty():
            return str(self.source)
        return f"{self.source}#{self.attribute}"

    def __str__(self) -> str:
        return self.format()


@dataclass(frozen=True)
class ResolverConfig:
    """Everything resolution needs that would otherwise be process-global."""

    default_dir: Path = Path("/etc/nixos")
    manifest_name: str = DEFAULT_MANIFEST_NAME
    config_group: str = CONFIG_GROUP
    target_suffix: tuple[str, ...] = TOPLEVEL_SUFFIX
    host_provider: HostIdentityProvider = field(default=kernel_hostname, compare=False)

    @property
    def default_manifest(self) -> Path:
        return self.default_dir / self.manifest_name

    @classmethod
    def from_config(
        cls,
        config,
        host_provider: HostIdentityProvider | None = None,
    ) -> ResolverConfig:
        """Build from a RebuildConfig, reading the hostname file it names."""
        flake = config.flake
        return cls(
            default_dir=Path(flake.default_dir),
            manifest_name=flake.manifest_name,
            config_group=flake.config_group,
            target_suffix=tuple(flake.toplevel_suffix),
            host_provider=host_provider or file_hostname_provider(flake.hostname_file),
        )

    def with_target(self, target: str) -> ResolverConfig:
        """Route to a different `config.system.build.<target>` output."""
        return replace(self, target_suffix=(*self.target_suffix[:-1], target))


class ReferenceResolver:
    """Turns a RawReference into a ResolvedReference ready for `nix build`."""

    def __init__(self, config: ResolverConfig | None = None):
        self.config = config or ResolverConfig()

    def resolve(self, raw: RawReference) -> ResolvedReference:
        """Resolve source and attribute.

        Raises:
            ResolutionError: any failure from source canonicalisation or
                host identity lookup, unchanged.
        """
        cfg = self.config
        if raw.source:
            source = CanonicalSourceDir.resolve(raw.source, cfg.manifest_name)
        else:
            source = CanonicalSourceDir.default(cfg.default_manifest, cfg.manifest_name)

        if raw.attribute is not None and not raw.attribute.is_empty():
            attribute = raw.attribute
        else:
            attribute = AttributePath((cfg.config_group, self.host_identity()))

        attribute = attribute.prepend_if_absent(cfg.config_group)
        if len(attribute) == 1:
            attribute = attribute.extend(self.host_identity())
        logger.debug("Flake attr: %s", attribute)

        resolved = ResolvedReference(
            source=source, attribute=attribute.extend(*cfg.target_suffix)
        )
        logger.info("Resolved flake reference: %s", resolved)
        return resolved

    def host_identity(self) -> str:
        """Look up and validate the current host's name.

        Raises:
            InvalidHostIdentityError: lookup failed, returned non-UTF-8 data,
                or a name unusable as a single attribute segment (a dotted
                FQDN such as `web.example.com` is rejected, not split).
        """
        try:
            value = self.config.host_provider()
        except OSError as exc:
            raise InvalidHostIdentityError(f"hostname lookup failed: {exc}") from exc

        if isinstance(value, bytes):
            try:
                value = value.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise InvalidHostIdentityError(
                    "hostname read gave non-utf8 result"
                ) from exc
        if not isinstance(value, str):
            raise InvalidHostIdentityError(
                f"hostname lookup gave {type(value).__name__}, expected text"
            )

        name = value.strip()
        if not name:
            raise InvalidHostIdentityError("hostname lookup gave an empty name")
        try:
            AttributePath((name,))
        except MalformedReferenceError as exc:
            raise InvalidHostIdentityError(
                f"hostname {name!r} is not a valid attribute"
            ) from exc
        return name
