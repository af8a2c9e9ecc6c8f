"""Data models for the influxdb2 feature configurator.

These models carry the parameter set, the explicitly passed host facts and the
resulting plan between the planning and apply steps, keeping data flow
explicit across module boundaries.

Examples
--------
>>> context = EnvironmentContext.for_platform(PlatformFamily.DEBIAN)
>>> context.user, str(context.cert_dir)
('nagios', '/var/lib/icinga2/certs')
>>> capabilities_for(PlatformFamily.WINDOWS).line_ending
'\\r\\n'
"""

from __future__ import annotations

import enum
from collections import abc as cabc
from dataclasses import dataclass, field
from pathlib import PurePath, PurePosixPath
from typing import cast

from influxdb2_feature._feature_errors import FeatureValidationError
from influxdb2_feature._sensitive import Secret, Sensitive, normalize_secret
from influxdb2_feature._validation import (
    validate_absolute_path,
    validate_base64,
    validate_ensure,
    validate_host,
    validate_interval,
    validate_optional_bool,
    validate_port,
    validate_tags,
    validate_threshold,
)

FEATURE_NAME = "influxdb2"
OBJECT_TYPE = "Influxdb2Writer"
OBJECT_NAME = "influxdb2"
OBJECT_ORDER = 10

DEFAULT_HOST_MEASUREMENT = "$host.check_command$"
DEFAULT_SERVICE_MEASUREMENT = "$service.check_command$"


class PlatformFamily(enum.StrEnum):
    """Operating system families with distinct Icinga 2 packaging."""

    DEBIAN = "debian"
    REDHAT = "redhat"
    SUSE = "suse"
    FREEBSD = "freebsd"
    WINDOWS = "windows"


@dataclass(frozen=True, slots=True)
class PlatformCapabilities:
    """Platform-dependent transforms applied when writing TLS material.

    Attributes
    ----------
    line_ending
        Line terminator that replaces bare ``\\n`` in written content, or
        ``None`` to keep content verbatim.
    key_file_mode
        Permission mode for the private key file, or ``None`` to leave the
        mode to the platform.
    """

    line_ending: str | None
    key_file_mode: int | None


PLATFORM_CAPABILITIES: dict[PlatformFamily, PlatformCapabilities] = {
    PlatformFamily.DEBIAN: PlatformCapabilities(line_ending=None, key_file_mode=0o600),
    PlatformFamily.REDHAT: PlatformCapabilities(line_ending=None, key_file_mode=0o600),
    PlatformFamily.SUSE: PlatformCapabilities(line_ending=None, key_file_mode=0o600),
    PlatformFamily.FREEBSD: PlatformCapabilities(line_ending=None, key_file_mode=0o600),
    PlatformFamily.WINDOWS: PlatformCapabilities(line_ending="\r\n", key_file_mode=None),
}


def capabilities_for(platform: PlatformFamily) -> PlatformCapabilities:
    """Return the capability entry for *platform*."""
    return PLATFORM_CAPABILITIES[platform]


@dataclass(frozen=True, slots=True)
class _PlatformDefaults:
    conf_dir: str
    cert_dir: str
    user: str | None
    group: str | None


_PLATFORM_DEFAULTS: dict[PlatformFamily, _PlatformDefaults] = {
    PlatformFamily.DEBIAN: _PlatformDefaults(
        "/etc/icinga2", "/var/lib/icinga2/certs", "nagios", "nagios"
    ),
    PlatformFamily.REDHAT: _PlatformDefaults(
        "/etc/icinga2", "/var/lib/icinga2/certs", "icinga", "icinga"
    ),
    PlatformFamily.SUSE: _PlatformDefaults(
        "/etc/icinga2", "/var/lib/icinga2/certs", "icinga", "icinga"
    ),
    PlatformFamily.FREEBSD: _PlatformDefaults(
        "/usr/local/etc/icinga2", "/var/lib/icinga2/certs", "icinga", "icinga"
    ),
    PlatformFamily.WINDOWS: _PlatformDefaults(
        "C:/ProgramData/icinga2/etc/icinga2",
        "C:/ProgramData/icinga2/var/lib/icinga2/certs",
        None,
        None,
    ),
}


@dataclass(frozen=True, slots=True)
class EnvironmentContext:
    """Base-system facts supplied to the configurator at call time.

    Attributes
    ----------
    base_configured
        Whether the base Icinga 2 installation is configured in this run.
    platform
        Platform family of the target host.
    user, group
        Owner identity for written files; ``None`` leaves ownership alone.
    conf_dir, cert_dir
        Icinga 2 configuration and certificate directories on the target.
    """

    base_configured: bool
    platform: PlatformFamily
    user: str | None
    group: str | None
    conf_dir: PurePath
    cert_dir: PurePath

    @classmethod
    def for_platform(
        cls,
        platform: PlatformFamily,
        *,
        base_configured: bool = True,
        user: str | None = None,
        group: str | None = None,
        conf_dir: str | PurePath | None = None,
        cert_dir: str | PurePath | None = None,
    ) -> EnvironmentContext:
        """Build a context from the packaging defaults of *platform*.

        Explicit arguments override the defaults.
        """
        defaults = _PLATFORM_DEFAULTS[platform]
        return cls(
            base_configured=base_configured,
            platform=platform,
            user=user if user is not None else defaults.user,
            group=group if group is not None else defaults.group,
            conf_dir=PurePosixPath(conf_dir or defaults.conf_dir),
            cert_dir=PurePosixPath(cert_dir or defaults.cert_dir),
        )

    @property
    def capabilities(self) -> PlatformCapabilities:
        """Capability entry for this context's platform."""
        return capabilities_for(self.platform)


class TlsAssetKind(enum.Enum):
    """TLS asset kinds with their default filename suffix."""

    KEY = ""
    CERT = ".crt"
    CACERT = "_ca.crt"

    @property
    def suffix(self) -> str:
        """Suffix appended to the default file stem."""
        return self.value


@dataclass(frozen=True, slots=True)
class TlsAsset:
    """A TLS asset supplied inline (base64), by path, or both."""

    kind: TlsAssetKind
    content: str | None = field(default=None, repr=False)
    path: str | None = None


@dataclass(frozen=True, slots=True)
class Duration:
    """An Icinga 2 duration literal such as ``10s``, written unquoted."""

    value: str


@dataclass(frozen=True, slots=True)
class TagTemplate:
    """Measurement name plus tag expressions for one check-result type."""

    measurement: str
    tags: dict[str, str]

    def to_mapping(self) -> dict[str, object]:
        """Return the attribute value passed to the object renderer.

        Examples
        --------
        >>> TagTemplate("$host.check_command$", {"hostname": "$host.name$"}).to_mapping()
        {'measurement': '$host.check_command$', 'tags': {'hostname': '$host.name$'}}
        """
        return {"measurement": self.measurement, "tags": dict(self.tags)}


def _default_host_tags() -> dict[str, str]:
    return {"hostname": "$host.name$"}


def _default_service_tags() -> dict[str, str]:
    return {"hostname": "$host.name$", "service": "$service.name$"}


@dataclass(frozen=True, slots=True)
class FeatureConfig:
    """Full parameter set for the influxdb2 feature.

    Constructing an instance validates every field; the auth token is stored
    as :class:`Sensitive` whichever form it was given in.
    """

    organization: str
    bucket: str
    auth_token: Secret = field(repr=False)
    ensure: str = "present"
    host: str | None = None
    port: int | None = None
    enable_ssl: bool | None = None
    ssl_insecure_noverify: bool | None = None
    ssl_key_path: str | None = None
    ssl_cert_path: str | None = None
    ssl_cacert_path: str | None = None
    ssl_key: str | None = field(default=None, repr=False)
    ssl_cert: str | None = field(default=None, repr=False)
    ssl_cacert: str | None = field(default=None, repr=False)
    host_measurement: str = DEFAULT_HOST_MEASUREMENT
    host_tags: dict[str, str] = field(default_factory=_default_host_tags)
    service_measurement: str = DEFAULT_SERVICE_MEASUREMENT
    service_tags: dict[str, str] = field(default_factory=_default_service_tags)
    enable_send_thresholds: bool | None = None
    enable_send_metadata: bool | None = None
    flush_interval: str | int | None = None
    flush_threshold: int | None = None
    enable_ha: bool | None = None

    def __post_init__(self) -> None:
        for name in ("organization", "bucket", "host_measurement", "service_measurement"):
            if not isinstance(getattr(self, name), str):
                msg = f"{name} must be a string"
                raise FeatureValidationError(msg)
        try:
            token = normalize_secret(self.auth_token)
        except TypeError as exc:
            raise FeatureValidationError(str(exc)) from exc
        object.__setattr__(self, "auth_token", token)
        validate_ensure(self.ensure)
        validate_host(self.host)
        validate_port(self.port)
        for name in (
            "enable_ssl",
            "ssl_insecure_noverify",
            "enable_send_thresholds",
            "enable_send_metadata",
            "enable_ha",
        ):
            validate_optional_bool(getattr(self, name), name)
        for name in ("ssl_key_path", "ssl_cert_path", "ssl_cacert_path"):
            validate_absolute_path(getattr(self, name), name)
        for name in ("ssl_key", "ssl_cert", "ssl_cacert"):
            validate_base64(getattr(self, name), name)
        object.__setattr__(self, "host_tags", validate_tags(self.host_tags, "host_tags"))
        object.__setattr__(
            self, "service_tags", validate_tags(self.service_tags, "service_tags")
        )
        validate_interval(self.flush_interval)
        validate_threshold(self.flush_threshold)

    @property
    def token(self) -> Sensitive:
        """The normalised auth token."""
        return cast(Sensitive, self.auth_token)

    @property
    def enabled(self) -> bool:
        """Whether the feature is being enabled."""
        return self.ensure == "present"

    def tls_assets(self) -> tuple[TlsAsset, TlsAsset, TlsAsset]:
        """Return the key, certificate and CA certificate assets."""
        return (
            TlsAsset(TlsAssetKind.KEY, self.ssl_key, self.ssl_key_path),
            TlsAsset(TlsAssetKind.CERT, self.ssl_cert, self.ssl_cert_path),
            TlsAsset(TlsAssetKind.CACERT, self.ssl_cacert, self.ssl_cacert_path),
        )

    def host_template(self) -> TagTemplate:
        """Tag template applied to host check results."""
        return TagTemplate(self.host_measurement, dict(self.host_tags))

    def service_template(self) -> TagTemplate:
        """Tag template applied to service check results."""
        return TagTemplate(self.service_measurement, dict(self.service_tags))


@dataclass(frozen=True, slots=True)
class FileResource:
    """A file the plan wants on disk.

    Attributes
    ----------
    path
        Destination path on the target host.
    content
        Exact bytes to write.
    owner, group
        Ownership to apply; ``None`` leaves it unchanged.
    mode
        Permission mode to apply; ``None`` leaves it to the platform.
    show_diff
        Whether content changes may be echoed in change output.
    """

    path: PurePath
    content: bytes = field(repr=False)
    owner: str | None = None
    group: str | None = None
    mode: int | None = None
    show_diff: bool = True


@dataclass(frozen=True, slots=True)
class ConfigObject:
    """An Icinga 2 object handed to the object renderer."""

    object_type: str
    object_name: str
    attrs: dict[str, object]
    attrs_list: tuple[str, ...]
    target: PurePath
    order: int


@dataclass(frozen=True, slots=True)
class FeatureToggle:
    """Enable state for a named feature."""

    name: str
    enabled: bool


@dataclass(frozen=True, slots=True)
class RenderedAttributes:
    """Final attribute mapping plus the declared base-group key order."""

    attrs: dict[str, object]
    attrs_list: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class FeaturePlan:
    """Everything the configurator decided, ready to be applied."""

    context: EnvironmentContext
    tls_files: tuple[FileResource, ...]
    resolved_paths: dict[TlsAssetKind, str | None]
    config_object: ConfigObject
    toggle: FeatureToggle
    notify_service: bool


def merge_mappings(*mappings: cabc.Mapping[str, object]) -> dict[str, object]:
    """Merge mappings left to right into a new dict."""
    merged: dict[str, object] = {}
    for mapping in mappings:
        merged.update(mapping)
    return merged
