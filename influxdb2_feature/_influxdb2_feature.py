"""Plan the Icinga 2 influxdb2 feature.

The planner turns a :class:`FeatureConfig` and an :class:`EnvironmentContext`
into a :class:`FeaturePlan` without touching the filesystem:

- checks the base Icinga 2 configuration is present;
- resolves the key, certificate and CA certificate when SSL is enabled;
- assembles the ``Influxdb2Writer`` attributes, dropping unset values; and
- describes the feature toggle and whether the service must be notified.

Examples
--------
>>> context = EnvironmentContext.for_platform(PlatformFamily.DEBIAN)
>>> config = FeatureConfig(organization="ICINGA", bucket="icinga2", auth_token="supersecret")
>>> plan = plan_influxdb2_feature(config, context)
>>> plan.config_object.attrs["host_template"]
{'measurement': '$host.check_command$', 'tags': {'hostname': '$host.name$'}}
>>> plan.tls_files
()
"""

from __future__ import annotations

import logging
from collections import abc as cabc
from pathlib import PurePath

from influxdb2_feature._feature_errors import PreconditionError
from influxdb2_feature._feature_models import (
    FEATURE_NAME,
    OBJECT_NAME,
    OBJECT_ORDER,
    OBJECT_TYPE,
    ConfigObject,
    Duration,
    EnvironmentContext,
    FeatureConfig,
    FeaturePlan,
    FeatureToggle,
    FileResource,
    PlatformFamily,
    RenderedAttributes,
    TlsAssetKind,
    merge_mappings,
)
from influxdb2_feature._tls_assets import resolve_tls_asset

logger = logging.getLogger(__name__)

BASE_ATTRIBUTE_KEYS: tuple[str, ...] = (
    "host",
    "port",
    "organization",
    "bucket",
    "auth_token",
    "host_template",
    "service_template",
    "enable_send_thresholds",
    "enable_send_metadata",
    "flush_interval",
    "flush_threshold",
    "enable_ha",
)

__all__ = [
    "BASE_ATTRIBUTE_KEYS",
    "assemble_attributes",
    "build_base_attributes",
    "build_ssl_attributes",
    "check_preconditions",
    "feature_target",
    "plan_influxdb2_feature",
]


def check_preconditions(context: EnvironmentContext) -> None:
    """Fail unless the base Icinga 2 configuration is present.

    Raises
    ------
    PreconditionError
        If ``context.base_configured`` is false.
    """
    if not context.base_configured:
        msg = (
            "The base icinga2 configuration must be in place before the "
            "influxdb2 feature can be configured"
        )
        raise PreconditionError(msg)


def feature_target(context: EnvironmentContext) -> PurePath:
    """Return the features-available file that holds the writer object."""
    return context.conf_dir / "features-available" / f"{FEATURE_NAME}.conf"


def _duration(value: str | int | None) -> Duration | int | None:
    return Duration(value) if isinstance(value, str) else value


def build_base_attributes(config: FeatureConfig) -> dict[str, object]:
    """Return the connection, identity, tagging and buffering attributes.

    Keys follow :data:`BASE_ATTRIBUTE_KEYS`; unset values are kept as ``None``.
    A string ``flush_interval`` becomes a :class:`Duration` so it is rendered
    unquoted; every other string stays a quoted literal.
    """
    return {
        "host": config.host,
        "port": config.port,
        "organization": config.organization,
        "bucket": config.bucket,
        "auth_token": config.token,
        "host_template": config.host_template().to_mapping(),
        "service_template": config.service_template().to_mapping(),
        "enable_send_thresholds": config.enable_send_thresholds,
        "enable_send_metadata": config.enable_send_metadata,
        "flush_interval": _duration(config.flush_interval),
        "flush_threshold": config.flush_threshold,
        "enable_ha": config.enable_ha,
    }


def build_ssl_attributes(
    config: FeatureConfig,
    resolved_paths: cabc.Mapping[TlsAssetKind, str | None],
) -> dict[str, object]:
    """Return the SSL attribute group.

    With SSL disabled only ``ssl_enable`` is present, carrying the flag as
    given. With SSL enabled the verification flag and the three asset paths
    are added.
    """
    if not config.enable_ssl:
        return {"ssl_enable": config.enable_ssl}
    return {
        "ssl_enable": config.enable_ssl,
        "ssl_insecure_noverify": config.ssl_insecure_noverify,
        "ssl_ca_cert": resolved_paths.get(TlsAssetKind.CACERT),
        "ssl_cert": resolved_paths.get(TlsAssetKind.CERT),
        "ssl_key": resolved_paths.get(TlsAssetKind.KEY),
    }


def assemble_attributes(
    base: cabc.Mapping[str, object],
    ssl: cabc.Mapping[str, object],
) -> RenderedAttributes:
    """Merge the base and SSL groups and drop every unset value.

    Examples
    --------
    >>> rendered = assemble_attributes({"host": None, "bucket": "b"}, {"ssl_enable": None})
    >>> rendered.attrs, rendered.attrs_list
    ({'bucket': 'b'}, ('host', 'bucket'))
    """
    merged = merge_mappings(base, ssl)
    attrs = {key: value for key, value in merged.items() if value is not None}
    return RenderedAttributes(attrs=attrs, attrs_list=tuple(base))


def _resolve_tls(
    config: FeatureConfig, context: EnvironmentContext
) -> tuple[dict[TlsAssetKind, str | None], tuple[FileResource, ...]]:
    resolved_paths: dict[TlsAssetKind, str | None] = {}
    files: list[FileResource] = []
    if not config.enable_ssl:
        return resolved_paths, ()
    for asset in config.tls_assets():
        resolved = resolve_tls_asset(asset, context)
        resolved_paths[resolved.kind] = resolved.path
        if resolved.resource is not None:
            logger.debug("Planned %s at %s", resolved.kind.name, resolved.path)
            files.append(resolved.resource)
    return resolved_paths, tuple(files)


def plan_influxdb2_feature(
    config: FeatureConfig,
    context: EnvironmentContext,
) -> FeaturePlan:
    """Plan the influxdb2 feature for *context*.

    Parameters
    ----------
    config : FeatureConfig
        Validated feature parameters.
    context : EnvironmentContext
        Base-system facts for the target host.

    Returns
    -------
    FeaturePlan
        TLS files to write, the writer object, the feature toggle and whether
        the Icinga 2 service must be notified.

    Raises
    ------
    PreconditionError
        If the base Icinga 2 configuration is missing.
    """
    check_preconditions(context)

    resolved_paths, tls_files = _resolve_tls(config, context)
    rendered = assemble_attributes(
        build_base_attributes(config),
        build_ssl_attributes(config, resolved_paths),
    )
    config_object = ConfigObject(
        object_type=OBJECT_TYPE,
        object_name=OBJECT_NAME,
        attrs=rendered.attrs,
        attrs_list=rendered.attrs_list,
        target=feature_target(context),
        order=OBJECT_ORDER,
    )
    return FeaturePlan(
        context=context,
        tls_files=tls_files,
        resolved_paths=resolved_paths,
        config_object=config_object,
        toggle=FeatureToggle(name=FEATURE_NAME, enabled=config.enabled),
        notify_service=config.enabled,
    )
