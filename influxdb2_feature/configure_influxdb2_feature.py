#!/usr/bin/env -S uv run python
# /// script
# requires-python = ">=3.12"
# dependencies = ["cyclopts>=2.9", "plumbum", "pyyaml"]
# ///
"""Configure the Icinga 2 influxdb2 feature.

This script:
- resolves feature parameters from the CLI, ``INFLUXDB2_*`` environment
  variables and an optional YAML parameters file;
- materialises inline TLS material under the Icinga 2 certificate directory;
- renders the ``Influxdb2Writer "influxdb2"`` object into features-available;
- enables or disables the feature; and
- reloads Icinga 2 when the enabled feature changed.

Usage:
  ./influxdb2_feature/configure_influxdb2_feature.py --organization ICINGA \\
      --bucket icinga2 --auth-token "$TOKEN"
"""

from __future__ import annotations

import logging
import platform as host_platform
import shlex
import sys
from collections import abc as cabc
from dataclasses import dataclass, fields
from pathlib import Path

from cyclopts import App, Parameter

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from influxdb2_feature._feature_apply import apply_feature_plan, render_object_resource
from influxdb2_feature._feature_errors import FeatureError, FeatureValidationError
from influxdb2_feature._feature_models import (
    EnvironmentContext,
    FeatureConfig,
    FeaturePlan,
    PlatformFamily,
)
from influxdb2_feature._feature_toggle import ServiceNotifier
from influxdb2_feature._influxdb2_feature import plan_influxdb2_feature
from influxdb2_feature._input_resolution import (
    InputResolution,
    load_params_file,
    parse_bool,
    parse_int,
    parse_interval,
    parse_tags,
    resolve_input,
)
from influxdb2_feature._sensitive import mask_secret

app = App(help="Configure the Icinga 2 influxdb2 feature.")
logger = logging.getLogger(__name__)

_BOOL_FIELDS = (
    "enable_ssl",
    "ssl_insecure_noverify",
    "enable_send_thresholds",
    "enable_send_metadata",
    "enable_ha",
)
_STR_FIELDS = (
    "ensure",
    "host",
    "organization",
    "bucket",
    "ssl_key_path",
    "ssl_cert_path",
    "ssl_cacert_path",
    "ssl_key",
    "ssl_cert",
    "ssl_cacert",
    "host_measurement",
    "service_measurement",
)
_REQUIRED_FIELDS = ("organization", "bucket", "auth_token")

_LINUX_FAMILIES: dict[str, PlatformFamily] = {
    "debian": PlatformFamily.DEBIAN,
    "ubuntu": PlatformFamily.DEBIAN,
    "rhel": PlatformFamily.REDHAT,
    "fedora": PlatformFamily.REDHAT,
    "centos": PlatformFamily.REDHAT,
    "suse": PlatformFamily.SUSE,
    "opensuse": PlatformFamily.SUSE,
    "sles": PlatformFamily.SUSE,
}


@dataclass(frozen=True, slots=True)
class RawFeatureInputs:
    """Raw feature parameters from the CLI before resolution."""

    ensure: str | None = None
    host: str | None = None
    port: str | None = None
    organization: str | None = None
    bucket: str | None = None
    auth_token: str | None = None
    enable_ssl: str | None = None
    ssl_insecure_noverify: str | None = None
    ssl_key_path: str | None = None
    ssl_cert_path: str | None = None
    ssl_cacert_path: str | None = None
    ssl_key: str | None = None
    ssl_cert: str | None = None
    ssl_cacert: str | None = None
    host_measurement: str | None = None
    host_tags: str | None = None
    service_measurement: str | None = None
    service_tags: str | None = None
    enable_send_thresholds: str | None = None
    enable_send_metadata: str | None = None
    flush_interval: str | None = None
    flush_threshold: str | None = None
    enable_ha: str | None = None


@dataclass(frozen=True, slots=True)
class RawEnvironmentInputs:
    """Raw host facts from the CLI before resolution."""

    platform: str | None = None
    conf_dir: Path | None = None
    cert_dir: Path | None = None
    user: str | None = None
    group: str | None = None


def detect_platform(
    system: str | None = None,
    os_release: cabc.Mapping[str, str] | None = None,
) -> PlatformFamily:
    """Detect the platform family of the running host.

    Examples
    --------
    >>> detect_platform("Windows")
    <PlatformFamily.WINDOWS: 'windows'>
    >>> detect_platform("Linux", {"ID": "ubuntu", "ID_LIKE": "debian"})
    <PlatformFamily.DEBIAN: 'debian'>
    """
    system = (system or host_platform.system()).lower()
    if system == "windows":
        return PlatformFamily.WINDOWS
    if system == "freebsd":
        return PlatformFamily.FREEBSD
    if os_release is None:
        try:
            os_release = host_platform.freedesktop_os_release()
        except OSError:
            os_release = {}
    candidates = [os_release.get("ID", ""), *os_release.get("ID_LIKE", "").split()]
    for candidate in candidates:
        family = _LINUX_FAMILIES.get(candidate.lower())
        if family is not None:
            return family
    logger.warning("Unknown platform %s; assuming redhat defaults", system)
    return PlatformFamily.REDHAT


def _parse_platform(value: object) -> PlatformFamily:
    try:
        return PlatformFamily(str(value).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(family.value for family in PlatformFamily)
        msg = f"platform must be one of {allowed}, got {value!r}"
        raise FeatureValidationError(msg) from exc


def resolve_feature_config(
    raw: RawFeatureInputs,
    *,
    env: cabc.Mapping[str, str] | None = None,
    file_values: cabc.Mapping[str, object] | None = None,
) -> FeatureConfig:
    """Resolve raw inputs into a validated :class:`FeatureConfig`.

    Raises
    ------
    FeatureValidationError
        If a required parameter is missing or a value is malformed.
    """

    def _resolved(name: str) -> object:
        return resolve_input(
            getattr(raw, name), InputResolution(name=name), env, file_values
        )

    values = {item.name: _resolved(item.name) for item in fields(raw)}
    missing = [name for name in _REQUIRED_FIELDS if values[name] is None]
    if missing:
        msg = f"Missing required parameter(s): {', '.join(missing)}"
        raise FeatureValidationError(msg)

    kwargs: dict[str, object] = {"auth_token": str(values["auth_token"])}
    for name in _STR_FIELDS:
        if values[name] is not None:
            kwargs[name] = str(values[name])
    for name in _BOOL_FIELDS:
        kwargs[name] = parse_bool(values[name])
    kwargs["port"] = parse_int(values["port"], "port")
    kwargs["flush_threshold"] = parse_int(values["flush_threshold"], "flush_threshold")
    kwargs["flush_interval"] = parse_interval(values["flush_interval"])
    for name in ("host_tags", "service_tags"):
        tags = parse_tags(values[name], name)
        if tags is not None:
            kwargs[name] = tags
    return FeatureConfig(**kwargs)


def resolve_environment_context(
    raw: RawEnvironmentInputs,
    *,
    env: cabc.Mapping[str, str] | None = None,
    file_values: cabc.Mapping[str, object] | None = None,
) -> EnvironmentContext:
    """Resolve host facts, detecting the platform and base installation."""

    def _resolved(name: str) -> object:
        return resolve_input(
            getattr(raw, name), InputResolution(name=name), env, file_values
        )

    platform_value = _resolved("platform")
    family = detect_platform() if platform_value is None else _parse_platform(platform_value)
    conf_dir = _resolved("conf_dir")
    cert_dir = _resolved("cert_dir")
    user = _resolved("user")
    group = _resolved("group")
    context = EnvironmentContext.for_platform(
        family,
        user=str(user) if user is not None else None,
        group=str(group) if group is not None else None,
        conf_dir=str(conf_dir) if conf_dir is not None else None,
        cert_dir=str(cert_dir) if cert_dir is not None else None,
    )
    base_configured = Path(str(context.conf_dir / "icinga2.conf")).is_file()
    return EnvironmentContext(
        base_configured=base_configured,
        platform=context.platform,
        user=context.user,
        group=context.group,
        conf_dir=context.conf_dir,
        cert_dir=context.cert_dir,
    )


def print_plan(plan: FeaturePlan, report: cabc.Callable[[str], object] = print) -> None:
    """Print the planned files and the rendered writer object."""
    for resource in plan.tls_files:
        report(f"Would write {resource.path}")
    obj_resource = render_object_resource(plan)
    report(f"Would write {obj_resource.path}")
    if obj_resource.show_diff:
        report(obj_resource.content.decode("utf-8"))
    else:
        report("  (content redacted)")
    state = "enable" if plan.toggle.enabled else "disable"
    report(f"Would {state} feature {plan.toggle.name}")


@app.command()
def main(
    ensure: str | None = Parameter(),
    host: str | None = Parameter(),
    port: str | None = Parameter(),
    organization: str | None = Parameter(),
    bucket: str | None = Parameter(),
    auth_token: str | None = Parameter(),
    enable_ssl: str | None = Parameter(),
    ssl_insecure_noverify: str | None = Parameter(),
    ssl_key_path: str | None = Parameter(),
    ssl_cert_path: str | None = Parameter(),
    ssl_cacert_path: str | None = Parameter(),
    ssl_key: str | None = Parameter(),
    ssl_cert: str | None = Parameter(),
    ssl_cacert: str | None = Parameter(),
    host_measurement: str | None = Parameter(),
    host_tags: str | None = Parameter(),
    service_measurement: str | None = Parameter(),
    service_tags: str | None = Parameter(),
    enable_send_thresholds: str | None = Parameter(),
    enable_send_metadata: str | None = Parameter(),
    flush_interval: str | None = Parameter(),
    flush_threshold: str | None = Parameter(),
    enable_ha: str | None = Parameter(),
    platform: str | None = Parameter(),
    conf_dir: Path | None = Parameter(),
    cert_dir: Path | None = Parameter(),
    user: str | None = Parameter(),
    group: str | None = Parameter(),
    params_file: Path | None = Parameter(),
    reload_command: str | None = Parameter(),
    dry_run: bool = False,
    mask_secrets: bool = False,
) -> int:
    """Configure the influxdb2 feature and reload Icinga 2 when needed.

    Every feature parameter falls back to ``INFLUXDB2_<NAME>`` in the
    environment, then to the YAML ``--params-file``, then to its default.
    Boolean parameters accept true/false, yes/no or 1/0; tag mappings
    accept JSON objects.
    """
    raw_feature = RawFeatureInputs(
        ensure=ensure,
        host=host,
        port=port,
        organization=organization,
        bucket=bucket,
        auth_token=auth_token,
        enable_ssl=enable_ssl,
        ssl_insecure_noverify=ssl_insecure_noverify,
        ssl_key_path=ssl_key_path,
        ssl_cert_path=ssl_cert_path,
        ssl_cacert_path=ssl_cacert_path,
        ssl_key=ssl_key,
        ssl_cert=ssl_cert,
        ssl_cacert=ssl_cacert,
        host_measurement=host_measurement,
        host_tags=host_tags,
        service_measurement=service_measurement,
        service_tags=service_tags,
        enable_send_thresholds=enable_send_thresholds,
        enable_send_metadata=enable_send_metadata,
        flush_interval=flush_interval,
        flush_threshold=flush_threshold,
        enable_ha=enable_ha,
    )
    raw_environment = RawEnvironmentInputs(
        platform=platform,
        conf_dir=conf_dir,
        cert_dir=cert_dir,
        user=user,
        group=group,
    )

    try:
        params_path = resolve_input(params_file, InputResolution(name="params_file"))
        file_values = load_params_file(Path(str(params_path)) if params_path else None)
        config = resolve_feature_config(raw_feature, file_values=file_values)
        if mask_secrets:
            mask_secret(config.token)
        context = resolve_environment_context(raw_environment, file_values=file_values)
        plan = plan_influxdb2_feature(config, context)

        if dry_run:
            print_plan(plan)
            return 0

        command = resolve_input(reload_command, InputResolution(name="reload_command"))
        notifier = ServiceNotifier(
            reload_command=tuple(shlex.split(str(command))) if command else None
        )
        result = apply_feature_plan(plan, notifier=notifier)
    except FeatureError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if not result.has_changes:
        print("influxdb2 feature already up to date.")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    raise SystemExit(app())
