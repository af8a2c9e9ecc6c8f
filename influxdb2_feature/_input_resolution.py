"""Shared helpers for resolving CLI, environment and parameter-file inputs."""

from __future__ import annotations

import json
import os
from collections import abc as cabc
from dataclasses import dataclass
from pathlib import Path

import yaml

from influxdb2_feature._feature_errors import FeatureValidationError

ENV_PREFIX = "INFLUXDB2_"


@dataclass(frozen=True, slots=True)
class InputResolution:
    """Configuration for resolving an input from multiple sources.

    ``name`` is the parameter name; the environment key is derived from it
    as ``INFLUXDB2_<NAME>`` unless ``env_key`` is given.
    """

    name: str
    default: object = None
    env_key: str | None = None

    @property
    def environment_key(self) -> str:
        """Environment variable consulted for this input."""
        return self.env_key or f"{ENV_PREFIX}{self.name.upper()}"


def resolve_input(
    param_value: object,
    resolution: InputResolution,
    env: cabc.Mapping[str, str] | None = None,
    file_values: cabc.Mapping[str, object] | None = None,
) -> object:
    """Resolve input from parameter, environment, parameter file, or default.

    Environment values are returned as raw strings; callers convert them.
    """

    if param_value is not None:
        return param_value

    env_value = (os.environ if env is None else env).get(resolution.environment_key)
    if env_value is not None:
        return env_value

    if file_values is not None and file_values.get(resolution.name) is not None:
        return file_values[resolution.name]

    return resolution.default


def load_params_file(path: Path | None) -> dict[str, object]:
    """Load a YAML mapping of parameter names to values.

    Examples
    --------
    >>> load_params_file(None)
    {}
    """
    if path is None:
        return {}
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        msg = f"Failed to read parameters file {path}: {exc}"
        raise FeatureValidationError(msg) from exc
    except yaml.YAMLError as exc:
        msg = f"Invalid YAML in parameters file {path}: {exc}"
        raise FeatureValidationError(msg) from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        msg = f"Parameters file {path} must contain a mapping"
        raise FeatureValidationError(msg)
    return payload


def parse_bool(value: object, *, default: bool | None = None) -> bool | None:
    """Parse a boolean from a string, bool, or ``None``.

    Examples
    --------
    >>> parse_bool("yes")
    True
    >>> parse_bool(None) is None
    True
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    normalised = str(value).strip().lower()
    if normalised in ("true", "1", "yes", "on"):
        return True
    if normalised in ("false", "0", "no", "off"):
        return False
    msg = f"Expected a boolean value, got {value!r}"
    raise FeatureValidationError(msg)


def parse_int(value: object, field_name: str) -> int | None:
    """Parse an optional integer from a string or int."""
    if value is None or (isinstance(value, int) and not isinstance(value, bool)):
        return value
    try:
        return int(str(value).strip())
    except ValueError as exc:
        msg = f"{field_name} must be an integer, got {value!r}"
        raise FeatureValidationError(msg) from exc


def parse_interval(value: object) -> str | int | None:
    """Parse an interval; digit-only strings become integers."""
    if value is None or isinstance(value, int):
        return value
    text = str(value).strip()
    return int(text) if text.isdigit() else text


def parse_tags(value: object, field_name: str) -> dict[str, str] | None:
    """Parse a tag mapping from a JSON string or an existing mapping.

    Examples
    --------
    >>> parse_tags('{"hostname": "$host.name$"}', "host_tags")
    {'hostname': '$host.name$'}
    """
    if value is None:
        return None
    if isinstance(value, cabc.Mapping):
        return dict(value)
    try:
        tags = json.loads(str(value))
    except json.JSONDecodeError as exc:
        msg = f"Invalid JSON in {field_name}: {exc}"
        raise FeatureValidationError(msg) from exc
    if not isinstance(tags, dict):
        msg = f"{field_name} must be a JSON object"
        raise FeatureValidationError(msg)
    return tags
