"""Parameter validators for the influxdb2 feature.

Each validator returns the accepted value (normalised where noted) or raises
:class:`FeatureValidationError`. They run while configuration objects are
constructed, so malformed input never reaches the planning logic.
"""

from __future__ import annotations

import base64
import binascii
import ipaddress
import re
from collections import abc as cabc
from pathlib import PurePosixPath, PureWindowsPath

from influxdb2_feature._feature_errors import FeatureValidationError

ENSURE_VALUES = ("present", "absent")

_HOSTNAME_LABEL = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")
_INTERVAL = re.compile(r"^\d+(\.\d+)?[dhms]?$")
_BASE64 = re.compile(r"^[A-Za-z0-9+/\s]*={0,2}\s*$")


def validate_ensure(value: str) -> str:
    """Validate the feature state.

    Examples
    --------
    >>> validate_ensure("absent")
    'absent'
    """
    if value not in ENSURE_VALUES:
        msg = f"ensure must be one of {', '.join(ENSURE_VALUES)}, got {value!r}"
        raise FeatureValidationError(msg)
    return value


def validate_host(value: str | None) -> str | None:
    """Validate a hostname, IPv4 or IPv6 address.

    Examples
    --------
    >>> validate_host("influxdb.example.test")
    'influxdb.example.test'
    >>> validate_host("::1")
    '::1'
    """
    if value is None:
        return None
    try:
        ipaddress.ip_address(value)
    except ValueError:
        pass
    else:
        return value
    name = value[:-1] if value.endswith(".") else value
    if not name or len(name) > 253:
        msg = f"host must be a hostname or IP address, got {value!r}"
        raise FeatureValidationError(msg)
    if not all(_HOSTNAME_LABEL.match(label) for label in name.split(".")):
        msg = f"host must be a hostname or IP address, got {value!r}"
        raise FeatureValidationError(msg)
    return value


def validate_port(value: int | None) -> int | None:
    """Validate a TCP port number."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"port must be an integer, got {type(value).__name__}"
        raise FeatureValidationError(msg)
    if not 0 <= value <= 65535:
        msg = f"port must be between 0 and 65535, got {value}"
        raise FeatureValidationError(msg)
    return value


def validate_absolute_path(value: str | None, field_name: str) -> str | None:
    """Validate that *value* is an absolute POSIX or Windows path.

    Examples
    --------
    >>> validate_absolute_path("C:/ProgramData/icinga2/x.crt", "ssl_cert_path")
    'C:/ProgramData/icinga2/x.crt'
    """
    if value is None:
        return None
    if PurePosixPath(value).is_absolute() or PureWindowsPath(value).is_absolute():
        return value
    msg = f"{field_name} must be an absolute path, got {value!r}"
    raise FeatureValidationError(msg)


def validate_base64(value: str | None, field_name: str) -> str | None:
    """Validate that *value* is base64 encoded; the encoded form is kept."""
    if value is None:
        return None
    if not _BASE64.match(value):
        msg = f"{field_name} must be base64 encoded"
        raise FeatureValidationError(msg)
    try:
        base64.b64decode("".join(value.split()), validate=True)
    except binascii.Error as exc:
        msg = f"{field_name} must be base64 encoded: {exc}"
        raise FeatureValidationError(msg) from exc
    return value


def validate_interval(value: str | int | None) -> str | int | None:
    """Validate an Icinga 2 interval such as ``10s`` or ``60``.

    Examples
    --------
    >>> validate_interval("10s")
    '10s'
    """
    if value is None:
        return None
    if isinstance(value, bool):
        msg = "flush_interval must be an interval, got a boolean"
        raise FeatureValidationError(msg)
    if isinstance(value, int):
        if value < 0:
            msg = f"flush_interval must not be negative, got {value}"
            raise FeatureValidationError(msg)
        return value
    if not _INTERVAL.match(value):
        msg = f"flush_interval must look like 10s, 5m or 1h, got {value!r}"
        raise FeatureValidationError(msg)
    return value


def validate_threshold(value: int | None) -> int | None:
    """Validate a flush threshold; it must be a positive integer."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        msg = f"flush_threshold must be an integer of at least 1, got {value!r}"
        raise FeatureValidationError(msg)
    return value


def validate_tags(value: cabc.Mapping[str, str], field_name: str) -> dict[str, str]:
    """Validate a tag mapping of strings to strings and return a copy."""
    if not isinstance(value, cabc.Mapping):
        msg = f"{field_name} must be a mapping, got {type(value).__name__}"
        raise FeatureValidationError(msg)
    tags: dict[str, str] = {}
    for key, item in value.items():
        if not isinstance(key, str) or not isinstance(item, str):
            msg = f"{field_name} must map strings to strings"
            raise FeatureValidationError(msg)
        tags[key] = item
    return tags


def validate_optional_bool(value: bool | None, field_name: str) -> bool | None:
    """Validate an optional boolean flag."""
    if value is None or isinstance(value, bool):
        return value
    msg = f"{field_name} must be a boolean, got {type(value).__name__}"
    raise FeatureValidationError(msg)
