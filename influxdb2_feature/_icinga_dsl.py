"""Render attribute mappings as Icinga 2 object definitions.

Examples
--------
>>> from pathlib import PurePosixPath
>>> obj = ConfigObject(
...     object_type="Influxdb2Writer",
...     object_name="influxdb2",
...     attrs={"port": 8086, "host": "127.0.0.1"},
...     attrs_list=("host", "port"),
...     target=PurePosixPath("/etc/icinga2/features-available/influxdb2.conf"),
...     order=10,
... )
>>> print(render_object(obj), end="")
object Influxdb2Writer "influxdb2" {
  host = "127.0.0.1"
  port = 8086
}
"""

from __future__ import annotations

import re
from collections import abc as cabc

from influxdb2_feature._feature_models import ConfigObject, Duration
from influxdb2_feature._sensitive import Sensitive, contains_sensitive

INDENT = "  "
FILE_HEADER = "# This file is managed by configure-influxdb2-feature. Manual edits are overwritten.\n"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_KEYWORDS = frozenset(
    {
        "apply", "assign", "break", "const", "continue", "current_filename",
        "current_line", "default", "else", "except", "false", "for", "function",
        "globals", "if", "ignore", "ignore_on_error", "import", "in", "include",
        "include_recursive", "include_zones", "library", "locals", "namespace",
        "null", "object", "return", "template", "this", "throw", "to", "true",
        "try", "use", "using", "var", "where", "while",
    }
)


def _quote(value: str) -> str:
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def _format_key(key: str) -> str:
    if _IDENTIFIER.match(key) and key not in _KEYWORDS:
        return key
    return _quote(key)


def format_value(value: object, depth: int = 1) -> str:
    """Return the Icinga 2 literal for *value* at nesting *depth*.

    Examples
    --------
    >>> format_value(True)
    'true'
    >>> format_value(Duration("10s"))
    '10s'
    >>> format_value("10s")
    '"10s"'
    >>> format_value('say "hi"')
    '"say \\\\"hi\\\\""'
    >>> format_value(["a", 1])
    '[ "a", 1, ]'
    """
    if isinstance(value, Sensitive):
        return format_value(value.reveal(), depth)
    if isinstance(value, Duration):
        return value.value
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return _quote(value)
    if isinstance(value, cabc.Mapping):
        if not value:
            return "{}"
        inner = INDENT * (depth + 1)
        lines = [
            f"{inner}{_format_key(str(key))} = {format_value(item, depth + 1)}"
            for key, item in value.items()
        ]
        return "{\n" + "\n".join(lines) + "\n" + INDENT * depth + "}"
    if isinstance(value, (list, tuple)):
        if not value:
            return "[ ]"
        items = "".join(f"{format_value(item, depth)}, " for item in value)
        return f"[ {items}]"
    msg = f"Cannot render value of type {type(value).__name__}"
    raise TypeError(msg)


def _ordered_keys(attrs: cabc.Mapping[str, object], attrs_list: cabc.Iterable[str]) -> list[str]:
    ordered = [key for key in attrs_list if key in attrs]
    ordered.extend(key for key in attrs if key not in ordered)
    return ordered


def render_object(obj: ConfigObject) -> str:
    """Render a single object definition.

    Attributes listed in ``attrs_list`` come first in that order; any others
    follow in mapping order.
    """
    lines = [f"object {obj.object_type} {_quote(obj.object_name)} {{"]
    for key in _ordered_keys(obj.attrs, obj.attrs_list):
        lines.append(f"{INDENT}{_format_key(key)} = {format_value(obj.attrs[key])}")
    lines.append("}")
    return "\n".join(lines) + "\n"


def render_config_file(objects: cabc.Iterable[ConfigObject]) -> str:
    """Render every object for one target file, sorted by evaluation order."""
    ordered = sorted(objects, key=lambda obj: obj.order)
    targets = {obj.target for obj in ordered}
    if len(targets) > 1:
        msg = "All objects rendered into one file must share the same target"
        raise ValueError(msg)
    return FILE_HEADER + "\n" + "\n".join(render_object(obj) for obj in ordered)


def object_is_sensitive(obj: ConfigObject) -> bool:
    """Return ``True`` when the rendered object would contain a secret."""
    return contains_sensitive(obj.attrs)
