"""Unit tests for the Icinga 2 object renderer."""

from __future__ import annotations

from pathlib import PurePosixPath

import pytest

from influxdb2_feature._feature_models import ConfigObject, Duration
from influxdb2_feature._icinga_dsl import (
    FILE_HEADER,
    format_value,
    object_is_sensitive,
    render_config_file,
    render_object,
)
from influxdb2_feature._sensitive import Sensitive

TARGET = PurePosixPath("/etc/icinga2/features-available/influxdb2.conf")


def _object(attrs: dict[str, object], attrs_list: tuple[str, ...] = (), order: int = 10) -> ConfigObject:
    return ConfigObject(
        object_type="Influxdb2Writer",
        object_name="influxdb2",
        attrs=attrs,
        attrs_list=attrs_list,
        target=TARGET,
        order=order,
    )


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (True, "true"),
        (False, "false"),
        (8086, "8086"),
        (Duration("10s"), "10s"),
        (Duration("1.5m"), "1.5m"),
        ("30d", '"30d"'),
        ("127.0.0.1", '"127.0.0.1"'),
        ("$host.name$", '"$host.name$"'),
        ('a"b\\c', '"a\\"b\\\\c"'),
        ({}, "{}"),
        ([], "[ ]"),
        (Sensitive("token"), '"token"'),
    ],
)
def test_format_value(value: object, expected: str) -> None:
    assert format_value(value) == expected


def test_format_value_rejects_unknown_types() -> None:
    with pytest.raises(TypeError, match="Cannot render value"):
        format_value(object())


def test_render_object_nests_templates() -> None:
    rendered = render_object(
        _object(
            {
                "host_template": {
                    "measurement": "$host.check_command$",
                    "tags": {"hostname": "$host.name$"},
                }
            }
        )
    )
    assert rendered == (
        'object Influxdb2Writer "influxdb2" {\n'
        "  host_template = {\n"
        '    measurement = "$host.check_command$"\n'
        "    tags = {\n"
        '      hostname = "$host.name$"\n'
        "    }\n"
        "  }\n"
        "}\n"
    )


def test_render_object_follows_attrs_list_then_mapping_order() -> None:
    rendered = render_object(
        _object(
            {"ssl_enable": True, "bucket": "icinga2", "host": "influx"},
            attrs_list=("host", "port", "bucket"),
        )
    )
    keys = [line.split(" = ")[0].strip() for line in rendered.splitlines()[1:-1]]
    assert keys == ["host", "bucket", "ssl_enable"], "Listed keys first, then the rest"


def test_render_object_quotes_non_identifier_keys() -> None:
    rendered = render_object(_object({"tags": {"check-source": "$host.name$"}}))
    assert '"check-source" = "$host.name$"' in rendered


@pytest.mark.parametrize("key", ["include", "object", "var", "if", "import"])
def test_render_object_quotes_keyword_keys(key: str) -> None:
    rendered = render_object(_object({"tags": {key: "$host.name$"}}))
    assert f'"{key}" = "$host.name$"' in rendered, "Keywords must not appear bare as keys"


def test_render_config_file_sorts_by_order() -> None:
    late = ConfigObject("Influxdb2Writer", "late", {}, (), TARGET, 20)
    early = ConfigObject("Influxdb2Writer", "early", {}, (), TARGET, 5)
    content = render_config_file([late, early])
    assert content.startswith(FILE_HEADER)
    assert content.index('"early"') < content.index('"late"')


def test_render_config_file_rejects_mixed_targets() -> None:
    other = ConfigObject("Influxdb2Writer", "other", {}, (), PurePosixPath("/tmp/x.conf"), 10)
    with pytest.raises(ValueError, match="same target"):
        render_config_file([_object({}), other])


def test_object_is_sensitive() -> None:
    assert object_is_sensitive(_object({"auth_token": Sensitive("t")}))
    assert not object_is_sensitive(_object({"bucket": "icinga2"}))
