"""Unit tests for input resolution helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from influxdb2_feature._feature_errors import FeatureValidationError
from influxdb2_feature._input_resolution import (
    InputResolution,
    load_params_file,
    parse_bool,
    parse_int,
    parse_interval,
    parse_tags,
    resolve_input,
)


def test_resolve_input_precedence() -> None:
    resolution = InputResolution(name="bucket", default="fallback")
    env = {"INFLUXDB2_BUCKET": "from-env"}
    file_values = {"bucket": "from-file"}

    assert resolve_input("from-cli", resolution, env, file_values) == "from-cli"
    assert resolve_input(None, resolution, env, file_values) == "from-env"
    assert resolve_input(None, resolution, {}, file_values) == "from-file"
    assert resolve_input(None, resolution, {}, {}) == "fallback"


def test_resolve_input_honours_custom_env_key() -> None:
    resolution = InputResolution(name="reload_command", env_key="ICINGA2_RELOAD")
    assert resolution.environment_key == "ICINGA2_RELOAD"
    assert resolve_input(None, resolution, {"ICINGA2_RELOAD": "true"}) == "true"


def test_resolve_input_reads_process_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INFLUXDB2_HOST", "influx.example.com")
    assert resolve_input(None, InputResolution(name="host")) == "influx.example.com"


def test_load_params_file_reads_mapping(tmp_path: Path) -> None:
    path = tmp_path / "params.yaml"
    path.write_text("organization: ICINGA\nport: 8086\n", encoding="utf-8")
    assert load_params_file(path) == {"organization": "ICINGA", "port": 8086}


def test_load_params_file_empty_document(tmp_path: Path) -> None:
    path = tmp_path / "params.yaml"
    path.write_text("", encoding="utf-8")
    assert load_params_file(path) == {}


@pytest.mark.parametrize(
    ("content", "match"),
    [
        ("- one\n- two\n", "must contain a mapping"),
        ("organization: [unclosed\n", "Invalid YAML"),
    ],
)
def test_load_params_file_rejects_bad_documents(
    tmp_path: Path, content: str, match: str
) -> None:
    path = tmp_path / "params.yaml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(FeatureValidationError, match=match):
        load_params_file(path)


def test_load_params_file_missing(tmp_path: Path) -> None:
    with pytest.raises(FeatureValidationError, match="Failed to read parameters file"):
        load_params_file(tmp_path / "absent.yaml")


@pytest.mark.parametrize(
    ("value", "expected"),
    [("true", True), ("On", True), ("0", False), ("no", False), (False, False)],
)
def test_parse_bool(value: object, expected: bool) -> None:
    assert parse_bool(value) is expected


def test_parse_bool_rejects_unknown() -> None:
    with pytest.raises(FeatureValidationError, match="Expected a boolean"):
        parse_bool("sometimes")


def test_parse_int() -> None:
    assert parse_int(" 8086 ", "port") == 8086
    assert parse_int(None, "port") is None
    with pytest.raises(FeatureValidationError, match="port must be an integer"):
        parse_int("eighty", "port")


def test_parse_interval() -> None:
    assert parse_interval("30") == 30
    assert parse_interval("10s") == "10s"
    assert parse_interval(None) is None


def test_parse_tags() -> None:
    assert parse_tags({"hostname": "$host.name$"}, "host_tags") == {"hostname": "$host.name$"}
    assert parse_tags(None, "host_tags") is None
    with pytest.raises(FeatureValidationError, match="Invalid JSON in service_tags"):
        parse_tags("{hostname", "service_tags")
