"""Tests for the command line interface."""

import json

import pytest

from gateway_fieldgen.__main__ import main

SCHEMA_YAML = """
types:
  Foo:
    kind: struct
    file: structs.thrift
    fields:
      - {name: three, type: string, required: true}
      - {name: recur, type: Foo}
  Bar:
    kind: struct
    file: structs.thrift
    fields:
      - {name: three, type: string, required: true}
      - {name: recur, type: Bar}
  EchoRequest:
    kind: struct
    file: structs.thrift
    fields:
      - {name: one, type: string, required: true}
  ClientRequest:
    kind: struct
    file: structs.thrift
    fields:
      - {name: one, type: string, required: true}
      - {name: two, type: string, annotations: {zanzibar.http.ref: headers.x-two}}
"""

CONFIG_YAML = """
annotation_prefix: zanzibar
packages:
  structs.thrift: structs
endpoints:
  - endpoint_id: bar.echo
    req_transforms:
      Two: {qualified_name: one}
"""


@pytest.fixture
def schema_file(tmp_path):
    path = tmp_path / "schema.yaml"
    path.write_text(SCHEMA_YAML, encoding="utf-8")
    return path


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "gateway.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    return path


def test_convert(schema_file, capsys):
    """Test converting a recursive struct from the command line."""
    code = main(
        [
            "convert",
            "--schema", str(schema_file),
            "--from-struct", "Foo",
            "--to-struct", "Bar",
            "--package", "structs.thrift=structs",
        ]
    )

    assert code == 0
    lines = json.loads(capsys.readouterr().out)["lines"]
    assert lines[0] == "out.Three = string(in.Three)"
    assert lines[-1] == "out.Recur = convertBarHelper1(in.Recur)"


def test_convert_with_mapping(schema_file, capsys):
    """Test a mapping given on the command line."""
    code = main(
        [
            "convert",
            "--schema", str(schema_file),
            "--from-struct", "EchoRequest",
            "--to-struct", "ClientRequest",
            "--map", "Two=One!",
        ]
    )

    assert code == 0
    assert json.loads(capsys.readouterr().out)["lines"] == [
        "out.One = string(in.One)",
        "out.Two = (*string)(&(in.One))",
    ]


def test_convert_error(schema_file, capsys):
    """Test that generation errors are reported as JSON."""
    code = main(
        [
            "convert",
            "--schema", str(schema_file),
            "--from-struct", "EchoRequest",
            "--to-struct", "ClientRequest",
            "--map", "Two=Missing",
        ]
    )

    assert code == 1
    error = json.loads(capsys.readouterr().out)
    assert error["kind"] == "UnknownTransformSource"
    assert "Missing" in error["error"]


def test_convert_bad_package_argument(schema_file, capsys):
    """Test that malformed pairs are initialization errors."""
    code = main(
        [
            "convert",
            "--schema", str(schema_file),
            "--from-struct", "Foo",
            "--to-struct", "Bar",
            "--package", "structs.thrift",
        ]
    )

    assert code == 1
    assert json.loads(capsys.readouterr().out)["kind"] == "InitializationError"


def test_endpoint(schema_file, config_file, capsys):
    """Test generating the statements of a configured endpoint."""
    code = main(
        [
            "endpoint",
            "--config", str(config_file),
            "--schema", str(schema_file),
            "--endpoint", "bar.echo",
            "--endpoint-struct", "EchoRequest",
            "--client-struct", "ClientRequest",
        ]
    )

    assert code == 0
    result = json.loads(capsys.readouterr().out)
    assert result["endpoint_id"] == "bar.echo"
    assert result["convert_request"] == [
        "out.One = string(in.One)",
        "out.Two = (*string)(&(in.One))",
    ]
    assert result["convert_response"] is None
    assert result["client_header_statements"] == ['headers["x-two"]= *r.Two']
    assert result["write_query_statements"] == [
        "queryValues := &url.Values{}",
        "oneQuery := r.One",
        'queryValues.Set("one", oneQuery)',
        'fullURL += "?" + queryValues.Encode()',
    ]


def test_unknown_endpoint(schema_file, config_file, capsys):
    """Test that an unknown endpoint id is reported."""
    code = main(
        [
            "endpoint",
            "--config", str(config_file),
            "--schema", str(schema_file),
            "--endpoint", "bar.missing",
            "--endpoint-struct", "EchoRequest",
            "--client-struct", "ClientRequest",
        ]
    )

    assert code == 1
    assert json.loads(capsys.readouterr().out)["kind"] == "EndpointNotFound"
