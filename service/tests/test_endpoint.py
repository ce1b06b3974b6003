"""Tests for assembling the statements of one endpoint."""

import pytest

from gateway_fieldgen.config import EndpointConfig
from gateway_fieldgen.endpoint import build_endpoint_statements
from gateway_fieldgen.errors import MissingRequiredTarget
from gateway_fieldgen.http_statements import HeaderFieldInfo
from gateway_fieldgen.package import StaticPackageResolver
from gateway_fieldgen.schema import FieldSpec, StringSpec

REF = "gateway.http.ref"


@pytest.fixture
def resolver():
    return StaticPackageResolver({"structs.thrift": "structs"})


@pytest.fixture
def endpoint_config():
    return EndpointConfig.model_validate(
        {
            "endpoint_id": "bar.echo",
            "req_transforms": {"Two": {"qualified_name": "One", "override": True}},
            "headers_propagate": {"Token": {"qualified_name": "x-token"}},
            "req_header_map": {"x-b": "B", "x-a": "A"},
            "optional_entries": ["Token"],
        }
    )


def test_build_endpoint_statements(endpoint_config, resolver):
    """Test request, response and header statements of an endpoint."""
    endpoint_fields = [FieldSpec("one", StringSpec(), required=True)]
    client_fields = [
        FieldSpec("one", StringSpec(), required=True),
        FieldSpec("two", StringSpec()),
        FieldSpec("token", StringSpec(), required=True),
    ]
    result_fields = [FieldSpec("msg", StringSpec(), required=True)]

    statements = build_endpoint_statements(
        endpoint_config,
        resolver,
        endpoint_fields,
        client_fields,
        result_fields,
        result_fields,
    )

    assert statements.endpoint_id == "bar.echo"
    assert statements.convert_request == [
        "out.One = string(in.One)",
        "out.Two = (*string)(&(in.One))",
    ]
    assert statements.convert_response == ["out.Msg = string(in.Msg)"]
    assert statements.propagate_headers == [
        'if key, ok := headers.Get("x-token"); ok {',
        '\tif in.Token != "" {',
        "\t\tin.Token = key",
        "\t}",
        "}",
    ]
    assert statements.req_header_map_keys == ["x-a", "x-b"]
    assert statements.res_header_map_keys == []


def test_build_endpoint_statements_without_result(resolver):
    """Test an endpoint without a response body or header propagation."""
    endpoint_config = EndpointConfig(endpoint_id="bar.ping")
    fields = [FieldSpec("one", StringSpec(), required=True)]

    statements = build_endpoint_statements(endpoint_config, resolver, fields, fields)

    assert statements.convert_request == ["out.One = string(in.One)"]
    assert statements.convert_response is None
    assert statements.propagate_headers == []


def test_build_endpoint_statements_missing_target(resolver):
    """Test that a required client field without source is fatal."""
    endpoint_config = EndpointConfig(endpoint_id="bar.echo")

    with pytest.raises(MissingRequiredTarget):
        build_endpoint_statements(
            endpoint_config,
            resolver,
            [FieldSpec("one", StringSpec(), required=True)],
            [FieldSpec("token", StringSpec(), required=True)],
        )


def test_build_endpoint_http_statements(resolver):
    """Test path, header and query bindings of a GET endpoint and its client call."""
    endpoint_config = EndpointConfig(endpoint_id="bar.user", http_path="/users/:user")
    endpoint_fields = [
        FieldSpec("user", StringSpec(), required=True, annotations={REF: "params.user"}),
        FieldSpec("token", StringSpec(), annotations={REF: "headers.x-token"}),
        FieldSpec("name", StringSpec(), required=True),
    ]
    client_fields = [
        FieldSpec("user", StringSpec(), required=True, annotations={REF: "headers.x-user"}),
        FieldSpec("name", StringSpec()),
    ]
    result_fields = [FieldSpec("etag", StringSpec(), annotations={REF: "headers.etag"})]

    statements = build_endpoint_statements(
        endpoint_config,
        resolver,
        endpoint_fields,
        client_fields,
        result_fields,
        result_fields,
    )

    assert statements.convert_request == [
        "out.User = string(in.User)",
        "out.Name = (*string)(&(in.Name))",
    ]
    assert statements.request_param_statements == [
        'requestBody.User = req.Params.ByName("user")',
    ]
    assert statements.request_header_statements == [
        'xTokenValue, xTokenValueExists := req.Header.Get("x-token")',
        "if xTokenValueExists {",
        "\trequestBody.Token = ptr.String(xTokenValue)",
        "}",
    ]
    assert statements.parse_query_statements == [
        'nameOk := req.CheckQueryValue("name")',
        "if !nameOk {",
        "\treturn",
        "}",
        'nameQuery, ok := req.GetQueryValue("name")',
        "if !ok {",
        "\treturn",
        "}",
        "requestBody.Name = nameQuery",
        "",
    ]
    assert statements.client_header_statements == ['headers["x-user"]= r.User']
    assert statements.write_query_statements == [
        "queryValues := &url.Values{}",
        "if r.Name != nil {",
        "\tnameQuery := *r.Name",
        '\tqueryValues.Set("name", nameQuery)',
        "}",
        'fullURL += "?" + queryValues.Encode()',
    ]
    assert statements.response_headers == {
        "etag": HeaderFieldInfo(field_identifier=".Etag", is_pointer=True),
    }


def test_build_endpoint_without_query_for_post(resolver):
    """Test that only GET endpoints bind the query string."""
    endpoint_config = EndpointConfig(endpoint_id="bar.create", http_method="POST")
    fields = [
        FieldSpec("name", StringSpec(), required=True),
        FieldSpec("token", StringSpec(), annotations={REF: "headers.x-token"}),
    ]

    statements = build_endpoint_statements(endpoint_config, resolver, fields, fields)

    assert statements.parse_query_statements == []
    assert statements.write_query_statements == []
    assert statements.request_param_statements == []
    assert statements.client_header_statements == ['headers["x-token"]= *r.Token']


def test_build_endpoint_custom_annotation_prefix(resolver):
    """Test that bindings are read from the configured annotation namespace."""
    endpoint_config = EndpointConfig(endpoint_id="bar.echo", http_method="POST")
    fields = [FieldSpec("token", StringSpec(), annotations={"zanzibar.http.ref": "headers.x-token"})]

    default = build_endpoint_statements(endpoint_config, resolver, fields, fields)
    custom = build_endpoint_statements(
        endpoint_config, resolver, fields, fields, annotation_prefix="zanzibar"
    )

    assert default.client_header_statements == []
    assert custom.client_header_statements == ['headers["x-token"]= *r.Token']
