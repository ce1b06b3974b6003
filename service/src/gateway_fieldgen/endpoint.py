from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .config import EndpointConfig
from .header_propagator import HeaderPropagator
from .http_statements import (
    DEFAULT_ANNOTATION_PREFIX,
    HeaderFieldInfo,
    client_request_header_statements,
    endpoint_request_header_statements,
    parse_http_path,
    parse_query_param_statements,
    request_param_statements,
    response_header_fields,
    write_query_param_statements,
)
from .schema import FieldGroup
from .type_converter import TypeConverter
from .type_names import PackageNameResolver

logger = logging.getLogger(__name__)


@dataclass
class EndpointStatements:
    """Statement lists spliced into the generated endpoint handler and client call."""

    endpoint_id: str
    convert_request: list[str]
    convert_response: list[str] | None = None
    propagate_headers: list[str] = field(default_factory=list)
    req_header_map_keys: list[str] = field(default_factory=list)
    res_header_map_keys: list[str] = field(default_factory=list)
    request_param_statements: list[str] = field(default_factory=list)
    request_header_statements: list[str] = field(default_factory=list)
    parse_query_statements: list[str] = field(default_factory=list)
    client_header_statements: list[str] = field(default_factory=list)
    write_query_statements: list[str] = field(default_factory=list)
    response_headers: dict[str, HeaderFieldInfo] = field(default_factory=dict)


def build_endpoint_statements(
    endpoint_config: EndpointConfig,
    resolver: PackageNameResolver,
    endpoint_fields: FieldGroup,
    client_fields: FieldGroup,
    endpoint_result_fields: FieldGroup | None = None,
    client_result_fields: FieldGroup | None = None,
    header_names: list[str] | None = None,
    annotation_prefix: str = DEFAULT_ANNOTATION_PREFIX,
) -> EndpointStatements:
    """Generate every statement list of one endpoint.

    The request is converted endpoint -> client with ``req_transforms``; the
    response, when both sides return a struct, client -> endpoint with
    ``resp_transforms``.  Each part runs on its own generator.

    Annotated endpoint request fields are read from the path, the headers
    and (for GET) the query string; annotated client request fields are
    written to the outgoing headers and query string.
    """
    logger.debug("building statements for endpoint %s", endpoint_config.endpoint_id)
    ns = annotation_prefix

    request_converter = TypeConverter(resolver, endpoint_config.optional_entries)
    convert_request = request_converter.gen_struct_converter(
        endpoint_fields, client_fields, endpoint_config.request_field_map()
    )

    convert_response = None
    if endpoint_result_fields is not None and client_result_fields is not None:
        response_converter = TypeConverter(resolver)
        convert_response = response_converter.gen_struct_converter(
            client_result_fields, endpoint_result_fields, endpoint_config.response_field_map()
        )

    propagate_headers = []
    if endpoint_config.headers_propagate:
        propagator = HeaderPropagator(resolver)
        propagate_headers = propagator.propagate(
            header_names, client_fields, endpoint_config.header_field_map()
        )

    param_statements = []
    if endpoint_config.http_path:
        segments = parse_http_path(endpoint_config.http_path, endpoint_fields, ns)
        param_statements = request_param_statements(segments, endpoint_fields, resolver)

    parse_query = []
    write_query = []
    if endpoint_config.http_method.upper() == "GET":
        parse_query = parse_query_param_statements(endpoint_fields, resolver, ns)
        write_query = write_query_param_statements(client_fields, ns)
    else:
        logger.debug(
            "no query statements for %s %s",
            endpoint_config.http_method,
            endpoint_config.endpoint_id,
        )

    return EndpointStatements(
        endpoint_id=endpoint_config.endpoint_id,
        convert_request=convert_request,
        convert_response=convert_response,
        propagate_headers=propagate_headers,
        req_header_map_keys=sorted(endpoint_config.req_header_map),
        res_header_map_keys=sorted(endpoint_config.res_header_map),
        request_param_statements=param_statements,
        request_header_statements=endpoint_request_header_statements(endpoint_fields, resolver, ns),
        parse_query_statements=parse_query,
        client_header_statements=client_request_header_statements(client_fields, ns),
        write_query_statements=write_query,
        response_headers=response_header_fields(endpoint_result_fields, ns),
    )
