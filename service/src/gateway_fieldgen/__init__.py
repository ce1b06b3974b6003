"""Generators for Go field mapping statements between thrift structs."""

from .endpoint import EndpointStatements, build_endpoint_statements
from .errors import (
    GeneratorError,
    IncompatibleType,
    InternalGeneratorFault,
    MissingRequiredTarget,
    NonStringHeaderTarget,
    NonStringKey,
    PackageResolutionFailure,
    UnknownTargetPath,
    UnknownTransformSource,
)
from .field_mapper import FieldMapperEntry
from .header_populator import HeaderPopulator
from .header_propagator import HeaderPropagator
from .http_statements import (
    client_request_header_statements,
    endpoint_request_header_statements,
    parse_http_path,
    parse_query_param_statements,
    request_param_statements,
    response_header_fields,
    write_query_param_statements,
)
from .line_builder import LineBuilder
from .package import StaticPackageResolver, ThriftRootPackageResolver
from .type_converter import TypeConverter
from .walker import walk_field_groups

__all__ = [
    "EndpointStatements",
    "build_endpoint_statements",
    "GeneratorError",
    "IncompatibleType",
    "InternalGeneratorFault",
    "MissingRequiredTarget",
    "NonStringHeaderTarget",
    "NonStringKey",
    "PackageResolutionFailure",
    "UnknownTargetPath",
    "UnknownTransformSource",
    "FieldMapperEntry",
    "HeaderPopulator",
    "HeaderPropagator",
    "client_request_header_statements",
    "endpoint_request_header_statements",
    "parse_http_path",
    "parse_query_param_statements",
    "request_param_statements",
    "response_header_fields",
    "write_query_param_statements",
    "LineBuilder",
    "StaticPackageResolver",
    "ThriftRootPackageResolver",
    "TypeConverter",
    "walk_field_groups",
]
