"""Statements binding HTTP request parts (path params, headers, query) to thrift fields.

Fields opt into a location with the ``<ns>.http.ref`` annotation, whose
value is ``params.<name>``, ``headers.<name>`` or ``query.<name>``.
Endpoint-side statements write into ``requestBody``; client-side statements
read from ``r``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .casing import camel_case, pascal_case
from .errors import InternalGeneratorFault, NonStringHeaderTarget
from .header_propagator import PARSERS, parse_statement
from .line_builder import LineBuilder
from .schema import (
    BoolSpec,
    DoubleSpec,
    EnumSpec,
    FieldGroup,
    FieldSpec,
    I8Spec,
    I16Spec,
    I32Spec,
    I64Spec,
    StringSpec,
    StructSpec,
    TypedefSpec,
    TypeSpec,
    root_type_spec,
)
from .type_names import PackageNameResolver, go_type
from .walker import walk_field_groups

logger = logging.getLogger(__name__)

DEFAULT_ANNOTATION_PREFIX = "gateway"

PARAMS_PREFIX = "params."
HEADERS_PREFIX = "headers."
QUERY_PREFIX = "query."

QUERY_METHODS: dict[type, str] = {
    BoolSpec: "GetQueryBool",
    I16Spec: "GetQueryInt16",
    I32Spec: "GetQueryInt32",
    I64Spec: "GetQueryInt64",
    DoubleSpec: "GetQueryFloat64",
    StringSpec: "GetQueryValue",
}

POINTER_METHODS: dict[type, str] = {
    BoolSpec: "Bool",
    I8Spec: "Int8",
    I16Spec: "Int16",
    I32Spec: "Int32",
    I64Spec: "Int64",
    DoubleSpec: "Float64",
    StringSpec: "String",
}

ENCODE_EXPRESSIONS: dict[type, str] = {
    BoolSpec: "strconv.FormatBool(%s)",
    I8Spec: "strconv.Itoa(int(%s))",
    I16Spec: "strconv.Itoa(int(%s))",
    I32Spec: "strconv.Itoa(int(%s))",
    I64Spec: "strconv.FormatInt(%s, 10)",
    DoubleSpec: "strconv.FormatFloat(%s, 'G', -1, 64)",
    StringSpec: "%s",
}


def http_annotation(ns: str, name: str) -> str:
    return f"{ns}.http.{name}"


def _quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _long_name(go_prefix: str, field: FieldSpec) -> str:
    return go_prefix + "." + pascal_case(field.name)


@dataclass
class PathSegment:
    type: str
    text: str = ""
    param_name: str = ""
    body_identifier: str = ""
    required: bool = False


@dataclass
class HeaderFieldInfo:
    field_identifier: str
    is_pointer: bool


def find_params_annotation(
    fields: FieldGroup, param_name: str, ns: str = DEFAULT_ANNOTATION_PREFIX
) -> tuple[str, bool] | None:
    """Locate the field bound to path parameter ``param_name``.

    Returns its Go identifier (relative to the request body) and whether it
    is required, or None when no field carries the annotation.
    """
    wanted = PARAMS_PREFIX + param_name.lstrip(":")
    ref = http_annotation(ns, "ref")
    found: list[tuple[str, bool]] = []

    def visit(go_prefix: str, thrift_prefix: str, field: FieldSpec) -> bool:
        if field.annotations.get(ref) == wanted:
            found.append((_long_name(go_prefix, field), field.required))
            return True
        return False

    walk_field_groups(fields, visit)
    return found[0] if found else None


def parse_http_path(
    http_path: str, fields: FieldGroup, ns: str = DEFAULT_ANNOTATION_PREFIX
) -> list[PathSegment]:
    segments = []
    for text in http_path[1:].split("/"):
        if not text.startswith(":"):
            segments.append(PathSegment(type="static", text=text))
            continue

        found = find_params_annotation(fields, text, ns)
        if found is None:
            raise InternalGeneratorFault(f"cannot find params: {text}")
        identifier, required = found
        segments.append(
            PathSegment(
                type="param",
                param_name=text[1:],
                body_identifier=identifier,
                required=required,
            )
        )
    return segments


def find_structs(fields: FieldGroup, resolver: PackageNameResolver | None) -> dict[str, str]:
    """Map the Go identifier of every struct field to its Go type."""
    structs: dict[str, str] = {}

    def visit(go_prefix: str, thrift_prefix: str, field: FieldSpec) -> bool:
        real_type = root_type_spec(field.type)
        if isinstance(real_type, StructSpec):
            structs[_long_name(go_prefix, field)] = go_type(resolver, real_type)
        return False

    walk_field_groups(fields, visit)
    return structs


def _init_struct(lb: LineBuilder, indent: str, identifier: str, type_name: str) -> None:
    lb.append(indent, "if ", identifier, " == nil {")
    lb.append(indent, "\t", identifier, " = &", type_name, "{}")
    lb.append(indent, "}")


def request_param_statements(
    segments: list[PathSegment], fields: FieldGroup, resolver: PackageNameResolver | None
) -> list[str]:
    """Copy path parameters into the endpoint request body."""
    statements = LineBuilder()
    structs = find_structs(fields, resolver)

    for segment in segments:
        if segment.type != "param":
            continue

        for identifier in sorted(structs):
            if segment.body_identifier.startswith(identifier + "."):
                _init_struct(statements, "", "requestBody" + identifier, structs[identifier])

        param = _quote(segment.param_name)
        if segment.required:
            statements.append("requestBody", segment.body_identifier, " = req.Params.ByName(", param, ")")
        else:
            statements.append(
                "requestBody", segment.body_identifier, " = ptr.String(req.Params.ByName(", param, "))"
            )

    return statements.get_lines()


def _header_assignment(
    lb: LineBuilder,
    indent: str,
    target: str,
    variable: str,
    field: FieldSpec,
    resolver: PackageNameResolver | None,
) -> None:
    """Assign header string ``variable`` to ``target``, parsing non-string targets."""
    real = root_type_spec(field.type)

    if isinstance(real, StringSpec):
        if isinstance(field.type, TypedefSpec):
            type_name = go_type(resolver, field.type)
            if field.required:
                lb.append(indent, target, " = ", type_name, "(", variable, ")")
            else:
                lb.append(indent, "val := ", type_name, "(", variable, ")")
                lb.append(indent, target, " = &val")
        elif field.required:
            lb.append(indent, target, " = ", variable)
        else:
            lb.append(indent, target, " = ptr.String(", variable, ")")
        return

    if isinstance(real, EnumSpec):
        lb.append(indent, "var val ", go_type(resolver, field.type))
        lb.append(indent, "if err := val.UnmarshalText([]byte(", variable, ")); err == nil {")
        lb.append(indent, "\t", target, " = ", "val" if field.required else "&val")
        lb.append(indent, "}")
        return

    if not isinstance(real, I8Spec) and type(real) not in PARSERS:
        raise NonStringHeaderTarget(
            f"header field {field.name} has unsupported type {field.type.thrift_name}"
        )

    parse, cast = parse_statement(field.type, variable)
    if isinstance(field.type, TypedefSpec):
        cast = go_type(resolver, field.type)

    lb.append(indent, "if v, err := ", parse, "; err == nil {")
    value = "v"
    if cast is not None:
        lb.append(indent, "\tval := ", cast, "(v)")
        value = "val"
    lb.append(indent, "\t", target, " = ", value if field.required else "&" + value)
    lb.append(indent, "}")


def endpoint_request_header_statements(
    fields: FieldGroup,
    resolver: PackageNameResolver | None,
    ns: str = DEFAULT_ANNOTATION_PREFIX,
) -> list[str]:
    """Read ``headers.*`` annotated fields of the endpoint request from the incoming headers.

    Returns no statements when no field is bound to a header.
    """
    statements = LineBuilder()
    ref = http_annotation(ns, "ref")
    header_counts: dict[str, int] = {}
    optional_structs: dict[str, str] = {}
    seen_headers = False

    def visit(go_prefix: str, thrift_prefix: str, field: FieldSpec) -> bool:
        nonlocal seen_headers
        real_type = root_type_spec(field.type)
        long_name = _long_name(go_prefix, field)

        if isinstance(real_type, StructSpec):
            type_name = go_type(resolver, real_type)
            if field.required:
                _init_struct(statements, "", "requestBody" + long_name, type_name)
            else:
                optional_structs[long_name] = type_name
            return False

        param = field.annotations.get(ref, "")
        if not param.startswith(HEADERS_PREFIX):
            return False

        header_name = param[len(HEADERS_PREFIX):]
        camel_header = camel_case(header_name)
        seen_count = header_counts.get(camel_header, 0)
        if seen_count > 0:
            variable = f"{camel_header}No{seen_count}Value"
        else:
            variable = f"{camel_header}Value"
        header_counts[camel_header] = seen_count + 1

        parents = [
            (identifier, type_name)
            for identifier, type_name in sorted(optional_structs.items())
            if long_name.startswith(identifier + ".")
        ]
        target = "requestBody" + long_name

        if field.required:
            statements.append(variable, ", _ := req.Header.Get(", _quote(header_name), ")")
            for identifier, type_name in parents:
                _init_struct(statements, "", "requestBody" + identifier, type_name)
            _header_assignment(statements, "", target, variable, field, resolver)
        else:
            statements.append(
                variable, ", ", variable, "Exists := req.Header.Get(", _quote(header_name), ")"
            )
            statements.append("if ", variable, "Exists {")
            for identifier, type_name in parents:
                _init_struct(statements, "\t", "requestBody" + identifier, type_name)
            _header_assignment(statements, "\t", target, variable, field, resolver)
            statements.append("}")

        logger.debug("header %s bound to %s as %s", header_name, long_name, variable)
        seen_headers = True
        return False

    walk_field_groups(fields, visit)
    if not seen_headers:
        return []
    return statements.get_lines()


def response_header_fields(
    result_fields: FieldGroup | None, ns: str = DEFAULT_ANNOTATION_PREFIX
) -> dict[str, HeaderFieldInfo]:
    """Map response header names to the result fields carrying them."""
    ref = http_annotation(ns, "ref")
    header_fields: dict[str, HeaderFieldInfo] = {}

    def visit(go_prefix: str, thrift_prefix: str, field: FieldSpec) -> bool:
        param = field.annotations.get(ref, "")
        if param.startswith(HEADERS_PREFIX):
            header_fields[param[len(HEADERS_PREFIX):]] = HeaderFieldInfo(
                field_identifier=_long_name(go_prefix, field),
                is_pointer=not field.required,
            )
        return False

    if result_fields:
        walk_field_groups(result_fields, visit)
    return header_fields


def _encode_expression(spec: TypeSpec, value: str) -> str:
    real = root_type_spec(spec)
    expression = ENCODE_EXPRESSIONS.get(type(real))
    if expression is None:
        raise InternalGeneratorFault(
            f"unknown type ({type(real).__name__}) {spec.thrift_name} for query string parameter"
        )
    return expression % value


def client_request_header_statements(
    fields: FieldGroup, ns: str = DEFAULT_ANNOTATION_PREFIX
) -> list[str]:
    """Copy ``headers.*`` annotated fields of the client request ``r`` into ``headers``."""
    statements = LineBuilder()
    ref = http_annotation(ns, "ref")
    structs: list[str] = []

    def visit(go_prefix: str, thrift_prefix: str, field: FieldSpec) -> bool:
        long_name = _long_name(go_prefix, field)
        if isinstance(root_type_spec(field.type), StructSpec):
            structs.append(long_name)
            return False

        param = field.annotations.get(ref, "")
        if not param.startswith(HEADERS_PREFIX):
            return False

        header_name = _quote(param[len(HEADERS_PREFIX):])
        value = "r" + long_name if field.required else "*r" + long_name
        if not isinstance(root_type_spec(field.type), StringSpec):
            value = _encode_expression(field.type, value)

        indent = ""
        for identifier in structs:
            if long_name.startswith(identifier + "."):
                statements.append(indent, "if r", identifier, " != nil {")
                indent += "\t"
        statements.append(indent, "headers[", header_name, "]= ", value)
        while indent:
            indent = indent[:-1]
            statements.append(indent, "}")
        return False

    walk_field_groups(fields, visit)
    return statements.get_lines()


def long_query_name(field: FieldSpec, thrift_prefix: str, ns: str = DEFAULT_ANNOTATION_PREFIX) -> str:
    """Dotted query parameter name; ``query.<name>`` annotations rename the leaf."""
    query_name = field.name
    annotation = field.annotations.get(http_annotation(ns, "ref"), "")
    if annotation.startswith(QUERY_PREFIX):
        query_name = annotation[len(QUERY_PREFIX):]

    if not thrift_prefix:
        return query_name
    return thrift_prefix.lstrip(".") + "." + query_name


def _bound_elsewhere(field: FieldSpec, ns: str) -> bool:
    annotation = field.annotations.get(http_annotation(ns, "ref"), "")
    return annotation != "" and not annotation.startswith("query")


def write_query_param_statements(
    fields: FieldGroup, ns: str = DEFAULT_ANNOTATION_PREFIX
) -> list[str]:
    """Encode client request fields ``r`` into the outgoing query string.

    Returns no statements when no field goes to the query string.
    """
    statements = LineBuilder()
    stack: list[str] = []
    has_query_fields = False

    def close_blocks(long_name: str) -> None:
        while stack and not long_name.startswith(stack[-1] + "."):
            stack.pop()
            statements.append("\t" * len(stack), "}")

    def visit(go_prefix: str, thrift_prefix: str, field: FieldSpec) -> bool:
        nonlocal has_query_fields
        long_name = _long_name(go_prefix, field)
        close_blocks(long_name)
        indent = "\t" * len(stack)

        if isinstance(root_type_spec(field.type), StructSpec):
            if field.required:
                statements.append(indent, "if r", long_name, " == nil {")
                statements.append(indent, "\treturn nil, nil, errors.New(")
                statements.append(indent, '\t\t"The field ', long_name, ' is required",')
                statements.append(indent, "\t)")
                statements.append(indent, "}")
            else:
                statements.append(indent, "if r", long_name, " != nil {")
                stack.append(long_name)
            return False

        if _bound_elsewhere(field, ns):
            return False

        query_name = long_query_name(field, thrift_prefix, ns)
        identifier = camel_case(query_name) + "Query"
        has_query_fields = True

        if field.required:
            statements.append(indent, identifier, " := ", _encode_expression(field.type, "r" + long_name))
            statements.append(indent, "queryValues.Set(", _quote(query_name), ", ", identifier, ")")
        else:
            statements.append(indent, "if r", long_name, " != nil {")
            statements.append(
                indent, "\t", identifier, " := ", _encode_expression(field.type, "*r" + long_name)
            )
            statements.append(indent, "\tqueryValues.Set(", _quote(query_name), ", ", identifier, ")")
            statements.append(indent, "}")
        return False

    walk_field_groups(fields, visit)
    close_blocks("")

    if not has_query_fields:
        return []
    return (
        ["queryValues := &url.Values{}"]
        + statements.get_lines()
        + ['fullURL += "?" + queryValues.Encode()']
    )


def parse_query_param_statements(
    fields: FieldGroup,
    resolver: PackageNameResolver | None,
    ns: str = DEFAULT_ANNOTATION_PREFIX,
) -> list[str]:
    """Read endpoint request fields from the incoming query string into ``requestBody``."""
    statements = LineBuilder()
    stack: list[str] = []

    def close_blocks(long_name: str) -> None:
        while stack and not long_name.startswith(stack[-1] + "."):
            stack.pop()
            statements.append("\t" * len(stack), "}")

    def visit(go_prefix: str, thrift_prefix: str, field: FieldSpec) -> bool:
        real_type = root_type_spec(field.type)
        long_name = _long_name(go_prefix, field)
        plain_name = long_query_name(field, thrift_prefix, ns)
        query_name = _quote(plain_name)
        close_blocks(long_name)
        indent = "\t" * len(stack)

        if isinstance(real_type, StructSpec):
            if not field.required:
                statements.append(
                    indent, "if req.HasQueryPrefix(", query_name, ") || requestBody", long_name, " != nil {"
                )
                stack.append(long_name)
                indent += "\t"
            _init_struct(statements, indent, "requestBody" + long_name, go_type(resolver, real_type))
            return False

        if _bound_elsewhere(field, ns):
            return False

        if isinstance(real_type, I8Spec):
            raise InternalGeneratorFault(f"query parameter {plain_name} is a byte-sized integer")
        query_method = QUERY_METHODS.get(type(real_type))
        if query_method is None:
            raise InternalGeneratorFault(
                f"unknown type ({type(real_type).__name__}) {field.type.thrift_name} "
                "for query string parameter"
            )

        identifier = camel_case(plain_name) + "Query"
        ok_identifier = camel_case(plain_name) + "Ok"
        body = indent
        if field.required:
            statements.append(indent, ok_identifier, " := req.CheckQueryValue(", query_name, ")")
            statements.append(indent, "if !", ok_identifier, " {")
            statements.append(indent, "\treturn")
            statements.append(indent, "}")
        else:
            statements.append(indent, ok_identifier, " := req.HasQueryValue(", query_name, ")")
            statements.append(indent, "if ", ok_identifier, " {")
            body += "\t"

        statements.append(body, identifier, ", ok := req.", query_method, "(", query_name, ")")
        statements.append(body, "if !ok {")
        statements.append(body, "\treturn")
        statements.append(body, "}")

        if field.required:
            statements.append(body, "requestBody", long_name, " = ", identifier)
        else:
            pointer_method = POINTER_METHODS[type(real_type)]
            statements.append(body, "requestBody", long_name, " = ptr.", pointer_method, "(", identifier, ")")
            statements.append(indent, "}")

        # blank line between parameters
        statements.append("")
        return False

    walk_field_groups(fields, visit)
    close_blocks("")
    return statements.get_lines()
