import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from .config import GeneratorConfig
from .endpoint import build_endpoint_statements
from .errors import EndpointNotFound, GeneratorError, InitializationError
from .field_mapper import FieldMapperEntry
from .model.error import Error
from .package import StaticPackageResolver
from .schema_file import SchemaDocument
from .type_converter import TypeConverter

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate Go field mapping statements")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")

    subparsers = parser.add_subparsers(dest="cmd", required=True)

    parser_convert = subparsers.add_parser("convert", help="convert one struct into another")
    parser_convert.add_argument("--schema", type=Path, required=True, help="schema file (json/yaml)")
    parser_convert.add_argument("--from-struct", required=True, help="name of the source struct")
    parser_convert.add_argument("--to-struct", required=True, help="name of the target struct")
    parser_convert.add_argument(
        "--package",
        action="append",
        default=[],
        metavar="FILE=PACKAGE",
        help="Go package of a thrift file, may be repeated",
    )
    parser_convert.add_argument(
        "--map",
        action="append",
        default=[],
        metavar="TARGET=SOURCE[!]",
        help="field mapping, a trailing ! marks an override",
    )

    parser_endpoint = subparsers.add_parser("endpoint", help="generate all statements of an endpoint")
    parser_endpoint.add_argument("--config", type=Path, required=True, help="generator config (json/yaml)")
    parser_endpoint.add_argument("--schema", type=Path, required=True, help="schema file (json/yaml)")
    parser_endpoint.add_argument("--endpoint", required=True, help="endpoint id")
    parser_endpoint.add_argument("--endpoint-struct", required=True)
    parser_endpoint.add_argument("--client-struct", required=True)
    parser_endpoint.add_argument("--endpoint-result", default=None)
    parser_endpoint.add_argument("--client-result", default=None)
    return parser


def _split_pair(value: str) -> tuple[str, str]:
    key, sep, rest = value.partition("=")
    if not sep or not key or not rest:
        raise InitializationError(f"expected KEY=VALUE, got {value!r}")
    return key, rest


def _convert(args: argparse.Namespace) -> dict:
    schema = SchemaDocument.from_file(args.schema)
    resolver = StaticPackageResolver(dict(_split_pair(p) for p in args.package))

    field_map = {}
    for mapping in args.map:
        target, source = _split_pair(mapping)
        override = source.endswith("!")
        field_map[target] = FieldMapperEntry(qualified_name=source.rstrip("!"), override=override)

    converter = TypeConverter(resolver)
    lines = converter.gen_struct_converter(
        schema.fields(args.from_struct), schema.fields(args.to_struct), field_map
    )
    return {"lines": lines}


def _endpoint(args: argparse.Namespace) -> dict:
    config = GeneratorConfig.from_file(args.config)
    schema = SchemaDocument.from_file(args.schema)
    endpoint_config = config.endpoint(args.endpoint)

    endpoint_result = schema.fields(args.endpoint_result) if args.endpoint_result else None
    client_result = schema.fields(args.client_result) if args.client_result else None

    statements = build_endpoint_statements(
        endpoint_config,
        config.package_resolver(),
        schema.fields(args.endpoint_struct),
        schema.fields(args.client_struct),
        endpoint_result,
        client_result,
        annotation_prefix=config.annotation_prefix,
    )
    return asdict(statements)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)

    try:
        if args.cmd == "convert":
            result = _convert(args)
        else:
            result = _endpoint(args)
    except (GeneratorError, InitializationError, EndpointNotFound) as e:
        logger.debug("generation failed", exc_info=True)
        print(Error.from_except(e).model_dump_json())
        return 1

    print(json.dumps(result, indent=4))
    return 0


if __name__ == "__main__":
    sys.exit(main())
