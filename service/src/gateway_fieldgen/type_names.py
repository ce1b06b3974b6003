from __future__ import annotations

import logging
from typing import Protocol

from .casing import pascal_case
from .errors import InternalGeneratorFault, PackageResolutionFailure
from .schema import (
    BinarySpec,
    BoolSpec,
    DoubleSpec,
    EnumSpec,
    I8Spec,
    I16Spec,
    I32Spec,
    I64Spec,
    ListSpec,
    MapSpec,
    SetSpec,
    StringSpec,
    StructSpec,
    TypedefSpec,
    TypeSpec,
    is_hashable,
    is_struct_type,
)

logger = logging.getLogger(__name__)

_NATIVE_TYPES: dict[type, str] = {
    BoolSpec: "bool",
    I8Spec: "int8",
    I16Spec: "int16",
    I32Spec: "int32",
    I64Spec: "int64",
    DoubleSpec: "float64",
    StringSpec: "string",
    BinarySpec: "[]byte",
}


class PackageNameResolver(Protocol):
    """Maps an IDL file to the Go package its types are generated into."""

    def type_package_name(self, thrift_file: str) -> str: ...


def go_type(resolver: PackageNameResolver | None, spec: TypeSpec) -> str:
    """Return the Go type name used for values of ``spec``."""
    native = _NATIVE_TYPES.get(type(spec))
    if native is not None:
        return native

    if isinstance(spec, MapSpec):
        key = go_reference_type(resolver, spec.key_spec)
        value = go_reference_type(resolver, spec.value_spec)
        if not is_hashable(spec.key_spec):
            return f"[]struct{{Key {key}; Value {value}}}"
        return f"map[{key}]{value}"

    if isinstance(spec, ListSpec):
        return "[]" + go_reference_type(resolver, spec.value_spec)

    if isinstance(spec, SetSpec):
        value = go_reference_type(resolver, spec.value_spec)
        if spec.slice_backed or not is_hashable(spec.value_spec):
            return f"[]{value}"
        return f"map[{value}]struct{{}}"

    if isinstance(spec, (EnumSpec, StructSpec, TypedefSpec)):
        return go_custom_type(resolver, spec)

    raise InternalGeneratorFault(f"unknown type ({type(spec).__name__}) {spec!r}")


def go_reference_type(resolver: PackageNameResolver | None, spec: TypeSpec) -> str:
    """Like :func:`go_type`, but structs are referenced through a pointer."""
    name = go_type(resolver, spec)
    if is_struct_type(spec):
        name = "*" + name
    return name


def go_custom_type(resolver: PackageNameResolver | None, spec: TypeSpec) -> str:
    """Return ``<package>.<PascalName>`` for an enum, struct or typedef."""
    thrift_file = spec.thrift_file
    if not thrift_file:
        raise InternalGeneratorFault(
            f"go_custom_type called with native type ({type(spec).__name__}) {spec.thrift_name}"
        )
    if resolver is None:
        raise PackageResolutionFailure(
            f"no package resolver configured for custom type {spec.thrift_name}"
        )

    try:
        package = resolver.type_package_name(thrift_file)
    except Exception as e:
        raise PackageResolutionFailure(
            f"failed to get package for custom type {spec.thrift_name}: {e}"
        ) from e

    logger.debug("resolved %s in %s to package %s", spec.thrift_name, thrift_file, package)
    return package + "." + pascal_case(spec.thrift_name)
