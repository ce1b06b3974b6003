from __future__ import annotations

import logging

from .errors import InternalGeneratorFault, NonStringHeaderTarget
from .field_mapper import FieldMapperEntry
from .header_populator import HeaderPopulator
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
    TypedefSpec,
    TypeSpec,
    root_type_spec,
)
from .type_names import go_type

logger = logging.getLogger(__name__)

# rooted type -> (parse expression, Go type the parsed int64 is narrowed to)
PARSERS: dict[type, tuple[str, str | None]] = {
    BoolSpec: ("strconv.ParseBool(%s)", None),
    I16Spec: ("strconv.ParseInt(%s, 10, 16)", "int16"),
    I32Spec: ("strconv.ParseInt(%s, 10, 32)", "int32"),
    I64Spec: ("strconv.ParseInt(%s, 10, 64)", None),
    DoubleSpec: ("strconv.ParseFloat(%s, 64)", None),
}


def parse_statement(spec: TypeSpec, value: str = "key") -> tuple[str, str | None]:
    """Return the Go parse call for ``spec`` and the narrowing cast, if any.

    Byte-sized integers have no parser; asking for one is a programming error.
    """
    real = root_type_spec(spec)
    if isinstance(real, I8Spec):
        raise InternalGeneratorFault(f"unsupported header type {spec.thrift_name}: byte-sized integer")
    parse, cast = PARSERS[type(real)]
    return parse % value, cast


class HeaderPropagator(HeaderPopulator):
    """Header populator that also parses primitive targets out of the header string.

    Parse failures skip the assignment; headers are best effort.
    """

    def propagate(
        self,
        header_names: list[str] | None,
        to_fields: FieldGroup,
        field_map: dict[str, FieldMapperEntry],
    ) -> list[str]:
        return self.populate(header_names, to_fields, field_map)

    def _check_target(self, entry: FieldMapperEntry, field: FieldSpec) -> None:
        real = root_type_spec(field.type)
        if isinstance(real, I8Spec):
            raise InternalGeneratorFault(
                f"header {entry.qualified_name} targets byte-sized integer field {field.name}"
            )
        if not isinstance(real, (StringSpec, EnumSpec)) and type(real) not in PARSERS:
            raise NonStringHeaderTarget(
                f"invalid: trying to assign header {entry.qualified_name} "
                f"to unsupported field type {field.type.thrift_name} in {field.name}"
            )

    def _emit_value(self, indent: str, target: str, entry: FieldMapperEntry, field: FieldSpec) -> None:
        real = root_type_spec(field.type)
        if isinstance(real, StringSpec):
            super()._emit_value(indent, target, entry, field)
            return

        if isinstance(real, EnumSpec):
            self.append(indent, "var val ", go_type(self.helper, field.type))
            self.append(indent, "if err := val.UnmarshalText([]byte(key)); err == nil {")
            self._emit_assignment(indent + "\t", target, "val", field, entry.override, zero_value=None)
            self.append(indent, "}")
            return

        parse, cast = parse_statement(field.type)
        if isinstance(field.type, TypedefSpec):
            cast = go_type(self.helper, field.type)

        logger.debug("parsing header %s as %s", entry.qualified_name, field.type.thrift_name)
        self.append(indent, "if v, err := ", parse, "; err == nil {")
        value = "v"
        if cast is not None:
            self.append(indent, "\tval := ", cast, "(v)")
            value = "val"
        # zero is a legitimate parsed value, so required targets are always written
        self._emit_assignment(indent + "\t", target, value, field, entry.override, zero_value=None)
        self.append(indent, "}")
