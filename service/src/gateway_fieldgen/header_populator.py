from __future__ import annotations

import logging

from .casing import pascal_case
from .errors import GeneratorError, NonStringHeaderTarget
from .field_mapper import FieldMapperEntry, find_field_chain
from .line_builder import LineBuilder
from .schema import FieldGroup, FieldSpec, StringSpec, TypedefSpec, root_type_spec
from .type_names import PackageNameResolver, go_type

logger = logging.getLogger(__name__)


class HeaderPopulator(LineBuilder):
    """Copies request header values into string fields of the client request ``in``.

    The mapping table is keyed by the dotted target path; each entry's
    ``qualified_name`` is the header name.
    """

    def __init__(self, helper: PackageNameResolver | None) -> None:
        super().__init__()
        self.helper = helper

    def populate(
        self,
        header_names: list[str] | None,
        to_fields: FieldGroup,
        field_map: dict[str, FieldMapperEntry],
    ) -> list[str]:
        self._lines = []
        declared = {h.lower() for h in header_names or ()}
        try:
            for key in sorted(field_map):
                entry = field_map[key]
                chain = find_field_chain(key, to_fields)
                self._check_target(entry, chain[-1])

                if declared and entry.qualified_name.lower() not in declared:
                    logger.debug("header %s is not declared by the endpoint", entry.qualified_name)

                target = "in." + ".".join(pascal_case(f.name) for f in chain)
                self.append('if key, ok := headers.Get("', entry.qualified_name, '"); ok {')
                self._init_nil_opt(chain)
                self._emit_value("\t", target, entry, chain[-1])
                self.append("}")
        except GeneratorError:
            self._lines = []
            raise
        return self.get_lines()

    def _check_target(self, entry: FieldMapperEntry, field: FieldSpec) -> None:
        if not isinstance(root_type_spec(field.type), StringSpec):
            raise NonStringHeaderTarget(
                f"invalid: trying to assign header {entry.qualified_name} "
                f"to non-string field in {field.name}"
            )

    def _init_nil_opt(self, chain: list[FieldSpec]) -> None:
        """Allocate optional structs on the path to the header's target field."""
        path = "in"
        for field in chain[:-1]:
            path += "." + pascal_case(field.name)
            if field.required:
                continue
            self.append("\tif ", path, " == nil {")
            self.append("\t\t", path, " = &", go_type(self.helper, field.type), "{}")
            self.append("\t}")

    def _emit_value(self, indent: str, target: str, entry: FieldMapperEntry, field: FieldSpec) -> None:
        value = "key"
        if isinstance(field.type, TypedefSpec):
            self.append(indent, "val := ", go_type(self.helper, field.type), "(key)")
            value = "val"
        self._emit_assignment(indent, target, value, field, entry.override, zero_value='""')

    def _emit_assignment(
        self,
        indent: str,
        target: str,
        value: str,
        field: FieldSpec,
        override: bool,
        zero_value: str | None,
    ) -> None:
        if not field.required:
            if override:
                self.append(indent, target, " = &", value)
                return
            self.append(indent, "if ", target, " == nil {")
            self.append(indent, "\t", target, " = &", value)
            self.append(indent, "}")
            return

        if override or zero_value is None:
            self.append(indent, target, " = ", value)
            return
        self.append(indent, "if ", target, " != ", zero_value, " {")
        self.append(indent, "\t", target, " = ", value)
        self.append(indent, "}")
