"""Struct converter: emits Go statements copying one thrift struct into another.

The emitted code assumes two variables, ``in`` (the source struct) and
``out`` (an already allocated target struct).  Target fields are visited in
declaration order and fed from a same-named source field, from a mapping
table entry, or from both when one overrides the other.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from .casing import pascal_case
from .errors import (
    GeneratorError,
    IncompatibleType,
    InternalGeneratorFault,
    MissingRequiredTarget,
    NonStringKey,
)
from .field_mapper import (
    FieldMap,
    FieldMapperEntry,
    middle_identifiers,
    nil_checks,
    resolve_field_map,
)
from .line_builder import LineBuilder
from .schema import (
    KNOWN_SPECS,
    BinarySpec,
    FieldGroup,
    FieldSpec,
    ListSpec,
    MapSpec,
    SetSpec,
    StringSpec,
    StructSpec,
    TypedefSpec,
    TypeSpec,
    find_recursive_structs,
    is_slice_type,
    is_struct_type,
    root_type_spec,
)
from .type_names import PackageNameResolver, go_reference_type, go_type

logger = logging.getLogger(__name__)


@dataclass
class FieldSource:
    """Where a target field reads from."""

    spec: TypeSpec
    identifier: str
    required: bool
    mapped: bool = False


@dataclass
class FieldAssignment:
    """A single primitive assignment ``to = cast(from)``."""

    from_identifier: str
    from_required: bool
    to_identifier: str
    to_required: bool
    type_name: str
    extra_nil_check: bool = False
    binary: bool = False

    def is_transform(self) -> bool:
        """True unless source and target sit at the same path below their roots."""
        return self.from_identifier.partition(".")[2] != self.to_identifier.partition(".")[2]

    def expression(self) -> str:
        source = self.from_identifier
        if self.binary:
            return f"[]byte({source})"
        if self.to_required:
            if self.from_required:
                return f"{self.type_name}({source})"
            return f"{self.type_name}(*({source}))"
        if self.from_required:
            return f"(*{self.type_name})(&({source}))"
        return f"(*{self.type_name})({source})"

    def guards(self) -> list[str]:
        """Nil checks that have to hold before the assignment may run."""
        if not self.is_transform():
            if (not self.from_required and self.to_required) or self.extra_nil_check:
                return [self.from_identifier + " != nil"]
            return []

        checks = nil_checks(middle_identifiers(self.from_identifier))
        if not self.extra_nil_check:
            # the leaf itself only needs checking when it is dereferenced
            if self.from_required or not self.to_required:
                checks = checks[:-1]
        return checks


def _kind(spec: TypeSpec) -> str:
    real = root_type_spec(spec)
    if isinstance(real, StructSpec):
        return "struct"
    if isinstance(real, (ListSpec, SetSpec)):
        return "collection"
    if isinstance(real, MapSpec):
        return "map"
    if isinstance(real, BinarySpec):
        return "binary"
    if isinstance(real, KNOWN_SPECS):
        return "scalar"
    raise InternalGeneratorFault(f"unknown type ({type(real).__name__}) {real!r}")


def _is_map_backed_set(spec: TypeSpec) -> bool:
    real = root_type_spec(spec)
    return isinstance(real, SetSpec) and not is_slice_type(real)


class TypeConverter(LineBuilder):
    """Generates the body of a function converting ``in`` into ``out``."""

    def __init__(
        self,
        helper: PackageNameResolver | None,
        optional_entries: Iterable[str] | None = None,
    ) -> None:
        super().__init__()
        self.helper = helper
        self.optional_entries = frozenset(optional_entries or ())
        self._reset()

    def _reset(self) -> None:
        self._lines = []
        self._counter = 0
        self._uninitialized: dict[str, str] = {}
        self._guarded: set[str] = set()
        self._helpers: dict[tuple[StructSpec, StructSpec], str] = {}
        self._recursive_structs: set[StructSpec] = set()
        self._use_recur_gen = False

    def gen_struct_converter(
        self,
        from_fields: FieldGroup,
        to_fields: FieldGroup,
        field_map: dict[str, FieldMapperEntry] | None = None,
    ) -> list[str]:
        """Emit statements converting ``in`` (``from_fields``) into ``out`` (``to_fields``).

        ``field_map`` maps dotted target paths to their source entries.
        Structural problems raise a :class:`GeneratorError`; no partial output
        is kept in that case.
        """
        self._reset()
        try:
            resolved = resolve_field_map(field_map, from_fields)
            self._recursive_structs = find_recursive_structs(from_fields) | find_recursive_structs(
                to_fields
            )
            self._use_recur_gen = bool(self._recursive_structs) and bool(resolved)
            if self._use_recur_gen:
                # helpers shadow in/out, transforms must still reach the top-level records
                self.append("inOriginal := in; _ = inOriginal")
                self.append("outOriginal := out; _ = outOriginal")

            self._gen_struct_converter("", "in", "out", "", from_fields, to_fields, resolved)
        except GeneratorError:
            self._lines = []
            raise
        return self.get_lines()

    def _make_uniq_identifier(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}{self._counter}"

    def _enter_scope(self) -> tuple[set[str], dict]:
        saved = (self._guarded, self._helpers)
        self._guarded = set(self._guarded)
        self._helpers = dict(self._helpers)
        return saved

    def _exit_scope(self, saved: tuple[set[str], dict]) -> None:
        self._guarded, self._helpers = saved

    def _mapped_identifier(self, entry: FieldMapperEntry) -> str:
        root = "inOriginal." if self._use_recur_gen else "in."
        return root + entry.qualified_name

    def _init_parents(self, indent: str, to_identifier: str) -> None:
        """Allocate every deferred optional parent on the path to ``to_identifier``."""
        for identifier in sorted(self._uninitialized):
            if not to_identifier.startswith(identifier + "."):
                continue
            if identifier in self._guarded:
                continue
            self.append(indent, "if ", identifier, " == nil {")
            self.append(indent, "\t", identifier, " = &", self._uninitialized[identifier], "{}")
            self.append(indent, "}")
            self._guarded.add(identifier)

    def _has_uninitialized_parent(self, to_identifier: str) -> bool:
        return any(to_identifier.startswith(k + ".") for k in self._uninitialized)

    def _emit_guarded(self, indent: str, checks: list[str], to_identifier: str, expression: str) -> None:
        if not checks:
            self._init_parents(indent, to_identifier)
            self.append(indent, to_identifier, " = ", expression)
            return

        self.append(indent, "if ", " && ".join(checks), " {")
        saved = self._enter_scope()
        self._init_parents(indent + "\t", to_identifier)
        self.append(indent, "\t", to_identifier, " = ", expression)
        self._exit_scope(saved)
        self.append(indent, "}")

    def _check_compatible(self, key: str, to_type: TypeSpec, from_type: TypeSpec) -> None:
        if _kind(to_type) != _kind(from_type):
            raise IncompatibleType(
                f"could not convert field {key}: incompatible type "
                f"{from_type.thrift_name} for {to_type.thrift_name}"
            )

    @staticmethod
    def _same_named(from_fields: FieldGroup | None, to_field: FieldSpec) -> FieldSpec | None:
        name = to_field.name.lower()
        return next((f for f in from_fields or () if f.name.lower() == name), None)

    @staticmethod
    def _has_nested_mapping(key: str, field_map: FieldMap) -> bool:
        return any(k.startswith(key + ".") for k in field_map)

    def _gen_struct_converter(
        self,
        key_prefix: str,
        from_base: str | None,
        to_base: str,
        indent: str,
        from_fields: FieldGroup | None,
        to_fields: FieldGroup,
        field_map: FieldMap,
    ) -> None:
        """Walk ``to_fields`` and emit an assignment for every field that has a source.

        ``key_prefix`` is the dotted target path used for mapping lookups,
        ``from_base`` / ``to_base`` are the Go expressions of the enclosing
        source and target structs.
        """
        for to_field in to_fields:
            go_name = pascal_case(to_field.name)
            key = key_prefix + go_name
            to_identifier = to_base + "." + go_name

            primary: FieldSource | None = None
            fallback: FieldSource | None = None

            from_field = self._same_named(from_fields, to_field)
            if from_field is not None:
                primary = FieldSource(
                    from_field.type,
                    from_base + "." + pascal_case(from_field.name),
                    from_field.required,
                )

            entry = field_map.get(key)
            if entry is not None:
                mapped = FieldSource(
                    entry.resolved_field.type,
                    self._mapped_identifier(entry),
                    entry.resolved_field.required,
                    mapped=True,
                )
                if primary is None:
                    primary = mapped
                elif entry.override:
                    # a required mapped source always wins, nothing to fall back to
                    if not mapped.required:
                        fallback = primary
                    primary = mapped
                elif not primary.required:
                    fallback = mapped

            if primary is None:
                if is_struct_type(to_field.type) and self._has_nested_mapping(key, field_map):
                    self._gen_unsourced_struct(key, indent, to_field, to_identifier, field_map)
                    continue
                if key in self.optional_entries:
                    logger.debug("target %s has no source, allowed as optional entry", key)
                    continue
                if to_field.required:
                    raise MissingRequiredTarget(
                        f"required toField {key} does not have a valid fromField mapping"
                    )
                logger.debug("skipping optional target %s without source", key)
                continue

            self._check_compatible(key, to_field.type, primary.spec)
            if fallback is not None:
                self._check_compatible(key, to_field.type, fallback.spec)

            real_type = root_type_spec(to_field.type)
            if isinstance(real_type, StructSpec):
                if fallback is not None:
                    logger.debug("struct target %s ignores fallback %s", key, fallback.identifier)
                self._convert_struct(key, indent, to_field.type, to_identifier, primary, field_map)
            elif isinstance(real_type, (ListSpec, SetSpec)):
                self._gen_list(key, indent, to_field.type, to_identifier, primary, fallback, field_map)
            elif isinstance(real_type, MapSpec):
                self._gen_map(key, indent, to_field.type, to_identifier, primary, fallback, field_map)
            else:
                self._gen_primitive(indent, to_field, to_identifier, primary, fallback)

    def _gen_primitive(
        self,
        indent: str,
        to_field: FieldSpec,
        to_identifier: str,
        primary: FieldSource,
        fallback: FieldSource | None,
    ) -> None:
        binary = isinstance(root_type_spec(to_field.type), BinarySpec)
        type_name = go_type(self.helper, to_field.type)

        default = FieldAssignment(
            primary.identifier,
            primary.required or binary,
            to_identifier,
            to_field.required or binary,
            type_name,
            binary=binary,
        )
        if fallback is None:
            self._assign(indent, default)
            return

        # the fallback runs first so a present primary overwrites it
        self._assign(
            indent,
            FieldAssignment(
                fallback.identifier,
                fallback.required or binary,
                to_identifier,
                to_field.required or binary,
                type_name,
                binary=binary,
            ),
        )
        default.extra_nil_check = True
        self._assign(indent, default)

    def _assign(self, indent: str, assignment: FieldAssignment) -> None:
        self._emit_guarded(
            indent, assignment.guards(), assignment.to_identifier, assignment.expression()
        )

    def _gen_unsourced_struct(
        self,
        key: str,
        indent: str,
        to_field: FieldSpec,
        to_identifier: str,
        field_map: FieldMap,
    ) -> None:
        """Descend into a struct only populated by mappings on its descendants."""
        to_struct = root_type_spec(to_field.type)
        type_name = go_type(self.helper, to_field.type)

        if to_field.required:
            self._init_parents(indent, to_identifier)
            self.append(indent, to_identifier, " = &", type_name, "{}")
            self._gen_struct_converter(
                key + ".", None, to_identifier, indent, None, to_struct.fields, field_map
            )
            return

        # allocated lazily by the first write below it
        self._uninitialized[to_identifier] = type_name
        self._gen_struct_converter(
            key + ".", None, to_identifier, indent, None, to_struct.fields, field_map
        )
        del self._uninitialized[to_identifier]
        self._guarded.discard(to_identifier)

    def _convert_struct(
        self,
        key: str,
        indent: str,
        to_type: TypeSpec,
        to_identifier: str,
        source: FieldSource,
        field_map: FieldMap,
        from_path: str | None = None,
    ) -> None:
        """Convert a struct field; nested reads go through ``from_path`` when given."""
        to_struct = root_type_spec(to_type)
        from_struct = root_type_spec(source.spec)

        if source.mapped:
            checks = nil_checks(middle_identifiers(source.identifier))
        else:
            checks = [source.identifier + " != nil"]

        if to_struct in self._recursive_structs:
            helper = self._struct_helper(indent, to_type, source.spec, field_map)
            # the helper is nil-safe on its argument
            self._emit_guarded(
                indent, checks[:-1], to_identifier, f"{helper}({source.identifier})"
            )
            return

        type_name = go_type(self.helper, to_type)
        self.append(indent, "if ", " && ".join(checks), " {")
        saved = self._enter_scope()
        self._init_parents(indent + "\t", to_identifier)
        self.append(indent, "\t", to_identifier, " = &", type_name, "{}")
        self._gen_struct_converter(
            key + ".",
            from_path or source.identifier,
            to_identifier,
            indent + "\t",
            from_struct.fields,
            to_struct.fields,
            field_map,
        )
        self._exit_scope(saved)
        if not self._has_uninitialized_parent(to_identifier):
            self.append(indent, "} else {")
            self.append(indent, "\t", to_identifier, " = nil")
        self.append(indent, "}")

    def _struct_helper(
        self,
        indent: str,
        to_type: TypeSpec,
        from_type: TypeSpec,
        field_map: FieldMap,
    ) -> str:
        """Return the local helper converting ``from_type`` to ``to_type``, defining it on first use."""
        from_struct = root_type_spec(from_type)
        to_struct = root_type_spec(to_type)
        cache_key = (from_struct, to_struct)

        name = self._helpers.get(cache_key)
        if name is not None:
            return name

        name = self._make_uniq_identifier("convert" + pascal_case(to_struct.name) + "Helper")
        self._helpers[cache_key] = name
        logger.debug("defining %s for recursive struct %s", name, to_struct.name)

        from_ref = go_reference_type(self.helper, from_type)
        to_ref = go_reference_type(self.helper, to_type)
        signature = f"func(in {from_ref}) (out {to_ref})"

        self.append(indent, "var ", name, " ", signature)
        self.append(indent, name, " = ", signature, " {")
        self.append(indent, "\tif in != nil {")
        self.append(indent, "\t\tout = &", go_type(self.helper, to_type), "{}")

        # in and out are the helper's own locals from here on
        saved = self._enter_scope()
        saved_uninitialized = self._uninitialized
        self._guarded = set()
        self._uninitialized = {}
        self._gen_struct_converter(
            "", "in", "out", indent + "\t\t", from_struct.fields, to_struct.fields, field_map
        )
        self._uninitialized = saved_uninitialized
        self._exit_scope(saved)

        self.append(indent, "\t} else {")
        self.append(indent, "\t\tout = nil")
        self.append(indent, "\t}")
        self.append(indent, "\treturn")
        self.append(indent, "}")
        return name

    def _select_source(
        self,
        indent: str,
        primary: FieldSource,
        fallback: FieldSource,
        element_is_struct: bool,
    ) -> tuple[str, str | None]:
        """Emit ``sourceListN``, picking the primary collection when it is set."""
        source_id = self._make_uniq_identifier("sourceList")
        override_flag = None
        if element_is_struct:
            override_flag = self._make_uniq_identifier("isOverridden")

        if primary.mapped:
            checks = nil_checks(middle_identifiers(primary.identifier))
        else:
            checks = [primary.identifier + " != nil"]

        fallback_checks = self._container_guard(fallback)
        if fallback_checks:
            # the primary below is still selected when these parents are nil
            self.append(indent, "var ", source_id, " ", go_type(self.helper, fallback.spec))
            self.append(indent, "if ", " && ".join(fallback_checks), " {")
            self.append(indent, "\t", source_id, " = ", fallback.identifier)
            self.append(indent, "}")
        else:
            self.append(indent, source_id, " := ", fallback.identifier)
        if override_flag:
            self.append(indent, override_flag, " := false")
        self.append(indent, "if ", " && ".join(checks), " {")
        self.append(indent, "\t", source_id, " = ", primary.identifier)
        if override_flag:
            self.append(indent, "\t", override_flag, " = true")
        self.append(indent, "}")
        return source_id, override_flag

    @staticmethod
    def _container_guard(source: FieldSource) -> list[str]:
        """Nil checks on the parents of a mapped collection."""
        if not source.mapped:
            return []
        return nil_checks(middle_identifiers(source.identifier))[:-1]

    def _gen_list(
        self,
        key: str,
        indent: str,
        to_type: TypeSpec,
        to_identifier: str,
        primary: FieldSource,
        fallback: FieldSource | None,
        field_map: FieldMap,
    ) -> None:
        to_list = root_type_spec(to_type)
        to_elem = to_list.value_spec
        for source in (primary, fallback):
            if source is not None:
                self._check_compatible(key, to_elem, root_type_spec(source.spec).value_spec)

        block_indent = indent
        outer_checks = self._container_guard(primary) if fallback is None else []
        block_scope = None
        if outer_checks:
            self.append(indent, "if ", " && ".join(outer_checks), " {")
            block_scope = self._enter_scope()
            indent += "\t"

        source_id, override_flag = primary.identifier, None
        if fallback is not None:
            source_id, override_flag = self._select_source(
                indent, primary, fallback, is_struct_type(to_elem)
            )

        list_type = go_type(self.helper, to_type)
        from_map_set = _is_map_backed_set(primary.spec)
        to_map_set = _is_map_backed_set(to_type)

        self._init_parents(indent, to_identifier)
        if from_map_set and not to_map_set:
            self.append(indent, f"{to_identifier} = make({list_type}, 0, len({source_id}))")
        else:
            self.append(indent, f"{to_identifier} = make({list_type}, len({source_id}))")

        index_id = None
        if from_map_set:
            value_id = self._make_uniq_identifier("value")
            self.append(indent, f"for {value_id} := range {source_id} {{")
        elif to_map_set:
            value_id = self._make_uniq_identifier("value")
            self.append(indent, f"for _, {value_id} := range {source_id} {{")
        else:
            index_id = self._make_uniq_identifier("index")
            value_id = self._make_uniq_identifier("value")
            self.append(indent, f"for {index_id}, {value_id} := range {source_id} {{")

        loop_scope = self._enter_scope()
        body = indent + "\t"
        if to_map_set:
            elem_type = go_type(self.helper, to_elem)
            self.append(body, f"{to_identifier}[{elem_type}({value_id})] = struct{{}}{{}}")
        elif from_map_set:
            elem_type = go_type(self.helper, to_elem)
            self.append(
                body, f"{to_identifier} = append({to_identifier}, {elem_type}({value_id}))"
            )
        else:
            self._convert_elements(
                f"{key}[{index_id}]",
                body,
                to_elem,
                f"{to_identifier}[{index_id}]",
                index_id,
                value_id,
                primary,
                fallback,
                override_flag,
                field_map,
            )
        self._exit_scope(loop_scope)
        self.append(indent, "}")

        if block_scope is not None:
            self._exit_scope(block_scope)
            self.append(block_indent, "}")

    def _gen_map(
        self,
        key: str,
        indent: str,
        to_type: TypeSpec,
        to_identifier: str,
        primary: FieldSource,
        fallback: FieldSource | None,
        field_map: FieldMap,
    ) -> None:
        to_map = root_type_spec(to_type)
        key_specs = [to_map.key_spec]
        for source in (primary, fallback):
            if source is not None:
                from_map = root_type_spec(source.spec)
                key_specs.append(from_map.key_spec)
                self._check_compatible(key, to_map.value_spec, from_map.value_spec)

        for key_spec in key_specs:
            if not isinstance(root_type_spec(key_spec), StringSpec):
                raise NonStringKey(f"could not convert key ({key}), map is not string-keyed.")

        block_indent = indent
        outer_checks = self._container_guard(primary) if fallback is None else []
        block_scope = None
        if outer_checks:
            self.append(indent, "if ", " && ".join(outer_checks), " {")
            block_scope = self._enter_scope()
            indent += "\t"

        source_id, override_flag = primary.identifier, None
        if fallback is not None:
            source_id, override_flag = self._select_source(
                indent, primary, fallback, is_struct_type(to_map.value_spec)
            )

        self._init_parents(indent, to_identifier)
        self.append(
            indent, f"{to_identifier} = make({go_type(self.helper, to_type)}, len({source_id}))"
        )

        key_id = self._make_uniq_identifier("key")
        value_id = self._make_uniq_identifier("value")
        self.append(indent, f"for {key_id}, {value_id} := range {source_id} {{")

        key_expr = key_id
        if any(isinstance(spec, TypedefSpec) for spec in key_specs):
            key_expr = f"{go_type(self.helper, to_map.key_spec)}({key_id})"

        loop_scope = self._enter_scope()
        self._convert_elements(
            f"{key}[{key_id}]",
            indent + "\t",
            to_map.value_spec,
            f"{to_identifier}[{key_expr}]",
            key_id,
            value_id,
            primary,
            fallback,
            override_flag,
            field_map,
        )
        self._exit_scope(loop_scope)
        self.append(indent, "}")

        if block_scope is not None:
            self._exit_scope(block_scope)
            self.append(block_indent, "}")

    def _convert_elements(
        self,
        key: str,
        indent: str,
        to_elem: TypeSpec,
        to_identifier: str,
        index_id: str,
        value_id: str,
        primary: FieldSource,
        fallback: FieldSource | None,
        override_flag: str | None,
        field_map: FieldMap,
    ) -> None:
        """Convert one element, reading nested fields through the collection the flag picked."""
        primary_elem = root_type_spec(primary.spec).value_spec
        if override_flag is None:
            self._convert_element(key, indent, to_elem, to_identifier, primary_elem, value_id, field_map)
            return

        fallback_elem = root_type_spec(fallback.spec).value_spec
        self.append(indent, "if ", override_flag, " {")
        saved = self._enter_scope()
        self._convert_element(
            key,
            indent + "\t",
            to_elem,
            to_identifier,
            primary_elem,
            value_id,
            field_map,
            from_path=f"{primary.identifier}[{index_id}]",
        )
        self._exit_scope(saved)
        self.append(indent, "} else {")
        saved = self._enter_scope()
        self._convert_element(
            key,
            indent + "\t",
            to_elem,
            to_identifier,
            fallback_elem,
            value_id,
            field_map,
            from_path=f"{fallback.identifier}[{index_id}]",
        )
        self._exit_scope(saved)
        self.append(indent, "}")

    def _convert_element(
        self,
        key: str,
        indent: str,
        to_type: TypeSpec,
        to_identifier: str,
        from_type: TypeSpec,
        from_identifier: str,
        field_map: FieldMap,
        from_path: str | None = None,
    ) -> None:
        self._check_compatible(key, to_type, from_type)
        source = FieldSource(from_type, from_identifier, required=True)

        real_type = root_type_spec(to_type)
        if isinstance(real_type, StructSpec):
            self._convert_struct(key, indent, to_type, to_identifier, source, field_map, from_path)
        elif isinstance(real_type, (ListSpec, SetSpec)):
            self._gen_list(key, indent, to_type, to_identifier, source, None, field_map)
        elif isinstance(real_type, MapSpec):
            self._gen_map(key, indent, to_type, to_identifier, source, None, field_map)
        elif isinstance(real_type, BinarySpec):
            self.append(indent, f"{to_identifier} = []byte({from_identifier})")
        else:
            self.append(indent, f"{to_identifier} = {go_type(self.helper, to_type)}({from_identifier})")
