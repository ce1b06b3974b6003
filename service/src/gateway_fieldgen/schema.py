"""In-memory schema tree consumed by the generators.

The IDL compiler produces these nodes; this package only reads them.  Struct
nodes may reference themselves (directly or through containers), so every
node compares and hashes by identity.
"""

from __future__ import annotations

from dataclasses import dataclass, field

SET_TYPE_ANNOTATION = "go.type"
SET_TYPE_SLICE = "slice"


@dataclass(eq=False)
class TypeSpec:
    """Base class of all schema variants."""

    @property
    def thrift_name(self) -> str:
        raise NotImplementedError

    @property
    def thrift_file(self) -> str:
        return ""


@dataclass(eq=False)
class BoolSpec(TypeSpec):
    @property
    def thrift_name(self) -> str:
        return "bool"


@dataclass(eq=False)
class I8Spec(TypeSpec):
    @property
    def thrift_name(self) -> str:
        return "byte"


@dataclass(eq=False)
class I16Spec(TypeSpec):
    @property
    def thrift_name(self) -> str:
        return "i16"


@dataclass(eq=False)
class I32Spec(TypeSpec):
    @property
    def thrift_name(self) -> str:
        return "i32"


@dataclass(eq=False)
class I64Spec(TypeSpec):
    @property
    def thrift_name(self) -> str:
        return "i64"


@dataclass(eq=False)
class DoubleSpec(TypeSpec):
    @property
    def thrift_name(self) -> str:
        return "double"


@dataclass(eq=False)
class StringSpec(TypeSpec):
    @property
    def thrift_name(self) -> str:
        return "string"


@dataclass(eq=False)
class BinarySpec(TypeSpec):
    @property
    def thrift_name(self) -> str:
        return "binary"


@dataclass(eq=False)
class _NamedSpec(TypeSpec):
    name: str = ""
    file: str = ""

    @property
    def thrift_name(self) -> str:
        return self.name

    @property
    def thrift_file(self) -> str:
        return self.file


@dataclass(eq=False)
class EnumSpec(_NamedSpec):
    items: list[str] = field(default_factory=list)


@dataclass(eq=False)
class TypedefSpec(_NamedSpec):
    target: TypeSpec | None = None


@dataclass(eq=False)
class StructSpec(_NamedSpec):
    fields: list[FieldSpec] = field(default_factory=list)


@dataclass(eq=False)
class ListSpec(TypeSpec):
    value_spec: TypeSpec | None = None

    @property
    def thrift_name(self) -> str:
        return f"list<{self.value_spec.thrift_name}>"


@dataclass(eq=False)
class SetSpec(TypeSpec):
    value_spec: TypeSpec | None = None
    annotations: dict[str, str] = field(default_factory=dict)

    @property
    def thrift_name(self) -> str:
        return f"set<{self.value_spec.thrift_name}>"

    @property
    def slice_backed(self) -> bool:
        return self.annotations.get(SET_TYPE_ANNOTATION) == SET_TYPE_SLICE


@dataclass(eq=False)
class MapSpec(TypeSpec):
    key_spec: TypeSpec | None = None
    value_spec: TypeSpec | None = None

    @property
    def thrift_name(self) -> str:
        return f"map<{self.key_spec.thrift_name}, {self.value_spec.thrift_name}>"


@dataclass(eq=False)
class FieldSpec:
    name: str
    type: TypeSpec
    required: bool = False
    annotations: dict[str, str] = field(default_factory=dict)


FieldGroup = list[FieldSpec]

PRIMITIVE_SPECS = (BoolSpec, I8Spec, I16Spec, I32Spec, I64Spec, DoubleSpec, StringSpec)
KNOWN_SPECS = PRIMITIVE_SPECS + (BinarySpec, EnumSpec, TypedefSpec, StructSpec, ListSpec, SetSpec, MapSpec)


def root_type_spec(spec: TypeSpec) -> TypeSpec:
    """Strip typedef layers until a primitive or aggregate variant is reached."""
    while isinstance(spec, TypedefSpec):
        spec = spec.target
    return spec


def is_struct_type(spec: TypeSpec) -> bool:
    return isinstance(root_type_spec(spec), StructSpec)


def is_hashable(spec: TypeSpec) -> bool:
    """Primitives (binary excluded), enums and typedefs of those can key maps and sets."""
    return isinstance(root_type_spec(spec), PRIMITIVE_SPECS + (EnumSpec,))


def is_slice_type(spec: TypeSpec) -> bool:
    """True when the Go representation of a list or set is a slice."""
    spec = root_type_spec(spec)
    if isinstance(spec, ListSpec):
        return True
    if isinstance(spec, SetSpec):
        return spec.slice_backed or not is_hashable(spec.value_spec)
    return False


def _child_specs(spec: TypeSpec) -> list[TypeSpec]:
    spec = root_type_spec(spec)
    if isinstance(spec, StructSpec):
        return [f.type for f in spec.fields]
    if isinstance(spec, (ListSpec, SetSpec)):
        return [spec.value_spec]
    if isinstance(spec, MapSpec):
        return [spec.key_spec, spec.value_spec]
    return []


def _reachable_structs(roots: list[TypeSpec]) -> list[StructSpec]:
    found: list[StructSpec] = []
    seen: set[StructSpec] = set()
    pending = list(roots)
    while pending:
        spec = root_type_spec(pending.pop())
        if isinstance(spec, StructSpec):
            if spec in seen:
                continue
            seen.add(spec)
            found.append(spec)
        pending.extend(_child_specs(spec))
    return found


def find_recursive_structs(fields: FieldGroup | None) -> set[StructSpec]:
    """Return every struct reachable from ``fields`` that can reach itself."""
    roots = [f.type for f in fields or ()]
    recursive: set[StructSpec] = set()
    for struct in _reachable_structs(roots):
        if struct in _reachable_structs(_child_specs(struct)):
            recursive.add(struct)
    return recursive
