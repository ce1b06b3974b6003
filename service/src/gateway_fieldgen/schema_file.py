"""Loads schema trees from a JSON or YAML description of compiled IDL types.

Named types are declared once under ``types`` and referenced by name, which
is how self-referencing structs are expressed::

    types:
      Foo:
        kind: struct
        file: /idl/structs.thrift
        fields:
          - {name: three, type: string, required: true}
          - {name: recur, type: Foo}
          - {name: tags, type: {kind: set, value: string}}
"""

import logging
from pathlib import Path
from typing import Literal, Union

import yaml
from pydantic import BaseModel, ValidationError

from .errors import InitializationError
from .schema import (
    BinarySpec,
    BoolSpec,
    DoubleSpec,
    EnumSpec,
    FieldSpec,
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
)

logger = logging.getLogger(__name__)

PRIMITIVES: dict[str, type[TypeSpec]] = {
    "bool": BoolSpec,
    "byte": I8Spec,
    "i8": I8Spec,
    "i16": I16Spec,
    "i32": I32Spec,
    "i64": I64Spec,
    "double": DoubleSpec,
    "string": StringSpec,
    "binary": BinarySpec,
}


class ContainerRef(BaseModel):
    kind: Literal["list", "set", "map"]
    value: "TypeRef"
    key: "TypeRef | None" = None
    annotations: dict[str, str] = {}


TypeRef = Union[str, ContainerRef]
ContainerRef.model_rebuild()


class FieldModel(BaseModel):
    name: str
    type: TypeRef
    required: bool = False
    annotations: dict[str, str] = {}


class NamedTypeModel(BaseModel):
    kind: Literal["struct", "enum", "typedef"]
    file: str
    fields: list[FieldModel] = []
    items: list[str] = []
    target: TypeRef | None = None


class SchemaModel(BaseModel):
    types: dict[str, NamedTypeModel] = {}


class SchemaDocument:
    """Builds :mod:`schema` nodes from a :class:`SchemaModel` on demand."""

    def __init__(self, model: SchemaModel) -> None:
        self.model = model
        self._specs: dict[str, TypeSpec] = {}

    @staticmethod
    def from_file(file: str | Path) -> "SchemaDocument":
        file = Path(file)
        content = file.read_text(encoding="utf-8")
        suffix = file.suffix.lower()

        try:
            if suffix == ".json":
                model = SchemaModel.model_validate_json(content)
            elif suffix in (".yaml", ".yml"):
                data = yaml.safe_load(content)
                if not isinstance(data, dict):
                    data = {}
                model = SchemaModel.model_validate(data)
            else:
                raise InitializationError(f"unsupported schema format {suffix} ({str(file)})")

        except ValidationError as e:
            msg = f"failed to load schema from {str(file)}"
            logger.error(msg)
            logger.error(e.errors())
            raise InitializationError(msg)

        return SchemaDocument(model)

    def named(self, name: str) -> TypeSpec:
        spec = self._specs.get(name)
        if spec is not None:
            return spec

        declared = self.model.types.get(name)
        if declared is None:
            raise InitializationError(f"unknown type {name}")

        if declared.kind == "enum":
            spec = EnumSpec(name=name, file=declared.file, items=list(declared.items))
            self._specs[name] = spec
            return spec

        if declared.kind == "typedef":
            if declared.target is None:
                raise InitializationError(f"typedef {name} has no target")
            spec = TypedefSpec(name=name, file=declared.file)
            self._specs[name] = spec
            spec.target = self.resolve(declared.target)
            return spec

        # registered before its fields so they can refer back to it
        spec = StructSpec(name=name, file=declared.file)
        self._specs[name] = spec
        spec.fields = [
            FieldSpec(
                name=f.name,
                type=self.resolve(f.type),
                required=f.required,
                annotations=dict(f.annotations),
            )
            for f in declared.fields
        ]
        return spec

    def resolve(self, ref: TypeRef) -> TypeSpec:
        if isinstance(ref, str):
            primitive = PRIMITIVES.get(ref)
            if primitive is not None:
                return primitive()
            return self.named(ref)

        value = self.resolve(ref.value)
        if ref.kind == "list":
            return ListSpec(value_spec=value)
        if ref.kind == "set":
            return SetSpec(value_spec=value, annotations=dict(ref.annotations))
        if ref.key is None:
            raise InitializationError("map type without key")
        return MapSpec(key_spec=self.resolve(ref.key), value_spec=value)

    def fields(self, struct_name: str) -> list[FieldSpec]:
        spec = self.named(struct_name)
        if not isinstance(spec, StructSpec):
            raise InitializationError(f"{struct_name} is not a struct")
        return spec.fields
