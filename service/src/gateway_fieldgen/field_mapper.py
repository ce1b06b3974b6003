from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from .casing import pascal_case
from .errors import UnknownTargetPath, UnknownTransformSource
from .schema import FieldGroup, FieldSpec, StructSpec, root_type_spec

logger = logging.getLogger(__name__)


@dataclass
class FieldMapperEntry:
    """Source of a mapped target field.

    The mapping table is keyed by the dotted Go path of the target field;
    ``qualified_name`` is the dotted Go path of the source field.
    ``override`` decides who wins when the target also has a same-named
    source field.
    """

    qualified_name: str
    override: bool = False
    resolved_field: FieldSpec | None = None


FieldMap = dict[str, FieldMapperEntry]


def _matches_source(field: FieldSpec, segment: str) -> bool:
    return field.name.lower() == segment.lower() or pascal_case(field.name) == segment


def _resolve_source(qualified_name: str, from_fields: FieldGroup) -> tuple[str, FieldSpec] | None:
    fields = from_fields
    names: list[str] = []
    segments = qualified_name.split(".")

    for i, segment in enumerate(segments):
        field = next((f for f in fields if _matches_source(f, segment)), None)
        if field is None:
            return None
        names.append(pascal_case(field.name))

        if i == len(segments) - 1:
            return ".".join(names), field

        real_type = root_type_spec(field.type)
        if not isinstance(real_type, StructSpec):
            return None
        fields = real_type.fields

    return None


def resolve_field_map(field_map: FieldMap | None, from_fields: FieldGroup) -> FieldMap:
    """Attach the source field to every entry of ``field_map``.

    Returns a new table; qualified names are normalised to Go casing.  An
    entry whose source path does not exist in ``from_fields`` is fatal.
    """
    resolved: FieldMap = {}
    for key, entry in (field_map or {}).items():
        found = _resolve_source(entry.qualified_name, from_fields)
        if found is None:
            raise UnknownTransformSource(
                f"Failed to find field ( {entry.qualified_name} ) for transform."
            )
        qualified_name, field = found
        logger.debug("mapped %s <- %s (override=%s)", key, qualified_name, entry.override)
        resolved[key] = replace(entry, qualified_name=qualified_name, resolved_field=field)
    return resolved


def find_field_chain(field_path: str, to_fields: FieldGroup) -> list[FieldSpec]:
    """Return the fields along ``field_path``, matched case-insensitively."""
    miss = UnknownTargetPath(f"could not find field path in client request {field_path}")

    chain: list[FieldSpec] = []
    fields = to_fields
    segments = field_path.split(".")
    for i, segment in enumerate(segments):
        field = next((f for f in fields if f.name.lower() == segment.lower()), None)
        if field is None:
            raise miss
        chain.append(field)

        if i < len(segments) - 1:
            real_type = root_type_spec(field.type)
            if not isinstance(real_type, StructSpec):
                raise miss
            fields = real_type.fields
    return chain


def find_field(field_path: str, to_fields: FieldGroup) -> FieldSpec:
    return find_field_chain(field_path, to_fields)[-1]


def middle_identifiers(identifier: str) -> list[str]:
    """``"A.B.C"`` -> ``["A", "A.B", "A.B.C"]``"""
    parts = identifier.split(".")
    middle = [parts[0]]
    for part in parts[1:]:
        middle.append(middle[-1] + "." + part)
    return middle


def nil_checks(identifiers: list[str]) -> list[str]:
    """Turn identifier paths into ``!= nil`` checks, skipping the root record."""
    return [ident + " != nil" for ident in identifiers[1:]]
