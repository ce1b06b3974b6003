from __future__ import annotations

import logging
from typing import Callable

from .casing import pascal_case
from .errors import InternalGeneratorFault
from .schema import KNOWN_SPECS, FieldGroup, FieldSpec, StructSpec, root_type_spec

logger = logging.getLogger(__name__)

# (go_prefix, thrift_prefix, field) -> bail
FieldVisitor = Callable[[str, str, FieldSpec], bool]


def walk_field_groups(fields: FieldGroup, visit: FieldVisitor) -> bool:
    """Visit every field depth first, descending into struct fields.

    Prefixes start empty and grow as ``.GoName`` / ``.thrift_name`` per
    enclosing struct, so a visitor builds the full path with
    ``prefix + "." + name``.  Container elements are not descended into.
    A field object already visited during this walk is skipped, which keeps
    self-referencing schemas finite.

    Returns True when a visitor asked to bail.
    """
    seen: set[FieldSpec] = set()
    return _walk("", "", fields, visit, seen)


def _walk(
    go_prefix: str,
    thrift_prefix: str,
    fields: FieldGroup,
    visit: FieldVisitor,
    seen: set[FieldSpec],
) -> bool:
    for field in fields:
        if field in seen:
            logger.debug("field %s%s already visited", thrift_prefix, field.name)
            continue
        seen.add(field)

        if visit(go_prefix, thrift_prefix, field):
            return True

        real_type = root_type_spec(field.type)
        if isinstance(real_type, StructSpec):
            bail = _walk(
                go_prefix + "." + pascal_case(field.name),
                thrift_prefix + "." + field.name,
                real_type.fields,
                visit,
                seen,
            )
            if bail:
                return True
        elif not isinstance(real_type, KNOWN_SPECS):
            raise InternalGeneratorFault(f"unknown spec {type(real_type).__name__}")

    return False
