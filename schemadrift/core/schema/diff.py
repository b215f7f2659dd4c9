"""Field-level comparison of canonical schema definitions."""

from __future__ import annotations

from typing import Dict

from schemadrift.core.exceptions import DecodeError
from schemadrift.core.schema.deriver import parse_definition
from schemadrift.core.schema.models import SchemaChange


def compare_mappings(previous: Dict[str, str], current: Dict[str, str]) -> SchemaChange:
    change = SchemaChange()

    for name, type_tag in current.items():
        old = previous.get(name)
        if old is None:
            change.added_fields.append(name)
        elif old != type_tag:
            change.type_changes[name] = (old, type_tag)

    for name in previous:
        if name not in current:
            change.removed_fields.append(name)

    shared_prev = [n for n in previous if n in current]
    shared_curr = [n for n in current if n in previous]
    change.reordered = shared_prev != shared_curr
    return change


def compare_definitions(previous: str, current: str) -> SchemaChange | None:
    """Describe how ``current`` differs from ``previous``.

    Returns None when either definition cannot be parsed; the change report
    is informational and never decides drift on its own.
    """
    try:
        return compare_mappings(parse_definition(previous), parse_definition(current))
    except DecodeError:
        return None
