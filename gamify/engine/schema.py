"""
gamify.engine.schema — Event Payload Schemas
=============================================

An event declares its payload as ``{field: type tag}`` where the tag comes
from the closed :class:`~gamify.database.models.PayloadType` set.  Values
are matched against tags explicitly rather than by asking the runtime for a
type name: ``True`` is a boolean and never a number, tuples count as
arrays, mappings as objects.

This module is pure calculation — no database I/O.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from gamify.database.models import PayloadType

__all__ = [
    "DUMMY_VALUES",
    "PayloadCheck",
    "build_dummy_payload",
    "check_payload",
    "matches_type",
    "parse_schema",
]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


_MATCHERS: dict[PayloadType, Callable[[Any], bool]] = {
    PayloadType.STRING: lambda v: isinstance(v, str),
    PayloadType.NUMBER: _is_number,
    PayloadType.BOOLEAN: lambda v: isinstance(v, bool),
    PayloadType.ARRAY: lambda v: isinstance(v, (list, tuple)),
    PayloadType.OBJECT: lambda v: isinstance(v, Mapping),
}

# One stand-in value per tag, used to smoke-test rule logic at creation.
DUMMY_VALUES: dict[PayloadType, Callable[[], Any]] = {
    PayloadType.STRING: lambda: "dummy string",
    PayloadType.NUMBER: lambda: 0,
    PayloadType.BOOLEAN: lambda: False,
    PayloadType.ARRAY: list,
    PayloadType.OBJECT: dict,
}


def matches_type(value: Any, tag: PayloadType | str) -> bool:
    """Return True when *value* is an instance of the declared *tag*."""
    return _MATCHERS[PayloadType(tag)](value)


def parse_schema(schema: Mapping[str, Any]) -> dict[str, PayloadType]:
    """Validate a raw ``{field: tag}`` mapping.

    Raises
    ------
    ValueError
        If a field name is empty or a tag is not a known type.
    """
    parsed: dict[str, PayloadType] = {}
    for key, tag in schema.items():
        if not isinstance(key, str) or not key:
            raise ValueError(f"Payload field names must be non-empty strings, got {key!r}")
        try:
            parsed[key] = PayloadType(tag)
        except ValueError:
            allowed = ", ".join(t.value for t in PayloadType)
            raise ValueError(
                f"Unknown type {tag!r} for payload field {key!r}; expected one of: {allowed}"
            ) from None
    return parsed


@dataclass
class PayloadCheck:
    """Outcome of matching a payload against a schema."""

    unknown_keys: list[str] = field(default_factory=list)
    type_mismatches: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.unknown_keys and not self.type_mismatches

    def describe(self) -> str:
        parts = []
        if self.unknown_keys:
            parts.append(f"undeclared keys: {', '.join(sorted(self.unknown_keys))}")
        if self.type_mismatches:
            parts.append(
                "type mismatches: "
                + ", ".join(f"{k} (expected {t})" for k, t in sorted(self.type_mismatches.items()))
            )
        return "; ".join(parts)


def check_payload(
    schema: Mapping[str, Any], payload: Mapping[str, Any],
) -> PayloadCheck:
    """Match *payload* against *schema*.

    Every payload key must be declared, and each present value must match
    its declared tag.  A payload may omit declared keys.
    """
    declared = parse_schema(schema)
    result = PayloadCheck()
    for key, value in payload.items():
        tag = declared.get(key)
        if tag is None:
            result.unknown_keys.append(key)
        elif not matches_type(value, tag):
            result.type_mismatches[key] = tag.value
    return result


def build_dummy_payload(schema: Mapping[str, Any]) -> dict[str, Any]:
    """One dummy value per declared field, chosen by type tag."""
    return {key: DUMMY_VALUES[tag]() for key, tag in parse_schema(schema).items()}
