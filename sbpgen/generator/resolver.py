"""Field-type resolution: type tags to representations, codec rules and sizes."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .sizes import SizeCalculator, SizeInfo
from .types import (
    Array,
    FieldType,
    FixedBytes,
    FixedInt,
    FixedString,
    FixedUInt,
    Float,
    RemainderString,
    SchemaError,
    SubMessage,
)
from .util import to_camel_case

if TYPE_CHECKING:
    from .catalog import Catalog

_TAG = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)(?:\[(\d*)\])?$")
_NUMERIC_LIKE = re.compile(r"^(u?int|float)\d+(be)?$")

# Map numeric type tags to field types
NUMERIC_TYPES: dict[str, FieldType] = {}
for _width in (8, 16, 32, 64):
    for _le in (True, False):
        _suffix = "" if _le else "be"
        NUMERIC_TYPES[f"uint{_width}{_suffix}"] = FixedUInt(_width, _le)
        NUMERIC_TYPES[f"int{_width}{_suffix}"] = FixedInt(_width, _le)
for _width in (32, 64):
    for _le in (True, False):
        NUMERIC_TYPES[f"float{_width}{'' if _le else 'be'}"] = Float(_width, _le)

# Map numeric field types to struct format characters
FORMAT_CHARS: dict[tuple[type, int], str] = {
    (FixedUInt, 8): "B",
    (FixedUInt, 16): "H",
    (FixedUInt, 32): "I",
    (FixedUInt, 64): "Q",
    (FixedInt, 8): "b",
    (FixedInt, 16): "h",
    (FixedInt, 32): "i",
    (FixedInt, 64): "q",
    (Float, 32): "f",
    (Float, 64): "d",
}


def parse_type(tag: str) -> FieldType:
    """Parse a field-type tag such as "uint16", "string[8]" or "Signal[]"."""
    match = _TAG.match(tag.strip())
    if not match:
        raise SchemaError(f"Malformed field type tag: {tag!r}")

    name, count_text = match.groups()
    bracketed = count_text is not None
    count = int(count_text) if count_text else None

    if bracketed and count == 0:
        raise SchemaError(f"Zero length in field type tag: {tag!r}")

    if name == "bytes":
        if count is None:
            raise SchemaError(f"bytes needs an explicit length: {tag!r}")
        return FixedBytes(count)

    if name == "string":
        if not bracketed:
            return RemainderString()
        if count is None:
            raise SchemaError(f"string cannot be repeated: {tag!r}")
        return FixedString(count)

    if name in NUMERIC_TYPES:
        base = NUMERIC_TYPES[name]
    elif _NUMERIC_LIKE.match(name):
        raise SchemaError(f"Unsupported numeric width: {tag!r}")
    else:
        base = SubMessage(name)

    if bracketed:
        return Array(base, count)
    return base


@dataclass(frozen=True)
class ScalarRule:
    """Fixed-width number, packed with the struct module."""

    code: str
    size: int
    little_endian: bool = True

    @property
    def byte_order(self) -> str:
        return "<" if self.little_endian else ">"


@dataclass(frozen=True)
class BytesRule:
    """Exactly `length` raw bytes."""

    length: int


@dataclass(frozen=True)
class FixedTextRule:
    """UTF-8 text NUL padded to `length` bytes."""

    length: int


@dataclass(frozen=True)
class RemainderTextRule:
    """UTF-8 text taking every remaining byte; no prefix, no terminator."""


@dataclass(frozen=True)
class NestedRule:
    """Another message's fields, in place."""

    message: str
    class_name: str


@dataclass(frozen=True)
class ArrayRule:
    """Repeated element; count=None derives the count from remaining bytes."""

    element: Rule
    element_size: int
    count: int | None


Rule = ScalarRule | BytesRule | FixedTextRule | RemainderTextRule | NestedRule | ArrayRule


@dataclass(frozen=True)
class ResolvedType:
    """Everything needed to emit one field."""

    representation: str
    rule: Rule
    size: SizeInfo

    # A rule describes the byte layout; the emitter renders it in either direction
    @property
    def decode_rule(self) -> Rule:
        return self.rule

    @property
    def encode_rule(self) -> Rule:
        return self.rule


def _representation(t: FieldType) -> str:
    if isinstance(t, (FixedUInt, FixedInt)):
        return "int"
    if isinstance(t, Float):
        return "float"
    if isinstance(t, FixedBytes):
        return "bytes"
    if isinstance(t, (FixedString, RemainderString)):
        return "str"
    if isinstance(t, SubMessage):
        return to_camel_case(t.ref)
    if isinstance(t, Array):
        return f"list[{_representation(t.element)}]"
    raise SchemaError(f"Unknown field type: {t!r}")


def _rule(t: FieldType, sizes: SizeCalculator) -> Rule:
    if isinstance(t, (FixedUInt, FixedInt, Float)):
        return ScalarRule(FORMAT_CHARS[(type(t), t.width)], t.width // 8, t.little_endian)
    if isinstance(t, FixedBytes):
        return BytesRule(t.length)
    if isinstance(t, FixedString):
        return FixedTextRule(t.length)
    if isinstance(t, RemainderString):
        return RemainderTextRule()
    if isinstance(t, SubMessage):
        return NestedRule(t.ref, to_camel_case(t.ref))
    if isinstance(t, Array):
        elem_size = sizes.calc_type_size(t.element)
        return ArrayRule(_rule(t.element, sizes), elem_size.min_size, t.count)
    raise SchemaError(f"Unknown field type: {t!r}")


def resolve(t: FieldType, catalog: Catalog, sizes: SizeCalculator | None = None) -> ResolvedType:
    """Resolve a field type to its representation, codec rule and size."""
    if sizes is None:
        sizes = SizeCalculator(catalog)

    # Size first: it rejects variable array elements before a rule is built
    size = sizes.calc_type_size(t)
    return ResolvedType(_representation(t), _rule(t, sizes), size)
