"""Tests for field-type resolution."""

import pytest

from sbpgen.generator import load, parse, parse_type, resolve
from sbpgen.generator.resolver import (
    ArrayRule,
    BytesRule,
    FixedTextRule,
    NestedRule,
    RemainderTextRule,
    ScalarRule,
)
from sbpgen.generator.sizes import SizeKind
from sbpgen.generator.types import (
    Array,
    FixedBytes,
    FixedInt,
    FixedString,
    FixedUInt,
    Float,
    RemainderString,
    SchemaError,
    SubMessage,
    type_tag,
)

CATALOG_TEXT = """
group common {
    message GnssSignal {
        sat: uint8
        code: uint8
    }
    message Named {
        id: uint16
        name: string
    }
}
"""


@pytest.fixture
def catalog():
    return load(parse(CATALOG_TEXT))


def describe_parse_type():
    def parses_numeric_tags(expect):
        expect(parse_type("uint8")) == FixedUInt(8)
        expect(parse_type("int64")) == FixedInt(64)
        expect(parse_type("float32")) == Float(32)
        expect(parse_type("uint16be")) == FixedUInt(16, little_endian=False)
        expect(parse_type("float64be")) == Float(64, little_endian=False)

    def parses_text_and_bytes(expect):
        expect(parse_type("string")) == RemainderString()
        expect(parse_type("string[8]")) == FixedString(8)
        expect(parse_type("bytes[4]")) == FixedBytes(4)

    def parses_references_and_arrays(expect):
        expect(parse_type("GnssSignal")) == SubMessage("GnssSignal")
        expect(parse_type("GnssSignal[3]")) == Array(SubMessage("GnssSignal"), 3)
        expect(parse_type("uint16[]")) == Array(FixedUInt(16), None)

    def rejects_bad_tags(expect):
        for tag in ["bytes", "bytes[]", "string[]", "uint8[0]", "uint12", "float16", "a b", "x[y]"]:
            with pytest.raises(SchemaError):
                parse_type(tag)

    def round_trips_through_type_tag(expect):
        for tag in ["uint32be", "int8", "float64", "bytes[6]", "string[12]", "string", "Sig[]", "int16[4]"]:
            expect(type_tag(parse_type(tag))) == tag


def describe_resolve():
    def resolves_scalars(expect, catalog):
        resolved = resolve(FixedUInt(16), catalog)
        expect(resolved.representation) == "int"
        expect(resolved.rule) == ScalarRule("H", 2)
        expect(resolved.size.min_size) == 2
        expect(resolved.size.kind) == SizeKind.FIXED

    def resolves_big_endian_scalars(expect, catalog):
        resolved = resolve(FixedInt(32, little_endian=False), catalog)
        expect(resolved.rule.byte_order) == ">"
        expect(resolved.rule.code) == "i"

    def resolves_floats(expect, catalog):
        resolved = resolve(Float(64), catalog)
        expect(resolved.representation) == "float"
        expect(resolved.rule) == ScalarRule("d", 8)

    def resolves_text(expect, catalog):
        remainder = resolve(RemainderString(), catalog)
        expect(remainder.representation) == "str"
        expect(remainder.rule) == RemainderTextRule()
        expect(remainder.size.kind) == SizeKind.REMAINDER
        expect(remainder.size.min_size) == 0

        fixed = resolve(FixedString(8), catalog)
        expect(fixed.rule) == FixedTextRule(8)
        expect(fixed.size.min_size) == 8

    def resolves_bytes(expect, catalog):
        resolved = resolve(FixedBytes(4), catalog)
        expect(resolved.representation) == "bytes"
        expect(resolved.rule) == BytesRule(4)

    def resolves_sub_messages(expect, catalog):
        resolved = resolve(SubMessage("GnssSignal"), catalog)
        expect(resolved.representation) == "GnssSignal"
        expect(resolved.rule) == NestedRule("GnssSignal", "GnssSignal")
        expect(resolved.size.min_size) == 2

    def resolves_arrays(expect, catalog):
        fixed = resolve(Array(FixedUInt(16), 3), catalog)
        expect(fixed.representation) == "list[int]"
        expect(fixed.rule) == ArrayRule(ScalarRule("H", 2), 2, 3)
        expect(fixed.size.min_size) == 6

        remaining = resolve(Array(SubMessage("GnssSignal")), catalog)
        expect(remaining.representation) == "list[GnssSignal]"
        expect(remaining.rule.count) == None
        expect(remaining.rule.element_size) == 2
        expect(remaining.size.kind) == SizeKind.REPEATED
        expect(remaining.size.unit) == 2

    def decode_and_encode_rules_agree(expect, catalog):
        resolved = resolve(Array(FixedString(4), 2), catalog)
        expect(resolved.decode_rule) == resolved.encode_rule

    def rejects_variable_array_elements(expect, catalog):
        with pytest.raises(SchemaError):
            resolve(Array(SubMessage("Named"), None), catalog)
        with pytest.raises(SchemaError):
            resolve(Array(SubMessage("Named"), 2), catalog)

    def rejects_unknown_references(expect, catalog):
        with pytest.raises(SchemaError):
            resolve(SubMessage("Missing"), catalog)
