"""Tests for codec synthesis."""

import pytest

from sbpgen.generator import load, parse, synthesize
from sbpgen.generator.resolver import NestedRule, RemainderTextRule, ScalarRule
from sbpgen.generator.sizes import SizeKind
from sbpgen.generator.types import SchemaError


def codec_for(text, name):
    catalog = load(parse(text))
    return synthesize(catalog.lookup(name), catalog)


def describe_synthesize():
    def orders_steps_by_declaration(expect, settings_catalog):
        codec = synthesize(settings_catalog.lookup("MSG_SETTINGS_WRITE_RESP"), settings_catalog)
        expect([s.field.name for s in codec.decode_steps]) == ["status", "setting"]
        expect([s.field.name for s in codec.encode_steps]) == ["status", "setting"]
        expect(codec.decode_steps[0].rule) == ScalarRule("B", 1)
        expect(codec.decode_steps[1].rule) == RemainderTextRule()
        expect(codec.decode_steps[1].representation) == "str"

    def reports_message_size(expect, settings_catalog):
        codec = synthesize(settings_catalog.lookup("MSG_SETTINGS_READ_BY_INDEX_RESP"), settings_catalog)
        expect(codec.size.min_size) == 2
        expect(codec.size.kind) == SizeKind.REMAINDER

    def builds_empty_codec_for_static_messages(expect, settings_catalog):
        codec = synthesize(settings_catalog.lookup("MSG_SETTINGS_SAVE"), settings_catalog)
        expect(codec.is_static) == True
        expect(codec.decode_steps) == ()
        expect(codec.size.min_size) == 0

    def keeps_nested_steps_as_references(expect):
        codec = codec_for(
            """
            group g {
                message Inner { a: uint8 }
                message Outer { inner: Inner b: uint16 }
            }
        """,
            "Outer",
        )
        expect(codec.decode_steps[0].rule) == NestedRule("Inner", "Inner")
        expect(codec.decode_steps[0].size.min_size) == 1
        expect(codec.size.min_size) == 3

    def follows_declaration_order_not_field_names(expect):
        catalog = load(
            parse(
                """
                group g {
                    message AB { a: uint8 b: uint16 }
                    message BA { b: uint16 a: uint8 }
                }
            """
            )
        )
        ab = synthesize(catalog.lookup("AB"), catalog)
        ba = synthesize(catalog.lookup("BA"), catalog)
        expect([s.field.name for s in ab.encode_steps]) == ["a", "b"]
        expect([s.field.name for s in ba.encode_steps]) == ["b", "a"]
        expect([s.rule for s in ba.decode_steps]) == [ScalarRule("H", 2), ScalarRule("B", 1)]

    def accepts_variable_field_last(expect):
        codec = codec_for("group g { message M { a: uint8 items: uint16[] } }", "M")
        expect(codec.size.kind) == SizeKind.REPEATED


def describe_variable_placement():
    def rejects_remainder_string_before_other_fields(expect):
        with pytest.raises(SchemaError) as exc:
            codec_for("group g { message M { setting: string index: uint16 } }", "M")
        expect("M.setting" in str(exc.value)) == True
        expect("final position" in str(exc.value)) == True
        expect(exc.value.schema) == "M"

    def rejects_remaining_array_before_other_fields(expect):
        with pytest.raises(SchemaError):
            codec_for("group g { message M { items: uint8[] tail: uint8 } }", "M")

    def rejects_variable_nested_message_before_other_fields(expect):
        with pytest.raises(SchemaError) as exc:
            codec_for(
                """
                group g {
                    message Inner { name: string }
                    message Outer { inner: Inner x: uint8 }
                }
            """,
                "Outer",
            )
        expect("Outer.inner" in str(exc.value)) == True

    def rejects_two_variable_fields(expect):
        with pytest.raises(SchemaError):
            codec_for("group g { message M { a: string b: string } }", "M")

    def reports_element_errors_with_field(expect):
        with pytest.raises(SchemaError) as exc:
            codec_for(
                """
                group g {
                    message Inner { name: string }
                    message Outer { items: Inner[] }
                }
            """,
                "Outer",
            )
        expect("Outer.items" in str(exc.value)) == True
