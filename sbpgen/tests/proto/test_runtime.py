"""Tests for runtime helpers used by generated code."""

from pytest import raises

from sbpgen.proto import (
    ArraySizeMismatch,
    EncodeError,
    InvalidEncoding,
    Message,
    SerializationError,
    TruncatedMessage,
    bytes_from_json,
    bytes_to_json,
    check_count,
    check_length,
    decode_fixed_text,
    decode_text,
    encode_fixed_text,
    encode_text,
    remaining_count,
    require,
)


def describe_require():
    def passes_when_enough_bytes_remain(expect):
        expect(require(4, 4, "M.x")) == None

    def names_field_when_truncated(expect):
        with raises(TruncatedMessage) as exc:
            require(1, 2, "M.x")
        expect("M.x needs 2 bytes, 1 left" in str(exc.value)) == True


def describe_remaining_count():
    def divides_remaining_bytes(expect):
        expect(remaining_count(12, 4, "M.items")) == 3
        expect(remaining_count(0, 4, "M.items")) == 0

    def rejects_partial_elements(expect):
        with raises(ArraySizeMismatch):
            remaining_count(5, 2, "M.items")


def describe_text():
    def decodes_utf8(expect):
        expect(decode_text(b"caf\xc3\xa9", "M.s")) == "café"
        expect(decode_text(memoryview(b"ok"), "M.s")) == "ok"

    def rejects_invalid_utf8(expect):
        with raises(InvalidEncoding):
            decode_text(b"\xff", "M.s")

    def rejects_unencodable_text(expect):
        with raises(InvalidEncoding):
            encode_text("\ud800", "M.s")

    def stops_fixed_text_at_first_nul(expect):
        expect(decode_fixed_text(b"ab\x00cd\x00\x00", "M.s")) == "ab"
        expect(decode_fixed_text(b"abcd", "M.s")) == "abcd"
        expect(decode_fixed_text(b"\x00\x00", "M.s")) == ""

    def pads_fixed_text(expect):
        expect(encode_fixed_text("ab", 4, "M.s")) == b"ab\x00\x00"
        expect(encode_fixed_text("abcd", 4, "M.s")) == b"abcd"

    def rejects_fixed_text_too_long(expect):
        with raises(EncodeError):
            encode_fixed_text("abcde", 4, "M.s")
        # Length is counted in encoded bytes
        with raises(EncodeError):
            encode_fixed_text("ééé", 4, "M.s")

    def rejects_nul_in_fixed_text(expect):
        with raises(EncodeError):
            encode_fixed_text("a\x00b", 4, "M.s")


def describe_lengths():
    def accepts_exact_length(expect):
        expect(check_length(bytearray(b"\x01\x02"), 2, "M.b")) == b"\x01\x02"

    def rejects_other_lengths(expect):
        with raises(EncodeError):
            check_length(b"\x01", 2, "M.b")

    def checks_array_counts(expect):
        expect(check_count([1, 2], 2, "M.a")) == None
        with raises(EncodeError):
            check_count([1], 2, "M.a")


def describe_bytes_json():
    def uses_base64(expect):
        expect(bytes_to_json(b"\x00\xff")) == "AP8="
        expect(bytes_from_json("AP8=")) == b"\x00\xff"

    def rejects_invalid_base64(expect):
        with raises(SerializationError):
            bytes_from_json("***")


def describe_message_base():
    def requires_generated_codec(expect):
        msg = Message()
        with raises(NotImplementedError):
            msg.encode()
        with raises(NotImplementedError):
            Message.decode(b"\x01")
        with raises(NotImplementedError):
            msg.to_json()
        with raises(NotImplementedError):
            Message.from_json("{}")

    def describes_itself_without_fields(expect):
        expect(repr(Message())) == "Message()"
        expect(Message.msg_type) == None
        expect(Message.field_names) == ()
