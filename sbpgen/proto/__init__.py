"""Runtime support imported by generated message bindings."""

from .serialization import (
    ArraySizeMismatch,
    DecodeError,
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

__all__ = [
    "ArraySizeMismatch",
    "DecodeError",
    "EncodeError",
    "InvalidEncoding",
    "Message",
    "SerializationError",
    "TruncatedMessage",
    "bytes_from_json",
    "bytes_to_json",
    "check_count",
    "check_length",
    "decode_fixed_text",
    "decode_text",
    "encode_fixed_text",
    "encode_text",
    "remaining_count",
    "require",
]
