"""Serialization and deserialization support for generated message bindings."""

import base64
import binascii
import json
import struct
from typing import Any, ClassVar, Self


class SerializationError(RuntimeError):
    """Raised when serialization or deserialization fails."""


class DecodeError(SerializationError):
    """Raised when bytes cannot be decoded into a message."""


class TruncatedMessage(DecodeError):
    """Fewer bytes are left than a fixed-width field needs."""


class InvalidEncoding(DecodeError):
    """Text bytes are not valid UTF-8, or text cannot be encoded as UTF-8."""


class ArraySizeMismatch(TruncatedMessage):
    """The bytes left for an array are not a multiple of its element size.

    The last element is cut short, so this is also a TruncatedMessage.
    """


class EncodeError(SerializationError):
    """Raised when a value does not fit its wire representation."""


def require(available: int, needed: int, field: str) -> None:
    """Check that `needed` bytes are left before reading `field`."""
    if available < needed:
        raise TruncatedMessage(f"{field} needs {needed} bytes, {available} left")


def remaining_count(available: int, element_size: int, field: str) -> int:
    """Element count of an array that fills the rest of the message."""
    count, extra = divmod(available, element_size)
    if extra:
        raise ArraySizeMismatch(
            f"{field}: {available} bytes left is not a multiple of {element_size}"
        )
    return count


def decode_text(raw: bytes | memoryview, field: str) -> str:
    try:
        return bytes(raw).decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidEncoding(f"{field}: {e}") from e


def decode_fixed_text(raw: bytes | memoryview, field: str) -> str:
    """Decode NUL padded text; the first NUL (or the end) terminates it."""
    raw = bytes(raw)
    end = raw.find(b"\x00")
    return decode_text(raw if end < 0 else raw[:end], field)


def encode_text(value: str, field: str) -> bytes:
    try:
        return value.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidEncoding(f"{field}: {e}") from e


def encode_fixed_text(value: str, length: int, field: str) -> bytes:
    # Decoding stops at the first NUL
    if "\x00" in value:
        raise EncodeError(f"{field} contains a NUL character")
    encoded = encode_text(value, field)
    if len(encoded) > length:
        raise EncodeError(f"{field} exceeds {length} bytes")
    return encoded + b"\x00" * (length - len(encoded))


def check_length(value: bytes, length: int, field: str) -> bytes:
    if len(value) != length:
        raise EncodeError(f"{field} must be exactly {length} bytes, got {len(value)}")
    return bytes(value)


def check_count(value: list[Any], count: int, field: str) -> None:
    if len(value) != count:
        raise EncodeError(f"{field} must have {count} elements, got {len(value)}")


def bytes_to_json(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def bytes_from_json(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except binascii.Error as e:
        raise SerializationError(f"Invalid base64 data: {e}") from e


class Message:
    """Base class for generated message types.

    Generated subclasses store each field in a slot named
    "_<message>_<field>" and expose it through a read-only property named
    after the bare field. They implement pack(), unpack(), to_json_dict()
    and from_json_dict().

    Example:
        msg = MsgSettingsWrite(setting="nav/rate,1")
        data = msg.encode()
        MsgSettingsWrite.decode(data) == msg
    """

    __slots__ = ()

    msg_type: ClassVar[int | None] = None
    field_names: ClassVar[tuple[str, ...]] = ()

    def pack(self) -> bytes:
        """Pack this message to bytes. Generated code overrides this."""
        raise NotImplementedError("pack() must be implemented by generated code")

    @classmethod
    def unpack(
        cls, data: bytes | memoryview, offset: int = 0, end: int | None = None
    ) -> tuple[Self, int]:
        """Unpack a message from data[offset:end].

        Returns:
            Tuple of (instance, offset after the message).
        """
        raise NotImplementedError("unpack() must be implemented by generated code")

    def to_json_dict(self) -> dict[str, Any]:
        raise NotImplementedError("to_json_dict() must be implemented by generated code")

    @classmethod
    def from_json_dict(cls, data: dict[str, Any]) -> Self:
        raise NotImplementedError("from_json_dict() must be implemented by generated code")

    def encode(self) -> bytes:
        """Encode the message body. The transport frame carries its length."""
        try:
            return self.pack()
        except struct.error as e:
            raise EncodeError(f"{type(self).__name__}: {e}") from e

    @classmethod
    def decode(cls, data: bytes | memoryview) -> Self:
        """Decode a complete message body."""
        instance, _ = cls.unpack(data)
        return instance

    def to_json(self) -> str:
        return json.dumps(self.to_json_dict())

    @classmethod
    def from_json(cls, text: str | bytes) -> Self:
        return cls.from_json_dict(json.loads(text))

    def replace(self, **changes: Any) -> Self:
        """Return a copy with some fields replaced."""
        values = {name: getattr(self, name) for name in self.field_names}
        unknown = set(changes) - set(values)
        if unknown:
            raise TypeError(f"{type(self).__name__} has no field {', '.join(sorted(unknown))}")
        values.update(changes)
        return type(self)(**values)

    def _values(self) -> tuple[Any, ...]:
        return tuple(getattr(self, name) for name in self.field_names)

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._values() == other._values()  # type: ignore[attr-defined]

    def __repr__(self) -> str:
        args = ", ".join(f"{name}={getattr(self, name)!r}" for name in self.field_names)
        return f"{type(self).__name__}({args})"
