"""Type definitions for schema loading and code generation."""

from dataclasses import dataclass, field

from dataclasses_json import DataClassJsonMixin


class SchemaError(RuntimeError):
    """Raised when a schema cannot be turned into bindings."""

    def __init__(self, message: str, schema: str | None = None):
        super().__init__(message)
        self.schema = schema


# Schema source definitions, as read from schema files


@dataclass
class FieldDef(DataClassJsonMixin):
    """A field as written in the schema source.

    The type is kept as its textual tag (e.g. "uint16", "string",
    "bytes[4]", "GnssSignal[]") until the catalog resolves it.
    """

    name: str
    type: str
    description: str | None = None


@dataclass
class MessageDef(DataClassJsonMixin):
    """A message as written in the schema source."""

    name: str
    fields: list[FieldDef] = field(default_factory=list)
    msg_id: int | None = None
    description: str | None = None


@dataclass
class GroupDef(DataClassJsonMixin):
    """A named group of messages as written in the schema source."""

    name: str
    messages: list[MessageDef] = field(default_factory=list)
    description: str | None = None


# Field types


@dataclass(frozen=True)
class FixedUInt:
    width: int
    little_endian: bool = True


@dataclass(frozen=True)
class FixedInt:
    width: int
    little_endian: bool = True


@dataclass(frozen=True)
class Float:
    width: int
    little_endian: bool = True


@dataclass(frozen=True)
class FixedBytes:
    length: int


@dataclass(frozen=True)
class FixedString:
    """Text stored in exactly `length` bytes, NUL padded."""

    length: int


@dataclass(frozen=True)
class RemainderString:
    """UTF-8 text filling the rest of the message body."""


@dataclass(frozen=True)
class SubMessage:
    ref: str


@dataclass(frozen=True)
class Array:
    """Repeated element.

    count=None means the element count is derived from the bytes left in
    the message body.
    """

    element: "FieldType"
    count: int | None = None


FieldType = FixedUInt | FixedInt | Float | FixedBytes | FixedString | RemainderString | SubMessage | Array


# Resolved schema model


@dataclass(frozen=True)
class Field:
    """A resolved message field."""

    name: str
    type: FieldType
    description: str | None = None


@dataclass(frozen=True)
class MessageSchema:
    """A resolved message definition."""

    name: str
    fields: tuple[Field, ...]
    msg_id: int | None = None
    description: str | None = None

    @property
    def is_static(self) -> bool:
        return not self.fields


@dataclass(frozen=True)
class MessageGroup:
    """An ordered group of messages, emitted together as one module."""

    name: str
    messages: tuple[MessageSchema, ...]
    description: str | None = None


def type_tag(t: FieldType) -> str:
    """Return the schema source tag for a field type."""
    if isinstance(t, (FixedUInt, FixedInt, Float)):
        prefix = {FixedUInt: "uint", FixedInt: "int", Float: "float"}[type(t)]
        return f"{prefix}{t.width}" + ("" if t.little_endian else "be")
    if isinstance(t, FixedBytes):
        return f"bytes[{t.length}]"
    if isinstance(t, FixedString):
        return f"string[{t.length}]"
    if isinstance(t, RemainderString):
        return "string"
    if isinstance(t, SubMessage):
        return t.ref
    if isinstance(t, Array):
        count = "" if t.count is None else str(t.count)
        return f"{type_tag(t.element)}[{count}]"
    raise TypeError(f"Not a field type: {t!r}")


def references(t: FieldType) -> list[str]:
    """Return the message identifiers a field type refers to."""
    if isinstance(t, SubMessage):
        return [t.ref]
    if isinstance(t, Array):
        return references(t.element)
    return []
