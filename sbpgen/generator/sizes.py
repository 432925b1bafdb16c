"""Size calculation for field types and messages."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum, auto
from typing import TYPE_CHECKING

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
    type_tag,
)

if TYPE_CHECKING:
    from .catalog import Catalog


class SizeKind(StrEnum):
    """Classification of size characteristics."""

    FIXED = auto()  # Exactly min_size bytes
    REMAINDER = auto()  # Fixed prefix, then every byte left in the body
    REPEATED = auto()  # Fixed prefix, then a whole number of `unit` sized elements


@dataclass(frozen=True)
class SizeInfo:
    """Size information for a type or message."""

    min_size: int
    kind: SizeKind
    unit: int | None = None  # Element size of a REPEATED tail

    @property
    def is_fixed(self) -> bool:
        return self.kind == SizeKind.FIXED

    @property
    def max_size(self) -> int | None:
        return self.min_size if self.is_fixed else None


@dataclass(frozen=True)
class MessageSizeInfo:
    """Complete size information for a message."""

    name: str
    msg_id: int | None
    size: SizeInfo


@dataclass(frozen=True)
class CatalogSizeInfo:
    """Size information for an entire catalog."""

    messages: dict[str, MessageSizeInfo]

    min_message_size: int
    max_message_size: int | None  # None if any message has a variable tail


def _fixed(size: int) -> SizeInfo:
    return SizeInfo(size, SizeKind.FIXED)


class SizeCalculator:
    """Calculate sizes for catalog types."""

    def __init__(self, catalog: Catalog):
        self.catalog = catalog
        self._cache: dict[str, SizeInfo] = {}

    def calc_type_size(self, t: FieldType) -> SizeInfo:
        """Calculate size for any field type."""
        if isinstance(t, (FixedUInt, FixedInt, Float)):
            return _fixed(t.width // 8)

        if isinstance(t, (FixedBytes, FixedString)):
            return _fixed(t.length)

        if isinstance(t, RemainderString):
            return SizeInfo(0, SizeKind.REMAINDER)

        if isinstance(t, SubMessage):
            return self.calc_message_size(t.ref)

        if isinstance(t, Array):
            elem_size = self.calc_type_size(t.element)
            if not elem_size.is_fixed:
                raise SchemaError(f"Elements of {type_tag(t)} must have a fixed size")
            if t.count is not None:
                return _fixed(t.count * elem_size.min_size)
            if elem_size.min_size == 0:
                raise SchemaError(f"Elements of {type_tag(t)} cannot be empty")
            return SizeInfo(0, SizeKind.REPEATED, unit=elem_size.min_size)

        raise SchemaError(f"Unknown field type: {t!r}")

    def calc_message_size(self, name: str) -> SizeInfo:
        """Calculate size for a message (with caching).

        Fixed fields add up; a variable field contributes its kind to the
        whole message. Placement is checked by the codec synthesizer.
        """
        if name in self._cache:
            return self._cache[name]

        message = self.catalog.lookup(name)

        total = 0
        kind = SizeKind.FIXED
        unit: int | None = None

        for field in message.fields:
            try:
                size = self.calc_type_size(field.type)
            except SchemaError as e:
                raise SchemaError(f"{name}.{field.name}: {e}", schema=name) from e

            total += size.min_size
            if not size.is_fixed:
                kind = size.kind
                unit = size.unit

        message_size = SizeInfo(total, kind, unit)
        self._cache[name] = message_size

        return message_size

    def calc_catalog_info(self) -> CatalogSizeInfo:
        """Calculate size information for every message in the catalog."""
        infos = {
            m.name: MessageSizeInfo(m.name, m.msg_id, self.calc_message_size(m.name))
            for m in self.catalog.messages()
        }

        # Only dispatchable messages count towards the message size range
        dispatchable = [info.size for info in infos.values() if info.msg_id is not None]

        if dispatchable:
            min_msg = min(s.min_size for s in dispatchable)
            if all(s.is_fixed for s in dispatchable):
                max_msg: int | None = max(s.min_size for s in dispatchable)
            else:
                max_msg = None
        else:
            min_msg = 0
            max_msg = 0

        return CatalogSizeInfo(
            messages=infos,
            min_message_size=min_msg,
            max_message_size=max_msg,
        )


def calculate_sizes(catalog: Catalog) -> CatalogSizeInfo:
    """Calculate size information for a catalog."""
    calc = SizeCalculator(catalog)
    return calc.calc_catalog_info()
