"""Codec synthesis: turn a message schema into ordered encode/decode steps."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .resolver import Rule, resolve
from .sizes import SizeCalculator, SizeInfo
from .types import Field, MessageSchema, SchemaError

if TYPE_CHECKING:
    from .catalog import Catalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Step:
    """One field's share of a codec."""

    field: Field
    rule: Rule
    size: SizeInfo
    representation: str


@dataclass(frozen=True)
class Codec:
    """Synthesized codec for one message.

    Both step sequences follow field declaration order. Decoding consumes
    fixed fields first; only the last step may take a variable number of
    bytes, and it receives everything left in the body.
    """

    message: MessageSchema
    decode_steps: tuple[Step, ...]
    encode_steps: tuple[Step, ...]
    size: SizeInfo

    @property
    def is_static(self) -> bool:
        return not self.decode_steps


def synthesize(
    schema: MessageSchema, catalog: Catalog, sizes: SizeCalculator | None = None
) -> Codec:
    """Synthesize the decode and encode steps for a message."""
    if sizes is None:
        sizes = SizeCalculator(catalog)

    steps: list[Step] = []
    last = len(schema.fields) - 1

    for i, field in enumerate(schema.fields):
        try:
            resolved = resolve(field.type, catalog, sizes)
        except SchemaError as e:
            raise SchemaError(f"{schema.name}.{field.name}: {e}", schema=schema.name) from e

        if i != last and not resolved.size.is_fixed:
            raise SchemaError(
                f"{schema.name}.{field.name}: variable-length field ({resolved.size.kind}) "
                "not in final position",
                schema=schema.name,
            )

        steps.append(Step(field, resolved.rule, resolved.size, resolved.representation))

    logger.debug("Synthesized %s: %d steps", schema.name, len(steps))

    return Codec(
        message=schema,
        decode_steps=tuple(steps),
        encode_steps=tuple(steps),
        size=sizes.calc_message_size(schema.name),
    )
