"""Schema source parser using Lark."""

import json
import logging
import os
import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

from lark import Lark
from lark.exceptions import UnexpectedInput
from lark.visitors import Transformer

from .catalog import Catalog, load
from .types import FieldDef, GroupDef, MessageDef, SchemaError

logger = logging.getLogger(__name__)

_g_parser: Lark | None = None

_ESCAPES = {"n": "\n", "t": "\t"}


@dataclass
class _Array:
    count: int | None


@dataclass
class _Description:
    value: str


@dataclass
class _MessageId:
    value: int


TFilter = TypeVar("TFilter", bound=object)


def _filter(args: list[Any], class_type: type[TFilter]) -> list[TFilter]:
    return [v for v in args if isinstance(v, class_type)]


def _find_one(args: list[Any], class_type: type[object]) -> Any:
    filtered = _filter(args, class_type)
    if len(filtered) == 0:
        return None
    if len(filtered) > 1:
        raise RuntimeError(f"Found more than one {class_type}")
    return filtered[0]


def _description(args: list[Any]) -> str | None:
    desc = _find_one(args, _Description)
    return desc.value if desc else None


def _number(text: str) -> int:
    if text.lower().startswith("0x"):
        return int(text, 16)
    return int(text)


def _unescape(literal: str) -> str:
    body = literal[1:-1]
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(1)), body)


class TreeTransformer(Transformer):
    """Transform parse tree into schema definitions."""

    def start(self, args: list[Any]) -> list[GroupDef]:
        return _filter(args, GroupDef)

    def group(self, args: list[Any]) -> GroupDef:
        return GroupDef(
            name=str(args[0]),
            messages=_filter(args, MessageDef),
            description=_description(args),
        )

    def message(self, args: list[Any]) -> MessageDef:
        msg_id = _find_one(args, _MessageId)
        return MessageDef(
            name=str(args[0]),
            fields=_filter(args, FieldDef),
            msg_id=msg_id.value if msg_id else None,
            description=_description(args),
        )

    def message_id(self, args: list[Any]) -> _MessageId:
        return _MessageId(value=_number(str(args[0])))

    def field(self, args: list[Any]) -> FieldDef:
        return FieldDef(
            name=str(args[0]),
            type=args[1],
            description=_description(args),
        )

    def type(self, args: list[Any]) -> str:
        array = _find_one(args, _Array)
        if array is None:
            return str(args[0])
        count = "" if array.count is None else str(array.count)
        return f"{args[0]}[{count}]"

    def array(self, args: list[Any]) -> _Array:
        return _Array(count=_number(str(args[0])) if args else None)

    def description(self, args: list[Any]) -> _Description:
        # Adjacent literals concatenate
        return _Description(value="".join(_unescape(str(s)) for s in args))


def parse(text: str) -> list[GroupDef]:
    """Parse schema source text into group definitions."""
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/protodef.lark", encoding="utf-8") as f:
            grammar = f.read()

        _g_parser = Lark(grammar, parser="lalr")

    try:
        tree = _g_parser.parse(text)
    except UnexpectedInput as e:
        context = e.get_context(text).rstrip()
        raise SchemaError(f"Syntax error at line {e.line}, column {e.column}:\n{context}") from e

    return TreeTransformer().transform(tree)


def load_file(path: str | Path) -> list[GroupDef]:
    """Load group definitions from a schema file.

    .json files contain {"groups": [...]}; anything else is schema source.
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        text = f.read()

    if path.suffix != ".json":
        groups = parse(text)
    else:
        try:
            data = json.loads(text)
            groups = [GroupDef.from_dict(g) for g in data["groups"]]
        except (ValueError, KeyError, TypeError) as e:
            raise SchemaError(f"{path}: invalid schema document: {e}") from e

    logger.debug("Read %d groups from %s", len(groups), path)
    return groups


def load_files(paths: Iterable[str | Path]) -> Catalog:
    """Load schema files, in order, into one catalog."""
    groups: list[GroupDef] = []
    for path in paths:
        groups.extend(load_file(path))
    return load(groups)
