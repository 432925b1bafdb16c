"""Schema catalog: the validated, immutable set of message groups."""

import keyword
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

from .resolver import parse_type
from .types import (
    Field,
    GroupDef,
    MessageDef,
    MessageGroup,
    MessageSchema,
    SchemaError,
    references,
)
from .util import MODULE_NAMES, to_camel_case, to_constant

logger = logging.getLogger(__name__)

MAX_MSG_ID = 0xFFFF


@dataclass(frozen=True)
class Catalog:
    """Ordered message groups, with lookup by message identifier."""

    groups: tuple[MessageGroup, ...]
    _index: dict[str, tuple[MessageGroup, MessageSchema]] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        index = {m.name: (g, m) for g in self.groups for m in g.messages}
        object.__setattr__(self, "_index", index)

    def lookup(self, name: str) -> MessageSchema:
        """Return the message with the given identifier."""
        if name not in self._index:
            raise SchemaError(f"Unknown message {name}", schema=name)
        return self._index[name][1]

    def group_of(self, name: str) -> MessageGroup:
        """Return the group that declares the given message."""
        if name not in self._index:
            raise SchemaError(f"Unknown message {name}", schema=name)
        return self._index[name][0]

    def group(self, name: str) -> MessageGroup:
        for group in self.groups:
            if group.name == name:
                return group
        raise SchemaError(f"Unknown group {name}")

    def messages(self) -> Iterator[MessageSchema]:
        """Iterate over every message in catalog order."""
        for group in self.groups:
            yield from group.messages

    def __contains__(self, name: object) -> bool:
        return name in self._index


def _check_identifier(kind: str, name: str, schema: str | None) -> None:
    if not name.isidentifier() or keyword.iskeyword(name):
        raise SchemaError(f"Invalid {kind} identifier: {name!r}", schema=schema)


def _load_message(msg_def: MessageDef) -> MessageSchema:
    name = msg_def.name
    _check_identifier("message", name, name)

    if msg_def.msg_id is not None and not 0 <= msg_def.msg_id <= MAX_MSG_ID:
        raise SchemaError(f"{name}: message id {msg_def.msg_id} does not fit in 16 bits", schema=name)

    fields: list[Field] = []
    seen: set[str] = set()
    for field_def in msg_def.fields:
        _check_identifier("field", field_def.name, name)
        if field_def.name in seen:
            raise SchemaError(f"{name}: duplicate field {field_def.name}", schema=name)
        seen.add(field_def.name)

        try:
            field_type = parse_type(field_def.type)
        except SchemaError as e:
            raise SchemaError(f"{name}.{field_def.name}: {e}", schema=name) from e

        fields.append(Field(field_def.name, field_type, field_def.description))

    return MessageSchema(
        name=name,
        fields=tuple(fields),
        msg_id=msg_def.msg_id,
        description=msg_def.description,
    )


def _check_references(catalog: Catalog) -> None:
    """Reject dangling and cyclic sub-message references."""
    for message in catalog.messages():
        for f in message.fields:
            for ref in references(f.type):
                if ref not in catalog:
                    raise SchemaError(
                        f"{message.name}.{f.name} refers to undeclared message {ref}",
                        schema=message.name,
                    )

    # Depth-first search; a message found on the current path closes a cycle
    done: set[str] = set()

    def visit(name: str, path: list[str]) -> None:
        if name in done:
            return
        if name in path:
            cycle = " -> ".join(path[path.index(name) :] + [name])
            raise SchemaError(f"Cyclic message nesting: {cycle}", schema=name)
        path.append(name)
        for f in catalog.lookup(name).fields:
            for ref in references(f.type):
                visit(ref, path)
        path.pop()
        done.add(name)

    for message in catalog.messages():
        visit(message.name, [])


def _check_shared_ids(catalog: Catalog) -> None:
    """Log message ids that more than one message uses."""
    by_id: dict[int, list[str]] = {}
    for message in catalog.messages():
        if message.msg_id is not None:
            by_id.setdefault(message.msg_id, []).append(message.name)

    for msg_id, names in by_id.items():
        if len(names) > 1:
            logger.debug("Message id 0x%04X shared by %s", msg_id, ", ".join(names))


def _claim(module_names: dict[str, str], name: str, message: str) -> None:
    """Reserve a module-level name of the generated code for a message."""
    if name in MODULE_NAMES:
        raise SchemaError(f"{message}: {name} is reserved in generated modules", schema=message)
    if name in module_names:
        raise SchemaError(
            f"{message} and {module_names[name]} both define {name}",
            schema=message,
        )
    module_names[name] = message


def load(group_defs: list[GroupDef]) -> Catalog:
    """Build and validate a catalog from group definitions."""
    groups: list[MessageGroup] = []
    group_names: set[str] = set()
    message_names: set[str] = set()
    module_names: dict[str, str] = {}

    for group_def in group_defs:
        _check_identifier("group", group_def.name, None)
        if group_def.name in group_names:
            raise SchemaError(f"Duplicate group {group_def.name}")
        group_names.add(group_def.name)

        messages: list[MessageSchema] = []
        for msg_def in group_def.messages:
            message = _load_message(msg_def)
            if message.name in message_names:
                raise SchemaError(f"Duplicate message {message.name}", schema=message.name)
            message_names.add(message.name)

            class_name = to_camel_case(message.name)
            if not class_name.isidentifier() or keyword.iskeyword(class_name):
                raise SchemaError(
                    f"{message.name}: no valid class name can be derived ({class_name!r})",
                    schema=message.name,
                )
            _claim(module_names, class_name, message.name)
            if message.msg_id is not None:
                _claim(module_names, to_constant(message.name), message.name)

            messages.append(message)

        groups.append(MessageGroup(group_def.name, tuple(messages), group_def.description))

    catalog = Catalog(tuple(groups))

    _check_references(catalog)
    _check_shared_ids(catalog)

    logger.info(
        "Loaded %d groups with %d messages",
        len(catalog.groups),
        len(message_names),
    )
    return catalog
