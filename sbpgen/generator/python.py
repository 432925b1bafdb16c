"""Python binding emitter for message catalogs."""

from __future__ import annotations

import keyword
import logging
import re
from dataclasses import dataclass, replace
from importlib import resources
from typing import TYPE_CHECKING

from jinja2 import Environment, PackageLoader

from ..proto.serialization import Message
from .resolver import (
    ArrayRule,
    BytesRule,
    FixedTextRule,
    NestedRule,
    RemainderTextRule,
    Rule,
    ScalarRule,
)
from .sizes import SizeCalculator
from .synthesizer import Codec, Step, synthesize
from .types import MessageGroup, MessageSchema, SchemaError, references
from .util import (
    RUNTIME_NAMES,
    field_slot,
    json_key,
    module_alias,
    to_camel_case,
    to_constant,
    wrap_text,
)

if TYPE_CHECKING:
    from .catalog import Catalog

logger = logging.getLogger(__name__)

RUNTIME_FILES = [
    "__init__.py",
    "serialization.py",
]

# Members of every generated class; a field accessor may not shadow them
RESERVED_NAMES = frozenset(dir(Message)) | {"self"}

env = Environment(
    loader=PackageLoader("sbpgen.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

template = env.get_template("python.py.j2")


@dataclass(frozen=True)
class FieldBinding:
    """Record slot, accessor and JSON mapping of one field."""

    name: str
    slot: str
    annotation: str
    json_key: str
    to_json: str
    from_json: str
    docstring: str | None


@dataclass(frozen=True)
class MessageBinding:
    """Everything emitted for one message."""

    schema: MessageSchema
    class_name: str
    constant: str | None
    docstring: str
    fields: tuple[FieldBinding, ...]
    pack_lines: tuple[str, ...]
    unpack_lines: tuple[str, ...]

    @property
    def is_static(self) -> bool:
        return not self.fields

    @property
    def msg_id_hex(self) -> str:
        return f"0x{self.schema.msg_id:04X}"

    @property
    def field_names_literal(self) -> str:
        return _tuple_literal([f'"{f.name}"' for f in self.fields])

    @property
    def init_params(self) -> str:
        return ", ".join(f"{f.name}: {f.annotation}" for f in self.fields)


@dataclass(frozen=True)
class GroupBinding:
    """Emitted bindings of one message group."""

    group: MessageGroup
    messages: tuple[MessageBinding, ...]
    imports: tuple[tuple[str, str], ...]  # (module, alias)
    errors: tuple[SchemaError, ...] = ()

    @property
    def message_types(self) -> list[tuple[str, list[str]]]:
        """Classes grouped by numeric id, in order of first appearance."""
        by_id: dict[int, list[str]] = {}
        for m in self.messages:
            if m.schema.msg_id is not None:
                by_id.setdefault(m.schema.msg_id, []).append(m.class_name)
        return [(f"0x{msg_id:04X}", names) for msg_id, names in by_id.items()]


def _tuple_literal(items: list[str]) -> str:
    if len(items) == 1:
        return f"({items[0]},)"
    return f"({', '.join(items)})"


def _docstring(lines: list[str], indent: str) -> str:
    """Render lines as a triple-quoted docstring body at the given indent."""
    escaped = [line.replace("\\", "\\\\").replace('"', '\\"') for line in lines]
    if len(escaped) == 1:
        return f'"""{escaped[0]}"""'
    body = "\n".join(f"{indent}{line}" if line else "" for line in escaped[1:])
    return f'"""{escaped[0]}\n{body}\n{indent}"""'


def _message_doc(schema: MessageSchema) -> list[str]:
    if schema.msg_id is not None:
        lines = [f"SBP class for message {schema.name} (0x{schema.msg_id:04X})."]
    else:
        lines = [f"{schema.name}."]
    if schema.description:
        lines.append("")
        lines.extend(wrap_text(schema.description, 76))
    return lines


def _label(class_name: str, step: Step) -> str:
    return f"{class_name}.{step.field.name}"


def _indent(lines: list[str]) -> list[str]:
    return ["    " + line for line in lines]


def _batch_steps(steps: tuple[Step, ...]) -> list[tuple[str, list[Step]]]:
    """Group steps for pack/unpack.

    Consecutive scalars of one byte order share a single struct call.
    Returns list of (batch_type, steps) where batch_type is "scalar" or "single".
    """
    batches: list[tuple[str, list[Step]]] = []
    current: list[Step] = []

    for step in steps:
        if isinstance(step.rule, ScalarRule):
            if current and current[0].rule.byte_order != step.rule.byte_order:  # type: ignore[union-attr]
                batches.append(("scalar", current))
                current = []
            current.append(step)
        else:
            if current:
                batches.append(("scalar", current))
                current = []
            batches.append(("single", [step]))

    if current:
        batches.append(("scalar", current))

    return batches


def _batch_format(steps: list[Step]) -> tuple[str, int]:
    rules = [s.rule for s in steps]
    fmt = rules[0].byte_order + "".join(r.code for r in rules)  # type: ignore[union-attr]
    size = sum(r.size for r in rules)  # type: ignore[union-attr]
    return fmt, size


def _gen_unpack_value(rule: Rule, target: str, label: str) -> list[str]:
    """Generate unpack code reading one value into target."""
    if isinstance(rule, ScalarRule):
        return [
            f'require(_end - _o, {rule.size}, "{label}")',
            f'{target}, = _struct.unpack_from("{rule.byte_order}{rule.code}", _data, _o)',
            f"_o += {rule.size}",
        ]

    if isinstance(rule, BytesRule):
        return [
            f'require(_end - _o, {rule.length}, "{label}")',
            f"{target} = bytes(_data[_o:_o + {rule.length}])",
            f"_o += {rule.length}",
        ]

    if isinstance(rule, FixedTextRule):
        return [
            f'require(_end - _o, {rule.length}, "{label}")',
            f'{target} = decode_fixed_text(_data[_o:_o + {rule.length}], "{label}")',
            f"_o += {rule.length}",
        ]

    if isinstance(rule, RemainderTextRule):
        return [
            f'{target} = decode_text(_data[_o:_end], "{label}")',
            "_o = _end",
        ]

    if isinstance(rule, NestedRule):
        return [f"{target}, _o = {rule.class_name}.unpack(_data, _o, _end)"]

    if isinstance(rule, ArrayRule):
        return _gen_unpack_array(rule, target, label)

    raise SchemaError(f"Unknown codec rule: {rule!r}")


def _gen_unpack_array(rule: ArrayRule, target: str, label: str) -> list[str]:
    lines: list[str] = []

    if rule.count is None:
        # Element count comes from the bytes left in the body
        lines.append(f'_n = remaining_count(_end - _o, {rule.element_size}, "{label}")')
        count = "_n"
    else:
        count = str(rule.count)

    elem = rule.element
    if isinstance(elem, ScalarRule):
        if rule.count is None:
            lines.append(
                f'{target} = list(_struct.unpack_from(f"{elem.byte_order}{{_n}}{elem.code}", _data, _o))'
            )
            lines.append(f"_o += _n * {elem.size}")
        else:
            total = rule.count * elem.size
            lines.append(f'require(_end - _o, {total}, "{label}")')
            lines.append(
                f'{target} = list(_struct.unpack_from("{elem.byte_order}{rule.count}{elem.code}", _data, _o))'
            )
            lines.append(f"_o += {total}")
        return lines

    lines.append(f"{target} = []")
    lines.append(f"for _ in range({count}):")
    lines.extend(_indent(_gen_unpack_value(elem, "_item", label)))
    lines.append(f"    {target}.append(_item)")
    return lines


def _gen_pack_value(rule: Rule, expr: str, label: str) -> list[str]:
    """Generate pack code appending one value to _buf."""
    if isinstance(rule, ScalarRule):
        return [f'_buf += _struct.pack("{rule.byte_order}{rule.code}", {expr})']

    if isinstance(rule, BytesRule):
        return [f'_buf += check_length({expr}, {rule.length}, "{label}")']

    if isinstance(rule, FixedTextRule):
        return [f'_buf += encode_fixed_text({expr}, {rule.length}, "{label}")']

    if isinstance(rule, RemainderTextRule):
        # No length prefix and no terminator: the transport frame delimits it
        return [f'_buf += encode_text({expr}, "{label}")']

    if isinstance(rule, NestedRule):
        return [f"_buf += {expr}.pack()"]

    if isinstance(rule, ArrayRule):
        return _gen_pack_array(rule, expr, label)

    raise SchemaError(f"Unknown codec rule: {rule!r}")


def _gen_pack_array(rule: ArrayRule, expr: str, label: str) -> list[str]:
    lines: list[str] = []

    if rule.count is not None:
        lines.append(f'check_count({expr}, {rule.count}, "{label}")')

    elem = rule.element
    if isinstance(elem, ScalarRule):
        if rule.count is None:
            lines.append(
                f'_buf += _struct.pack(f"{elem.byte_order}{{len({expr})}}{elem.code}", *{expr})'
            )
        else:
            lines.append(f'_buf += _struct.pack("{elem.byte_order}{rule.count}{elem.code}", *{expr})')
        return lines

    lines.append(f"for _item in {expr}:")
    lines.extend(_indent(_gen_pack_value(elem, "_item", label)))
    return lines


def _gen_unpack(codec: Codec, class_name: str) -> list[str]:
    """Generate the body of unpack() from the decode steps."""
    if codec.is_static:
        return ["return cls(), offset"]

    lines = [
        "_o = offset",
        "_end = len(_data) if end is None else end",
    ]
    slots: list[str] = []

    for batch_type, steps in _batch_steps(codec.decode_steps):
        targets = [field_slot(codec.message.name, s.field.name) for s in steps]
        slots.extend(targets)

        if batch_type == "scalar":
            fmt, size = _batch_format(steps)
            names = ", ".join(targets)
            # Add trailing comma for single values so tuple unpacking works: val, = (1,)
            if len(steps) == 1:
                names += ","
            lines.append(f'require(_end - _o, {size}, "{_label(class_name, steps[0])}")')
            lines.append(f'{names} = _struct.unpack_from("{fmt}", _data, _o)')
            lines.append(f"_o += {size}")
        else:
            lines.extend(_gen_unpack_value(steps[0].rule, targets[0], _label(class_name, steps[0])))

    lines.append(f"return cls({', '.join(slots)}), _o")
    return lines


def _gen_pack(codec: Codec, class_name: str) -> list[str]:
    """Generate the body of pack() from the encode steps."""
    if codec.is_static:
        return ['return b""']

    lines = ["_buf = bytearray()"]

    for batch_type, steps in _batch_steps(codec.encode_steps):
        exprs = [f"self.{field_slot(codec.message.name, s.field.name)}" for s in steps]

        if batch_type == "scalar":
            fmt, _ = _batch_format(steps)
            lines.append(f'_buf += _struct.pack("{fmt}", {", ".join(exprs)})')
        else:
            lines.extend(_gen_pack_value(steps[0].rule, exprs[0], _label(class_name, steps[0])))

    lines.append("return bytes(_buf)")
    return lines


def _to_json(rule: Rule, expr: str) -> str:
    """Expression projecting a stored value to its JSON representation."""
    if isinstance(rule, BytesRule):
        return f"bytes_to_json({expr})"
    if isinstance(rule, NestedRule):
        return f"{expr}.to_json_dict()"
    if isinstance(rule, ArrayRule):
        inner = _to_json(rule.element, "_item")
        if inner == "_item":
            return f"list({expr})"
        return f"[{inner} for _item in {expr}]"
    return expr


def _from_json(rule: Rule, expr: str) -> str:
    """Expression rebuilding a stored value from its JSON representation."""
    if isinstance(rule, BytesRule):
        return f"bytes_from_json({expr})"
    if isinstance(rule, NestedRule):
        return f"{rule.class_name}.from_json_dict({expr})"
    if isinstance(rule, ArrayRule):
        inner = _from_json(rule.element, "_item")
        if inner == "_item":
            return f"list({expr})"
        return f"[{inner} for _item in {expr}]"
    return expr


def _bind_field(schema: MessageSchema, step: Step) -> FieldBinding:
    name = step.field.name
    # Class bodies mangle "__x", so such accessors would not be found by name
    if name in RESERVED_NAMES or name.startswith("__") or keyword.iskeyword(name):
        raise SchemaError(
            f"{schema.name}.{name}: field name collides with a generated member",
            schema=schema.name,
        )

    slot = field_slot(schema.name, name)
    key = json_key(schema.name, slot)
    docstring = None
    if step.field.description:
        docstring = _docstring(wrap_text(step.field.description, 72), " " * 8)

    return FieldBinding(
        name=name,
        slot=slot,
        annotation=step.representation,
        json_key=key,
        to_json=_to_json(step.rule, f"self.{slot}"),
        from_json=_from_json(step.rule, f'data["{key}"]'),
        docstring=docstring,
    )


_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def _qualify_rule(rule: Rule, qualified: dict[str, str]) -> Rule:
    if isinstance(rule, NestedRule) and rule.class_name in qualified:
        return replace(rule, class_name=qualified[rule.class_name])
    if isinstance(rule, ArrayRule):
        return replace(rule, element=_qualify_rule(rule.element, qualified))
    return rule


def _qualify(codec: Codec, qualified: dict[str, str]) -> Codec:
    """Refer to classes of other groups through their module alias."""
    if not qualified:
        return codec

    steps = tuple(
        replace(
            step,
            rule=_qualify_rule(step.rule, qualified),
            representation=_NAME.sub(
                lambda m: qualified.get(m.group(0), m.group(0)), step.representation
            ),
        )
        for step in codec.decode_steps
    )
    return replace(codec, decode_steps=steps, encode_steps=steps)


def bind(codec: Codec, qualified: dict[str, str] | None = None) -> MessageBinding:
    """Merge a synthesized codec with naming and documentation.

    qualified maps class names declared in other groups to the expression
    that reaches them from this module.
    """
    schema = codec.message
    class_name = to_camel_case(schema.name)
    codec = _qualify(codec, qualified or {})

    return MessageBinding(
        schema=schema,
        class_name=class_name,
        constant=to_constant(schema.name) if schema.msg_id is not None else None,
        docstring=_docstring(_message_doc(schema), " " * 4),
        fields=tuple(_bind_field(schema, step) for step in codec.decode_steps),
        pack_lines=tuple(_gen_pack(codec, class_name)),
        unpack_lines=tuple(_gen_unpack(codec, class_name)),
    )


def _dependencies(schema: MessageSchema, catalog: Catalog) -> list[str]:
    """Messages nested in schema, directly or transitively."""
    found: list[str] = []
    pending = [ref for f in schema.fields for ref in references(f.type)]
    while pending:
        name = pending.pop(0)
        if name in found:
            continue
        found.append(name)
        pending.extend(ref for f in catalog.lookup(name).fields for ref in references(f.type))
    return found


def emit(group: MessageGroup, catalog: Catalog, *, keep_going: bool = False) -> GroupBinding:
    """Synthesize and bind every message of a group.

    With keep_going, a message that fails (or nests a message that fails)
    is logged, recorded in GroupBinding.errors and left out.
    """
    sizes = SizeCalculator(catalog)
    codecs: dict[str, Codec] = {}

    def codec_for(schema: MessageSchema) -> Codec:
        if schema.name not in codecs:
            codecs[schema.name] = synthesize(schema, catalog, sizes)
        return codecs[schema.name]

    messages: list[MessageBinding] = []
    errors: list[SchemaError] = []
    imports: dict[str, str] = {}

    for schema in group.messages:
        # Classes of other groups are referenced as attributes of their module
        qualified: dict[str, str] = {}
        modules: list[str] = []
        for f in schema.fields:
            for ref in references(f.type):
                module = catalog.group_of(ref).name
                if module != group.name:
                    modules.append(module)
                    qualified[to_camel_case(ref)] = f"{module_alias(module)}.{to_camel_case(ref)}"

        try:
            deps = _dependencies(schema, catalog)
            for dep in deps:
                try:
                    codec_for(catalog.lookup(dep))
                except SchemaError as e:
                    raise SchemaError(f"{schema.name} nests {dep}: {e}", schema=schema.name) from e
            binding = bind(codec_for(schema), qualified)
        except SchemaError as e:
            if not keep_going:
                raise
            logger.error("Skipping %s: %s", schema.name, e)
            errors.append(e)
            continue

        messages.append(binding)
        for module in modules:
            imports.setdefault(module, module_alias(module))

    logger.info("Emitted group %s: %d messages", group.name, len(messages))

    return GroupBinding(
        group=group,
        messages=tuple(messages),
        imports=tuple(imports.items()),
        errors=tuple(errors),
    )


def render(
    group: MessageGroup,
    catalog: Catalog,
    runtime_import: str = "sbp_runtime",
    *,
    keep_going: bool = False,
) -> str:
    """Render a message group to Python source code."""
    binding = emit(group, catalog, keep_going=keep_going)
    module_doc = wrap_text(group.description, 76) if group.description else [f"{group.name} messages."]

    return template.render(
        group=group,
        messages=binding.messages,
        imports=binding.imports,
        message_types=binding.message_types,
        module_docstring=_docstring(module_doc, ""),
        runtime_import=runtime_import,
        runtime_names=RUNTIME_NAMES,
    )


def render_catalog(
    catalog: Catalog,
    runtime_import: str = "sbp_runtime",
    *,
    keep_going: bool = False,
) -> dict[str, str]:
    """Render every group of a catalog as a package: filename -> content."""
    result: dict[str, str] = {}
    for group in catalog.groups:
        result[f"{group.name}.py"] = render(
            group, catalog, runtime_import, keep_going=keep_going
        )

    modules = ", ".join(f'"{group.name}"' for group in catalog.groups)
    result["__init__.py"] = f'"""Generated message bindings."""\n\n__all__ = [{modules}]\n'
    return result


def runtime() -> dict[str, str]:
    """Return the Python runtime files as a dict of filename -> content."""
    result: dict[str, str] = {}
    for filename in RUNTIME_FILES:
        content = resources.files("sbpgen.proto").joinpath(filename).read_text()
        result[filename] = content
    return result
