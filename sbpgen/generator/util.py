"""Naming rules shared by every emitted artifact."""

import re
import textwrap

_WORD_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

# Names every generated module imports from the runtime
RUNTIME_NAMES = [
    "Message",
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

# Module-level names of a generated module that a message class or constant
# may not rebind
MODULE_NAMES = frozenset(
    RUNTIME_NAMES + ["MESSAGE_TYPES", "Any", "ClassVar", "Self", "annotations", "_struct"]
)


def _is_snake(name: str) -> bool:
    return "_" in name or name.isupper()


def to_camel_case(name: str) -> str:
    """Class name for a message identifier.

    MSG_SETTINGS_SAVE -> MsgSettingsSave, readByIndexReq -> ReadByIndexReq
    """
    if _is_snake(name):
        return "".join(part.capitalize() for part in name.lower().split("_") if part)
    return name[0].upper() + name[1:]


def to_global(name: str) -> str:
    """Lower camel case identifier: MSG_SETTINGS_SAVE -> msgSettingsSave"""
    camel = to_camel_case(name)
    return camel[0].lower() + camel[1:]


def to_constant(name: str) -> str:
    """Module constant holding the numeric message id."""
    if _is_snake(name):
        return name.upper()
    return _WORD_BOUNDARY.sub("_", name).upper()


def field_prefix(message: str) -> str:
    return f"_{to_global(message)}_"


def field_slot(message: str, field: str) -> str:
    """Storage name of a field inside its message record.

    The message prefix keeps names distinct between messages that share a
    field identifier such as "setting".
    """
    return field_prefix(message) + field


def json_key(message: str, slot: str) -> str:
    """JSON key for a storage slot: the slot with its message prefix removed."""
    prefix = field_prefix(message)
    if not slot.startswith(prefix):
        raise ValueError(f"{slot} is not a field slot of {message}")
    return slot[len(prefix) :]


def wrap_text(text: str, width: int = 76) -> list[str]:
    """Reflow a description into lines no wider than width."""
    return textwrap.wrap(" ".join(text.split()), width=width) or [""]


def module_alias(group: str) -> str:
    """Name under which a generated module imports a sibling group module."""
    return f"_mod_{group}"
