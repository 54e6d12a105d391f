"""Compound-field encoding for nested collections in a single CSV cell.

A compound cell holds a comma-separated list of entries.  Each entry is a
pipe-separated list of ``key:value`` tokens::

    item_id:1|item_name:Widget|item_quantity:2,item_id:2|item_name:Gadget|item_quantity:1

Any ``|`` or ``,`` inside a value is replaced with a space before encoding.
The format is lossy for values that contain those characters and has no
escaping for ``:`` (decoding splits on the first colon only).  Downstream
consumers depend on this exact shape, so it must not change.
"""

from collections.abc import Iterable, Mapping
from typing import Any

ENTRY_SEPARATOR = ","
TOKEN_SEPARATOR = "|"
KEY_VALUE_SEPARATOR = ":"

_RESERVED = (ENTRY_SEPARATOR, TOKEN_SEPARATOR)


def clean_value(value: object) -> str:
    """Render a sub-value as text with separator characters replaced by spaces.

    Args:
        value: Raw sub-value (None renders as an empty string).

    Returns:
        The cleaned string.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        text = "yes" if value else "no"
    else:
        text = str(value)
    for char in _RESERVED:
        text = text.replace(char, " ")
    return text


def encode_entry(entry: Mapping[str, Any]) -> str:
    """Encode one entry as pipe-separated ``key:value`` tokens."""
    return TOKEN_SEPARATOR.join(f"{key}{KEY_VALUE_SEPARATOR}{clean_value(value)}" for key, value in entry.items())


def encode_compound(entries: Iterable[Mapping[str, Any]]) -> str:
    """Encode a nested collection into a single compound cell.

    Args:
        entries: Sequence of flat mappings (one per nested item).

    Returns:
        The compound cell text; an empty collection encodes to ``""``.
    """
    return ENTRY_SEPARATOR.join(encode_entry(entry) for entry in entries)


def decode_compound(cell: str) -> list[dict[str, str]]:
    """Decode a compound cell back into its entries.

    Exact only when no original sub-value contained ``|`` or ``,``.

    Args:
        cell: Compound cell text.

    Returns:
        List of entries as ``{key: value}`` dicts, in encoded order.
    """
    if not cell:
        return []
    entries: list[dict[str, str]] = []
    for raw_entry in cell.split(ENTRY_SEPARATOR):
        entry: dict[str, str] = {}
        for token in raw_entry.split(TOKEN_SEPARATOR):
            key, _, value = token.partition(KEY_VALUE_SEPARATOR)
            entry[key] = value
        entries.append(entry)
    return entries
