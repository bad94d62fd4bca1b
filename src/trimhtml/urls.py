"""Detection of executable URL schemes in attribute values.

Browsers ignore ASCII whitespace and control characters inside a scheme, and
attribute values may hide characters behind numeric character references, so
the check normalizes both before looking at the prefix. `data:` is blocked
together with `javascript:` because it can carry HTML or SVG documents.
"""

from __future__ import annotations

import re

_NUMERIC_REFERENCE_RE = re.compile(r"&#(?:[xX]([0-9a-fA-F]+)|([0-9]+));?")
# ASCII controls, DEL, BOM and any Unicode whitespace.
_CONTROL_OR_SPACE_RE = re.compile(r"[\x00-\x1f\x7f\ufeff\s]+")
_DANGEROUS_SCHEMES: tuple[str, ...] = ("javascript:", "data:")


def _decode_reference(match: re.Match[str]) -> str:
    hex_digits, decimal_digits = match.groups()
    code_point = int(hex_digits, 16) if hex_digits else int(decimal_digits, 10)
    if code_point > 0x10FFFF:
        return match.group(0)
    return chr(code_point)


def decode_numeric_character_references(value: str) -> str:
    """Replace `&#NN;` / `&#xHH;` references with their characters."""
    return _NUMERIC_REFERENCE_RE.sub(_decode_reference, value)


def normalize_url(value: str) -> str:
    decoded = decode_numeric_character_references(value)
    return _CONTROL_OR_SPACE_RE.sub("", decoded).lower()


def is_dangerous_url(value: str) -> bool:
    return normalize_url(value).startswith(_DANGEROUS_SCHEMES)


def is_dangerous_srcset(value: str) -> bool:
    """A srcset is dangerous if the URL of any candidate is, or if the whole
    value reads as a dangerous URL once whitespace is removed."""
    if is_dangerous_url(value):
        return True
    for entry in value.split(","):
        tokens = entry.split()
        if tokens and is_dangerous_url(tokens[0]):
            return True
    return False


def is_dangerous_url_value(attr_name: str, value: str) -> bool:
    if attr_name == "srcset":
        return is_dangerous_srcset(value)
    return is_dangerous_url(value)
