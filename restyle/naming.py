"""Identifier sanitation for generated function names."""

from __future__ import annotations

import re

from .constants import RESERVED_WORDS, STYLE_FUNCTION_SUFFIX

_INVALID_CHARS = re.compile(r"[^a-zA-Z0-9_$]")
_VALID_START = re.compile(r"^[a-zA-Z_$]")
_IDENTIFIER = re.compile(r"^[a-zA-Z_$][a-zA-Z0-9_$]*$")


def to_valid_function_name(value: str) -> str:
    """Turn free text such as ``"Card Styles"`` into a camel-cased identifier."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Input must be a non-empty string.")

    words = _INVALID_CHARS.sub(" ", value.strip()).split()
    parts = []
    for index, word in enumerate(words):
        if index == 0:
            parts.append(word[:1].lower() + word[1:])
        else:
            parts.append(word[:1].upper() + word[1:])
    sanitized = "".join(parts)

    if not _VALID_START.match(sanitized):
        sanitized = "_" + sanitized
    if sanitized in RESERVED_WORDS:
        sanitized += "_fn"
    return sanitized


def style_function_name(root_name: str) -> str:
    """Name of the style function generated for a root component."""
    return to_valid_function_name(f"{root_name} {STYLE_FUNCTION_SUFFIX}")


def pascal_case(identifier: str) -> str:
    return identifier[:1].upper() + identifier[1:]


def is_identifier(value: str) -> bool:
    return bool(_IDENTIFIER.match(value)) and value not in RESERVED_WORDS


__all__ = ["is_identifier", "pascal_case", "style_function_name", "to_valid_function_name"]
