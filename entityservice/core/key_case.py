"""Key Case — derive a wire key from an entity field name.

Invariants:
    - to_snake / to_camel are idempotent on keys already in the target case
    - Both are pure: same input, same output, no IO

Design Decisions:
    - Regex over char loop: one readable pattern per direction
"""

import re

from entityservice.core.domain_types import KeyCase

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")


def to_snake(key: str) -> str:
    """"messageColor" -> "message_color"."""
    return _CAMEL_BOUNDARY.sub(r"\1_\2", key).lower()


def to_camel(key: str) -> str:
    """"message_color" -> "messageColor"."""
    head, *rest = key.split("_")
    head = head[:1].lower() + head[1:]
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def convert(key: str, case: KeyCase) -> str:
    if case is KeyCase.CAMEL:
        return to_camel(key)
    return to_snake(key)
