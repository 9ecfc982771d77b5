"""
Identifier and Text Utilities

BPMN element ids must be valid XML NCNames and unique within a document.
Every compilation draws one short random token and appends it to the
human-readable ids it generates, so several processes can share a
document (or a viewer session) without clashing.
"""

import re
from typing import Dict, Optional, Set
from uuid import uuid4

MAX_ID_LENGTH = 50
TOKEN_LENGTH = 8

_INVALID_ID_CHARS = re.compile(r"[^A-Za-z0-9_-]")
_VALID_FIRST_CHAR = re.compile(r"[A-Za-z_]")

_XML_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
)


def sanitize_id(name: Optional[str]) -> str:
    """Turn arbitrary text into a usable BPMN element id.

    Characters outside ``[A-Za-z0-9_-]`` become ``_``, a leading digit or
    hyphen is replaced by ``_`` and the result is cut to 50 characters.
    The function is idempotent.
    """
    if not name:
        return "_"
    sanitized = _INVALID_ID_CHARS.sub("_", name)
    if not _VALID_FIRST_CHAR.match(sanitized):
        sanitized = "_" + sanitized[1:]
    return sanitized[:MAX_ID_LENGTH]


def escape_xml(text: Optional[str]) -> str:
    """Escape the five reserved XML characters. ``None`` becomes ``""``."""
    if not text:
        return ""
    for char, entity in _XML_ESCAPES:
        text = text.replace(char, entity)
    return text


def new_unique_token() -> str:
    """Return a fresh per-compilation suffix token."""
    return uuid4().hex[:TOKEN_LENGTH]


class IDAllocator:
    """Hands out document-unique element ids for a single compilation.

    Ids have the form ``<sanitized prefix>_<token>``; the prefix is trimmed
    so the whole id stays within ``MAX_ID_LENGTH``. Asking twice for the
    same prefix yields ``..._<token>_2`` and so on.
    """

    def __init__(self, token: str):
        self.token = token
        self._used: Set[str] = set()
        self._counters: Dict[str, int] = {}

    def allocate(self, prefix: str) -> str:
        suffix = f"_{self.token}"
        base = sanitize_id(prefix)[: MAX_ID_LENGTH - len(suffix)] + suffix
        candidate = base
        while candidate in self._used:
            count = self._counters.get(base, 1) + 1
            self._counters[base] = count
            tail = f"_{count}"
            candidate = base[: MAX_ID_LENGTH - len(tail)] + tail
        self._used.add(candidate)
        return candidate

    def reserve(self, element_id: str) -> None:
        """Mark an externally chosen id as taken."""
        self._used.add(element_id)

    def __contains__(self, element_id: str) -> bool:
        return element_id in self._used


__all__ = [
    "MAX_ID_LENGTH",
    "TOKEN_LENGTH",
    "IDAllocator",
    "escape_xml",
    "new_unique_token",
    "sanitize_id",
]
