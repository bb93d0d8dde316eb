"""Merklization boundary.

Merklized credentials bind slots to document paths; turning a path into a
field element (JSON-LD canonicalization, Poseidon hashing of literals) is the
job of an external merklization engine. The codec only talks to it through
``PathResolver``.

``LiteralPathResolver`` walks plain JSON and maps numeric literals to field
elements the way the engine does. String and boolean literals need a hash
function, which callers inject.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Protocol

from slotcodec.errors import UnsupportedFieldType
from slotcodec.field import FIELD_MODULUS


class PathResolver(Protocol):
    """Protocol for resolving a dotted document path to a field element."""

    def resolve_path(self, document: Mapping[str, Any], path: str) -> int:
        """Return the field element at ``path``; raise LookupError if absent."""
        ...


class LiteralPathResolver:
    """Reference resolver over plain JSON documents.

    Integers map to themselves, negative integers to ``q + v``. Strings and
    booleans go through ``hasher``; without one they are unsupported.
    """

    def __init__(self, hasher: Optional[Callable[[Any], int]] = None):
        self._hasher = hasher

    def resolve_path(self, document: Mapping[str, Any], path: str) -> int:
        value = self.lookup(document, path)
        return self._to_field_element(value, path)

    def lookup(self, document: Mapping[str, Any], path: str) -> Any:
        """Raw JSON value at a dotted path; LookupError if absent."""
        node: Any = document
        for part in path.split("."):
            if isinstance(node, dict):
                if part not in node:
                    raise KeyError(path)
                node = node[part]
            elif isinstance(node, list) and part.isdigit():
                idx = int(part)
                if idx >= len(node):
                    raise IndexError(path)
                node = node[idx]
            else:
                raise KeyError(path)
        return node

    def _to_field_element(self, value: Any, path: str) -> int:
        if isinstance(value, bool) or isinstance(value, str):
            if self._hasher is None:
                raise UnsupportedFieldType(
                    f"{type(value).__name__} literal needs a hasher", field=path,
                )
            return int(self._hasher(value))
        if isinstance(value, float):
            if not value.is_integer():
                raise UnsupportedFieldType(f"non-integral number {value!r}", field=path)
            value = int(value)
        if isinstance(value, int):
            return value if value >= 0 else FIELD_MODULUS + value
        raise UnsupportedFieldType(
            f"value of type {type(value).__name__} is not a literal", field=path,
        )
