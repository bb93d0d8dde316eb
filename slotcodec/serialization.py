"""Slot labels, slot bindings and the merklized serialization attribute.

Merklized credentials declare their slot layout with a single string
attribute on the credential type's JSON-LD context::

    iden3:v1:slotIndexA=<path>&slotIndexB=<path>&slotValueA=<path>&slotValueB=<path>

Every key is optional and order is irrelevant, but each key may appear at
most once. Paths are dotted document paths relative to ``credentialSubject``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from slotcodec.errors import MalformedSerializationAttribute


class SlotLabel(Enum):
    """The four data slots a codec call can populate."""
    INDEX_A = "index_a"
    INDEX_B = "index_b"
    VALUE_A = "value_a"
    VALUE_B = "value_b"

    @property
    def position(self) -> int:
        """Canonical position among the claim's eight 32-byte slots."""
        return _POSITIONS[self]

    @property
    def group(self) -> str:
        return "index" if self in (SlotLabel.INDEX_A, SlotLabel.INDEX_B) else "value"


_POSITIONS = {
    SlotLabel.INDEX_A: 2,
    SlotLabel.INDEX_B: 3,
    SlotLabel.VALUE_A: 6,
    SlotLabel.VALUE_B: 7,
}


@dataclass(frozen=True)
class SlotBindings:
    """At most one field name (or document path) bound to each slot.

    An empty string means the slot is unbound.
    """
    index_a: str = ""
    index_b: str = ""
    value_a: str = ""
    value_b: str = ""

    def get(self, label: SlotLabel) -> str:
        return getattr(self, label.value)

    def items(self) -> List[Tuple[SlotLabel, str]]:
        """Bound (label, name) pairs in slot order."""
        return [(label, self.get(label)) for label in SlotLabel if self.get(label)]

    def is_empty(self) -> bool:
        return not self.items()

    def label_of(self, name: str) -> Optional[SlotLabel]:
        """First slot bound to ``name``, or None."""
        if not name:
            return None
        for label, bound in self.items():
            if bound == name:
                return label
        return None


# ---------------------------------------------------------------------------
# iden3:v1 attribute
# ---------------------------------------------------------------------------

SERIALIZATION_PREFIX = "iden3:v1:"

_ATTRIBUTE_KEYS: Dict[str, SlotLabel] = {
    "slotIndexA": SlotLabel.INDEX_A,
    "slotIndexB": SlotLabel.INDEX_B,
    "slotValueA": SlotLabel.VALUE_A,
    "slotValueB": SlotLabel.VALUE_B,
}


def parse_serialization_attr(attr: str) -> SlotBindings:
    """Parse an ``iden3:v1:`` serialization attribute into slot bindings.

    An empty attribute means no slots are used.

    Raises:
        MalformedSerializationAttribute: wrong prefix, more than four parts,
            a part that is not ``key=path``, an unknown or repeated key.
    """
    if not attr:
        return SlotBindings()
    if not attr.startswith(SERIALIZATION_PREFIX):
        raise MalformedSerializationAttribute(
            f"attribute must start with {SERIALIZATION_PREFIX!r}: {attr!r}"
        )

    parts = attr[len(SERIALIZATION_PREFIX):].split("&")
    if len(parts) > len(_ATTRIBUTE_KEYS):
        raise MalformedSerializationAttribute(
            f"attribute has {len(parts)} parts, at most {len(_ATTRIBUTE_KEYS)} allowed"
        )

    paths: Dict[str, str] = {}
    for part in parts:
        kv = part.split("=")
        if len(kv) != 2 or not kv[0] or not kv[1]:
            raise MalformedSerializationAttribute(
                f"attribute part is not key=path: {part!r}"
            )
        key, path = kv
        label = _ATTRIBUTE_KEYS.get(key)
        if label is None:
            raise MalformedSerializationAttribute(f"unknown attribute slot: {key!r}")
        if label.value in paths:
            raise MalformedSerializationAttribute(
                f"attribute slot repeated: {key!r}", slot=label.value,
            )
        paths[label.value] = path

    return SlotBindings(**paths)
