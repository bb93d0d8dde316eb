"""Slot assembler.

Packs a decoded payload into the four claim data slots. Two strategies:

Sequential-Fill
    Fields of each group (index, value) are concatenated into slot A until
    the next field would push it past 32 bytes or the field modulus; from
    then on the rest of the group goes into slot B. Overflowing slot B fails
    the call.

One-Field-Per-Slot
    Each slot holds exactly the one field (or resolved document path) bound
    to it. Unbound slots stay empty.

Both strategies build fresh buffers per call and return an immutable
``ClaimSlots``; a failure never leaves a partially filled result behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from slotcodec.core import canonical_json_bytes, sha256_bytes
from slotcodec.errors import (
    DuplicateSlotAssignment,
    FieldNotInPayload,
    FieldNotInRange,
    PositionNotFound,
    SlotsOverflow,
    UnsupportedFieldType,
)
from slotcodec.field import (
    FIELD_MODULUS,
    SLOT_SIZE_BYTES,
    LegacyUint32,
    field_value,
    fits_in_slot,
    int_to_le_bytes,
    to_field_bytes,
)
from slotcodec.serialization import SlotBindings, SlotLabel

logger = logging.getLogger(__name__)

# Physical slot count of a claim; the data slots sit at 2, 3, 6 and 7.
CLAIM_SLOT_COUNT = 8

DEFAULT_SUBJECT_KEY = "credentialSubject"


# =============================================================================
# RESULT
# =============================================================================

@dataclass(frozen=True)
class ClaimSlots:
    """The four data slots of a claim, each a little-endian integer below q."""
    index_a: bytes = b""
    index_b: bytes = b""
    value_a: bytes = b""
    value_b: bytes = b""

    def slot(self, label: Union[SlotLabel, str]) -> bytes:
        return getattr(self, SlotLabel(label).value)

    def to_dict(self) -> Dict[str, str]:
        """Hex encoding of every slot, keyed by slot label."""
        return {label.value: self.slot(label).hex() for label in SlotLabel}

    def digest(self) -> str:
        """SHA-256 over the canonical JSON of ``to_dict()``."""
        return sha256_bytes(canonical_json_bytes(self.to_dict()))

    def to_raw_slots(self) -> List[bytes]:
        """Embed the data slots in the claim's 8 x 32-byte layout."""
        raw = [bytes(SLOT_SIZE_BYTES) for _ in range(CLAIM_SLOT_COUNT)]
        for label in SlotLabel:
            raw[label.position] = self.slot(label).ljust(SLOT_SIZE_BYTES, b"\x00")
        return raw


# =============================================================================
# SEQUENTIAL-FILL
# =============================================================================

def is_positional(data: Mapping[str, Any]) -> bool:
    """True when every payload value is a ``{position, data}`` wrapper."""
    return bool(data) and all(isinstance(v, dict) for v in data.values())


def _position_of(name: str, entry: Dict[str, Any], size: int, group: str) -> int:
    pos = entry.get("position")
    if isinstance(pos, bool) or not isinstance(pos, (int, float)):
        raise PositionNotFound("entry has no numeric position", field=name, slot=group)
    if isinstance(pos, float) and not pos.is_integer():
        raise PositionNotFound(f"position {pos!r} is not an integer", field=name, slot=group)
    pos = int(pos)
    if not 0 <= pos < size:
        raise PositionNotFound(
            f"position {pos} outside [0, {size})", field=name, slot=group,
        )
    return pos


def reposition(
    data: Mapping[str, Any],
    fields: List[str],
    group: str,
) -> Tuple[List[str], Dict[str, Any]]:
    """Order a group's fields by their declared positions.

    Returns the reordered field list and a ``field -> data`` mapping with the
    wrappers removed.
    """
    placed: Dict[int, str] = {}
    values: Dict[str, Any] = {}
    for name in fields:
        entry = data.get(name)
        if not isinstance(entry, dict):
            raise FieldNotInPayload("field is not in payload", field=name, slot=group)
        pos = _position_of(name, entry, len(fields), group)
        if pos in placed:
            raise PositionNotFound(
                f"position {pos} already taken by {placed[pos]!r}", field=name, slot=group,
            )
        if "data" not in entry:
            raise FieldNotInPayload("positional entry has no data", field=name, slot=group)
        placed[pos] = name
        values[name] = entry["data"]
    return [placed[i] for i in sorted(placed)], values


def _as_uint32(value: Any, name: str) -> Any:
    """Wrap JSON numbers as ``LegacyUint32``; other values pass through."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return value
    fv = field_value(value, field=name)
    try:
        return LegacyUint32(fv.to_int())
    except ValueError as exc:
        raise UnsupportedFieldType(
            f"{exc}; pass larger integers as decimal strings", field=name,
        ) from exc


def encode_value(
    value: Any,
    name: str,
    *,
    cell_width: Optional[int] = None,
    uint32_numbers: bool = True,
) -> bytes:
    """Little-endian cell for one payload value.

    JSON numbers become 4-byte uint32 cells unless ``uint32_numbers`` is off;
    decimal strings (and numbers with it off) use ``cell_width`` bytes, or
    the minimal length when that is None.
    """
    if uint32_numbers:
        value = _as_uint32(value, name)
    return to_field_bytes(value, width=cell_width, field=name)


def _fill_group(
    values: Mapping[str, Any],
    fields: List[str],
    group: str,
    cell_width: Optional[int],
    uint32_numbers: bool,
) -> Tuple[bytes, bytes]:
    slot_a = bytearray()
    slot_b = bytearray()
    use_b = False

    for name in fields:
        if name not in values:
            raise FieldNotInPayload("field is not in payload", field=name, slot=group)
        cell = encode_value(values[name], name, cell_width=cell_width, uint32_numbers=uint32_numbers)

        if not use_b:
            if fits_in_slot(slot_a, cell):
                slot_a += cell
                continue
            # Once slot A overflows the rest of the group goes to slot B.
            use_b = True
            logger.debug(f"{group} slot A full at field {name!r}, continuing in slot B")

        if not fits_in_slot(slot_b, cell):
            raise SlotsOverflow(
                f"both {group} slots are full", field=name, slot=group,
            )
        slot_b += cell

    return bytes(slot_a), bytes(slot_b)


def fill_sequential(
    data: Mapping[str, Any],
    index_fields: List[str],
    value_fields: List[str],
    *,
    cell_width: Optional[int] = None,
    uint32_numbers: bool = True,
) -> ClaimSlots:
    """Pack index and value fields with Sequential-Fill.

    Args:
        data: decoded payload, flat or positional
        index_fields: index group in packing order
        value_fields: value group in packing order
        cell_width: fixed cell width for decimal strings; None for minimal encoding
        uint32_numbers: encode JSON numbers as 4-byte uint32 cells

    Raises:
        FieldNotInPayload, PositionNotFound, UnsupportedFieldType, SlotsOverflow
    """
    index_values: Mapping[str, Any] = data
    value_values: Mapping[str, Any] = data
    if is_positional(data):
        logger.debug("payload is positional")
        index_fields, index_values = reposition(data, index_fields, "index")
        value_fields, value_values = reposition(data, value_fields, "value")

    index_a, index_b = _fill_group(index_values, list(index_fields), "index", cell_width, uint32_numbers)
    value_a, value_b = _fill_group(value_values, list(value_fields), "value", cell_width, uint32_numbers)
    return ClaimSlots(index_a=index_a, index_b=index_b, value_a=value_a, value_b=value_b)


# =============================================================================
# ONE-FIELD-PER-SLOT
# =============================================================================

def _unique_bindings(
    bindings: Union[SlotBindings, Iterable[Tuple[SlotLabel, str]]],
) -> List[Tuple[SlotLabel, str]]:
    if isinstance(bindings, SlotBindings):
        return bindings.items()
    seen: Dict[SlotLabel, str] = {}
    for label, name in bindings:
        if label in seen:
            raise DuplicateSlotAssignment(
                f"slot already bound to field {seen[label]!r}",
                field=name, slot=label.value,
            )
        seen[label] = name
    return [(label, seen[label]) for label in SlotLabel if label in seen]


def assign_slots(
    data: Mapping[str, Any],
    bindings: Union[SlotBindings, Iterable[Tuple[SlotLabel, str]]],
    *,
    uint32_numbers: bool = True,
) -> ClaimSlots:
    """Fill each bound slot with exactly its one field.

    Raises:
        DuplicateSlotAssignment: two fields on one slot
        FieldNotInPayload: a bound field is absent from the payload
        FieldNotInRange: a value does not fit one slot below the field modulus
        UnsupportedFieldType: a value is not a field element
    """
    slots: Dict[str, bytes] = {}
    for label, name in _unique_bindings(bindings):
        if name not in data:
            raise FieldNotInPayload("field is not in payload", field=name, slot=label.value)
        cell = encode_value(data[name], name, uint32_numbers=uint32_numbers)
        if not fits_in_slot(b"", cell):
            raise FieldNotInRange(
                "value does not fit a slot below the field modulus", field=name, slot=label.value,
            )
        slots[label.value] = cell
    return ClaimSlots(**slots)


def assign_resolved(
    document: Mapping[str, Any],
    paths: SlotBindings,
    resolver: Any,
    *,
    subject_key: str = DEFAULT_SUBJECT_KEY,
) -> ClaimSlots:
    """Fill each bound slot with the field element a resolver gives for its path.

    Paths are relative to the credential subject. A document without a
    ``subject_key`` member is treated as the subject itself.

    Raises:
        FieldNotInPayload: the resolver cannot find a path
        FieldNotInRange: a resolved value lies outside [0, q)
        UnsupportedFieldType: the resolver returned a non-integer
    """
    if subject_key not in document:
        document = {subject_key: dict(document)}

    slots: Dict[str, bytes] = {}
    for label, path in paths.items():
        full_path = f"{subject_key}.{path}"
        try:
            n = resolver.resolve_path(document, full_path)
        except LookupError as exc:
            raise FieldNotInPayload(
                f"path not found in document: {exc}", field=path, slot=label.value,
            ) from exc
        if isinstance(n, bool) or not isinstance(n, int):
            raise UnsupportedFieldType(
                f"resolver returned {type(n).__name__}, expected int",
                field=path, slot=label.value,
            )
        if not 0 <= n < FIELD_MODULUS:
            raise FieldNotInRange(
                "resolved value is outside the field", field=path, slot=label.value,
            )
        slots[label.value] = int_to_le_bytes(n)
    return ClaimSlots(**slots)
