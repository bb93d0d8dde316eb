"""Field arithmetic primitives.

Every claim slot is read as a little-endian unsigned integer that must be
strictly below the BN254 scalar field order ``q``. This module owns that
invariant:

- ``FieldValue`` is the closed set of payload value shapes the codec accepts
  (``DecimalString | JsonNumber | LegacyUint32``); anything else is rejected
  at the boundary.
- ``to_field_bytes`` turns a value into its little-endian encoding.
- ``fits_in_slot`` is the overflow gate consulted before any byte sequence is
  committed to a slot: the 32-byte slot width and ``fits_in_field`` both hold.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional, Union

from slotcodec.errors import UnsupportedFieldType


# BN254 scalar field order (Fr)
FIELD_MODULUS = 21888242871839275222246405745257275088548364400416034343698204186575808495617

# Physical width of one claim slot
SLOT_SIZE_BYTES = 32

UINT32_MAX = 0xFFFFFFFF

# JSON numbers are packed as little-endian uint32 cells
UINT32_CELL_BYTES = 4

_DECIMAL_RE = re.compile(r"[0-9]+")


# =============================================================================
# FIELD VALUES
# =============================================================================

@dataclass(frozen=True)
class DecimalString:
    """Integer carried as a JSON string of ASCII decimal digits."""
    text: str

    def __post_init__(self):
        if not _DECIMAL_RE.fullmatch(self.text):
            raise ValueError(f"not a decimal integer string: {self.text!r}")

    def to_int(self) -> int:
        return int(self.text, 10)


@dataclass(frozen=True)
class JsonNumber:
    """Integer carried as a JSON number (integral floats included)."""
    value: Union[int, float]

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise ValueError(f"not a JSON number: {self.value!r}")
        if isinstance(self.value, float) and not self.value.is_integer():
            raise ValueError(f"not an integral number: {self.value!r}")
        if self.value < 0:
            raise ValueError(f"negative number: {self.value!r}")

    def to_int(self) -> int:
        return int(self.value)


@dataclass(frozen=True)
class LegacyUint32:
    """JSON number packed as a fixed 4-byte little-endian uint32 cell."""
    value: int

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValueError(f"not an integer: {self.value!r}")
        if not 0 <= self.value <= UINT32_MAX:
            raise ValueError(f"out of uint32 range: {self.value}")

    def to_int(self) -> int:
        return self.value


FieldValue = Union[DecimalString, JsonNumber, LegacyUint32]


def field_value(raw: Any, *, field: Optional[str] = None) -> FieldValue:
    """Classify a decoded JSON value into a ``FieldValue``.

    Raises:
        UnsupportedFieldType: for booleans, null, objects, arrays, negative or
            non-integral numbers, and strings that are not decimal integers.
    """
    if isinstance(raw, (DecimalString, JsonNumber, LegacyUint32)):
        return raw
    try:
        if isinstance(raw, str):
            return DecimalString(raw)
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            return JsonNumber(raw)
    except ValueError as exc:
        raise UnsupportedFieldType(str(exc), field=field) from exc
    raise UnsupportedFieldType(
        f"value of type {type(raw).__name__} is not a field element", field=field,
    )


# =============================================================================
# BYTE ENCODING
# =============================================================================

def int_to_le_bytes(n: int, width: Optional[int] = None) -> bytes:
    """Little-endian encoding of a non-negative integer.

    Without ``width`` the encoding is minimal length; zero encodes as one byte.
    """
    if n < 0:
        raise ValueError("negative integers have no field encoding")
    if width is None:
        width = max(1, (n.bit_length() + 7) // 8)
    return n.to_bytes(width, "little")


def le_bytes_to_int(data: bytes) -> int:
    return int.from_bytes(bytes(data), "little")


def to_field_bytes(
    value: Any,
    *,
    width: Optional[int] = None,
    field: Optional[str] = None,
) -> bytes:
    """Convert a field value to its little-endian byte encoding.

    Args:
        value: a ``FieldValue`` or a raw decoded JSON value
        width: fixed cell width in bytes; ``None`` for minimal length
        field: field name, reported on failure

    Raises:
        UnsupportedFieldType: value is not a recognized representation, or
            does not fit in a ``width``-byte cell.
    """
    fv = field_value(value, field=field)
    if isinstance(fv, LegacyUint32):
        width = UINT32_CELL_BYTES
    n = fv.to_int()
    if width is not None and n.bit_length() > width * 8:
        raise UnsupportedFieldType(
            f"value {n} does not fit in a {width}-byte cell", field=field,
        )
    return int_to_le_bytes(n, width)


# =============================================================================
# FIELD MODULUS GATES
# =============================================================================

def is_within_field(data: bytes) -> bool:
    """True iff ``data`` read as a little-endian integer is below ``q``."""
    return le_bytes_to_int(data) < FIELD_MODULUS


def fits_in_field(existing: bytes, candidate: bytes) -> bool:
    """True iff ``existing ++ candidate`` stays below ``q``.

    This is the overflow gate consulted before appending to a slot.
    """
    return is_within_field(bytes(existing) + bytes(candidate))


def fits_in_slot(existing: bytes, candidate: bytes) -> bool:
    """True iff ``existing ++ candidate`` fits one claim slot.

    The bytes must fit the 32-byte slot width and stay below ``q``; zero
    cells add width without raising the value.
    """
    if len(existing) + len(candidate) > SLOT_SIZE_BYTES:
        return False
    return fits_in_field(existing, candidate)
