"""Error taxonomy for the claim slot codec.

Every failure aborts the whole packing or lookup call. Errors carry enough
context (field name, slot label, dialect) to diagnose a failure without
re-parsing the inputs:

- ``field``: payload or schema field the failure concerns
- ``slot``: slot label (``index_a`` ... ``value_b``) or group name
- ``dialect``: schema dialect in force when the failure happened

Retrying with the same inputs reproduces the same error deterministically, so
callers should treat all of these as non-retryable.
"""

from __future__ import annotations

from typing import List, Optional


class CodecError(Exception):
    """Base exception for all codec failures."""

    kind = "CodecError"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        slot: Optional[str] = None,
        dialect: Optional[str] = None,
    ):
        self.message = message
        self.field = field
        self.slot = slot
        self.dialect = dialect
        super().__init__(self._render())

    def _render(self) -> str:
        context = []
        if self.field is not None:
            context.append(f"field={self.field!r}")
        if self.slot is not None:
            context.append(f"slot={self.slot}")
        if self.dialect is not None:
            context.append(f"dialect={self.dialect}")
        if not context:
            return f"{self.kind}: {self.message}"
        return f"{self.kind}: {self.message} ({', '.join(context)})"


class SchemaParseError(CodecError):
    """Schema bytes are not a well-formed document of any supported dialect."""

    kind = "SchemaParseError"


class PayloadParseError(CodecError):
    """Payload bytes are not a JSON object."""

    kind = "PayloadParseError"


class SchemaTypeNotFound(CodecError):
    """Requested claim type is not defined in the schema."""

    kind = "SchemaTypeNotFound"


class SerializationInfoMissing(CodecError):
    """Schema carries no slot serialization metadata where it is required."""

    kind = "SerializationInfoMissing"


class UnsupportedFieldType(CodecError):
    """A payload value or schema directive cannot be turned into a field element."""

    kind = "UnsupportedFieldType"


class SlotsOverflow(CodecError):
    """Sequential packing exhausted both slots of a group."""

    kind = "SlotsOverflow"


class DuplicateSlotAssignment(CodecError):
    """Two fields are bound to the same explicit slot."""

    kind = "DuplicateSlotAssignment"


class FieldNotInRange(CodecError):
    """An explicitly bound value is not below the field modulus."""

    kind = "FieldNotInRange"


class PositionNotFound(CodecError):
    """Positional payload entry has a missing or unusable ``position``."""

    kind = "PositionNotFound"


class FieldNotInSchema(CodecError):
    """Field lookup failed: the schema does not place this field in any slot."""

    kind = "FieldNotInSchema"


class FieldNotInPayload(FieldNotInSchema):
    """The schema binds a field that the payload does not carry."""

    kind = "FieldNotInPayload"


class TooManyFieldsForSlotModel(CodecError):
    """An index or value group has more members than the two-slot model allows."""

    kind = "TooManyFieldsForSlotModel"


class MalformedSerializationAttribute(CodecError):
    """The ``iden3:v1:`` serialization attribute could not be parsed."""

    kind = "MalformedSerializationAttribute"


class UnsupportedStrategy(CodecError):
    """The packing strategy cannot serve this schema dialect or directive."""

    kind = "UnsupportedStrategy"


class PayloadValidationError(CodecError):
    """Payload does not satisfy the schema. ``errors`` lists every violation."""

    kind = "PayloadValidationError"

    def __init__(self, errors: List[str], *, dialect: Optional[str] = None):
        self.errors = list(errors)
        summary = "; ".join(self.errors[:5])
        if len(self.errors) > 5:
            summary += f"; ... ({len(self.errors) - 5} more)"
        super().__init__(f"payload validation failed: {summary}", dialect=dialect)
