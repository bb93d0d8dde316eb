"""slotcodec: pack credential payloads into zero-knowledge claim slots.

    from slotcodec import pack, slot_index_of

    slots = pack(payload_bytes, schema_bytes, claim_type="KYCAgeCredential")
    slots.index_a, slots.index_b, slots.value_a, slots.value_b
"""

__version__ = "0.3.0"

from slotcodec.assembler import ClaimSlots
from slotcodec.codec import Strategy, pack, slot_index_of
from slotcodec.config import CodecOptions, ConfigManager, get_config, get_config_manager
from slotcodec.errors import (
    CodecError,
    DuplicateSlotAssignment,
    FieldNotInPayload,
    FieldNotInRange,
    FieldNotInSchema,
    MalformedSerializationAttribute,
    PayloadParseError,
    PayloadValidationError,
    PositionNotFound,
    SchemaParseError,
    SchemaTypeNotFound,
    SerializationInfoMissing,
    SlotsOverflow,
    TooManyFieldsForSlotModel,
    UnsupportedFieldType,
    UnsupportedStrategy,
)
from slotcodec.field import FIELD_MODULUS, DecimalString, JsonNumber, LegacyUint32
from slotcodec.merklize import LiteralPathResolver, PathResolver
from slotcodec.schema import SchemaDialect, SortOrder, parse_schema
from slotcodec.serialization import SlotBindings, SlotLabel, parse_serialization_attr
from slotcodec.validation import validate_payload

__all__ = [
    "ClaimSlots",
    "CodecError",
    "CodecOptions",
    "ConfigManager",
    "DecimalString",
    "DuplicateSlotAssignment",
    "FIELD_MODULUS",
    "FieldNotInPayload",
    "FieldNotInRange",
    "FieldNotInSchema",
    "JsonNumber",
    "LegacyUint32",
    "LiteralPathResolver",
    "MalformedSerializationAttribute",
    "PathResolver",
    "PayloadParseError",
    "PayloadValidationError",
    "PositionNotFound",
    "SchemaDialect",
    "SchemaParseError",
    "SchemaTypeNotFound",
    "SerializationInfoMissing",
    "SlotBindings",
    "SlotLabel",
    "SlotsOverflow",
    "SortOrder",
    "Strategy",
    "TooManyFieldsForSlotModel",
    "UnsupportedFieldType",
    "UnsupportedStrategy",
    "get_config",
    "get_config_manager",
    "pack",
    "parse_schema",
    "parse_serialization_attr",
    "slot_index_of",
    "validate_payload",
]
