"""Schema metadata resolver.

Normalizes heterogeneous schema documents into one of four dialect variants,
each carrying only what its dialect defines:

    JSON_LD_CONTEXT       JSON-LD ``@context`` whose claim type declares
                          per-field ``serialization:*`` directives
    MERKLIZED_ATTRIBUTE   JSON-LD ``@context`` whose claim type carries an
                          ``iden3_serialization`` path attribute
    JSON_SCHEMA_METADATA  JSON Schema with ``$metadata.serialization`` naming
                          one field per slot
    JSON_SCHEMA_LEGACY    JSON Schema with ``properties.index.default`` and
                          ``properties.value.default`` field lists

``parse_schema`` is the single sniff/parse step; nothing downstream inspects
the raw document again. Parsed metadata is immutable and is not cached.
"""

from __future__ import annotations

import json
import logging
import warnings
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from slotcodec.errors import (
    DuplicateSlotAssignment,
    SchemaParseError,
    SchemaTypeNotFound,
    SerializationInfoMissing,
    UnsupportedFieldType,
    UnsupportedStrategy,
)
from slotcodec.serialization import SlotBindings, SlotLabel, parse_serialization_attr

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMERATIONS
# =============================================================================

class SchemaDialect(Enum):
    """Schema dialects understood by the codec."""
    JSON_LD_CONTEXT = "json-ld-context"
    MERKLIZED_ATTRIBUTE = "merklized-attribute"
    JSON_SCHEMA_METADATA = "json-schema-metadata"
    JSON_SCHEMA_LEGACY = "json-schema-legacy"


class Directive(Enum):
    """Serialization directive declared by a JSON-LD field's ``@type``."""
    INDEX = "serialization:Index"
    VALUE = "serialization:Value"
    INDEX_SLOT_A = "serialization:IndexDataSlotA"
    INDEX_SLOT_B = "serialization:IndexDataSlotB"
    VALUE_SLOT_A = "serialization:ValueDataSlotA"
    VALUE_SLOT_B = "serialization:ValueDataSlotB"

    @property
    def group(self) -> str:
        if self in (Directive.INDEX, Directive.INDEX_SLOT_A, Directive.INDEX_SLOT_B):
            return "index"
        return "value"

    @property
    def slot(self) -> Optional[SlotLabel]:
        """Slot an explicit directive binds to; None for generic directives."""
        return _DIRECTIVE_SLOTS.get(self)


_DIRECTIVE_SLOTS = {
    Directive.INDEX_SLOT_A: SlotLabel.INDEX_A,
    Directive.INDEX_SLOT_B: SlotLabel.INDEX_B,
    Directive.VALUE_SLOT_A: SlotLabel.VALUE_A,
    Directive.VALUE_SLOT_B: SlotLabel.VALUE_B,
}


class SortOrder(Enum):
    """Field order used by Sequential-Fill for JSON-LD schemas.

    DESCENDING reproduces an older circuit layout and is deprecated.
    """
    ASCENDING = "ascending"
    DESCENDING = "descending"


# =============================================================================
# DIALECT VARIANTS
# =============================================================================

@dataclass(frozen=True)
class FieldDirective:
    """One JSON-LD field and the directive its ``@type`` declares."""
    name: str
    iri: str
    directive: Directive


@dataclass(frozen=True)
class JsonLdContextSchema:
    """Claim type resolved from a JSON-LD ``@context`` with field directives."""
    claim_type: str
    type_id: str
    fields: Dict[str, FieldDirective]
    version: Optional[float] = None
    protected: bool = False
    id_term: str = ""
    type_term: str = ""
    vocab: Dict[str, str] = field(default_factory=dict)

    dialect = SchemaDialect.JSON_LD_CONTEXT

    def group_fields(self, group: str) -> List[str]:
        return [name for name, fd in self.fields.items() if fd.directive.group == group]

    def explicit_bindings(self) -> List[Tuple[SlotLabel, str]]:
        """(slot, field) pairs for explicit directives, in field-name order.

        Raises:
            UnsupportedStrategy: a field carries a generic directive.
            DuplicateSlotAssignment: two fields claim the same slot.
        """
        for name in sorted(self.fields):
            fd = self.fields[name]
            if fd.directive.slot is None:
                raise UnsupportedStrategy(
                    f"generic directive {fd.directive.value} cannot be packed one field per slot",
                    field=name, dialect=self.dialect.value,
                )
        claimed = _check_explicit_slots(self.fields, self.dialect.value)
        return [(label, claimed[label]) for label in SlotLabel if label in claimed]


@dataclass(frozen=True)
class LegacyJsonSchema:
    """JSON Schema listing index and value fields in ``properties.*.default``."""
    index_fields: Tuple[str, ...]
    value_fields: Tuple[str, ...]

    dialect = SchemaDialect.JSON_SCHEMA_LEGACY


@dataclass(frozen=True)
class MetadataJsonSchema:
    """JSON Schema whose ``$metadata.serialization`` names one field per slot.

    ``bindings`` is None when the schema carries no serialization block.
    """
    bindings: Optional[SlotBindings] = None
    uris: Dict[str, Any] = field(default_factory=dict)

    dialect = SchemaDialect.JSON_SCHEMA_METADATA


@dataclass(frozen=True)
class MerklizedAttributeSchema:
    """JSON-LD claim type whose slots are bound to document paths."""
    claim_type: str
    type_id: str
    attribute: str
    paths: SlotBindings

    dialect = SchemaDialect.MERKLIZED_ATTRIBUTE


SchemaMetadata = Union[
    JsonLdContextSchema,
    LegacyJsonSchema,
    MetadataJsonSchema,
    MerklizedAttributeSchema,
]


# =============================================================================
# PARSING
# =============================================================================

# Terms of a JSON-LD type context that describe the type itself.
_BASIC_TERMS = ("id", "@protected", "type", "@version")

# Newer contexts use ``iden3_serialization``; older ones ``@serialization``.
_SERIALIZATION_TERMS = ("iden3_serialization", "@serialization")

_METADATA_SLOT_KEYS = {
    "indexDataSlotA": "index_a",
    "indexDataSlotB": "index_b",
    "valueDataSlotA": "value_a",
    "valueDataSlotB": "value_b",
}


def decode_json_document(
    data: Union[bytes, str],
    *,
    what: str = "schema",
    max_bytes: Optional[int] = None,
    error: type = SchemaParseError,
) -> Dict[str, Any]:
    """Decode a JSON object from raw bytes, raising ``error`` on any failure."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    if max_bytes is not None and len(data) > max_bytes:
        raise error(f"{what} is {len(data)} bytes, limit is {max_bytes}")
    try:
        doc = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise error(f"{what} is not valid JSON: {exc}") from exc
    if not isinstance(doc, dict):
        raise error(f"{what} must be a JSON object, got {type(doc).__name__}")
    return doc


def parse_schema(
    schema_bytes: Union[bytes, str],
    claim_type: str = "",
    *,
    max_bytes: Optional[int] = None,
) -> SchemaMetadata:
    """Sniff the schema dialect and parse it.

    Args:
        schema_bytes: raw schema document
        claim_type: credential type name (or type ``@id``); required for
            JSON-LD schemas, ignored by JSON Schema dialects
        max_bytes: reject larger documents

    Raises:
        SchemaParseError, SchemaTypeNotFound, SerializationInfoMissing,
        UnsupportedFieldType, MalformedSerializationAttribute, DuplicateSlotAssignment
    """
    doc = decode_json_document(schema_bytes, max_bytes=max_bytes)

    if "@context" in doc:
        metadata = _parse_jsonld(doc["@context"], claim_type)
    elif "$metadata" in doc:
        metadata = _parse_metadata(doc["$metadata"])
    elif _has_legacy_lists(doc):
        metadata = _parse_legacy(doc["properties"])
    else:
        metadata = MetadataJsonSchema()

    logger.debug(f"schema sniffed as {metadata.dialect.value} (claim_type={claim_type!r})")
    return metadata


def _has_legacy_lists(doc: Dict[str, Any]) -> bool:
    props = doc.get("properties")
    return isinstance(props, dict) and ("index" in props or "value" in props)


def _find_type_definition(ctx: Any, claim_type: str) -> Tuple[str, Dict[str, Any]]:
    """Locate a claim type term by name, falling back to its ``@id``."""
    if isinstance(ctx, dict):
        entries = [ctx]
    elif isinstance(ctx, list):
        # Remote context references are strings; only inline objects define terms.
        entries = [c for c in ctx if isinstance(c, dict)]
    else:
        raise SchemaParseError(
            f"@context must be an object or array, got {type(ctx).__name__}",
            dialect=SchemaDialect.JSON_LD_CONTEXT.value,
        )

    if claim_type:
        for entry in entries:
            if claim_type in entry:
                return claim_type, entry[claim_type]
        for entry in entries:
            for name, term in entry.items():
                if isinstance(term, dict) and term.get("@id") == claim_type:
                    return name, term

    raise SchemaTypeNotFound(
        f"claim type {claim_type!r} is not defined in schema",
        dialect=SchemaDialect.JSON_LD_CONTEXT.value,
    )


def _parse_jsonld(ctx: Any, claim_type: str) -> Union[JsonLdContextSchema, MerklizedAttributeSchema]:
    name, term = _find_type_definition(ctx, claim_type)
    dialect = SchemaDialect.JSON_LD_CONTEXT.value

    if not isinstance(term, dict) or not isinstance(term.get("@context"), dict):
        raise SchemaParseError(
            f"type {name!r} must be an object with an object @context", dialect=dialect,
        )
    type_id = term.get("@id", "")
    if not isinstance(type_id, str):
        raise SchemaParseError(f"type {name!r} has a non-string @id", dialect=dialect)
    type_ctx: Dict[str, Any] = term["@context"]

    for attr_term in _SERIALIZATION_TERMS:
        attr = type_ctx.get(attr_term)
        if isinstance(attr, str):
            return MerklizedAttributeSchema(
                claim_type=name,
                type_id=type_id,
                attribute=attr,
                paths=parse_serialization_attr(attr),
            )

    fields: Dict[str, FieldDirective] = {}
    vocab: Dict[str, str] = {}
    for key, value in type_ctx.items():
        if isinstance(value, dict):
            fields[key] = _field_directive(key, value)
        elif isinstance(value, str) and key not in _BASIC_TERMS:
            vocab[key] = value
    _check_explicit_slots(fields, dialect)

    return JsonLdContextSchema(
        claim_type=name,
        type_id=type_id,
        fields=fields,
        version=_typed_term(type_ctx, "@version", (int, float), dialect),
        protected=bool(_typed_term(type_ctx, "@protected", (bool,), dialect)),
        id_term=_typed_term(type_ctx, "id", (str,), dialect) or "",
        type_term=_typed_term(type_ctx, "type", (str,), dialect) or "",
        vocab=vocab,
    )


def _check_explicit_slots(fields: Dict[str, FieldDirective], dialect: str) -> Dict[SlotLabel, str]:
    """Map each explicit slot to its field; two fields on one slot are rejected."""
    claimed: Dict[SlotLabel, str] = {}
    for name in sorted(fields):
        label = fields[name].directive.slot
        if label is None:
            continue
        if label in claimed:
            raise DuplicateSlotAssignment(
                f"slot already bound to field {claimed[label]!r}",
                field=name, slot=label.value, dialect=dialect,
            )
        claimed[label] = name
    return claimed


def _typed_term(ctx: Dict[str, Any], key: str, types: Tuple[type, ...], dialect: str) -> Any:
    if key not in ctx:
        return None
    value = ctx[key]
    wrong_bool = isinstance(value, bool) and bool not in types
    if wrong_bool or not isinstance(value, types):
        raise SchemaParseError(
            f"context term {key!r} has unexpected type {type(value).__name__}",
            dialect=dialect,
        )
    return value


def _field_directive(name: str, definition: Dict[str, Any]) -> FieldDirective:
    raw_type = definition.get("@type")
    try:
        directive = Directive(raw_type)
    except ValueError:
        raise UnsupportedFieldType(
            f"unsupported serialization type {raw_type!r}",
            field=name, dialect=SchemaDialect.JSON_LD_CONTEXT.value,
        ) from None
    iri = definition.get("@id", "")
    return FieldDirective(name=name, iri=iri if isinstance(iri, str) else "", directive=directive)


def _parse_metadata(meta: Any) -> MetadataJsonSchema:
    dialect = SchemaDialect.JSON_SCHEMA_METADATA.value
    if not isinstance(meta, dict):
        raise SchemaParseError("$metadata must be an object", dialect=dialect)

    uris = meta.get("uris") or {}
    if not isinstance(uris, dict):
        raise SchemaParseError("$metadata.uris must be an object", dialect=dialect)

    ser = meta.get("serialization")
    if ser is None:
        return MetadataJsonSchema(bindings=None, uris=dict(uris))
    if not isinstance(ser, dict):
        raise SchemaParseError("$metadata.serialization must be an object", dialect=dialect)

    slots: Dict[str, str] = {}
    for key, attr in _METADATA_SLOT_KEYS.items():
        value = ser.get(key)
        if value is None:
            continue
        if not isinstance(value, str):
            raise SchemaParseError(
                f"$metadata.serialization.{key} must be a string", slot=attr, dialect=dialect,
            )
        slots[attr] = value
    return MetadataJsonSchema(bindings=SlotBindings(**slots), uris=dict(uris))


def _parse_legacy(props: Dict[str, Any]) -> LegacyJsonSchema:
    lists: Dict[str, Tuple[str, ...]] = {}
    for group in ("index", "value"):
        section = props.get(group)
        default = section.get("default") if isinstance(section, dict) else None
        if not isinstance(default, list) or not all(isinstance(f, str) for f in default):
            raise SerializationInfoMissing(
                f"schema has no {group}.default field list",
                slot=group, dialect=SchemaDialect.JSON_SCHEMA_LEGACY.value,
            )
        lists[group] = tuple(default)
    return LegacyJsonSchema(index_fields=lists["index"], value_fields=lists["value"])


# =============================================================================
# FIELD ORDERING
# =============================================================================

def sequential_field_order(
    metadata: SchemaMetadata,
    order: SortOrder = SortOrder.ASCENDING,
) -> Tuple[List[str], List[str]]:
    """Index and value field lists in the order Sequential-Fill consumes them.

    JSON-LD fields are sorted by name; legacy lists keep the order the schema
    declares.

    Raises:
        UnsupportedStrategy: the dialect binds fields to named slots instead.
    """
    if isinstance(metadata, JsonLdContextSchema):
        if order is SortOrder.DESCENDING:
            warnings.warn(
                "descending field order is deprecated; use ascending",
                DeprecationWarning,
                stacklevel=2,
            )
        reverse = order is SortOrder.DESCENDING
        return (
            sorted(metadata.group_fields("index"), reverse=reverse),
            sorted(metadata.group_fields("value"), reverse=reverse),
        )
    if isinstance(metadata, LegacyJsonSchema):
        return list(metadata.index_fields), list(metadata.value_fields)
    raise UnsupportedStrategy(
        "schema binds fields to named slots; sequential fill does not apply",
        dialect=metadata.dialect.value,
    )


def require_bindings(metadata: MetadataJsonSchema) -> SlotBindings:
    """Serialization bindings of a metadata schema, which must be present."""
    if metadata.bindings is None:
        raise SerializationInfoMissing(
            "schema has no $metadata.serialization block",
            dialect=metadata.dialect.value,
        )
    return metadata.bindings


__all__ = [
    "Directive",
    "FieldDirective",
    "JsonLdContextSchema",
    "LegacyJsonSchema",
    "MerklizedAttributeSchema",
    "MetadataJsonSchema",
    "SchemaDialect",
    "SchemaMetadata",
    "SortOrder",
    "decode_json_document",
    "parse_schema",
    "require_bindings",
    "sequential_field_order",
]
