"""Slot index resolver.

Maps a field name to its canonical position among the claim's eight slots:
0-1 reserved, 2-3 index, 4-5 reserved, 6-7 value. Only schemas that place at
most two fields per group can answer this question.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from slotcodec.errors import (
    DuplicateSlotAssignment,
    FieldNotInSchema,
    TooManyFieldsForSlotModel,
)
from slotcodec.schema import (
    JsonLdContextSchema,
    LegacyJsonSchema,
    MetadataJsonSchema,
    SchemaMetadata,
    SortOrder,
    require_bindings,
    sequential_field_order,
)
from slotcodec.serialization import SlotLabel

logger = logging.getLogger(__name__)

_GROUP_BASE = {"index": SlotLabel.INDEX_A.position, "value": SlotLabel.VALUE_A.position}


def _check_group_size(fields: List[str], group: str, dialect: str) -> None:
    if len(fields) > 2:
        raise TooManyFieldsForSlotModel(
            f"{len(fields)} {group} fields, the slot model allows 2",
            slot=group, dialect=dialect,
        )


def _ranked(fields: List[str], group: str) -> Dict[str, int]:
    return {name: _GROUP_BASE[group] + rank for rank, name in enumerate(fields)}


def _jsonld_positions(metadata: JsonLdContextSchema, order: SortOrder) -> Dict[str, int]:
    dialect = metadata.dialect.value
    index_fields, value_fields = sequential_field_order(metadata, order)
    _check_group_size(index_fields, "index", dialect)
    _check_group_size(value_fields, "value", dialect)

    ranks = _ranked(index_fields, "index")
    ranks.update(_ranked(value_fields, "value"))

    positions: Dict[str, int] = {}
    taken: Dict[int, str] = {}
    for name in index_fields + value_fields:
        label = metadata.fields[name].directive.slot
        pos = label.position if label is not None else ranks[name]
        if pos in taken:
            raise DuplicateSlotAssignment(
                f"position {pos} already taken by {taken[pos]!r}",
                field=name, dialect=dialect,
            )
        taken[pos] = name
        positions[name] = pos
    return positions


def resolve_slot_index(
    field: str,
    metadata: SchemaMetadata,
    order: SortOrder = SortOrder.ASCENDING,
) -> int:
    """Position (2, 3, 6 or 7) of ``field`` in the claim.

    Raises:
        FieldNotInSchema: the schema does not place the field in any slot
        TooManyFieldsForSlotModel: a group has more than two fields
        DuplicateSlotAssignment: two fields resolve to one position
        SerializationInfoMissing: metadata schema without serialization
    """
    dialect = metadata.dialect.value

    if isinstance(metadata, JsonLdContextSchema):
        positions = _jsonld_positions(metadata, order)
    elif isinstance(metadata, LegacyJsonSchema):
        _check_group_size(list(metadata.index_fields), "index", dialect)
        _check_group_size(list(metadata.value_fields), "value", dialect)
        positions = _ranked(list(metadata.value_fields), "value")
        # An index field shadows a value field of the same name.
        positions.update(_ranked(list(metadata.index_fields), "index"))
    elif isinstance(metadata, MetadataJsonSchema):
        bindings = require_bindings(metadata)
        positions = {}
        for label, name in reversed(bindings.items()):
            positions[name] = label.position
    else:
        # MerklizedAttributeSchema
        field = field[len("credentialSubject."):] if field.startswith("credentialSubject.") else field
        positions = {}
        for label, path in reversed(metadata.paths.items()):
            positions[path] = label.position

    if field not in positions:
        raise FieldNotInSchema("field is not placed in any slot", field=field, dialect=dialect)
    logger.debug(f"field {field!r} resolves to slot position {positions[field]}")
    return positions[field]
