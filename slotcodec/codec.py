"""Public codec contract.

``pack`` turns payload bytes plus schema bytes into ``ClaimSlots``;
``slot_index_of`` answers which of the claim's eight slots a field lands in.
Both are pure and deterministic: identical inputs and configuration always
give byte-identical results or the same error.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Optional, Union

from slotcodec.assembler import ClaimSlots, assign_resolved, assign_slots, fill_sequential
from slotcodec.config import CodecOptions, get_config_manager
from slotcodec.errors import CodecError, PayloadParseError, UnsupportedStrategy
from slotcodec.merklize import LiteralPathResolver, PathResolver
from slotcodec.schema import (
    JsonLdContextSchema,
    LegacyJsonSchema,
    MerklizedAttributeSchema,
    MetadataJsonSchema,
    SchemaMetadata,
    decode_json_document,
    parse_schema,
    require_bindings,
    sequential_field_order,
)
from slotcodec.slot_index import resolve_slot_index

logger = logging.getLogger(__name__)


class Strategy(Enum):
    """Packing strategy."""
    SEQUENTIAL_FILL = "sequential-fill"
    ONE_FIELD_PER_SLOT = "one-field-per-slot"


def default_strategy(metadata: SchemaMetadata) -> Strategy:
    """Strategy a dialect uses when the caller does not pick one."""
    if isinstance(metadata, (JsonLdContextSchema, LegacyJsonSchema)):
        return Strategy.SEQUENTIAL_FILL
    return Strategy.ONE_FIELD_PER_SLOT


def decode_payload(payload_bytes: Union[bytes, str], *, max_bytes: Optional[int] = None) -> Dict[str, Any]:
    """Decode payload bytes into a JSON object."""
    return decode_json_document(
        payload_bytes, what="payload", max_bytes=max_bytes, error=PayloadParseError,
    )


def _options(config: Optional[CodecOptions]) -> CodecOptions:
    return config if config is not None else get_config_manager().snapshot()


def _pack_sequential(data: Dict[str, Any], metadata: SchemaMetadata, opts: CodecOptions) -> ClaimSlots:
    index_fields, value_fields = sequential_field_order(metadata, opts.sort_order)
    return fill_sequential(
        data,
        index_fields,
        value_fields,
        cell_width=opts.cell_width,
        # Legacy schemas always carry uint32 numbers.
        uint32_numbers=opts.uint32_numbers or isinstance(metadata, LegacyJsonSchema),
    )


def _pack_one_per_slot(
    data: Dict[str, Any],
    metadata: SchemaMetadata,
    opts: CodecOptions,
    resolver: Optional[PathResolver],
) -> ClaimSlots:
    if isinstance(metadata, JsonLdContextSchema):
        return assign_slots(data, metadata.explicit_bindings(), uint32_numbers=opts.uint32_numbers)
    if isinstance(metadata, MetadataJsonSchema):
        return assign_slots(data, require_bindings(metadata), uint32_numbers=opts.uint32_numbers)
    if isinstance(metadata, MerklizedAttributeSchema):
        return assign_resolved(
            data,
            metadata.paths,
            resolver if resolver is not None else LiteralPathResolver(),
            subject_key=opts.subject_key,
        )
    raise UnsupportedStrategy(
        "schema lists fields per group; one field per slot does not apply",
        dialect=metadata.dialect.value,
    )


def pack(
    payload_bytes: Union[bytes, str],
    schema_bytes: Union[bytes, str],
    strategy: Union[Strategy, str, None] = None,
    claim_type: str = "",
    *,
    resolver: Optional[PathResolver] = None,
    config: Optional[CodecOptions] = None,
) -> ClaimSlots:
    """Pack a credential payload into claim slots.

    Args:
        payload_bytes: credential subject JSON (flat or positional)
        schema_bytes: schema document in any supported dialect
        strategy: packing strategy; None picks the dialect's default
        claim_type: credential type name or ``@id`` (JSON-LD schemas)
        resolver: path resolver for merklized schemas
        config: options snapshot; defaults to the global configuration

    Raises:
        CodecError: any parse, lookup or packing failure
    """
    opts = _options(config)
    try:
        metadata = parse_schema(schema_bytes, claim_type, max_bytes=opts.max_schema_bytes)
        data = decode_payload(payload_bytes, max_bytes=opts.max_payload_bytes)

        if strategy is None:
            chosen = default_strategy(metadata)
        else:
            try:
                chosen = Strategy(strategy)
            except ValueError:
                raise UnsupportedStrategy(f"unknown strategy {strategy!r}") from None
        logger.debug(f"packing {metadata.dialect.value} schema with {chosen.value}")

        if chosen is Strategy.SEQUENTIAL_FILL:
            return _pack_sequential(data, metadata, opts)
        return _pack_one_per_slot(data, metadata, opts, resolver)
    except CodecError as exc:
        logger.debug(f"pack failed: {exc}")
        raise


def slot_index_of(
    field_name: str,
    schema_bytes: Union[bytes, str],
    claim_type: str = "",
    *,
    config: Optional[CodecOptions] = None,
) -> int:
    """Canonical slot position (2, 3, 6 or 7) of ``field_name``.

    Raises:
        CodecError: the schema cannot be parsed or does not place the field
    """
    opts = _options(config)
    try:
        metadata = parse_schema(schema_bytes, claim_type, max_bytes=opts.max_schema_bytes)
        return resolve_slot_index(field_name, metadata, opts.sort_order)
    except CodecError as exc:
        logger.debug(f"slot index lookup failed: {exc}")
        raise
