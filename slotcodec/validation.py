"""Payload validation against the credential schema.

- JSON Schema dialects: the payload is validated with ``jsonschema`` using
  the validator class the schema's ``$schema`` declares (Draft 2020-12 when
  absent) and a ``referencing`` registry holding the schema under its ``$id``.
- JSON-LD context dialect: every field the claim type declares must be present.
- Merklized dialect: every bound path must exist under the credential subject.

All violations are collected and reported together, sorted.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from jsonschema.exceptions import SchemaError
from jsonschema.validators import Draft202012Validator, validator_for
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT202012

from slotcodec.codec import decode_payload
from slotcodec.config import CodecOptions, get_config_manager
from slotcodec.errors import PayloadValidationError, SchemaParseError
from slotcodec.merklize import LiteralPathResolver
from slotcodec.schema import (
    JsonLdContextSchema,
    MerklizedAttributeSchema,
    decode_json_document,
    parse_schema,
)

logger = logging.getLogger(__name__)


def _schema_registry(schema: Dict[str, Any]) -> Registry:
    """Registry holding the schema itself so internal ``$ref``s resolve."""
    schema_id = schema.get("$id")
    if not isinstance(schema_id, str) or not schema_id:
        return Registry()
    resource = Resource.from_contents(schema, default_specification=DRAFT202012)
    return Registry().with_resource(schema_id, resource)


def json_schema_errors(payload: Any, schema: Dict[str, Any]) -> List[str]:
    """Validate a payload against a JSON Schema document.

    Returns:
        List of validation error messages (empty if valid)
    """
    cls = validator_for(schema, default=Draft202012Validator)
    try:
        cls.check_schema(schema)
    except SchemaError as exc:
        raise SchemaParseError(f"schema is not a valid JSON Schema: {exc.message}") from exc
    validator = cls(schema, registry=_schema_registry(schema))
    return [
        f"{error.json_path}: {error.message}"
        for error in validator.iter_errors(payload)
    ]


def _jsonld_errors(payload: Dict[str, Any], metadata: JsonLdContextSchema) -> List[str]:
    return [
        f"$.{name}: field is required"
        for name in metadata.fields
        if name not in payload
    ]


def _merklized_errors(
    payload: Dict[str, Any],
    metadata: MerklizedAttributeSchema,
    subject_key: str,
) -> List[str]:
    document = payload if subject_key in payload else {subject_key: payload}
    resolver = LiteralPathResolver()
    errors = []
    for label, path in metadata.paths.items():
        try:
            resolver.lookup(document, f"{subject_key}.{path}")
        except LookupError:
            errors.append(f"$.{subject_key}.{path}: path bound to {label.value} is missing")
    return errors


def validate_payload(
    payload_bytes: Union[bytes, str],
    schema_bytes: Union[bytes, str],
    claim_type: str = "",
    *,
    config: Optional[CodecOptions] = None,
) -> None:
    """Check a payload against its schema before packing.

    Raises:
        PayloadValidationError: listing every violation
        SchemaParseError, PayloadParseError, SchemaTypeNotFound: bad inputs
    """
    opts = config if config is not None else get_config_manager().snapshot()
    metadata = parse_schema(schema_bytes, claim_type, max_bytes=opts.max_schema_bytes)
    payload = decode_payload(payload_bytes, max_bytes=opts.max_payload_bytes)

    if isinstance(metadata, JsonLdContextSchema):
        errors = _jsonld_errors(payload, metadata)
    elif isinstance(metadata, MerklizedAttributeSchema):
        errors = _merklized_errors(payload, metadata, opts.subject_key)
    else:
        schema = decode_json_document(schema_bytes, max_bytes=opts.max_schema_bytes)
        errors = json_schema_errors(payload, schema)

    if errors:
        logger.debug(f"payload failed validation with {len(errors)} error(s)")
        raise PayloadValidationError(sorted(errors), dialect=metadata.dialect.value)
