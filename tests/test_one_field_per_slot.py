"""One-Field-Per-Slot packing for JSON-LD explicit directives and $metadata schemas."""

import json

import pytest

from slotcodec import (
    FIELD_MODULUS,
    DuplicateSlotAssignment,
    FieldNotInPayload,
    FieldNotInRange,
    FieldNotInSchema,
    SerializationInfoMissing,
    SlotLabel,
    Strategy,
    UnsupportedFieldType,
    UnsupportedStrategy,
    pack,
)
from slotcodec.assembler import ClaimSlots, assign_slots
from slotcodec.codec import default_strategy
from slotcodec.field import int_to_le_bytes, le_bytes_to_int
from slotcodec.schema import parse_schema
from slotcodec.serialization import SlotBindings


def _cells(*values):
    return b"".join(v.to_bytes(4, "little") for v in values)


def _jsonld(type_name, fields):
    ctx = {"@version": 1.1, "@protected": True, "id": "@id", "type": "@type"}
    for name, directive in fields.items():
        ctx[name] = {"@id": f"kyc-vocab:{name}", "@type": directive}
    return json.dumps({"@context": [{type_name: {"@id": f"urn:{type_name}", "@context": ctx}}]}).encode()


def _metadata(serialization=None):
    meta = {"uris": {"jsonLdContext": "https://example.org/auth.jsonld"}}
    if serialization is not None:
        meta["serialization"] = serialization
    return json.dumps({
        "$schema": "https://json-schema.org/draft/2020-12/schema",
        "$metadata": meta,
        "type": "object",
    }).encode()


KYC_AGE_V2 = _jsonld("KYCAgeCredential", {
    "birthday": "serialization:IndexDataSlotA",
    "documentType": "serialization:IndexDataSlotB",
})

AUTH_BJJ = _metadata({"indexDataSlotA": "x", "indexDataSlotB": "y"})

X = "12747362180683564186765326476580939239539048813512584016960612937519221013297"
Y = "14291436616554452214480306896963624817016612127013213012052432587908003744962"


class TestJsonLdExplicitSlots:

    def test_kyc_age_v2(self):
        payload = json.dumps({"birthday": 828522341, "documentType": 1}).encode()
        slots = pack(payload, KYC_AGE_V2, Strategy.ONE_FIELD_PER_SLOT, "KYCAgeCredential")
        assert slots.index_a == bytes([101, 63, 98, 49])
        assert slots.index_b == _cells(1)
        assert slots.value_a == b""
        assert slots.value_b == b""

    def test_default_strategy_for_jsonld_is_sequential(self):
        payload = json.dumps({"birthday": 828522341, "documentType": 1}).encode()
        slots = pack(payload, KYC_AGE_V2, claim_type="KYCAgeCredential")
        # Both explicit fields are index members, packed together into index_a.
        assert slots.index_a == _cells(828522341, 1)

    def test_value_slots_are_filled_from_their_own_fields(self):
        schema = _jsonld("T", {
            "a": "serialization:ValueDataSlotA",
            "b": "serialization:ValueDataSlotB",
        })
        slots = pack(json.dumps({"a": 5, "b": 7}).encode(), schema, "one-field-per-slot", "T")
        assert slots.value_a == _cells(5)
        assert slots.value_b == _cells(7)

    def test_generic_directive_rejected(self):
        schema = _jsonld("T", {"a": "serialization:Index"})
        with pytest.raises(UnsupportedStrategy):
            pack(b'{"a": 1}', schema, Strategy.ONE_FIELD_PER_SLOT, "T")

    def test_duplicate_slot(self):
        schema = _jsonld("T", {
            "a": "serialization:ValueDataSlotA",
            "b": "serialization:ValueDataSlotA",
        })
        with pytest.raises(DuplicateSlotAssignment):
            pack(b'{"a": 1, "b": 2}', schema, Strategy.ONE_FIELD_PER_SLOT, "T")

    def test_missing_field(self):
        with pytest.raises(FieldNotInPayload) as exc:
            pack(b'{"birthday": 1}', KYC_AGE_V2, Strategy.ONE_FIELD_PER_SLOT, "KYCAgeCredential")
        assert exc.value.field == "documentType"
        assert exc.value.slot == "index_b"


class TestMetadataSlots:

    def test_big_integer_decimal_strings(self):
        payload = json.dumps({"x": X, "y": Y}).encode()
        slots = pack(payload, AUTH_BJJ)
        assert le_bytes_to_int(slots.index_a) == int(X)
        assert le_bytes_to_int(slots.index_b) == int(Y)
        assert slots.value_a == slots.value_b == b""

    def test_all_four_slots(self):
        schema = _metadata({
            "indexDataSlotA": "a", "indexDataSlotB": "b",
            "valueDataSlotA": "c", "valueDataSlotB": "d",
        })
        slots = pack(json.dumps({"a": 1, "b": 2, "c": 3, "d": 4}).encode(), schema)
        assert slots == ClaimSlots(_cells(1), _cells(2), _cells(3), _cells(4))

    def test_missing_weight_field(self):
        schema = _metadata({"indexDataSlotA": "name", "valueDataSlotB": "weight"})
        with pytest.raises(FieldNotInSchema) as exc:
            pack(json.dumps({"name": "1"}).encode(), schema)
        assert isinstance(exc.value, FieldNotInPayload)
        assert exc.value.field == "weight"

    def test_value_not_below_modulus(self):
        with pytest.raises(FieldNotInRange) as exc:
            pack(json.dumps({"x": str(FIELD_MODULUS), "y": "1"}).encode(), AUTH_BJJ)
        assert exc.value.field == "x"

    def test_modulus_minus_one_is_accepted(self):
        slots = pack(json.dumps({"x": str(FIELD_MODULUS - 1), "y": "0"}).encode(), AUTH_BJJ)
        assert le_bytes_to_int(slots.index_a) == FIELD_MODULUS - 1
        assert slots.index_b == b"\x00"

    def test_same_field_on_two_slots(self):
        schema = _metadata({"valueDataSlotA": "w", "valueDataSlotB": "w"})
        slots = pack(b'{"w": 9}', schema)
        assert slots.value_a == slots.value_b == _cells(9)

    def test_no_serialization_block(self):
        with pytest.raises(SerializationInfoMissing):
            pack(b'{"x": 1}', _metadata())

    def test_sequential_fill_not_applicable(self):
        with pytest.raises(UnsupportedStrategy):
            pack(b'{"x": 1, "y": 2}', AUTH_BJJ, Strategy.SEQUENTIAL_FILL)

    def test_unknown_strategy_name(self):
        with pytest.raises(UnsupportedStrategy):
            pack(b'{"x": 1, "y": 2}', AUTH_BJJ, "round-robin")


class TestAssignSlots:

    def test_duplicate_labels_in_pairs(self):
        with pytest.raises(DuplicateSlotAssignment):
            assign_slots({"a": 1, "b": 2}, [(SlotLabel.INDEX_A, "a"), (SlotLabel.INDEX_A, "b")])

    def test_unbound_slots_stay_empty(self):
        slots = assign_slots({"a": 1}, SlotBindings(value_b="a"))
        assert slots.value_b == _cells(1)
        assert slots.index_a == slots.index_b == slots.value_a == b""

    def test_minimal_number_encoding(self):
        slots = assign_slots({"a": 1, "b": "2"}, SlotBindings(index_a="a", index_b="b"), uint32_numbers=False)
        assert slots.index_a == int_to_le_bytes(1) == b"\x01"
        assert slots.index_b == b"\x02"

    def test_number_above_uint32(self):
        with pytest.raises(UnsupportedFieldType) as exc:
            assign_slots({"a": 2 ** 32}, SlotBindings(index_a="a"))
        assert exc.value.field == "a"


class TestDefaultStrategy:

    def test_per_dialect(self):
        assert default_strategy(parse_schema(KYC_AGE_V2, "KYCAgeCredential")) is Strategy.SEQUENTIAL_FILL
        assert default_strategy(parse_schema(AUTH_BJJ)) is Strategy.ONE_FIELD_PER_SLOT
