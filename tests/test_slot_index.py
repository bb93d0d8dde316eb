"""Slot index lookup across dialects."""

import json

import pytest

from slotcodec import (
    CodecError,
    CodecOptions,
    DuplicateSlotAssignment,
    FieldNotInSchema,
    SerializationInfoMissing,
    SlotLabel,
    SortOrder,
    Strategy,
    TooManyFieldsForSlotModel,
    pack,
    slot_index_of,
)


def _jsonld(type_name, fields):
    ctx = {"@version": 1.1, "@protected": True, "id": "@id", "type": "@type"}
    for name, directive in fields.items():
        ctx[name] = {"@id": f"kyc-vocab:{name}", "@type": directive}
    return json.dumps({"@context": [{type_name: {"@id": f"urn:{type_name}", "@context": ctx}}]}).encode()


KYC_AGE = _jsonld("KYCAgeCredential", {
    "birthday": "serialization:Index",
    "documentType": "serialization:Index",
})

EXPLICIT = _jsonld("Explicit", {
    "a": "serialization:IndexDataSlotA",
    "b": "serialization:IndexDataSlotB",
    "c": "serialization:ValueDataSlotA",
    "d": "serialization:ValueDataSlotB",
})


class TestJsonLdSlotIndex:

    def test_generic_index_fields_rank_by_name(self):
        assert slot_index_of("birthday", KYC_AGE, "KYCAgeCredential") == 2
        assert slot_index_of("documentType", KYC_AGE, "KYCAgeCredential") == 3

    def test_descending_order(self):
        opts = CodecOptions(sort_order=SortOrder.DESCENDING)
        with pytest.warns(DeprecationWarning):
            assert slot_index_of("birthday", KYC_AGE, "KYCAgeCredential", config=opts) == 3

    def test_generic_value_fields(self):
        schema = _jsonld("T", {"x": "serialization:Index", "v": "serialization:Value"})
        assert slot_index_of("v", schema, "T") == 6

    def test_explicit_positions(self):
        assert [slot_index_of(f, EXPLICIT, "Explicit") for f in "abcd"] == [2, 3, 6, 7]

    def test_round_trip_with_packed_slots(self):
        payload = json.dumps({"a": 11, "b": 22, "c": 33, "d": 44}).encode()
        slots = pack(payload, EXPLICIT, Strategy.ONE_FIELD_PER_SLOT, "Explicit")
        raw = slots.to_raw_slots()
        for name, value in zip("abcd", (11, 22, 33, 44)):
            pos = slot_index_of(name, EXPLICIT, "Explicit")
            assert int.from_bytes(raw[pos], "little") == value

    def test_too_many_index_fields(self):
        schema = _jsonld("T", {n: "serialization:Index" for n in ("a", "b", "c")})
        with pytest.raises(TooManyFieldsForSlotModel):
            slot_index_of("a", schema, "T")

    def test_generic_and_explicit_collide(self):
        # "a" ranks first among index fields (position 2) and "b" claims IndexDataSlotA.
        schema = _jsonld("T", {"a": "serialization:Index", "b": "serialization:IndexDataSlotA"})
        with pytest.raises(DuplicateSlotAssignment):
            slot_index_of("a", schema, "T")

    def test_unknown_field(self):
        with pytest.raises(FieldNotInSchema):
            slot_index_of("nickname", KYC_AGE, "KYCAgeCredential")


class TestJsonSchemaSlotIndex:

    def test_metadata_dialect(self):
        schema = json.dumps({"$metadata": {"serialization": {
            "indexDataSlotA": "price",
            "valueDataSlotB": "insured",
        }}}).encode()
        assert slot_index_of("price", schema) == SlotLabel.INDEX_A.position
        assert slot_index_of("insured", schema) == 7
        with pytest.raises(FieldNotInSchema):
            slot_index_of("weight", schema)

    def test_metadata_without_serialization(self):
        with pytest.raises(SerializationInfoMissing):
            slot_index_of("price", b'{"$metadata": {}}')

    def test_legacy_dialect(self):
        schema = json.dumps({"properties": {
            "index": {"default": ["countryCode", "documentType"]},
            "value": {"default": ["expiry"]},
        }}).encode()
        assert slot_index_of("countryCode", schema) == 2
        assert slot_index_of("documentType", schema) == 3
        assert slot_index_of("expiry", schema) == 6

    def test_legacy_too_many_value_fields(self):
        schema = json.dumps({"properties": {
            "index": {"default": []},
            "value": {"default": ["a", "b", "c"]},
        }}).encode()
        with pytest.raises(TooManyFieldsForSlotModel):
            slot_index_of("a", schema)


class TestMerklizedSlotIndex:

    SCHEMA = json.dumps({"@context": [{"KYCEmployee": {
        "@id": "urn:kyc-employee",
        "@context": {
            "iden3_serialization": (
                "iden3:v1:slotIndexA=price&slotValueB=postalProviderInformation.insured"
            ),
        },
    }}]}).encode()

    def test_paths(self):
        assert slot_index_of("price", self.SCHEMA, "KYCEmployee") == 2
        assert slot_index_of("postalProviderInformation.insured", self.SCHEMA, "KYCEmployee") == 7

    def test_subject_prefixed_path(self):
        assert slot_index_of("credentialSubject.price", self.SCHEMA, "KYCEmployee") == 2

    def test_unbound_path(self):
        with pytest.raises(FieldNotInSchema) as exc:
            slot_index_of("postalProviderInformation.name", self.SCHEMA, "KYCEmployee")
        assert isinstance(exc.value, CodecError)
        assert exc.value.field == "postalProviderInformation.name"
