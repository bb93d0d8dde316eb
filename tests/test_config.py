"""Configuration values, environment binding, YAML loading and snapshots."""

import json

import pytest

from slotcodec import CodecOptions, SortOrder, pack
from slotcodec.config import ConfigError, ConfigManager, ValidationError, get_config_manager


BIRTHDAY = json.dumps({"@context": [{"Birthday": {"@id": "urn:birthday", "@context": {
    "birthdayDay": {"@id": "kyc:birthdayDay", "@type": "serialization:Index"},
    "birthdayMonth": {"@id": "kyc:birthdayMonth", "@type": "serialization:Index"},
    "birthdayYear": {"@id": "kyc:birthdayYear", "@type": "serialization:Index"},
}}}]}).encode()

PAYLOAD = b'{"birthdayDay": 24, "birthdayMonth": 4, "birthdayYear": 1996}'


class TestConfigManager:

    def test_singleton(self):
        assert ConfigManager() is get_config_manager()

    def test_defaults(self):
        mgr = get_config_manager()
        assert mgr.get("encoding.uint32_numbers") is True
        assert mgr.get("sequential.cell_width") == 0
        assert mgr.get("sequential.jsonld_sort_order") == "ascending"
        assert mgr.get("limits.max_schema_bytes") == 4 * 1024 * 1024
        assert mgr.get("merklized.subject_key") == "credentialSubject"
        assert mgr.get("logging.level") == "warning"
        assert mgr.validate() == []

    def test_default_snapshot(self):
        assert get_config_manager().snapshot() == CodecOptions()

    def test_set_and_snapshot(self):
        mgr = get_config_manager()
        mgr.set("sequential.cell_width", 4)
        mgr.set("sequential.jsonld_sort_order", "descending")
        opts = mgr.snapshot()
        assert opts.cell_width == 4
        assert opts.sort_order is SortOrder.DESCENDING

    def test_set_rejects_invalid_value(self):
        with pytest.raises(ValidationError):
            get_config_manager().set("sequential.cell_width", 33)
        with pytest.raises(ValidationError):
            get_config_manager().set("logging.level", "verbose")
        with pytest.raises(ValidationError):
            get_config_manager().set("encoding.uint32_numbers", "yes")

    def test_invalid_path(self):
        with pytest.raises(ConfigError):
            get_config_manager().set("sequential.nope", 1)
        with pytest.raises(ConfigError):
            get_config_manager().get("nope")

    def test_reset(self):
        mgr = get_config_manager()
        mgr.set("sequential.cell_width", 4)
        mgr.reset()
        assert mgr.get("sequential.cell_width") == 0


class TestEnvironment:

    def test_env_overrides_set_value(self, monkeypatch):
        mgr = get_config_manager()
        mgr.set("sequential.cell_width", 8)
        monkeypatch.setenv("SLOTCODEC_CELL_WIDTH", "4")
        assert mgr.get("sequential.cell_width") == 4

    def test_env_applies_to_pack(self, monkeypatch):
        assert len(pack(PAYLOAD, BIRTHDAY, claim_type="Birthday").index_a) == 12
        monkeypatch.setenv("SLOTCODEC_UINT32_NUMBERS", "false")
        slots = pack(PAYLOAD, BIRTHDAY, claim_type="Birthday")
        assert slots.index_a == bytes([24, 4, 204, 7])

    def test_invalid_env_value_is_reported(self, monkeypatch):
        monkeypatch.setenv("SLOTCODEC_CELL_WIDTH", "wide")
        mgr = get_config_manager()
        assert mgr.validate()
        with pytest.raises(ValidationError):
            mgr.snapshot()

    def test_out_of_range_env_value(self, monkeypatch):
        monkeypatch.setenv("SLOTCODEC_JSONLD_SORT_ORDER", "random")
        with pytest.raises(ValidationError):
            get_config_manager().snapshot()


class TestYamlLoading:

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "slotcodec.yaml"
        path.write_text(
            "encoding:\n"
            "  uint32_numbers: false\n"
            "sequential:\n"
            "  cell_width: 4\n"
            "limits:\n"
            "  max_payload_bytes: 1024\n"
            "logging:\n"
            "  level: debug\n"
        )
        mgr = get_config_manager()
        mgr.load_from_file(path)
        assert mgr.get("encoding.uint32_numbers") is False
        assert mgr.get("sequential.cell_width") == 4
        assert mgr.get("limits.max_payload_bytes") == 1024
        assert mgr.get("logging.level") == "debug"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            get_config_manager().load_from_file(tmp_path / "absent.yaml")

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("sequential:\n  cell_size: 4\n")
        with pytest.raises(ConfigError):
            get_config_manager().load_from_file(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("sequential: [unclosed\n")
        with pytest.raises(ConfigError):
            get_config_manager().load_from_file(path)

    def test_to_yaml_round_trips_values(self):
        import yaml
        data = yaml.safe_load(get_config_manager().config.to_yaml())
        assert data["encoding"]["uint32_numbers"] is True
        assert data["sequential"]["cell_width"] == 0
        assert data["merklized"]["subject_key"] == "credentialSubject"


class TestSnapshotIsolation:

    def test_snapshot_is_frozen(self):
        opts = get_config_manager().snapshot()
        with pytest.raises(AttributeError):
            opts.cell_width = 4

    def test_later_changes_do_not_affect_a_taken_snapshot(self):
        mgr = get_config_manager()
        opts = mgr.snapshot()
        mgr.set("encoding.uint32_numbers", False)
        slots = pack(PAYLOAD, BIRTHDAY, claim_type="Birthday", config=opts)
        assert slots.index_a == b"".join(v.to_bytes(4, "little") for v in (24, 4, 1996))
