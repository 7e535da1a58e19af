"""Tests for JSON and YAML document handlers."""
import json

import pytest
import yaml

from sopsmeta import (
    InvalidArgument,
    JsonFormat,
    MalformedDocumentError,
    Metadata,
    UnsupportedFormatError,
    YamlFormat,
    get_format,
    load_file,
)

from .conftest import AGE_RECIPIENT


@pytest.fixture
def document(envelope):
    return {"api_key": "ENC[AES256_GCM,data:abc,type:str]", "port_unencrypted": 8080, "sops": envelope}


class TestJsonFormat:

    def test_parse_splits_envelope(self, document):
        data, meta = JsonFormat.parse(json.dumps(document))
        assert "sops" not in data
        assert data["port_unencrypted"] == 8080
        assert meta.recipients("age") == [AGE_RECIPIENT]

    def test_parse_bytes(self, document):
        data, meta = JsonFormat.parse(json.dumps(document).encode("utf-8"))
        assert meta is not None

    def test_parse_without_envelope(self):
        data, meta = JsonFormat.parse('{"a": 1}')
        assert data == {"a": 1}
        assert meta is None

    def test_parse_non_mapping_envelope(self):
        data, meta = JsonFormat.parse('{"a": 1, "sops": "nope"}')
        assert data == {"a": 1}
        assert meta is None

    def test_parse_rejects_non_mapping_document(self):
        with pytest.raises(MalformedDocumentError):
            JsonFormat.parse("[1, 2, 3]")

    def test_parse_invalid_json_propagates(self):
        with pytest.raises(json.JSONDecodeError):
            JsonFormat.parse("{not json")

    def test_parse_none(self):
        with pytest.raises(InvalidArgument):
            JsonFormat.parse(None)

    def test_serialize(self, document):
        data, meta = JsonFormat.parse(json.dumps(document))
        out = JsonFormat.serialize(data, meta)

        assert out.endswith("\n")
        assert json.loads(out) == document
        assert out.index('"api_key"') < out.index('"port_unencrypted"') < out.index('"sops"')

    def test_serialize_is_deterministic(self, document):
        data, meta = JsonFormat.parse(json.dumps(document))
        assert JsonFormat.serialize(data, meta) == JsonFormat.serialize(data, meta)

    def test_serialize_does_not_mutate_data(self):
        data = {"a": 1}
        JsonFormat.serialize(data, Metadata())
        assert data == {"a": 1}

    def test_serialize_requires_arguments(self):
        with pytest.raises(InvalidArgument):
            JsonFormat.serialize(None, Metadata())
        with pytest.raises(InvalidArgument):
            JsonFormat.serialize({}, None)

    def test_detect(self):
        assert JsonFormat.detect("secrets.json")
        assert JsonFormat.detect("SECRETS.JSON")
        assert not JsonFormat.detect("secrets.yaml")
        assert not JsonFormat.detect("json")
        assert JsonFormat.format_name() == "json"
        assert JsonFormat.file_extensions() == ("json",)


class TestYamlFormat:

    def test_round_trip(self, document):
        data, meta = YamlFormat.parse(yaml.safe_dump(document))
        out = YamlFormat.serialize(data, meta)
        assert yaml.safe_load(out) == document

    def test_timestamp_stays_a_string(self, metadata):
        metadata.update_lastmodified()
        out = YamlFormat.serialize({"a": 1}, metadata)
        _, meta = YamlFormat.parse(out)
        assert meta.lastmodified == metadata.lastmodified

    def test_unquoted_timestamp(self):
        _, meta = YamlFormat.parse("a: 1\nsops:\n  lastmodified: 2025-01-10T12:00:00Z\n")
        assert meta.lastmodified == "2025-01-10T12:00:00Z"

    def test_reserved_backend_timestamp_kept_verbatim(self):
        content = (
            "a: 1\n"
            "sops:\n"
            "  pgp:\n"
            "  - created_at: 2025-01-10T12:00:00Z\n"
            "    enc: blob\n"
            "    fp: AAA\n"
        )
        data, meta = YamlFormat.parse(content)
        assert meta.pgp == [{"created_at": "2025-01-10T12:00:00Z", "enc": "blob", "fp": "AAA"}]

        out = YamlFormat.serialize(data, meta)
        assert "2025-01-10T12:00:00Z" in out
        assert "2025-01-10 12:00:00" not in out

    def test_invalid_yaml_propagates(self):
        with pytest.raises(yaml.YAMLError):
            YamlFormat.parse("a: [unclosed")

    def test_parse_rejects_scalar_document(self):
        with pytest.raises(MalformedDocumentError):
            YamlFormat.parse("just a string")

    def test_detect(self):
        assert YamlFormat.detect("secrets.yaml")
        assert YamlFormat.detect("secrets.YML")
        assert not YamlFormat.detect("secrets.json")


class TestDispatch:

    def test_get_format(self):
        assert get_format("a.json") is JsonFormat
        assert get_format("dir/a.yml") is YamlFormat

    def test_unsupported(self):
        with pytest.raises(UnsupportedFormatError):
            get_format("secrets.env")

    def test_load_file(self, tmp_path, document):
        path = tmp_path / "secrets.json"
        path.write_text(json.dumps(document), encoding="utf-8")
        data, meta = load_file(path)
        assert data["api_key"].startswith("ENC[")
        assert meta.mac == document["sops"]["mac"]
