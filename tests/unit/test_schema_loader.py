"""Tests for loading schema and value documents."""

import logging
from pathlib import Path

import pytest

from formlogic.core.errors import SchemaError
from formlogic.core.schema_loader import load_document, load_schema, load_values


class TestLoadDocument:
    def test_json(self, tmp_path: Path) -> None:
        path = tmp_path / "form.json"
        path.write_text('{"properties": {"a": {"type": "string"}}}')
        assert load_document(path) == {"properties": {"a": {"type": "string"}}}

    @pytest.mark.parametrize("suffix", [".yaml", ".yml"])
    def test_yaml(self, tmp_path: Path, suffix: str) -> None:
        path = tmp_path / f"form{suffix}"
        path.write_text("properties:\n  a:\n    type: string\n")
        assert load_document(path) == {"properties": {"a": {"type": "string"}}}

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SchemaError, match="File not found"):
            load_document(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "form.json"
        path.write_text("{not json")
        with pytest.raises(SchemaError, match="Invalid JSON"):
            load_document(path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "form.yaml"
        path.write_text("a: [1, 2\n")
        with pytest.raises(SchemaError, match="Invalid YAML"):
            load_document(path)

    def test_invalid_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "form.json"
        path.write_bytes(b"\xff\xfe{}")
        with pytest.raises(SchemaError, match="not valid UTF-8"):
            load_document(path)

    def test_top_level_must_be_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "form.json"
        path.write_text("[1, 2]")
        with pytest.raises(SchemaError, match="Expected a mapping"):
            load_document(path)

    def test_empty_document(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        path = tmp_path / "values.yaml"
        path.write_text("")
        with caplog.at_level(logging.WARNING, logger="formlogic.core.schema_loader"):
            assert load_document(path) == {}
        assert "Empty document" in caplog.text


class TestLoadSchema:
    def test_requires_properties(self, tmp_path: Path) -> None:
        path = tmp_path / "form.json"
        path.write_text('{"logic": {}}')
        with pytest.raises(SchemaError, match="has no 'properties'"):
            load_schema(path)

    def test_order_form(self, schema_file: Path) -> None:
        assert "properties" in load_schema(schema_file)


class TestLoadValues:
    def test_nested_values(self, tmp_path: Path) -> None:
        path = tmp_path / "values.json"
        path.write_text('{"shipping": {"cost": 5}, "quantity": 2}')
        assert load_values(path) == {"shipping": {"cost": 5}, "quantity": 2}
