"""
Tests for YAML import/export in factcore.transfer.
"""

import pytest
from pathlib import Path
from unittest.mock import patch

import yaml

from factcore.either import is_left, is_right
from factcore.exceptions import TransferError
from factcore.models import Fact
from factcore.session import SessionController
from factcore.transfer import (
    FactEntry,
    export_facts,
    filter_new_entries,
    normalize_term,
    parse_entry,
    read_entries,
)


def _write_yaml(path: Path, content: str) -> Path:
    path.write_text(content, encoding="utf-8")
    return path


class TestParseEntry:
    def test_valid_entry_is_left(self, tmp_path: Path):
        result = parse_entry({"term": " hola ", "definition": "hello"}, 0, tmp_path)
        assert is_left(result)
        assert result.value.pair == ("hola", "hello")

    def test_non_mapping_is_right(self, tmp_path: Path):
        result = parse_entry(["hola", "hello"], 3, tmp_path / "in.yaml")
        assert is_right(result)
        assert result.value.entry_index == 3
        assert "not a mapping" in str(result.value)

    def test_missing_field_is_right(self, tmp_path: Path):
        result = parse_entry({"term": "hola"}, 1, tmp_path / "in.yaml")
        assert is_right(result)
        assert "definition" in result.value.message
        assert str(result.value).startswith("File: in.yaml, Entry Index: 1 - ")


class TestReadEntries:
    def test_reads_valid_and_reports_invalid(self, tmp_path: Path):
        path = _write_yaml(
            tmp_path / "in.yaml",
            """
facts:
  - term: hola
    definition: hello
  - term: ""
    definition: empty
  - just a string
  - term: gato
    definition: cat
""",
        )
        entries, errors = read_entries(path)
        assert [e.pair for e in entries] == [("hola", "hello"), ("gato", "cat")]
        assert [e.entry_index for e in errors] == [1, 2]

    def test_empty_file_has_no_entries(self, tmp_path: Path):
        path = _write_yaml(tmp_path / "empty.yaml", "")
        assert read_entries(path) == ([], [])

    def test_missing_file_raises(self, tmp_path: Path):
        with pytest.raises(TransferError, match="File not found"):
            read_entries(tmp_path / "nope.yaml")

    def test_invalid_yaml_raises(self, tmp_path: Path):
        path = _write_yaml(tmp_path / "bad.yaml", "facts: [unclosed")
        with pytest.raises(TransferError, match="Invalid YAML") as exc_info:
            read_entries(path)
        assert isinstance(exc_info.value.original_exception, yaml.YAMLError)

    @pytest.mark.parametrize("content", ["- hola\n- adios\n", "facts: hola\n"])
    def test_wrong_top_level_raises(self, tmp_path: Path, content: str):
        path = _write_yaml(tmp_path / "shape.yaml", content)
        with pytest.raises(TransferError, match="Top level"):
            read_entries(path)

    def test_invalid_utf8_raises(self, tmp_path: Path):
        path = tmp_path / "in.yaml"
        path.write_bytes(b"facts:\n  - term: \xff\xfe\n    definition: x\n")
        with pytest.raises(TransferError, match="not valid UTF-8") as exc_info:
            read_entries(path)
        assert isinstance(exc_info.value.original_exception, UnicodeDecodeError)

    def test_unreadable_file_raises(self, tmp_path: Path):
        path = _write_yaml(tmp_path / "in.yaml", "facts: []")
        with patch.object(Path, "read_text", side_effect=PermissionError("denied")):
            with pytest.raises(TransferError, match="Could not read"):
                read_entries(path)


class TestFilterNewEntries:
    def test_drops_existing_and_repeated_terms(self, sample_fact1: Fact):
        entries = [
            FactEntry(term="HOLA", definition="hi"),
            FactEntry(term="gato", definition="cat"),
            FactEntry(term="Gato", definition="kitty"),
            FactEntry(term="perro", definition="dog"),
        ]
        new_entries, duplicates = filter_new_entries([sample_fact1], entries)
        assert [e.term for e in new_entries] == ["gato", "perro"]
        assert duplicates == 2

    def test_normalize_term(self):
        assert normalize_term("  Hola ") == "hola"


class TestExportFacts:
    def test_writes_sorted_document(
        self, tmp_path: Path, sample_fact1: Fact, sample_fact2: Fact, sample_fact3: Fact
    ):
        path = tmp_path / "out" / "facts.yaml"
        count = export_facts([sample_fact1, sample_fact3, sample_fact2], path)
        assert count == 3
        document = yaml.safe_load(path.read_text(encoding="utf-8"))
        assert [e["term"] for e in document["facts"]] == ["adios", "gato", "hola"]
        assert document["facts"][0] == {"term": "adios", "definition": "goodbye"}

    def test_merges_with_existing_file(
        self, tmp_path: Path, sample_fact1: Fact, sample_fact2: Fact
    ):
        path = tmp_path / "facts.yaml"
        export_facts([sample_fact1], path)
        assert export_facts([sample_fact2], path) == 2
        entries, _ = read_entries(path)
        assert [e.term for e in entries] == ["adios", "hola"]

    def test_overwrite_replaces_existing_file(
        self, tmp_path: Path, sample_fact1: Fact, sample_fact2: Fact
    ):
        path = tmp_path / "facts.yaml"
        export_facts([sample_fact1], path)
        assert export_facts([sample_fact2], path, overwrite_existing=True) == 1
        entries, _ = read_entries(path)
        assert [e.term for e in entries] == ["adios"]

    def test_exported_file_reimports(self, tmp_path: Path, sample_fact1: Fact):
        path = tmp_path / "facts.yaml"
        export_facts([sample_fact1], path)
        entries, errors = read_entries(path)
        assert errors == []
        assert entries[0].pair == sample_fact1.pair

    def test_write_failure_raises(self, tmp_path: Path, sample_fact1: Fact):
        path = tmp_path / "facts.yaml"
        with patch("builtins.open", side_effect=OSError("disk full")):
            with pytest.raises(TransferError, match="Could not write"):
                export_facts([sample_fact1], path, overwrite_existing=True)

    def test_export_after_blank_term_is_refused(
        self, tmp_path: Path, controller: SessionController
    ):
        controller.add_fact("hola", "hello")
        with pytest.raises(ValueError):
            controller.add_fact("   ", "blank")
        path = tmp_path / "facts.yaml"
        assert export_facts(controller.snapshot_all(), path, overwrite_existing=True) == 1
