"""
Tests for the in-memory and JSON file storage backends.
"""

import json
import os
import pytest
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import patch

from factcore.exceptions import (
    MarshallingError,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from factcore.models import Fact, FactDataset, FactStage, SchedulingState
from factcore.session import SessionController
from factcore.storage import JsonFileStorage, MemoryStorage


@pytest.fixture
def dataset(sample_fact1: Fact, sample_fact2: Fact, now: datetime) -> FactDataset:
    reviewed = sample_fact2.model_copy(
        update={
            "scheduling": SchedulingState(
                stage=FactStage.Review,
                streak=2,
                review_count=2,
                next_eligible=now + timedelta(days=1),
                last_reviewed=now,
            )
        }
    )
    return FactDataset(facts=[sample_fact1, reviewed])


class TestMemoryStorage:
    def test_empty_read(self):
        assert MemoryStorage().read_db() == FactDataset()

    def test_round_trip(self, dataset: FactDataset):
        storage = MemoryStorage()
        storage.write_db(dataset)
        assert storage.read_db() == dataset
        assert storage.has_data

    def test_initial_dataset(self, dataset: FactDataset):
        assert MemoryStorage(initial=dataset).read_db() == dataset

    def test_written_data_is_not_aliased(self, dataset: FactDataset):
        storage = MemoryStorage()
        storage.write_db(dataset)
        dataset.facts[0].term = "changed"
        assert storage.read_db().facts[0].term == "hola"

    def test_armed_failures(self, dataset: FactDataset):
        storage = MemoryStorage()
        storage.fail_writes = True
        with pytest.raises(StorageWriteError) as exc_info:
            storage.write_db(dataset)
        assert exc_info.value.original_exception is storage.failure
        assert not storage.has_data

        storage.fail_reads = True
        with pytest.raises(StorageReadError):
            storage.read_db()

    def test_exit_is_counted(self):
        storage = MemoryStorage()
        storage.exit_application()
        assert storage.exit_count == 1


class TestJsonFileStorage:
    def test_missing_file_reads_empty(self, tmp_path: Path):
        storage = JsonFileStorage(tmp_path / "missing.json")
        assert storage.read_db() == FactDataset()

    def test_round_trip(self, tmp_path: Path, dataset: FactDataset):
        path = tmp_path / "nested" / "facts.json"
        JsonFileStorage(path).write_db(dataset)
        assert path.exists()
        assert JsonFileStorage(path).read_db() == dataset

    def test_written_document_is_json(self, tmp_path: Path, dataset: FactDataset):
        path = tmp_path / "facts.json"
        JsonFileStorage(path).write_db(dataset)
        document = json.loads(path.read_text(encoding="utf-8"))
        assert [f["term"] for f in document["facts"]] == ["hola", "adios"]

    def test_invalid_json_raises_marshalling_error(self, tmp_path: Path):
        path = tmp_path / "facts.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(MarshallingError):
            JsonFileStorage(path).read_db()

    def test_invalid_schema_is_a_read_error(self, tmp_path: Path):
        path = tmp_path / "facts.json"
        path.write_text(json.dumps({"facts": [{"term": ""}]}), encoding="utf-8")
        with pytest.raises(StorageReadError):
            JsonFileStorage(path).read_db()

    def test_failed_write_keeps_previous_file(
        self, tmp_path: Path, dataset: FactDataset
    ):
        path = tmp_path / "facts.json"
        storage = JsonFileStorage(path)
        storage.write_db(FactDataset(facts=dataset.facts[:1]))
        original = path.read_text(encoding="utf-8")

        with patch("factcore.storage.json_file.os.replace") as mock_replace:
            mock_replace.side_effect = OSError("disk full")
            with pytest.raises(StorageWriteError) as exc_info:
                storage.write_db(dataset)

        assert isinstance(exc_info.value.original_exception, OSError)
        assert path.read_text(encoding="utf-8") == original
        leftovers = [p for p in os.listdir(tmp_path) if p.endswith(".tmp")]
        assert leftovers == []

    def test_unreadable_file_raises_read_error(self, tmp_path: Path):
        path = tmp_path / "facts.json"
        path.write_text("{}", encoding="utf-8")
        with patch.object(Path, "read_text", side_effect=OSError("denied")):
            with pytest.raises(StorageReadError, match="denied"):
                JsonFileStorage(path).read_db()

    def test_invalid_utf8_raises_marshalling_error(self, tmp_path: Path):
        path = tmp_path / "facts.json"
        path.write_bytes(b'{"facts": [\xff\xfe]}')
        with pytest.raises(MarshallingError, match="not valid UTF-8") as exc_info:
            JsonFileStorage(path).read_db()
        assert isinstance(exc_info.value.original_exception, UnicodeDecodeError)

    def test_controller_load_reports_invalid_utf8(self, tmp_path: Path):
        path = tmp_path / "facts.json"
        path.write_bytes(b'{"facts": [\xff\xfe]}')
        ctrl = SessionController(storage=JsonFileStorage(path))
        with pytest.raises(StorageError):
            ctrl.load()
        assert ctrl.snapshot_all() == []
