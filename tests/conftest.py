import os
import pytest
from datetime import datetime, timezone
from pathlib import Path

from factcore.models import Fact
from factcore.scheduler import GraduatedIntervalPolicy
from factcore.selection import InsertionOrderSelection
from factcore.session import SessionController
from factcore.storage import MemoryStorage


# each test runs on cwd to its temp dir
@pytest.fixture(autouse=True)
def go_to_tmpdir(tmp_path: Path, monkeypatch):
    """
    Run each test inside its own temporary directory, with no FACTCORE_*
    environment variables leaking in from the developer's shell.
    """
    for key in list(os.environ):
        if key.startswith("FACTCORE_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    yield


@pytest.fixture
def now() -> datetime:
    """A fixed reference instant for deterministic scheduling."""
    return datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def policy() -> GraduatedIntervalPolicy:
    return GraduatedIntervalPolicy()


@pytest.fixture
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def controller(memory_storage: MemoryStorage) -> SessionController:
    """A loaded controller over an empty in-memory storage."""
    ctrl = SessionController(
        storage=memory_storage,
        policy=GraduatedIntervalPolicy(),
        selection=InsertionOrderSelection(),
    )
    ctrl.load()
    return ctrl


@pytest.fixture
def sample_fact1() -> Fact:
    return Fact(
        uuid="11111111-1111-1111-1111-111111111111",
        term="hola",
        definition="hello",
        added_at=datetime(2023, 1, 1, 10, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def sample_fact2() -> Fact:
    return Fact(
        uuid="22222222-2222-2222-2222-222222222222",
        term="adios",
        definition="goodbye",
        added_at=datetime(2023, 1, 2, 10, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def sample_fact3() -> Fact:
    return Fact(
        uuid="33333333-3333-3333-3333-333333333333",
        term="gato",
        definition="cat",
        added_at=datetime(2023, 1, 3, 10, 0, tzinfo=timezone.utc),
    )
