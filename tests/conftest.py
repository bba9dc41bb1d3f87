from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.document_store import MockDocumentStore
from services.persistence import PersistenceService
from services.runtime import PlantRuntime, build_runtime
from simulation.generator import SnapshotGenerator
from tests.support import FakeClock, make_advisor, make_generator


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def generator(clock: FakeClock) -> SnapshotGenerator:
    return make_generator(clock=clock)


@pytest.fixture
def store(tmp_path) -> MockDocumentStore:
    return MockDocumentStore(name="test", persistence_path=tmp_path / "store.json")


@pytest.fixture
def runtime(store: MockDocumentStore) -> PlantRuntime:
    return build_runtime(
        generator=make_generator(),
        advisor=make_advisor(),
        persistence=PersistenceService(store),
        interval_ms=60_000,
        persist_snapshots=False,
    )


@pytest.fixture
def api_client(runtime: PlantRuntime) -> Iterator[TestClient]:
    app = create_app(runtime=runtime)
    with TestClient(app) as client:
        yield client
