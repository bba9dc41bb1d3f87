import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from datastore.document_store import MockDocumentStore
from services.persistence import PersistenceService


def test_put_and_get_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    store = MockDocumentStore(name="test", persistence_path=path)

    store.put_document("plant-data/dashboard", {"value": 1, "nested": {"a": [1, 2]}})

    assert store.get_document("plant-data/dashboard") == {"value": 1, "nested": {"a": [1, 2]}}
    assert json.loads(path.read_text())["plant-data/dashboard"]["value"] == 1

    reloaded = MockDocumentStore(name="test", persistence_path=path)
    assert reloaded.get_document("plant-data/dashboard") == {"value": 1, "nested": {"a": [1, 2]}}


def test_documents_are_copied() -> None:
    store = MockDocumentStore(name="memory")
    document = {"items": [1]}

    store.put_document("key", document)
    document["items"].append(2)
    fetched = store.get_document("key")
    fetched["items"].append(3)

    assert store.get_document("key") == {"items": [1]}


def test_missing_and_empty_keys() -> None:
    store = MockDocumentStore(name="memory")

    assert store.get_document("absent") is None
    with pytest.raises(ValueError):
        store.put_document("", {})


def test_keys_filter_by_prefix() -> None:
    store = MockDocumentStore(name="memory")
    store.put_document("quality-analysis/a/1", {})
    store.put_document("quality-analysis/b/2", {})
    store.put_document("plant-data/dashboard", {})

    assert store.keys("quality-analysis/") == ["quality-analysis/a/1", "quality-analysis/b/2"]
    assert len(store.keys()) == 3


def test_corrupt_file_starts_empty(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_text("{not json")

    store = MockDocumentStore(name="test", persistence_path=path)

    assert store.keys() == []


def test_submit_encodes_payload() -> None:
    store = MockDocumentStore(name="memory")
    persistence = PersistenceService(store)
    stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)

    async def scenario():
        task = persistence.submit("integration-test/1", {"timestamp": stamp})
        await persistence.drain()
        return task

    task = asyncio.run(scenario())

    assert task is not None
    assert store.get_document("integration-test/1") == {"timestamp": stamp.isoformat()}


def test_disabled_persistence() -> None:
    persistence = PersistenceService(None)

    async def scenario():
        skipped = persistence.submit("key", {"a": 1})
        with pytest.raises(RuntimeError):
            await persistence.write_now("key", {"a": 1})
        return skipped

    assert asyncio.run(scenario()) is None
    assert persistence.enabled is False
