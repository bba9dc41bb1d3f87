from __future__ import annotations
import copy
import json
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional

from settings import get_settings

Document = Dict[str, Any]


class MockDocumentStore:
    """Key-value store of JSON documents addressed by slash-separated paths."""

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._documents: Dict[str, Document] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def put_document(self, key: str, document: Document) -> None:
        if not key:
            raise ValueError("Document key must not be empty.")
        with self._lock:
            self._documents[key] = copy.deepcopy(document)
            self._persist()

    def get_document(self, key: str) -> Optional[Document]:
        with self._lock:
            document = self._documents.get(key)
            if document is None:
                return None
            return copy.deepcopy(document)

    def keys(self, prefix: str = "") -> list[str]:
        with self._lock:
            return sorted(key for key in self._documents if key.startswith(prefix))

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        self.persistence_path.write_text(json.dumps(self._documents, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        for key, document in data.items():
            if isinstance(document, dict):
                self._documents[key] = document


@lru_cache
def build_default_store(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> MockDocumentStore:
    settings = get_settings()
    store_path = settings.store_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return MockDocumentStore(name=name or "plant-data", persistence_path=persistence)
