"""Fire-and-forget writes to the optional document store."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Set

from fastapi.encoders import jsonable_encoder

from datastore.document_store import MockDocumentStore

logger = logging.getLogger(__name__)


class PersistenceService:
    """Schedules store writes off the event loop; failures never reach callers."""

    def __init__(self, store: Optional[MockDocumentStore]) -> None:
        self.store = store
        self._pending: Set[asyncio.Task[None]] = set()

    @property
    def enabled(self) -> bool:
        return self.store is not None

    def submit(self, key: str, payload: Any) -> Optional[asyncio.Task[None]]:
        """Queue a write of ``payload`` under ``key`` on the running loop."""
        if self.store is None:
            return None
        document: Dict[str, Any] = jsonable_encoder(payload)
        task = asyncio.get_running_loop().create_task(self._write(key, document))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for outstanding writes; used on shutdown and in tests."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def write_now(self, key: str, payload: Any) -> None:
        """Write and propagate errors to the caller."""
        if self.store is None:
            raise RuntimeError("Document store is not configured.")
        await asyncio.to_thread(self.store.put_document, key, jsonable_encoder(payload))

    async def _write(self, key: str, document: Dict[str, Any]) -> None:
        assert self.store is not None
        try:
            await asyncio.to_thread(self.store.put_document, key, document)
        except Exception as exc:  # noqa: BLE001 - persistence is best effort
            logger.warning(
                "Document store write failed",
                extra={"document_key": key, "reason": str(exc)},
            )
