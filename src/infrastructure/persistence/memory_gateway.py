from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Any, TypeVar

from domain.errors import Conflict, NotFound
from infrastructure.persistence.gateway import PersistenceGateway

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InMemoryGateway(PersistenceGateway):
    def __init__(self) -> None:
        self._store: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def load(self, kind: type[T], entity_id: str) -> T:
        with self._lock:
            entity = self._store.get(kind.__name__, {}).get(entity_id)
        if entity is None:
            raise NotFound(kind.__name__, entity_id)
        return entity

    def save(self, entity: T) -> T:
        kind = type(entity).__name__
        with self._lock:
            bucket = self._store.setdefault(kind, {})
            existing = bucket.get(entity.id)
            if existing is not None and existing.version != entity.version:
                logger.warning(
                    "Stale write rejected kind=%s id=%s stored_version=%d incoming_version=%d",
                    kind,
                    entity.id,
                    existing.version,
                    entity.version,
                )
                raise Conflict(f"{kind} {entity.id} was modified concurrently; reload and retry")
            if existing is None and entity.version != 0:
                raise Conflict(f"{kind} {entity.id} no longer exists")
            stored = replace(entity, version=entity.version + 1)
            bucket[entity.id] = stored
        return stored

    def delete(self, kind: type[Any], entity_id: str) -> None:
        with self._lock:
            removed = self._store.get(kind.__name__, {}).pop(entity_id, None)
        if removed is None:
            raise NotFound(kind.__name__, entity_id)

    def find(self, kind: type[T], **criteria: Any) -> list[T]:
        with self._lock:
            rows = list(self._store.get(kind.__name__, {}).values())
        return [
            row for row in rows
            if all(getattr(row, key) == value for key, value in criteria.items())
        ]

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
