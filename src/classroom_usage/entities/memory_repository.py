from __future__ import annotations

import copy
import threading
from dataclasses import replace
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from ..core.enums import EntityKind
from ..core.exceptions import ConflictError, NotFoundError
from .model import VersionedEntity, merge_patch
from .repository import VersionedRepository


def _snapshot(entity: VersionedEntity) -> VersionedEntity:
    return replace(entity, payload=copy.deepcopy(dict(entity.payload)))


class InMemoryVersionedRepository(VersionedRepository):
    """Process-local store. The lock scope is exactly one conditional write."""

    def __init__(self):
        self._lock = threading.Lock()
        self._rows: dict[str, VersionedEntity] = {}

    def insert(self, entity: VersionedEntity) -> None:
        with self._lock:
            if entity.entity_id in self._rows:
                raise ValueError(f"Duplicate entity id: {entity.entity_id}")
            self._rows[entity.entity_id] = _snapshot(entity)

    def get(self, *, kind: EntityKind, entity_id: str) -> Optional[VersionedEntity]:
        row = self._rows.get(entity_id)
        if row is None or row.kind != kind:
            return None
        return _snapshot(row)

    def list_by_kind(self, *, kind: EntityKind, limit: int) -> Sequence[VersionedEntity]:
        # dicts keep insertion order, i.e. creation order
        items = [r for r in list(self._rows.values()) if r.kind == kind]
        return [_snapshot(r) for r in items[: int(limit)]]

    def _current(self, kind: EntityKind, entity_id: str, expected_version: int) -> VersionedEntity:
        row = self._rows.get(entity_id)
        if row is None or row.kind != kind:
            raise NotFoundError(kind.label, entity_id)
        if row.version != expected_version:
            raise ConflictError(kind.label, entity_id)
        return row

    def compare_and_update(
        self,
        *,
        kind: EntityKind,
        entity_id: str,
        expected_version: int,
        changes: Mapping[str, Any],
        now: datetime,
    ) -> VersionedEntity:
        with self._lock:
            row = self._current(kind, entity_id, expected_version)
            updated = replace(
                row,
                version=row.version + 1,
                payload=merge_patch(row.payload, changes),
                updated_at=now,
            )
            self._rows[entity_id] = updated
            return _snapshot(updated)

    def compare_and_delete(self, *, kind: EntityKind, entity_id: str, expected_version: int) -> None:
        with self._lock:
            self._current(kind, entity_id, expected_version)
            del self._rows[entity_id]
