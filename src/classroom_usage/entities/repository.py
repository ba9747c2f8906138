from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Protocol, Sequence

from ..core.enums import EntityKind
from .model import VersionedEntity


class VersionedRepository(Protocol):
    """Backing store contract.

    ``compare_and_update`` and ``compare_and_delete`` must each be a single
    conditional write (``id == given AND version == expected``). They raise
    NotFoundError when the id is unknown and ConflictError when the version
    no longer matches; in both cases nothing is written.
    """

    def insert(self, entity: VersionedEntity) -> None:
        raise NotImplementedError

    def get(self, *, kind: EntityKind, entity_id: str) -> Optional[VersionedEntity]:
        raise NotImplementedError

    def list_by_kind(self, *, kind: EntityKind, limit: int) -> Sequence[VersionedEntity]:
        raise NotImplementedError

    def compare_and_update(
        self,
        *,
        kind: EntityKind,
        entity_id: str,
        expected_version: int,
        changes: Mapping[str, Any],
        now: datetime,
    ) -> VersionedEntity:
        raise NotImplementedError

    def compare_and_delete(self, *, kind: EntityKind, entity_id: str, expected_version: int) -> None:
        raise NotImplementedError
