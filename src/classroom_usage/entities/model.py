from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

from ..core.enums import EntityKind

# Stored but never returned to callers.
HIDDEN_FIELDS = frozenset({"password_hash", "password_reset_token", "password_reset_expires", "verification_code", "verification_code_expires"})


@dataclass(frozen=True)
class VersionedEntity:
    """Envelope around any mutable record guarded by optimistic locking."""

    entity_id: str
    kind: EntityKind
    version: int
    payload: Mapping[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict:
        data = {k: v for k, v in self.payload.items() if k not in HIDDEN_FIELDS}
        data.update(
            {
                "id": self.entity_id,
                "kind": self.kind.value,
                "version": self.version,
                "created_at": self.created_at.isoformat() if self.created_at else None,
                "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            }
        )
        return data


def merge_patch(target: Mapping[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """RFC 7386 merge: ``None`` removes a key, nested objects merge recursively.

    Mirrors MySQL's JSON_MERGE_PATCH so both backends agree.
    """

    result = dict(target)
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        elif isinstance(value, Mapping):
            current = result.get(key)
            result[key] = merge_patch(current if isinstance(current, Mapping) else {}, value)
        else:
            result[key] = value
    return result
