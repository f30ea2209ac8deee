"""
Shared building blocks for the Clerk sync services.

Every upsert follows the same shape:
1. resolve foreign keys by Clerk ID
2. look up the existing record (Clerk ID first, natural key second)
3. merge required fields unconditionally, optional fields only when present
4. insert or patch, then return a SyncResult

Expected "not found" conditions are returned as SyncResult(success=False)
instead of being raised, so the webhook handler can record them without
treating them as failures.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type, TypeVar

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


@dataclass(frozen=True)
class SyncResult:
    """Outcome of a sync operation: the affected record id, or the reason it was skipped."""

    success: bool
    id: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def ok(cls, record_id: Optional[str] = None) -> "SyncResult":
        return cls(success=True, id=record_id)

    @classmethod
    def failed(cls, reason: str) -> "SyncResult":
        return cls(success=False, reason=reason)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success}
        if self.id is not None:
            result["id"] = self.id
        if self.reason is not None:
            result["reason"] = self.reason
        return result


def merge_fields(
    record: Any,
    partial: Mapping[str, Any],
    required: Iterable[str] = (),
) -> List[str]:
    """
    Merge a partial field mapping into a record.

    merge(existing, partial) = existing, overridden only by partial's defined
    fields. A key whose value is None leaves the existing attribute untouched,
    unless the key is listed in `required`, which is always assigned.

    Args:
        record: ORM instance to patch in place
        partial: Field name to value mapping
        required: Field names assigned even when None

    Returns:
        Names of the attributes whose value changed
    """
    required = set(required)
    changed = []
    for name, value in partial.items():
        if value is None and name not in required:
            continue
        if getattr(record, name, None) != value:
            setattr(record, name, value)
            changed.append(name)
    return changed


def kept_timestamp(incoming: Optional[str], existing: Any, name: str, now: str) -> str:
    """
    Timestamp for a field the payload may omit.

    The incoming value wins; otherwise the stored value is kept so a
    re-delivered event leaves the row unchanged, and only a new row gets `now`.
    """
    if incoming:
        return incoming
    stored = getattr(existing, name, None) if existing is not None else None
    return stored or now


def non_empty(metadata: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """Treat an empty metadata object as absent."""
    if not metadata:
        return None
    return dict(metadata)


def build_display_name(
    first_name: Optional[str],
    last_name: Optional[str],
    *fallbacks: Optional[str],
) -> str:
    """
    Join the non-empty name parts; fall back to the first non-empty fallback.

    build_display_name("Ada", None) -> "Ada"
    build_display_name(None, None, "ada", "ada@example.com") -> "ada"
    """
    parts = [part.strip() for part in (first_name, last_name) if part and part.strip()]
    if parts:
        return " ".join(parts)
    for fallback in fallbacks:
        if fallback and fallback.strip():
            return fallback.strip()
    return ""


class ClerkSyncServiceBase:
    """Base class holding the session and common lookups."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_external_id(self, model: Type[ModelT], external_id: Optional[str]) -> Optional[ModelT]:
        """Look up a mirrored record by its Clerk ID."""
        if not external_id:
            return None
        return self.session.query(model).filter(
            model.external_id == external_id
        ).first()

    def insert_or_patch(
        self,
        model: Type[ModelT],
        existing: Optional[ModelT],
        partial: Mapping[str, Any],
        required: Iterable[str] = (),
    ) -> ModelT:
        """Patch `existing` with `partial`, or insert a new `model` row built from it."""
        if existing is None:
            record = model()
            merge_fields(record, partial, required)
            self.session.add(record)
        else:
            record = existing
            merge_fields(record, partial, required)
        self.session.flush()
        return record
