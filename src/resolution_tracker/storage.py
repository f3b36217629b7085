"""Versioned load/save of the resolution collection."""

import json
import logging
from datetime import date, datetime
from typing import Any

from resolution_tracker.exceptions import DuplicateResolutionIdError, StorageWriteError
from resolution_tracker.kvstore import KeyValueStore
from resolution_tracker.migrations import CURRENT_VERSION, migrate
from resolution_tracker.models import (
    JournalEntry,
    Milestone,
    Resolution,
    StorageSchema,
)

logger = logging.getLogger(__name__)

STORAGE_KEY = "@resolution_tracker_data"


def _parse_timestamp(value: Any) -> datetime:
    """Parse a required ISO-8601 timestamp."""
    if not isinstance(value, str):
        raise ValueError(f"Expected ISO-8601 timestamp, got {value!r}")
    return datetime.fromisoformat(value)


def _parse_optional_timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    return _parse_timestamp(value)


def parse_target_date(value: Any) -> date | None:
    """Parse a target date stored either as a date or a full timestamp."""
    if not value:
        return None
    # Older records hold a full timestamp ("2026-03-15T00:00:00.000Z")
    return date.fromisoformat(str(value)[:10])


def _require_str(data: dict, key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise ValueError(f"Field {key!r} must be a string, got {type(value).__name__}")
    return value


def _optional_bool(data: dict, key: str) -> bool:
    value = data.get(key, False)
    if not isinstance(value, bool):
        raise ValueError(f"Field {key!r} must be a boolean, got {value!r}")
    return value


def _journal_entry_from_dict(data: dict) -> JournalEntry:
    return JournalEntry(
        id=_require_str(data, "id"),
        created_at=_parse_timestamp(data["createdAt"]),
        text=_require_str(data, "text"),
    )


def milestone_from_dict(data: dict) -> Milestone:
    """Build a Milestone from its persisted dict form."""
    return Milestone(
        id=_require_str(data, "id"),
        title=_require_str(data, "title"),
        target_date=parse_target_date(data.get("targetDate")),
        completed=_optional_bool(data, "completed"),
        completed_at=_parse_optional_timestamp(data.get("completedAt")),
    )


def resolution_from_dict(data: dict) -> Resolution:
    """Build a Resolution from its persisted dict form.

    Raises:
        KeyError: If a required field is missing
        ValueError: If a field has the wrong type or format
    """
    if not isinstance(data, dict):
        raise ValueError(f"Expected resolution object, got {type(data).__name__}")

    return Resolution(
        id=_require_str(data, "id"),
        title=_require_str(data, "title"),
        description=data.get("description") or "",
        whats_next=data.get("whatsNext") or "",
        milestones=[milestone_from_dict(m) for m in data.get("milestones") or []],
        journal_entries=[
            _journal_entry_from_dict(j) for j in data.get("journalEntries") or []
        ],
        created_at=_parse_timestamp(data["createdAt"]),
        completed_at=_parse_optional_timestamp(data.get("completedAt")),
    )


def resolution_to_dict(resolution: Resolution) -> dict:
    """Convert a Resolution to its JSON-serializable persisted form."""

    def _milestone_dict(m: Milestone) -> dict:
        d: dict[str, Any] = {"id": m.id, "title": m.title}
        if m.target_date:
            d["targetDate"] = m.target_date.isoformat()
        d["completed"] = m.completed
        if m.completed_at:
            d["completedAt"] = m.completed_at.isoformat()
        return d

    def _journal_dict(j: JournalEntry) -> dict:
        return {"id": j.id, "createdAt": j.created_at.isoformat(), "text": j.text}

    d: dict[str, Any] = {
        "id": resolution.id,
        "title": resolution.title,
        "description": resolution.description,
        "whatsNext": resolution.whats_next,
        "milestones": [_milestone_dict(m) for m in resolution.milestones],
        "journalEntries": [_journal_dict(j) for j in resolution.journal_entries],
        "createdAt": resolution.created_at.isoformat(),
    }
    if resolution.completed_at:
        d["completedAt"] = resolution.completed_at.isoformat()
    return d


def schema_to_dict(schema: StorageSchema) -> dict:
    """Convert a StorageSchema to the document written at the storage key."""
    return {
        "version": schema.version,
        "resolutions": [resolution_to_dict(r) for r in schema.resolutions],
    }


def _schema_from_document(document: dict) -> StorageSchema:
    raw_resolutions = document.get("resolutions", [])
    if not isinstance(raw_resolutions, list):
        raise ValueError(
            f"'resolutions' must be a list, got {type(raw_resolutions).__name__}"
        )
    return StorageSchema(
        version=document["version"],
        resolutions=[resolution_from_dict(r) for r in raw_resolutions],
    )


def _check_unique_ids(resolutions: list[Resolution]) -> None:
    seen: set[str] = set()
    for resolution in resolutions:
        if resolution.id in seen:
            raise DuplicateResolutionIdError(
                f"Duplicate resolution id {resolution.id!r}; nothing was saved."
            )
        seen.add(resolution.id)


class ResolutionStorage:
    """Reads and writes the whole resolution collection at one key."""

    def __init__(self, store: KeyValueStore, key: str = STORAGE_KEY) -> None:
        """Initialize storage on top of a key-value store."""
        self.store = store
        self.key = key

    async def load_schema(self) -> StorageSchema:
        """Load and migrate the persisted schema.

        Unreadable or malformed data is logged and yields an empty schema;
        this never raises.
        """
        try:
            raw_value = await self.store.get_item(self.key)
            if raw_value is None:
                return StorageSchema(version=CURRENT_VERSION)
            document = migrate(json.loads(raw_value))
            return _schema_from_document(document)
        except Exception:
            logger.exception(f"Failed to load resolutions from {self.key!r}")
            return StorageSchema(version=CURRENT_VERSION)

    async def load(self) -> list[Resolution]:
        """Load all resolutions. Returns [] when nothing usable is stored."""
        schema = await self.load_schema()
        return schema.resolutions

    async def save(self, resolutions: list[Resolution]) -> None:
        """Replace the stored collection with ``resolutions``.

        Raises:
            DuplicateResolutionIdError: If two resolutions share an id
            StorageWriteError: If serialization or the write fails
        """
        resolutions = list(resolutions)
        _check_unique_ids(resolutions)

        schema = StorageSchema(version=CURRENT_VERSION, resolutions=resolutions)
        try:
            value = json.dumps(schema_to_dict(schema))
            await self.store.set_item(self.key, value)
        except Exception as e:
            logger.error(f"Failed to save resolutions: {e}")
            raise StorageWriteError(f"Changes were not saved: {e}") from e

        logger.debug(f"Saved {len(resolutions)} resolution(s) to {self.key!r}")
