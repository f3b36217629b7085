"""Data models for Resolution Tracker."""

import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from enum import Enum


class CompletionStatus(str, Enum):
    """Three-way completion classification of a resolution."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


@dataclass(frozen=True)
class JournalEntry:
    """A free-text note attached to a resolution."""

    id: str
    created_at: datetime
    text: str


@dataclass
class Milestone:
    """A step towards a resolution."""

    id: str
    title: str
    target_date: date | None = None  # calendar date, no time component
    completed: bool = False
    completed_at: datetime | None = None


@dataclass
class Resolution:
    """A goal with its milestones and journal."""

    id: str
    title: str
    description: str
    whats_next: str
    milestones: list[Milestone]
    journal_entries: list[JournalEntry]  # most recent first
    created_at: datetime
    completed_at: datetime | None = None  # stamped once, never cleared


@dataclass
class StorageSchema:
    """The persisted unit: every resolution plus the schema version."""

    version: int
    resolutions: list[Resolution] = field(default_factory=list)


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def generate_id() -> str:
    """Generate an identifier unique for all practical purposes."""
    return uuid.uuid4().hex


def is_complete(resolution: Resolution) -> bool:
    """True when the resolution has milestones and all of them are done.

    A resolution without milestones is never complete.
    """
    return bool(resolution.milestones) and all(
        m.completed for m in resolution.milestones
    )


def completion_counts(resolution: Resolution) -> tuple[int, int]:
    """Return (completed, total) milestone counts."""
    done = sum(1 for m in resolution.milestones if m.completed)
    return done, len(resolution.milestones)


def completion_status(resolution: Resolution) -> CompletionStatus:
    """Classify a resolution from its milestone completion counts."""
    done, total = completion_counts(resolution)
    if total == 0 or done == 0:
        return CompletionStatus.NOT_STARTED
    if done == total:
        return CompletionStatus.COMPLETE
    return CompletionStatus.IN_PROGRESS


def new_resolution(title: str, description: str = "") -> Resolution:
    """Create a resolution with a fresh id and no milestones or journal."""
    return Resolution(
        id=generate_id(),
        title=title,
        description=description,
        whats_next="",
        milestones=[],
        journal_entries=[],
        created_at=utc_now(),
    )


def new_milestone(title: str, target_date: date | None = None) -> Milestone:
    """Create an uncompleted milestone."""
    return Milestone(id=generate_id(), title=title, target_date=target_date)


def new_journal_entry(text: str) -> JournalEntry:
    """Create a journal entry. The text is stored verbatim."""
    return JournalEntry(id=generate_id(), created_at=utc_now(), text=text)


def toggle_milestone(milestone: Milestone, now: datetime | None = None) -> Milestone:
    """Return a copy of the milestone with its completion flipped.

    Completing stamps ``completed_at``; un-completing clears it.
    """
    if milestone.completed:
        return replace(milestone, completed=False, completed_at=None)
    return replace(milestone, completed=True, completed_at=now or utc_now())
