"""Resolution editing workflows built on top of the storage layer.

Every operation loads a fresh copy of the collection, applies one change
and saves the whole collection back. Nothing is cached between calls.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace

from resolution_tracker.exceptions import (
    InvalidJournalEntryError,
    InvalidResolutionError,
    MilestoneNotFoundError,
    ResolutionNotFoundError,
)
from resolution_tracker.models import (
    Milestone,
    Resolution,
    is_complete,
    new_journal_entry,
    new_resolution,
    toggle_milestone as toggled,
    utc_now,
)
from resolution_tracker.storage import ResolutionStorage

logger = logging.getLogger(__name__)


@dataclass
class SaveOutcome:
    """Result of saving a single updated resolution."""

    resolution: Resolution
    just_completed: bool = False  # crossed into complete with this save


def _find(resolutions: list[Resolution], resolution_id: str) -> Resolution:
    for resolution in resolutions:
        if resolution.id == resolution_id:
            return resolution
    raise ResolutionNotFoundError(f"Resolution {resolution_id!r} not found.")


def _replace_in(
    resolutions: list[Resolution], updated: Resolution
) -> list[Resolution]:
    return [updated if r.id == updated.id else r for r in resolutions]


def _clean_milestones(milestones: Iterable[Milestone]) -> list[Milestone]:
    """Drop milestones whose title is blank."""
    return [m for m in milestones if m.title.strip()]


def _require_title(title: str) -> str:
    title = title.strip()
    if not title:
        raise InvalidResolutionError("Please enter a title for your resolution.")
    return title


async def list_resolutions(storage: ResolutionStorage) -> list[Resolution]:
    """Load all resolutions in stored order."""
    return await storage.load()


async def get_resolution(storage: ResolutionStorage, resolution_id: str) -> Resolution:
    """Load a single resolution.

    Raises:
        ResolutionNotFoundError: If no resolution has this id
    """
    return _find(await storage.load(), resolution_id)


async def save_and_check(
    storage: ResolutionStorage,
    resolutions: list[Resolution],
    updated: Resolution,
    was_complete: bool,
) -> SaveOutcome:
    """Save an updated resolution and stamp completion on the transition edge.

    This takes two writes: the mutation first, then the completion stamp if
    the resolution just became complete. They are not atomic together, so a
    crash in between leaves all milestones done with ``completed_at`` unset.
    ``completed_at`` is never cleared here.
    """
    new_resolutions = _replace_in(resolutions, updated)
    await storage.save(new_resolutions)

    if not is_complete(updated) or was_complete:
        return SaveOutcome(resolution=updated)

    stamped = replace(updated, completed_at=utc_now())
    await storage.save(_replace_in(new_resolutions, stamped))
    logger.info(f"Resolution {stamped.id} completed")
    return SaveOutcome(resolution=stamped, just_completed=True)


async def create_resolution(
    storage: ResolutionStorage,
    title: str,
    description: str = "",
    milestones: Iterable[Milestone] = (),
) -> Resolution:
    """Create a resolution and append it to the collection.

    Raises:
        InvalidResolutionError: If the title is blank
    """
    resolution = new_resolution(_require_title(title), description.strip())
    resolution.milestones = _clean_milestones(milestones)

    resolutions = await storage.load()
    outcome = await save_and_check(
        storage, [*resolutions, resolution], resolution, was_complete=False
    )
    logger.info(f"Created resolution {resolution.id}")
    return outcome.resolution


async def update_resolution(
    storage: ResolutionStorage,
    resolution_id: str,
    title: str,
    description: str = "",
    milestones: Iterable[Milestone] = (),
) -> SaveOutcome:
    """Replace title, description and milestones of an existing resolution.

    Dropping or adding milestones can complete the resolution, so the edit
    goes through the same completion check as a toggle.

    Raises:
        InvalidResolutionError: If the title is blank
        ResolutionNotFoundError: If no resolution has this id
    """
    title = _require_title(title)
    resolutions = await storage.load()
    original = _find(resolutions, resolution_id)

    updated = replace(
        original,
        title=title,
        description=description.strip(),
        milestones=_clean_milestones(milestones),
    )
    return await save_and_check(
        storage, resolutions, updated, was_complete=is_complete(original)
    )


async def toggle_milestone(
    storage: ResolutionStorage, resolution_id: str, milestone_id: str
) -> SaveOutcome:
    """Flip one milestone's completion.

    Raises:
        ResolutionNotFoundError: If no resolution has this id
        MilestoneNotFoundError: If the resolution has no such milestone
    """
    resolutions = await storage.load()
    resolution = _find(resolutions, resolution_id)

    if not any(m.id == milestone_id for m in resolution.milestones):
        raise MilestoneNotFoundError(
            f"Milestone {milestone_id!r} not found on resolution {resolution_id!r}."
        )

    milestones = [
        toggled(m) if m.id == milestone_id else m for m in resolution.milestones
    ]
    updated = replace(resolution, milestones=milestones)
    return await save_and_check(
        storage, resolutions, updated, was_complete=is_complete(resolution)
    )


async def set_whats_next(
    storage: ResolutionStorage, resolution_id: str, text: str
) -> SaveOutcome:
    """Update the "what's next" note. Saves only when the text changed."""
    resolutions = await storage.load()
    resolution = _find(resolutions, resolution_id)

    if text == resolution.whats_next:
        return SaveOutcome(resolution=resolution)

    updated = replace(resolution, whats_next=text)
    return await save_and_check(
        storage, resolutions, updated, was_complete=is_complete(resolution)
    )


async def add_journal_entry(
    storage: ResolutionStorage, resolution_id: str, text: str
) -> SaveOutcome:
    """Prepend a journal entry to a resolution.

    Raises:
        InvalidJournalEntryError: If the text is blank
        ResolutionNotFoundError: If no resolution has this id
    """
    text = text.strip()
    if not text:
        raise InvalidJournalEntryError("Journal entry text is required.")

    resolutions = await storage.load()
    resolution = _find(resolutions, resolution_id)

    entry = new_journal_entry(text)
    updated = replace(resolution, journal_entries=[entry, *resolution.journal_entries])
    return await save_and_check(
        storage, resolutions, updated, was_complete=is_complete(resolution)
    )


async def delete_resolution(storage: ResolutionStorage, resolution_id: str) -> None:
    """Remove a resolution together with its milestones and journal.

    Raises:
        ResolutionNotFoundError: If no resolution has this id
    """
    resolutions = await storage.load()
    _find(resolutions, resolution_id)
    await storage.save([r for r in resolutions if r.id != resolution_id])
    logger.info(f"Deleted resolution {resolution_id}")
