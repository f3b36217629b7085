"""Exception hierarchy for Resolution Tracker."""


class ResolutionTrackerError(Exception):
    """Base exception for resolution tracker errors."""

    pass


class ConfigNotFoundError(ResolutionTrackerError):
    """Configuration file not found."""

    pass


class InvalidConfigError(ResolutionTrackerError):
    """Configuration is invalid."""

    pass


class StorageWriteError(ResolutionTrackerError):
    """The resolution collection could not be saved."""

    pass


class DuplicateResolutionIdError(StorageWriteError):
    """Two resolutions in one collection share an id."""

    pass


class ResolutionNotFoundError(ResolutionTrackerError):
    """No resolution with the given id."""

    pass


class MilestoneNotFoundError(ResolutionTrackerError):
    """No milestone with the given id on the resolution."""

    pass


class InvalidResolutionError(ResolutionTrackerError):
    """Resolution input rejected (e.g. empty title)."""

    pass


class InvalidJournalEntryError(ResolutionTrackerError):
    """Journal entry text rejected (e.g. blank)."""

    pass
