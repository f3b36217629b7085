"""Forward migration of persisted data into the current schema."""

import logging
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

CURRENT_VERSION = 1


class PayloadKind(Enum):
    """Shape of a raw persisted payload, resolved by inspection."""

    EMPTY = "empty"
    MALFORMED = "malformed"
    LEGACY_ARRAY = "legacy_array"
    CURRENT_VERSIONED = "current_versioned"
    OTHER_VERSIONED = "other_versioned"


def empty_schema() -> dict[str, Any]:
    """Return an empty schema document at the current version."""
    return {"version": CURRENT_VERSION, "resolutions": []}


def _is_current_version(value: Any) -> bool:
    # bool is an int subclass; True must not pass for version 1
    return isinstance(value, int) and not isinstance(value, bool) and value == CURRENT_VERSION


def classify_payload(raw: Any) -> PayloadKind:
    """Classify a parsed JSON value into one of the known payload kinds."""
    if raw is None:
        return PayloadKind.EMPTY
    if isinstance(raw, list):
        return PayloadKind.LEGACY_ARRAY
    if not isinstance(raw, dict):
        return PayloadKind.MALFORMED
    if _is_current_version(raw.get("version")):
        return PayloadKind.CURRENT_VERSIONED
    return PayloadKind.OTHER_VERSIONED


def migrate(raw: Any) -> dict[str, Any]:
    """Bring any parsed payload forward to the current schema version.

    Never raises. Lists are the pre-versioning format and get wrapped.
    Documents at another version only have their version stamped forward;
    all other fields, including unknown ones, are kept as they are.
    """
    kind = classify_payload(raw)

    if kind is PayloadKind.EMPTY:
        return empty_schema()

    if kind is PayloadKind.MALFORMED:
        logger.warning(
            f"Discarding malformed payload of type {type(raw).__name__}"
        )
        return empty_schema()

    if kind is PayloadKind.LEGACY_ARRAY:
        logger.info(f"Wrapping legacy array of {len(raw)} item(s) into version {CURRENT_VERSION}")
        return {"version": CURRENT_VERSION, "resolutions": raw}

    if kind is PayloadKind.CURRENT_VERSIONED:
        return dict(raw)

    # No field-level migrations exist yet; only the version moves forward.
    logger.info(
        f"Migrating payload from version {raw.get('version')!r} to {CURRENT_VERSION}"
    )
    return {**raw, "version": CURRENT_VERSION}
