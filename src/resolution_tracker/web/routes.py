"""HTTP route handlers for the Resolution Tracker web interface."""

import logging

from flask import Blueprint, current_app, jsonify, request

from resolution_tracker import tracker
from resolution_tracker.config import config_exists
from resolution_tracker.exceptions import (
    InvalidJournalEntryError,
    InvalidResolutionError,
    MilestoneNotFoundError,
    ResolutionNotFoundError,
    StorageWriteError,
)
from resolution_tracker.models import (
    Milestone,
    Resolution,
    completion_counts,
    completion_status,
    new_milestone,
)
from resolution_tracker.storage import (
    ResolutionStorage,
    milestone_from_dict,
    parse_target_date,
    resolution_to_dict,
)

logger = logging.getLogger(__name__)

bp = Blueprint("main", __name__)


class BadPayloadError(ValueError):
    """Request body could not be interpreted."""

    pass


def _storage() -> ResolutionStorage:
    return current_app.extensions["resolution_storage"]


def _payload() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise BadPayloadError("Request body must be a JSON object.")
    return data


def _text(data: dict, key: str) -> str:
    value = data.get(key, "")
    if not isinstance(value, str):
        raise BadPayloadError(f"'{key}' must be a string.")
    return value


def _milestones_from_payload(items) -> list[Milestone]:
    """Parse milestones from a request body.

    Items with an id keep their stored state; items without one are new.
    """
    if items is None:
        return []
    if not isinstance(items, list):
        raise BadPayloadError("'milestones' must be a list.")

    milestones: list[Milestone] = []
    for item in items:
        if not isinstance(item, dict):
            raise BadPayloadError("Each milestone must be an object.")
        try:
            if item.get("id"):
                milestones.append(milestone_from_dict(item))
            else:
                milestones.append(new_milestone(
                    _text(item, "title"), parse_target_date(item.get("targetDate")),
                ))
        except (KeyError, ValueError) as e:
            raise BadPayloadError(f"Invalid milestone: {e}") from e
    return milestones


def resolution_payload(resolution: Resolution) -> dict:
    """Serialize a resolution with its derived completion fields."""
    done, total = completion_counts(resolution)
    data = resolution_to_dict(resolution)
    data["status"] = completion_status(resolution).value
    data["completedMilestones"] = done
    data["totalMilestones"] = total
    return data


@bp.errorhandler(ResolutionNotFoundError)
@bp.errorhandler(MilestoneNotFoundError)
def handle_not_found(e):
    return jsonify({"error": str(e)}), 404


@bp.errorhandler(BadPayloadError)
@bp.errorhandler(InvalidResolutionError)
@bp.errorhandler(InvalidJournalEntryError)
def handle_bad_request(e):
    return jsonify({"error": str(e)}), 400


@bp.errorhandler(StorageWriteError)
def handle_write_failure(e):
    logger.error(f"Write failed: {e}")
    return jsonify({"error": f"Your change was not saved. {e}"}), 500


@bp.route("/health")
def health():
    """Health check endpoint."""
    return jsonify({
        "status": "ok",
        "config_loaded": config_exists(),
        "data_dir": current_app.config.get("DATA_DIR"),
    })


@bp.route("/api/resolutions")
async def list_resolutions():
    """Return all resolutions with their completion status."""
    resolutions = await tracker.list_resolutions(_storage())
    return jsonify([resolution_payload(r) for r in resolutions])


@bp.route("/api/resolutions", methods=["POST"])
async def create_resolution():
    """Create a resolution from title, description and milestones."""
    data = _payload()
    resolution = await tracker.create_resolution(
        _storage(),
        _text(data, "title"),
        _text(data, "description"),
        _milestones_from_payload(data.get("milestones")),
    )
    return jsonify(resolution_payload(resolution)), 201


@bp.route("/api/resolutions/<resolution_id>")
async def get_resolution(resolution_id: str):
    """Return a single resolution."""
    resolution = await tracker.get_resolution(_storage(), resolution_id)
    return jsonify(resolution_payload(resolution))


@bp.route("/api/resolutions/<resolution_id>", methods=["PUT"])
async def update_resolution(resolution_id: str):
    """Edit title, description and milestones of a resolution."""
    data = _payload()
    outcome = await tracker.update_resolution(
        _storage(),
        resolution_id,
        _text(data, "title"),
        _text(data, "description"),
        _milestones_from_payload(data.get("milestones")),
    )
    return jsonify({
        "resolution": resolution_payload(outcome.resolution),
        "justCompleted": outcome.just_completed,
    })


@bp.route("/api/resolutions/<resolution_id>", methods=["DELETE"])
async def delete_resolution(resolution_id: str):
    """Delete a resolution and everything it owns."""
    await tracker.delete_resolution(_storage(), resolution_id)
    return "", 204


@bp.route(
    "/api/resolutions/<resolution_id>/milestones/<milestone_id>/toggle",
    methods=["POST"],
)
async def toggle_milestone(resolution_id: str, milestone_id: str):
    """Flip a milestone between done and not done."""
    outcome = await tracker.toggle_milestone(_storage(), resolution_id, milestone_id)
    return jsonify({
        "resolution": resolution_payload(outcome.resolution),
        "justCompleted": outcome.just_completed,
    })


@bp.route("/api/resolutions/<resolution_id>/whats-next", methods=["PUT"])
async def set_whats_next(resolution_id: str):
    """Update the "what's next" note."""
    data = _payload()
    outcome = await tracker.set_whats_next(
        _storage(), resolution_id, _text(data, "whatsNext")
    )
    return jsonify({
        "resolution": resolution_payload(outcome.resolution),
        "justCompleted": outcome.just_completed,
    })


@bp.route("/api/resolutions/<resolution_id>/journal", methods=["POST"])
async def add_journal_entry(resolution_id: str):
    """Add a journal entry to the top of a resolution's journal."""
    data = _payload()
    outcome = await tracker.add_journal_entry(
        _storage(), resolution_id, _text(data, "text")
    )
    return jsonify({
        "resolution": resolution_payload(outcome.resolution),
        "justCompleted": outcome.just_completed,
    }), 201
