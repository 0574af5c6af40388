# content_history/api/v1/versions.py
from flask import g, request, jsonify
from flask_jwt_extended import jwt_required
from dateutil.parser import parse
from content_history.utils.decorators import roles_required, actor_from_token
from content_history.utils.optimistic_lock import enforce_optimistic_lock
from content_history.utils.versioning import latest_version_number
from content_history.domain.exceptions import ValidationError
from content_history.domain.state import PendingEdits
from content_history.application.versioning.save_changes import save_changes
from content_history.application.versioning.list_versions import list_versions, version_stats
from content_history.application.versioning.state_at_version import get_state_at_version
from content_history.application.versioning.restore_version import restore_to_version
from content_history.application.versioning.snapshots import create_snapshot, mark_checkpoint
from content_history.application.versioning.prune_versions import prune_versions, clear_history
from content_history.normalizers.version import normalize_version_summary, normalize_state
from content_history.normalizers.pagination import normalize_page_of
from . import v1_bp


def _positive_int(value, name, default):
    if value is None:
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")
    if number < 1:
        raise ValidationError(f"{name} must be at least 1")
    return number

# ------------------------
# Save
# ------------------------

@v1_bp.route("/pages/<page_name>/save", methods=["POST"])
@jwt_required()
@roles_required("admin", "editor")
@actor_from_token
def save_page(page_name):
    data = request.get_json(silent=True) or {}

    # -----------------------
    # Optimistic Locking Check
    # -----------------------
    enforce_optimistic_lock(latest_version_number(page_name))

    result = save_changes(
        page_name=page_name,
        edits=PendingEdits.from_payload(data),
        description=data.get("description"),
        actor_id=g.current_actor_id,
        major_change=bool(data.get("major_change", False)),
    )

    response = jsonify(result.to_dict())
    response.headers["ETag"] = f'"{latest_version_number(page_name) or 0}"'
    return response, 201 if result.created else 200

# ------------------------
# History
# ------------------------

@v1_bp.route("/pages/<page_name>/versions", methods=["GET"])
@jwt_required()
@roles_required("admin", "editor")
def list_page_versions(page_name):
    page = _positive_int(request.args.get("page"), "page", 1)
    per_page = min(_positive_int(request.args.get("per_page"), "per_page", 20), 100)

    since = request.args.get("since")
    if since:
        try:
            since = parse(since)
        except (ValueError, OverflowError):
            raise ValidationError("Invalid since timestamp")

    summaries = list_versions(page_name, since=since or None)

    return jsonify(
        normalize_page_of(summaries, normalize_version_summary, page=page, per_page=per_page)
    ), 200


@v1_bp.route("/pages/<page_name>/versions/stats", methods=["GET"])
@jwt_required()
@roles_required("admin")
def page_version_stats(page_name):
    return jsonify(version_stats(page_name)), 200


@v1_bp.route("/pages/<page_name>/versions/<int:version_number>", methods=["GET"])
@jwt_required()
@roles_required("admin", "editor")
def get_page_version(page_name, version_number):
    state = get_state_at_version(page_name, version_number)
    return jsonify(normalize_state(page_name, state, version_number=version_number)), 200

# ------------------------
# Restore
# ------------------------

@v1_bp.route("/pages/<page_name>/versions/<int:version_number>/restore", methods=["POST"])
@jwt_required()
@roles_required("admin")
@actor_from_token
def restore_page_version(page_name, version_number):
    data = request.get_json(silent=True) or {}

    result = restore_to_version(
        page_name=page_name,
        version_number=version_number,
        record_as_new_version=bool(data.get("record_as_new_version", False)),
        actor_id=g.current_actor_id,
    )

    return jsonify({
        "message": f"Restored {page_name} to version {version_number}",
        **result.to_dict()
    }), 200

# ------------------------
# Snapshots & retention
# ------------------------

@v1_bp.route("/pages/<page_name>/versions/<int:version_number>/snapshot", methods=["POST"])
@jwt_required()
@roles_required("admin")
@actor_from_token
def snapshot_page_version(page_name, version_number):
    data = request.get_json(silent=True) or {}

    if data.get("checkpoint"):
        written = mark_checkpoint(page_name, version_number, actor_id=g.current_actor_id)
    else:
        written = create_snapshot(page_name, version_number)

    return jsonify({
        "page_name": page_name,
        "version_number": version_number,
        "written": written,
        "checkpoint": bool(data.get("checkpoint")),
    }), 200


@v1_bp.route("/pages/<page_name>/versions/prune", methods=["POST"])
@jwt_required()
@roles_required("admin")
@actor_from_token
def prune_page_versions(page_name):
    data = request.get_json(silent=True) or {}

    keep_count = data.get("keep_count")
    if not isinstance(keep_count, int) or isinstance(keep_count, bool):
        raise ValidationError("keep_count must be an integer")

    deleted = prune_versions(page_name, keep_count, actor_id=g.current_actor_id)

    return jsonify({
        "page_name": page_name,
        "deleted_count": deleted
    }), 200


@v1_bp.route("/pages/<page_name>/versions", methods=["DELETE"])
@jwt_required()
@roles_required("admin")
@actor_from_token
def clear_page_versions(page_name):
    deleted = clear_history(page_name, actor_id=g.current_actor_id)

    return jsonify({
        "page_name": page_name,
        "deleted_count": deleted
    }), 200
