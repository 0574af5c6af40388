from datetime import datetime

from flask import request, jsonify
from flask_jwt_extended import jwt_required
from sqlalchemy import or_, and_
from werkzeug.exceptions import BadRequest

from content_history.utils.decorators import roles_required
from content_history.models.audit_log import AuditLog
from content_history.normalizers.audit import normalize_audit_log
from . import v1_bp


def _encode_cursor(entry):
    return f"{entry.created_at.isoformat()}|{entry.id}"


def _decode_cursor(cursor):
    ts_str, sep, last_id = cursor.partition("|")
    if not sep or not last_id:
        raise BadRequest("Invalid cursor format")
    try:
        return datetime.fromisoformat(ts_str), last_id
    except ValueError as exc:
        raise BadRequest("Invalid cursor format") from exc


@v1_bp.route("/pages/<page_name>/audit", methods=["GET"])
@jwt_required()
@roles_required("admin")
def list_page_audit_logs(page_name):
    """Who saved, restored or pruned a page, newest first."""
    try:
        limit = min(int(request.args.get("limit", 20)), 100)
    except ValueError:
        raise BadRequest("Invalid limit")
    if limit < 1:
        raise BadRequest("limit must be at least 1")

    query = AuditLog.query.filter_by(entity_type="page", entity_id=page_name)

    if action := request.args.get("action"):
        query = query.filter(AuditLog.action == action)

    if actor_id := request.args.get("actor_id"):
        query = query.filter(AuditLog.actor_id == actor_id)

    # Older than the last entry of the previous page
    if cursor := request.args.get("cursor"):
        cursor_ts, last_id = _decode_cursor(cursor)
        query = query.filter(
            or_(
                AuditLog.created_at < cursor_ts,
                and_(AuditLog.created_at == cursor_ts, AuditLog.id < last_id),
            )
        )

    entries = (
        query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit + 1)
        .all()
    )

    has_more = len(entries) > limit
    entries = entries[:limit]

    return jsonify({
        "page_name": page_name,
        "data": [normalize_audit_log(entry) for entry in entries],
        "meta": {
            "next_cursor": _encode_cursor(entries[-1]) if has_more else None,
            "has_more": has_more,
        }
    }), 200
