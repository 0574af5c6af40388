from typing import Optional

from flask import g
from content_history.extensions import db
from content_history.models.audit_log import AuditLog


def log_action(
    *,
    action: str,
    entity_type: str,
    entity_id: Optional[str],
    actor_id: Optional[str] = None,
    payload: dict | None = None
):
    """
    Adds an audit row to the current session; the caller's transaction
    commits it.
    """
    log = AuditLog()

    log.actor_id = actor_id or g.get("current_actor_id")
    log.action = action
    log.entity_type = entity_type
    log.entity_id = entity_id or "*"
    log.payload = payload or {}

    db.session.add(log)
