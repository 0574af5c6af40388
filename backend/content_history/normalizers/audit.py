# content_history/normalizers/audit.py
from __future__ import annotations

from typing import Dict, Any, Optional
from content_history.models.audit_log import AuditLog


def _version_of(payload: Dict[str, Any]) -> Optional[int]:
    # page.restore records the target, everything else the recorded version
    return payload.get("version", payload.get("to_version"))


def normalize_audit_log(log: AuditLog) -> Dict[str, Any]:
    """
    Normalizes an AuditLog entry for the page history audit trail.
    """
    if not log:
        raise ValueError("AuditLog cannot be None")

    payload = log.payload or {}

    return {
        "id": log.id,
        "action": log.action,
        "actor_id": log.actor_id,
        "page_name": log.entity_id if log.entity_type == "page" else None,
        "version": _version_of(payload),
        "details": payload,
        "created_at": log.created_at.isoformat(),
    }
