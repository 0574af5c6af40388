# content_history/normalizers/version.py
from __future__ import annotations

from typing import Dict, Any

from content_history.application.versioning.list_versions import VersionSummary


def normalize_version_summary(summary: VersionSummary) -> Dict[str, Any]:
    """
    Normalizes a VersionSummary into API-safe JSON for the history panel.
    """
    if not summary:
        raise ValueError("VersionSummary cannot be None")

    return {
        "version_number": summary.version_number,
        "description": summary.description,
        "kind": summary.kind,
        "created_at": summary.created_at.isoformat() if summary.created_at else None,
        "created_by": summary.created_by,
        "parent_version": summary.parent_version,
        "change_count": summary.change_count,
        "has_snapshot": summary.has_snapshot,
        "is_checkpoint": summary.is_checkpoint,
    }


def normalize_state(page_name: str, content: Dict[str, str], version_number=None) -> Dict[str, Any]:
    return {
        "page_name": page_name,
        "version_number": version_number,
        "element_count": len(content),
        "content": dict(sorted(content.items())),
    }
