# content_history/application/versioning/list_versions.py
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func

from content_history.extensions import db
from content_history.models.content_version import ContentVersion
from content_history.models.content_change import ContentChange
from content_history.models.content_snapshot import ContentSnapshot
from content_history.models.team_member_change import TeamMemberChange


@dataclass
class VersionSummary:
    version_number: int
    description: Optional[str]
    kind: str
    created_at: datetime
    created_by: Optional[str]
    parent_version: Optional[int]
    change_count: int
    has_snapshot: bool
    is_checkpoint: bool


def _count_by_version(model, page_name):
    rows = db.session.execute(
        db.select(model.version_id, func.count(model.id))
        .join(ContentVersion, ContentVersion.id == model.version_id)
        .where(ContentVersion.page_name == page_name)
        .group_by(model.version_id)
    ).all()
    return {version_id: count for version_id, count in rows}


def list_versions(page_name: str, *, since: Optional[datetime] = None) -> List[VersionSummary]:
    """Active versions of a page, newest first."""
    query = ContentVersion.query.filter_by(page_name=page_name, is_active=True)
    if since is not None:
        query = query.filter(ContentVersion.created_at >= since)

    versions = query.order_by(ContentVersion.version_number.desc()).all()

    content_counts = _count_by_version(ContentChange, page_name)
    team_counts = _count_by_version(TeamMemberChange, page_name)
    snapshots = dict(
        db.session.execute(
            db.select(ContentSnapshot.version_number, ContentSnapshot.is_checkpoint)
            .where(ContentSnapshot.page_name == page_name)
        ).all()
    )

    return [
        VersionSummary(
            version_number=v.version_number,
            description=v.description,
            kind=v.kind,
            created_at=v.created_at,
            created_by=v.created_by,
            parent_version=v.parent_version,
            change_count=content_counts.get(v.id, 0) + team_counts.get(v.id, 0),
            has_snapshot=v.version_number in snapshots,
            is_checkpoint=bool(snapshots.get(v.version_number, False)),
        )
        for v in versions
    ]


def version_stats(page_name: Optional[str] = None) -> dict:
    """
    Totals for monitoring: versions, changes, cached snapshots.
    Scoped to one page when ``page_name`` is given.
    """
    versions = db.select(func.count(ContentVersion.id)).where(ContentVersion.is_active.is_(True))
    content = db.select(func.count(ContentChange.id)).join(ContentChange.version)
    team = db.select(func.count(TeamMemberChange.id)).join(TeamMemberChange.version)
    snapshots = db.select(func.count(ContentSnapshot.id))
    checkpoints = db.select(func.count(ContentSnapshot.id)).where(ContentSnapshot.is_checkpoint.is_(True))
    latest = db.select(func.max(ContentVersion.version_number))

    if page_name is not None:
        versions = versions.where(ContentVersion.page_name == page_name)
        content = content.where(ContentVersion.page_name == page_name)
        team = team.where(ContentVersion.page_name == page_name)
        snapshots = snapshots.where(ContentSnapshot.page_name == page_name)
        checkpoints = checkpoints.where(ContentSnapshot.page_name == page_name)
        latest = latest.where(ContentVersion.page_name == page_name)

    total_versions = db.session.scalar(versions) or 0
    total_changes = (db.session.scalar(content) or 0) + (db.session.scalar(team) or 0)

    return {
        "page_name": page_name,
        "total_versions": total_versions,
        "total_changes": total_changes,
        "cached_snapshots": db.session.scalar(snapshots) or 0,
        "checkpoints": db.session.scalar(checkpoints) or 0,
        "latest_version": db.session.scalar(latest) if page_name is not None else None,
        "average_changes_per_version": (
            round(total_changes / total_versions, 2) if total_versions else 0.0
        ),
    }
