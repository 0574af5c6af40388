# content_history/application/versioning/prune_versions.py
from typing import Dict, List, Optional

from flask import current_app

from content_history.extensions import db
from content_history.models.content_version import ContentVersion
from content_history.models.content_change import ContentChange
from content_history.models.content_snapshot import ContentSnapshot
from content_history.models.team_member_change import TeamMemberChange
from content_history.domain.exceptions import ValidationError
from content_history.domain.state import (
    ElementChange,
    parse_team_member_element_id,
    squash_changes,
    team_member_element_id,
)
from content_history.utils.transaction import transactional
from content_history.utils.audit import log_action


def prune_versions(page_name: str, keep_count: int, *, actor_id: Optional[str] = None) -> int:
    """
    Delete versions older than the most recent ``keep_count``.

    Version 1, the latest version and checkpointed versions always survive,
    so version numbers are never handed out twice. The net effect of
    every pruned run is folded into the next surviving version, so replaying
    any surviving version still yields the same content.
    """
    if keep_count is None or keep_count < 0:
        raise ValidationError("keep_count must be zero or a positive integer")

    versions: List[ContentVersion] = (
        ContentVersion.query
        .filter_by(page_name=page_name, is_active=True)
        .order_by(ContentVersion.version_number.asc())
        .all()
    )

    recent = {v.version_number for v in versions[-max(keep_count, 1):]}
    checkpoints = set(
        db.session.scalars(
            db.select(ContentSnapshot.version_number)
            .where(
                ContentSnapshot.page_name == page_name,
                ContentSnapshot.is_checkpoint.is_(True),
            )
        )
    )

    doomed = [
        v for v in versions
        if v.version_number != 1
        and v.version_number not in recent
        and v.version_number not in checkpoints
    ]
    doomed_numbers = {v.version_number for v in doomed}

    with transactional():
        if doomed:
            _fold_pruned(versions, doomed_numbers)
            for version in doomed:
                db.session.delete(version)
            db.session.flush()

        surviving = [v.version_number for v in versions if v.version_number not in doomed_numbers]
        orphans = (
            ContentSnapshot.query
            .filter(
                ContentSnapshot.page_name == page_name,
                ContentSnapshot.is_checkpoint.is_(False),
                ContentSnapshot.version_number.notin_(surviving),
            )
            .delete(synchronize_session=False)
        )

        if doomed or orphans:
            log_action(
                action="version.prune",
                entity_type="page",
                entity_id=page_name,
                actor_id=actor_id,
                payload={
                    "keep_count": keep_count,
                    "deleted_versions": sorted(doomed_numbers),
                    "deleted_snapshots": orphans,
                },
            )

    if doomed:
        current_app.logger.info(
            "Pruned %s versions of %s (kept %s)", len(doomed), page_name, len(surviving)
        )

    return len(doomed)


def clear_history(page_name: str, *, actor_id: Optional[str] = None) -> int:
    """Drop every version except the baseline, the latest and checkpoints."""
    return prune_versions(page_name, 0, actor_id=actor_id)


def _changes_of(version: ContentVersion) -> List[ElementChange]:
    changes = [
        ElementChange(c.element_id, c.change_type, c.old_value, c.new_value, content_kind=c.content_kind)
        for c in version.changes
    ]
    changes.extend(
        ElementChange(
            team_member_element_id(c.member_id, c.field_name),
            c.change_type,
            c.old_value,
            c.new_value,
        )
        for c in version.team_changes
    )
    return changes


def _fold_pruned(versions: List[ContentVersion], doomed_numbers: set) -> None:
    pending: Dict[str, List[ElementChange]] = {}
    pending_from: List[int] = []

    for version in versions:
        if version.version_number in doomed_numbers:
            for change in _changes_of(version):
                pending.setdefault(change.element_id, []).append(change)
            pending_from.append(version.version_number)
            continue

        if pending_from:
            _absorb(version, pending, pending_from)
            pending = {}
            pending_from = []


def _absorb(version: ContentVersion, pending: Dict[str, List[ElementChange]], folded_from: List[int]) -> None:
    content_rows = {c.element_id: c for c in version.changes}
    team_rows = {
        team_member_element_id(c.member_id, c.field_name): c
        for c in version.team_changes
    }

    for element_id, chain in pending.items():
        row = content_rows.get(element_id) or team_rows.get(element_id)

        if row is not None:
            chain = chain + [
                ElementChange(element_id, row.change_type, row.old_value, row.new_value)
            ]

        net = squash_changes(chain)

        if row is not None:
            if net is None:
                if element_id in content_rows:
                    version.changes.remove(row)
                else:
                    version.team_changes.remove(row)
                continue
            row.change_type = net.change_type
            row.old_value = net.old_value
            if element_id in content_rows:
                row.change_metadata = {**(row.change_metadata or {}), "folded_from": list(folded_from)}
            continue

        if net is None:
            continue

        parsed = parse_team_member_element_id(element_id)
        if parsed is None:
            new_row = ContentChange()
            new_row.element_id = element_id
            new_row.content_kind = net.content_kind or "text"
            new_row.change_metadata = {"folded_from": list(folded_from)}
            version.changes.append(new_row)
        else:
            new_row = TeamMemberChange()
            new_row.member_id, new_row.field_name = parsed
            version.team_changes.append(new_row)

        new_row.change_type = net.change_type
        new_row.old_value = net.old_value
        new_row.new_value = net.new_value

    summary = dict(version.change_summary or {})
    summary["folded_from"] = sorted(set(summary.get("folded_from", [])) | set(folded_from))
    summary["change_count"] = len(version.changes) + len(version.team_changes)
    version.change_summary = summary
