# content_history/application/versioning/record_version.py
from typing import Iterable, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from content_history.extensions import db
from content_history.models.content_version import ContentVersion, VERSION_KINDS
from content_history.models.content_change import ContentChange
from content_history.models.team_member_change import TeamMemberChange
from content_history.domain.exceptions import CommitFailed, ConflictError, ValidationError
from content_history.domain.invariants.change import assert_change, assert_change_set
from content_history.domain.state import ElementChange, parse_team_member_element_id
from content_history.utils.transaction import transactional
from content_history.utils.versioning import latest_version_number, next_version
from content_history.utils.audit import log_action

# Passed as parent_version when any parent is acceptable
UNPINNED = object()


def record_version(
    *,
    page_name: str,
    description: Optional[str],
    kind: str = "manual",
    changes: Iterable[ElementChange] = (),
    team_changes: Iterable[ElementChange] = (),
    created_by: Optional[str] = None,
    major_change: bool = False,
    allow_empty: bool = False,
    parent_version=UNPINNED,
) -> int:
    """
    Insert a Version and its Changes atomically and return its number.

    Responsibilities:
    - version number allocation (max + 1 per page)
    - change set validation
    - bounded retry when another writer claims the same number

    With ``parent_version`` pinned, the change set is only valid on top of that
    version, so a moved page raises ConflictError instead of being retried.
    """
    if not page_name:
        raise ValidationError("page_name is required")

    if kind not in VERSION_KINDS:
        raise ValidationError(f"Invalid version kind: {kind}")

    changes = list(changes)
    team_changes = list(team_changes)

    for change in team_changes:
        if parse_team_member_element_id(change.element_id) is None:
            raise ValidationError(
                f"Not a team member element id: {change.element_id}"
            )

    if allow_empty:
        for change in changes + team_changes:
            assert_change(
                change.change_type,
                change.old_value,
                change.new_value,
                element_id=change.element_id,
            )
    else:
        assert_change_set(changes + team_changes)

    pinned = parent_version is not UNPINNED
    attempts = max(1, current_app.config.get("VERSION_COMMIT_RETRIES", 3))
    last_error = None

    for attempt in range(1, attempts + 1):
        try:
            return _insert_version(
                page_name=page_name,
                description=description,
                kind=kind,
                changes=changes,
                team_changes=team_changes,
                created_by=created_by,
                major_change=major_change,
                baseline=allow_empty,
                pinned=pinned,
                parent_version=parent_version,
            )
        except ConflictError as exc:
            if pinned:
                raise
            last_error = exc
            current_app.logger.warning(
                "Version number conflict on %s (attempt %s/%s): %s",
                page_name, attempt, attempts, exc,
            )

    raise CommitFailed(
        f"Could not allocate a version number for {page_name} after {attempts} attempts"
    ) from last_error


def _insert_version(
    *,
    page_name,
    description,
    kind,
    changes,
    team_changes,
    created_by,
    major_change,
    baseline,
    pinned,
    parent_version,
):
    latest = latest_version_number(page_name)
    if pinned and latest != parent_version:
        raise ConflictError(
            f"Page {page_name} moved to version {latest}, expected {parent_version}"
        )

    version_number = next_version(page_name)

    try:
        with transactional():
            version = ContentVersion()
            version.page_name = page_name
            version.version_number = version_number
            version.description = description
            version.kind = kind
            version.created_by = created_by
            version.parent_version = latest
            version.is_active = True
            version.change_summary = {
                "change_count": len(changes) + len(team_changes),
                "content_changes": len(changes),
                "team_changes": len(team_changes),
                "major_change": bool(major_change),
                "baseline": bool(baseline),
            }

            for change in changes:
                version.changes.append(_content_row(change))

            for change in team_changes:
                version.team_changes.append(_team_row(change))

            db.session.add(version)
            db.session.flush()

            log_action(
                action="version.create",
                entity_type="page",
                entity_id=page_name,
                actor_id=created_by,
                payload={
                    "version": version_number,
                    "kind": kind,
                    "change_count": len(changes) + len(team_changes),
                },
            )
    except IntegrityError as exc:
        raise ConflictError(
            f"Version {version_number} of {page_name} was claimed by another writer"
        ) from exc

    current_app.logger.info(
        "Recorded version %s of %s (%s, %s changes)",
        version_number, page_name, kind, len(changes) + len(team_changes),
    )
    return version_number


def _content_row(change: ElementChange) -> ContentChange:
    row = ContentChange()
    row.element_id = change.element_id
    row.change_type = change.change_type
    row.old_value = change.old_value
    row.new_value = change.new_value
    row.content_kind = change.content_kind or "text"
    row.change_metadata = dict(change.metadata or {})
    return row


def _team_row(change: ElementChange) -> TeamMemberChange:
    member_id, field_name = parse_team_member_element_id(change.element_id)
    row = TeamMemberChange()
    row.member_id = member_id
    row.field_name = field_name
    row.change_type = change.change_type
    row.old_value = change.old_value
    row.new_value = change.new_value
    return row
