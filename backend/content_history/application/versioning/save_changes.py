# content_history/application/versioning/save_changes.py
from dataclasses import dataclass, asdict
from typing import Dict, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from content_history.extensions import db
from content_history.models.team_member import TeamMember, TEAM_MEMBER_FIELDS
from content_history.domain.exceptions import (
    CommitFailed,
    ConflictError,
    SaveIncomplete,
    ValidationError,
)
from content_history.domain.state import (
    TEAM_MEMBER_PREFIX,
    PendingEdits,
    diff_states,
    split_changes,
)
from content_history.application.versioning.record_version import record_version
from content_history.application.versioning.state_at_version import get_state_at_version
from content_history.application.versioning.snapshots import snapshot_after_commit
from content_history.utils.live_state import read_live_state, apply_edits
from content_history.utils.transaction import transactional
from content_history.utils.versioning import latest_version_number
from content_history.utils.audit import log_action

BASELINE_DESCRIPTION = "initial state"


@dataclass
class SaveResult:
    page_name: str
    version_number: int
    change_count: int
    created: bool

    def to_dict(self):
        return asdict(self)


def ensure_baseline(page_name: str, *, actor_id: Optional[str] = None) -> Optional[int]:
    """
    Record version 1 from the current live content if the page has no
    versions yet. Returns the new version number, or None if one existed.
    """
    if latest_version_number(page_name) is not None:
        return None

    try:
        number, _ = capture_live_state(
            page_name,
            kind="manual",
            description=BASELINE_DESCRIPTION,
            actor_id=actor_id,
        )
    except ConflictError:
        # another writer recorded the baseline first
        return None
    return number


def capture_live_state(
    page_name: str,
    *,
    kind: str,
    description: Optional[str],
    actor_id: Optional[str] = None,
    major_change: bool = False,
    live_state: Optional[Dict[str, str]] = None,
) -> Tuple[int, bool]:
    """
    Record the current live content as a checkpoint.

    The new version holds the delta between the latest recorded version and
    live content, so restoring it yields exactly the captured state. Returns
    ``(version_number, created)``; when live content already equals the latest
    version nothing is written and that version is returned.
    """
    live = read_live_state(page_name) if live_state is None else live_state
    latest = latest_version_number(page_name)

    if latest is None:
        content, team = split_changes(diff_states({}, live))
        number = record_version(
            page_name=page_name,
            description=BASELINE_DESCRIPTION,
            kind="manual",
            changes=content,
            team_changes=team,
            created_by=actor_id,
            major_change=major_change,
            allow_empty=True,
            parent_version=None,
        )
        return number, True

    recorded = get_state_at_version(page_name, latest, fill_cache=False)
    changes = diff_states(recorded, live)
    if not changes:
        return latest, False

    content, team = split_changes(changes)
    number = record_version(
        page_name=page_name,
        description=description,
        kind=kind,
        changes=content,
        team_changes=team,
        created_by=actor_id,
        major_change=major_change,
        parent_version=latest,
    )
    return number, True


def _validate_edits(page_name: str, edits: PendingEdits):
    # Everything apply_edits could reject is checked before a version is recorded
    if len(edits) == 0:
        raise ValidationError("Nothing to save: no pending edits")

    for element_id in edits.content:
        if not element_id:
            raise ValidationError("Element ids must be non-empty")
        if len(element_id) > 255:
            raise ValidationError(f"Element id {element_id[:40]}... is longer than 255 characters")
        if element_id.startswith(TEAM_MEMBER_PREFIX):
            raise ValidationError(
                f"Element id {element_id} is reserved; edit team members via team_members"
            )

    for member_id, fields in edits.team_members.items():
        if not member_id:
            raise ValidationError("Team member ids must be non-empty")
        if "." in member_id:
            raise ValidationError(f"Team member id {member_id} must not contain '.'")
        if len(member_id) > 36:
            raise ValidationError(f"Team member id {member_id} is longer than 36 characters")

        member = db.session.get(TeamMember, member_id)
        if member is not None and member.page_name != page_name:
            raise ValidationError(
                f"Team member {member_id} belongs to page {member.page_name}"
            )

        for field_name, value in (fields or {}).items():
            if field_name not in TEAM_MEMBER_FIELDS:
                raise ValidationError(f"Unknown team member field: {field_name}")
            if field_name == "sort_order" and value is not None:
                try:
                    int(value)
                except (TypeError, ValueError) as exc:
                    raise ValidationError("sort_order must be an integer") from exc


def save_changes(
    *,
    page_name: str,
    edits: PendingEdits,
    description: Optional[str] = None,
    actor_id: Optional[str] = None,
    major_change: bool = False,
    kind: str = "manual",
) -> SaveResult:
    """
    Capture-then-apply save.

    Responsibilities:
    - record the pre-edit live content as a new version (baseline on first save)
    - apply pending edits to live content in a second transaction
    - best-effort snapshot and retention after commit

    Raises SaveIncomplete when the version was recorded but the edits could
    not be applied; the caller retries the apply only.
    """
    if not page_name:
        raise ValidationError("page_name is required")

    _validate_edits(page_name, edits)

    attempts = max(1, current_app.config.get("VERSION_COMMIT_RETRIES", 3))
    last_error = None

    for attempt in range(1, attempts + 1):
        live = read_live_state(page_name)

        effective = {
            element_id: value
            for element_id, value in edits.to_flat(live).items()
            if live.get(element_id) != value
        }
        if not effective:
            raise ValidationError("Nothing to save: edits match the current content")

        try:
            version_number, created = capture_live_state(
                page_name,
                kind=kind,
                description=description or f"{len(effective)} changes",
                actor_id=actor_id,
                major_change=major_change,
                live_state=live,
            )
            break
        except ConflictError as exc:
            last_error = exc
            current_app.logger.warning(
                "Concurrent save on %s (attempt %s/%s): %s",
                page_name, attempt, attempts, exc,
            )
    else:
        raise CommitFailed(
            f"Could not record a version for {page_name} after {attempts} attempts"
        ) from last_error

    try:
        with transactional():
            apply_edits(page_name, effective)
            log_action(
                action="page.save",
                entity_type="page",
                entity_id=page_name,
                actor_id=actor_id,
                payload={
                    "version": version_number,
                    "change_count": len(effective),
                    "created": created,
                },
            )
    except Exception as exc:
        current_app.logger.error(
            "Version %s of %s recorded but edits were not applied: %s",
            version_number, page_name, exc,
        )
        raise SaveIncomplete(
            f"Version {version_number} was saved but applying {len(effective)} "
            f"edits to {page_name} failed; retry applying the edits",
            version_number=version_number,
        ) from exc

    if created:
        snapshot_after_commit(page_name, version_number, major_change=major_change)
        _apply_retention(page_name, actor_id)

    current_app.logger.info(
        "Saved %s edits to %s (version %s%s)",
        len(effective), page_name, version_number, "" if created else ", unchanged",
    )

    return SaveResult(
        page_name=page_name,
        version_number=version_number,
        change_count=len(effective),
        created=created,
    )


def _apply_retention(page_name, actor_id):
    keep = current_app.config.get("VERSION_RETENTION_COUNT") or 0
    if keep <= 0:
        return

    from content_history.application.versioning.prune_versions import prune_versions

    try:
        prune_versions(page_name, keep, actor_id=actor_id)
    except SQLAlchemyError as exc:
        current_app.logger.warning("Automatic retention skipped for %s: %s", page_name, exc)
