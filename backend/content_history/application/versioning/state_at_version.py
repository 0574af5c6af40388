# content_history/application/versioning/state_at_version.py
from typing import Dict

from content_history.extensions import db
from content_history.models.content_version import ContentVersion
from content_history.models.content_change import ContentChange
from content_history.models.team_member_change import TeamMemberChange
from content_history.models.content_snapshot import ContentSnapshot
from content_history.domain.exceptions import NotFoundError, ReconstructionError
from content_history.domain.state import ElementChange, replay, team_member_element_id


def get_version(page_name: str, version_number: int) -> ContentVersion:
    version = ContentVersion.query.filter_by(
        page_name=page_name,
        version_number=version_number,
        is_active=True,
    ).first()

    if version is None:
        raise NotFoundError(f"Version {version_number} not found for page {page_name}")

    return version


def replay_state(page_name: str, version_number: int) -> Dict[str, str]:
    """
    Rebuild the state of a page at a version from the change log alone.
    """
    baseline = ContentVersion.query.filter_by(
        page_name=page_name,
        version_number=1,
        is_active=True,
    ).first()

    if baseline is None:
        raise ReconstructionError(
            f"Baseline version 1 is missing for page {page_name}; "
            f"cannot rebuild version {version_number}"
        )

    content_rows = db.session.execute(
        db.select(ContentVersion.version_number, ContentChange)
        .join(ContentChange.version)
        .where(
            ContentVersion.page_name == page_name,
            ContentVersion.version_number <= version_number,
            ContentVersion.is_active.is_(True),
        )
        .order_by(ContentVersion.version_number, ContentChange.element_id)
    ).all()

    team_rows = db.session.execute(
        db.select(ContentVersion.version_number, TeamMemberChange)
        .join(TeamMemberChange.version)
        .where(
            ContentVersion.page_name == page_name,
            ContentVersion.version_number <= version_number,
            ContentVersion.is_active.is_(True),
        )
        .order_by(
            ContentVersion.version_number,
            TeamMemberChange.member_id,
            TeamMemberChange.field_name,
        )
    ).all()

    changes = [
        (
            number,
            ElementChange(
                row.element_id,
                row.change_type,
                row.old_value,
                row.new_value,
                content_kind=row.content_kind,
            ),
        )
        for number, row in content_rows
    ]
    changes.extend(
        (
            number,
            ElementChange(
                team_member_element_id(row.member_id, row.field_name),
                row.change_type,
                row.old_value,
                row.new_value,
            ),
        )
        for number, row in team_rows
    )
    # stable: content before team changes within a version
    changes.sort(key=lambda pair: pair[0])

    return replay(changes)


def get_state_at_version(
    page_name: str,
    version_number: int,
    *,
    fill_cache: bool = True,
) -> Dict[str, str]:
    """
    Content of a page as of a version: cached snapshot when present,
    otherwise replayed from the change log (and cached best-effort).
    """
    get_version(page_name, version_number)

    snapshot = ContentSnapshot.query.filter_by(
        page_name=page_name,
        version_number=version_number,
    ).first()

    if snapshot is not None:
        return dict(snapshot.content or {})

    state = replay_state(page_name, version_number)

    if fill_cache:
        from content_history.application.versioning.snapshots import cache_state
        cache_state(page_name, version_number, state)

    return state
