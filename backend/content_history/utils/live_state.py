from typing import Dict, Optional

from content_history.extensions import db
from content_history.models.team_member import TeamMember, TEAM_MEMBER_FIELDS
from content_history.models.website_content import WebsiteContent
from content_history.domain.exceptions import ValidationError
from content_history.domain.state import (
    split_state,
    team_member_element_id,
    parse_team_member_element_id,
)


def read_live_state(page_name: str) -> Dict[str, str]:
    """
    Current (HEAD) content of a page as a flat ``element_id -> value`` map.
    """
    state: Dict[str, str] = {}

    rows = (
        WebsiteContent.query
        .filter_by(page_name=page_name, is_active=True)
        .order_by(WebsiteContent.element_id)
        .all()
    )
    for row in rows:
        if row.content_text is not None:
            state[row.element_id] = row.content_text

    members = (
        TeamMember.query
        .filter_by(page_name=page_name, deleted_at=None)
        .order_by(TeamMember.sort_order, TeamMember.id)
        .all()
    )
    for member in members:
        for field, value in member.field_values().items():
            state[team_member_element_id(member.id, field)] = value

    return state


def _upsert_content(page_name, element_id, value):
    row = WebsiteContent.query.filter_by(
        page_name=page_name,
        element_id=element_id,
    ).first()

    if value is None:
        if row is not None:
            row.is_active = False
        return

    if row is None:
        row = WebsiteContent()
        row.page_name = page_name
        row.element_id = element_id
        db.session.add(row)

    row.content_text = value
    row.is_active = True


def _load_member(page_name, member_id, create):
    member = db.session.get(TeamMember, member_id)
    if member is None and create:
        member = TeamMember()
        member.id = member_id
        member.page_name = page_name
        db.session.add(member)
    elif member is not None and member.page_name != page_name:
        raise ValidationError(
            f"Team member {member_id} belongs to page {member.page_name}"
        )
    return member


def apply_edits(page_name: str, edits: Dict[str, Optional[str]]) -> int:
    """
    Writes flattened edits to live content. Does not commit.
    """
    member_fields: Dict[str, Dict[str, Optional[str]]] = {}

    for element_id, value in edits.items():
        parsed = parse_team_member_element_id(element_id)
        if parsed is None:
            _upsert_content(page_name, element_id, value)
        else:
            member_id, field = parsed
            if field not in TEAM_MEMBER_FIELDS:
                raise ValidationError(f"Unknown team member field: {field}")
            member_fields.setdefault(member_id, {})[field] = value

    for member_id, fields in member_fields.items():
        creating = any(value is not None for value in fields.values())
        member = _load_member(page_name, member_id, create=creating)
        if member is None:
            continue
        if creating:
            member.restore()
        for field, value in fields.items():
            member.set_field(field, value)
        if not member.field_values():
            member.soft_delete()

    db.session.flush()
    return len(edits)


def overwrite_live_state(page_name: str, state: Dict[str, str]) -> int:
    """
    Replaces live content with ``state``: elements and members missing from it
    are deactivated. Does not commit. Returns the number of elements written.
    """
    content, members = split_state(state)

    rows = WebsiteContent.query.filter_by(page_name=page_name).all()
    for row in rows:
        if row.element_id not in content:
            row.is_active = False
    for element_id, value in content.items():
        _upsert_content(page_name, element_id, value)

    live_members = TeamMember.query.filter_by(page_name=page_name).all()
    for member in live_members:
        if member.id not in members:
            member.soft_delete()

    for member_id, fields in members.items():
        member = _load_member(page_name, member_id, create=True)
        member.restore()
        for field in TEAM_MEMBER_FIELDS:
            member.set_field(field, fields.get(field))

    db.session.flush()
    return len(state)
