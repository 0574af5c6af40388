"""
Pure state helpers for the version control engine.

Page state is a flat map ``element_id -> value``. Team member fields live in
the same map under ``team_member:<member_id>.<field_name>`` so that content and
record changes replay through one code path.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from content_history.domain.exceptions import ReconstructionError, ValidationError
from content_history.domain.invariants.change import assert_change

TEAM_MEMBER_PREFIX = "team_member:"


@dataclass(frozen=True)
class ElementChange:
    element_id: str
    change_type: str
    old_value: Optional[str]
    new_value: Optional[str]
    content_kind: str = "text"
    metadata: dict = field(default_factory=dict)


@dataclass
class PendingEdits:
    """
    Edits collected by the editor, not yet applied to live content.

    ``content`` maps element ids to their new value (None removes the element).
    ``team_members`` maps member ids to ``{field: value}`` (None removes the
    field) or to None to remove the whole member.
    """
    content: Dict[str, Optional[str]] = field(default_factory=dict)
    team_members: Dict[str, Optional[Dict[str, Optional[str]]]] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict) -> "PendingEdits":
        content = payload.get("content") or {}
        team_members = payload.get("team_members") or {}

        if not isinstance(content, dict) or not isinstance(team_members, dict):
            raise ValidationError("content and team_members must be objects")

        for member_id, fields in team_members.items():
            if fields is not None and not isinstance(fields, dict):
                raise ValidationError(
                    f"Team member {member_id} edits must be an object or null"
                )

        return cls(content=dict(content), team_members=dict(team_members))

    def __len__(self):
        count = len(self.content)
        for fields in self.team_members.values():
            count += 1 if fields is None else len(fields)
        return count

    def to_flat(self, live_state: Dict[str, str]) -> Dict[str, Optional[str]]:
        """
        Flatten into ``element_id -> value``; removing a member expands to one
        removal per field it currently has in ``live_state``.
        """
        flat: Dict[str, Optional[str]] = {}
        for element_id, value in self.content.items():
            flat[element_id] = _as_text(value)

        for member_id, fields in self.team_members.items():
            if fields is None:
                prefix = team_member_element_id(member_id, "")
                for element_id in live_state:
                    if element_id.startswith(prefix):
                        flat[element_id] = None
                continue
            for field_name, value in fields.items():
                flat[team_member_element_id(member_id, field_name)] = _as_text(value)

        return flat


def _as_text(value):
    return None if value is None else str(value)


def team_member_element_id(member_id: str, field_name: str) -> str:
    return f"{TEAM_MEMBER_PREFIX}{member_id}.{field_name}"


def parse_team_member_element_id(element_id: str) -> Optional[Tuple[str, str]]:
    if not element_id.startswith(TEAM_MEMBER_PREFIX):
        return None
    member_id, _, field_name = element_id[len(TEAM_MEMBER_PREFIX):].partition(".")
    if not member_id or not field_name:
        return None
    return member_id, field_name


def split_state(state: Dict[str, str]):
    """Separate a flat state into (content, {member_id: {field: value}})."""
    content: Dict[str, str] = {}
    members: Dict[str, Dict[str, str]] = {}
    for element_id, value in state.items():
        parsed = parse_team_member_element_id(element_id)
        if parsed is None:
            content[element_id] = value
        else:
            member_id, field_name = parsed
            members.setdefault(member_id, {})[field_name] = value
    return content, members


def split_changes(changes: Iterable[ElementChange]):
    """Separate content changes from team member field changes."""
    content, team = [], []
    for change in changes:
        if parse_team_member_element_id(change.element_id) is None:
            content.append(change)
        else:
            team.append(change)
    return content, team


def diff_states(before: Dict[str, str], after: Dict[str, str]) -> List[ElementChange]:
    """
    Changes that turn ``before`` into ``after``, sorted by element id.
    """
    changes = []
    for element_id in sorted(set(before) | set(after)):
        old = before.get(element_id)
        new = after.get(element_id)
        if old == new:
            continue
        if old is None:
            change_type = "create"
        elif new is None:
            change_type = "delete"
        else:
            change_type = "update"
        changes.append(ElementChange(element_id, change_type, old, new))
    return changes


def replay(changes: Iterable[Tuple[int, ElementChange]]) -> Dict[str, str]:
    """
    Fold ``(version_number, change)`` pairs, ordered by version, into a state.

    Raises ReconstructionError on a change that contradicts the state built so
    far; partial results are never returned.
    """
    state: Dict[str, str] = {}
    last_version = None

    for version_number, change in changes:
        if last_version is not None and version_number < last_version:
            raise ReconstructionError(
                f"Changes out of order: version {version_number} after {last_version}"
            )
        last_version = version_number

        try:
            assert_change(
                change.change_type,
                change.old_value,
                change.new_value,
                element_id=change.element_id,
            )
        except ValidationError as exc:
            raise ReconstructionError(
                f"Corrupt change in version {version_number}: {exc}"
            ) from exc

        if change.change_type == "create" and change.element_id in state:
            raise ReconstructionError(
                f"Version {version_number} creates element {change.element_id} "
                f"which already exists at that point"
            )
        if change.change_type != "create" and change.element_id not in state:
            raise ReconstructionError(
                f"Version {version_number} {change.change_type}s element "
                f"{change.element_id} which does not exist at that point"
            )

        if change.change_type == "delete":
            del state[change.element_id]
        else:
            state[change.element_id] = change.new_value

    return state


def squash_changes(changes: List[ElementChange]) -> Optional[ElementChange]:
    """
    Net effect of consecutive changes to one element, or None when they
    cancel out (created then deleted, or changed back to the first value).
    """
    first, last = changes[0], changes[-1]
    old, new = first.old_value, last.new_value

    if old == new:
        return None
    if old is None:
        change_type = "create"
    elif new is None:
        change_type = "delete"
    else:
        change_type = "update"

    return ElementChange(
        first.element_id,
        change_type,
        old,
        new,
        content_kind=last.content_kind,
    )
