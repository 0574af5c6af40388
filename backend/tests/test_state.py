import pytest

from content_history.domain.exceptions import ReconstructionError, ValidationError
from content_history.domain.state import (
    ElementChange,
    PendingEdits,
    diff_states,
    parse_team_member_element_id,
    replay,
    split_state,
    squash_changes,
    team_member_element_id,
)


def test_diff_states_classifies_changes():
    before = {"title": "Welcome", "body": "Old", "footer": "Bye"}
    after = {"title": "Welcome", "body": "New", "hero": "Hi"}

    changes = {c.element_id: c for c in diff_states(before, after)}

    assert set(changes) == {"body", "footer", "hero"}
    assert changes["body"].change_type == "update"
    assert changes["body"].old_value == "Old"
    assert changes["footer"].change_type == "delete"
    assert changes["footer"].new_value is None
    assert changes["hero"].change_type == "create"
    assert changes["hero"].old_value is None


def test_replay_keeps_latest_value_and_drops_deleted():
    changes = [
        (1, ElementChange("title", "create", None, "Welcome")),
        (1, ElementChange("footer", "create", None, "Bye")),
        (2, ElementChange("title", "update", "Welcome", "Hello")),
        (3, ElementChange("footer", "delete", "Bye", None)),
    ]

    assert replay(changes) == {"title": "Hello"}


def test_replay_rejects_update_of_missing_element():
    changes = [
        (1, ElementChange("title", "create", None, "Welcome")),
        (2, ElementChange("body", "update", "x", "y")),
    ]

    with pytest.raises(ReconstructionError):
        replay(changes)


def test_replay_rejects_changes_breaking_null_rules():
    changes = [(1, ElementChange("title", "update", None, "Welcome"))]

    with pytest.raises(ReconstructionError):
        replay(changes)


def test_replay_rejects_out_of_order_versions():
    changes = [
        (2, ElementChange("title", "create", None, "a")),
        (1, ElementChange("body", "create", None, "b")),
    ]

    with pytest.raises(ReconstructionError):
        replay(changes)


def test_squash_create_then_delete_cancels_out():
    chain = [
        ElementChange("banner", "create", None, "Sale"),
        ElementChange("banner", "delete", "Sale", None),
    ]

    assert squash_changes(chain) is None


def test_squash_keeps_first_old_and_last_new():
    chain = [
        ElementChange("title", "update", "A", "B"),
        ElementChange("title", "update", "B", "C"),
    ]

    net = squash_changes(chain)

    assert (net.change_type, net.old_value, net.new_value) == ("update", "A", "C")


def test_team_member_element_ids_round_trip_through_split():
    element_id = team_member_element_id("m-1", "position")

    assert parse_team_member_element_id(element_id) == ("m-1", "position")
    assert parse_team_member_element_id("title") is None

    content, members = split_state({"title": "Hi", element_id: "Broker"})
    assert content == {"title": "Hi"}
    assert members == {"m-1": {"position": "Broker"}}


def test_pending_edits_count_and_flatten():
    live = {
        team_member_element_id("m-1", "name"): "Adam",
        team_member_element_id("m-1", "position"): "Owner",
    }
    edits = PendingEdits(
        content={"title": "New"},
        team_members={"m-1": None, "m-2": {"name": "Pat", "sort_order": 2}},
    )

    flat = edits.to_flat(live)

    assert len(edits) == 4
    assert flat["title"] == "New"
    assert flat[team_member_element_id("m-1", "name")] is None
    assert flat[team_member_element_id("m-1", "position")] is None
    assert flat[team_member_element_id("m-2", "sort_order")] == "2"


def test_pending_edits_from_payload_validates_shape():
    with pytest.raises(ValidationError):
        PendingEdits.from_payload({"content": ["title"]})

    with pytest.raises(ValidationError):
        PendingEdits.from_payload({"team_members": {"m-1": "Adam"}})


def test_empty_member_edit_counts_as_nothing():
    assert len(PendingEdits(team_members={"m-1": {}})) == 0
    assert len(PendingEdits(team_members={"m-1": None})) == 1
