import importlib

import pytest

from content_history.extensions import db
from content_history.models.audit_log import AuditLog
from content_history.models.content_version import ContentVersion
from content_history.models.team_member import TeamMember
from content_history.domain.exceptions import CommitFailed, SaveIncomplete, ValidationError
from content_history.application.versioning.save_changes import BASELINE_DESCRIPTION, ensure_baseline
from content_history.application.versioning.state_at_version import get_state_at_version, replay_state
from content_history.utils.live_state import apply_edits, read_live_state

from helpers import save

save_module = importlib.import_module("content_history.application.versioning.save_changes")
record_module = importlib.import_module("content_history.application.versioning.record_version")

PAGE = "index.html"


def test_first_save_records_baseline_of_pre_edit_content(app, seed_content):
    seed_content(PAGE, {"title": "Welcome"})

    result = save(PAGE, {"title": "Welcome amazing"})

    assert result.version_number == 1
    assert result.created
    assert get_state_at_version(PAGE, 1) == {"title": "Welcome"}
    assert read_live_state(PAGE) == {"title": "Welcome amazing"}

    baseline = ContentVersion.query.filter_by(page_name=PAGE, version_number=1).one()
    assert baseline.description == BASELINE_DESCRIPTION
    assert baseline.parent_version is None


def test_second_save_records_previous_live_content(app, seed_content):
    seed_content(PAGE, {"title": "Welcome"})
    save(PAGE, {"title": "Welcome amazing"})

    result = save(PAGE, {"title": "Welcome fantastic"}, description="Tagline tweak")

    assert result.version_number == 2
    assert get_state_at_version(PAGE, 2) == {"title": "Welcome amazing"}
    assert get_state_at_version(PAGE, 1) == {"title": "Welcome"}
    assert read_live_state(PAGE) == {"title": "Welcome fantastic"}

    version = ContentVersion.query.filter_by(page_name=PAGE, version_number=2).one()
    assert version.description == "Tagline tweak"
    assert version.parent_version == 1
    assert [(c.element_id, c.change_type) for c in version.changes] == [("title", "update")]


def test_empty_edits_are_rejected_without_a_version(app, seed_content):
    seed_content(PAGE, {"title": "Welcome"})

    with pytest.raises(ValidationError):
        save(PAGE, {})

    assert ContentVersion.query.count() == 0
    assert read_live_state(PAGE) == {"title": "Welcome"}


def test_edits_matching_live_content_are_rejected(app, seed_content):
    seed_content(PAGE, {"title": "Welcome"})

    with pytest.raises(ValidationError):
        save(PAGE, {"title": "Welcome", "footer": None})

    assert ContentVersion.query.count() == 0


def test_unchanged_live_content_does_not_create_a_version(app, seed_content):
    seed_content(PAGE, {"title": "Welcome"})
    save(PAGE, {"title": "Welcome amazing"})
    save(PAGE, {"title": "Welcome fantastic"})

    # live content was put back to the content of version 2 outside a save
    content = read_live_state(PAGE)
    assert content == {"title": "Welcome fantastic"}

    apply_edits(PAGE, {"title": "Welcome amazing"})
    db.session.commit()

    result = save(PAGE, {"title": "Welcome back"})

    assert result.version_number == 2
    assert not result.created
    assert read_live_state(PAGE) == {"title": "Welcome back"}
    assert ContentVersion.query.filter_by(page_name=PAGE).count() == 2


def test_added_and_removed_elements_are_recorded(app, seed_content):
    seed_content(PAGE, {"title": "Welcome", "banner": "Sale"})
    save(PAGE, {"banner": None, "footer": "Contact us"})
    save(PAGE, {"title": "Hi"})

    version = ContentVersion.query.filter_by(page_name=PAGE, version_number=2).one()
    kinds = {c.element_id: c.change_type for c in version.changes}

    assert kinds == {"banner": "delete", "footer": "create"}
    assert get_state_at_version(PAGE, 2) == {"title": "Welcome", "footer": "Contact us"}
    assert read_live_state(PAGE) == {"title": "Hi", "footer": "Contact us"}


def test_team_member_edits_are_versioned(app, seed_content, seed_member):
    seed_content(PAGE, {"title": "Welcome"})
    seed_member(PAGE, "m-1", name="Adam", position="Owner", sort_order=1)

    save(PAGE, team_members={"m-1": {"position": "Broker"}, "m-2": {"name": "Pat", "sort_order": 2}})
    save(PAGE, team_members={"m-1": None})

    assert get_state_at_version(PAGE, 1) == {
        "title": "Welcome",
        "team_member:m-1.name": "Adam",
        "team_member:m-1.position": "Owner",
        "team_member:m-1.sort_order": "1",
    }
    assert get_state_at_version(PAGE, 2) == {
        "title": "Welcome",
        "team_member:m-1.name": "Adam",
        "team_member:m-1.position": "Broker",
        "team_member:m-1.sort_order": "1",
        "team_member:m-2.name": "Pat",
        "team_member:m-2.sort_order": "2",
    }

    removed = db.session.get(TeamMember, "m-1")
    assert removed.is_deleted
    assert read_live_state(PAGE) == {
        "title": "Welcome",
        "team_member:m-2.name": "Pat",
        "team_member:m-2.sort_order": "2",
    }


def test_unknown_team_member_field_is_rejected(app, seed_content):
    seed_content(PAGE, {"title": "Welcome"})

    with pytest.raises(ValidationError):
        save(PAGE, team_members={"m-1": {"salary": "lots"}})

    with pytest.raises(ValidationError):
        save(PAGE, team_members={"m-1": {"sort_order": "first"}})


def test_failed_apply_reports_recorded_version(app, seed_content, monkeypatch):
    seed_content(PAGE, {"title": "Welcome"})

    def broken_apply(page_name, edits):
        raise RuntimeError("disk full")

    monkeypatch.setattr(save_module, "apply_edits", broken_apply)

    with pytest.raises(SaveIncomplete) as excinfo:
        save(PAGE, {"title": "Welcome amazing"})

    assert excinfo.value.version_number == 1
    assert get_state_at_version(PAGE, 1) == {"title": "Welcome"}
    assert read_live_state(PAGE) == {"title": "Welcome"}
    assert AuditLog.query.filter_by(action="page.save").count() == 0


def test_save_recomputes_changes_after_concurrent_version(app, seed_content, monkeypatch):
    seed_content(PAGE, {"title": "Welcome"})
    save(PAGE, {"title": "A"})

    real_next_version = record_module.next_version
    allocated = []

    def racing_next_version(page_name):
        number = real_next_version(page_name)
        if not allocated:
            competitor = ContentVersion()
            competitor.page_name = page_name
            competitor.version_number = number
            competitor.description = "competing writer"
            competitor.kind = "auto"
            competitor.change_summary = {}
            db.session.add(competitor)
            db.session.commit()
        allocated.append(number)
        return number

    monkeypatch.setattr(record_module, "next_version", racing_next_version)

    result = save(PAGE, {"title": "B"})

    assert allocated == [2, 3]
    assert result.version_number == 3
    assert get_state_at_version(PAGE, 3) == {"title": "A"}
    assert read_live_state(PAGE) == {"title": "B"}


def test_save_gives_up_when_page_keeps_moving(app, seed_content, monkeypatch):
    seed_content(PAGE, {"title": "Welcome"})
    save(PAGE, {"title": "A"})

    real_next_version = record_module.next_version

    def always_racing(page_name):
        number = real_next_version(page_name)
        competitor = ContentVersion()
        competitor.page_name = page_name
        competitor.version_number = number
        competitor.description = "competing writer"
        competitor.kind = "auto"
        competitor.change_summary = {}
        db.session.add(competitor)
        db.session.commit()
        return number

    monkeypatch.setattr(record_module, "next_version", always_racing)

    with pytest.raises(CommitFailed):
        save(PAGE, {"title": "B"})

    assert read_live_state(PAGE) == {"title": "A"}


def test_ensure_baseline_only_records_once(app, seed_content):
    seed_content(PAGE, {"title": "Welcome"})

    assert ensure_baseline(PAGE, actor_id="admin-1") == 1
    assert ensure_baseline(PAGE, actor_id="admin-1") is None
    assert get_state_at_version(PAGE, 1) == {"title": "Welcome"}


def test_save_writes_audit_entry(app, seed_content):
    seed_content(PAGE, {"title": "Welcome"})

    save(PAGE, {"title": "Hello"}, actor_id="editor-1")

    entry = AuditLog.query.filter_by(action="page.save").one()
    assert entry.actor_id == "editor-1"
    assert entry.payload["version"] == 1


@pytest.mark.parametrize(
    "content, team_members",
    [
        ({}, {"m.1": {"name": "Pat"}}),
        ({"team_member:m-1.salary": "lots"}, {}),
        ({"team_member:m-1.name": "Pat"}, {}),
        ({}, {"m" * 37: {"name": "Pat"}}),
    ],
)
def test_malformed_ids_are_rejected_before_recording(app, seed_content, content, team_members):
    seed_content(PAGE, {"title": "Welcome"})

    with pytest.raises(ValidationError):
        save(PAGE, content, team_members)

    assert ContentVersion.query.count() == 0
    assert read_live_state(PAGE) == {"title": "Welcome"}


def test_member_of_another_page_is_rejected_before_recording(app, seed_content, seed_member):
    seed_content(PAGE, {"title": "Welcome"})
    seed_member("about.html", "m-1", name="Adam")

    with pytest.raises(ValidationError):
        save(PAGE, team_members={"m-1": {"position": "Broker"}})

    assert ContentVersion.query.count() == 0
    assert db.session.get(TeamMember, "m-1").position is None


def test_retention_after_save_keeps_baseline_and_checkpoints(app, seed_content):
    app.config["VERSION_RETENTION_COUNT"] = 2
    seed_content(PAGE, {"title": "Welcome"})

    recorded = {}
    for i in range(12):
        before = read_live_state(PAGE)
        result = save(PAGE, {"title": f"Title {i}", f"block-{i}": f"Block {i}"})
        recorded[result.version_number] = before

    numbers = [
        v.version_number
        for v in ContentVersion.query.filter_by(page_name=PAGE)
        .order_by(ContentVersion.version_number)
    ]
    # version 10 was snapshotted as a checkpoint when it was saved
    assert numbers == [1, 10, 11, 12]
    for number in numbers:
        assert replay_state(PAGE, number) == recorded[number]
    assert AuditLog.query.filter_by(action="version.prune").count() > 0


def test_empty_member_edit_is_rejected(app, seed_content):
    seed_content(PAGE, {"title": "Welcome"})

    with pytest.raises(ValidationError):
        save(PAGE, team_members={"m-1": {}})

    assert ContentVersion.query.count() == 0
