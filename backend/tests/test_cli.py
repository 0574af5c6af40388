from content_history.extensions import db
from content_history.models.content_snapshot import ContentSnapshot
from content_history.models.content_version import ContentVersion

from helpers import save

PAGE = "index.html"


def test_baseline_command_records_version_one(app, seed_content):
    seed_content(PAGE, {"title": "Welcome"})
    runner = app.test_cli_runner()

    result = runner.invoke(args=["versions", "baseline", PAGE, "about.html"])

    assert result.exit_code == 0
    assert f"{PAGE}: baseline recorded as version 1" in result.output
    assert ContentVersion.query.filter_by(page_name=PAGE).count() == 1

    again = runner.invoke(args=["versions", "baseline", PAGE])
    assert f"{PAGE}: already versioned" in again.output


def test_prune_command(app, seed_content):
    seed_content(PAGE, {"title": "Welcome"})
    for title in ("One", "Two", "Three", "Four"):
        save(PAGE, {"title": title})

    result = app.test_cli_runner().invoke(args=["versions", "prune", PAGE, "--keep", "1"])

    assert result.exit_code == 0
    assert "deleted 2 versions" in result.output


def test_rebuild_snapshots_command(app, seed_content):
    seed_content(PAGE, {"title": "Welcome"})
    for title in ("One", "Two", "Three", "Four", "Five"):
        save(PAGE, {"title": title})

    snapshot = ContentSnapshot.query.filter_by(page_name=PAGE, version_number=5).one()
    snapshot.content = {"title": "stale"}
    snapshot.content_hash = "stale"

    db.session.commit()

    result = app.test_cli_runner().invoke(args=["versions", "rebuild-snapshots", PAGE])

    assert result.exit_code == 0
    assert "1 snapshots were out of date" in result.output
