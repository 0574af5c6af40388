import click
from flask.cli import AppGroup

from content_history.application.versioning.save_changes import ensure_baseline
from content_history.application.versioning.prune_versions import prune_versions
from content_history.application.versioning.snapshots import rebuild_snapshots

versions_cli = AppGroup("versions", help="Content version control maintenance.")


@versions_cli.command("baseline")
@click.argument("page_names", nargs=-1, required=True)
def baseline_command(page_names):
    """Record version 1 for pages that have no history yet."""
    for page_name in page_names:
        number = ensure_baseline(page_name)
        if number is None:
            click.echo(f"{page_name}: already versioned")
        else:
            click.echo(f"{page_name}: baseline recorded as version {number}")


@versions_cli.command("prune")
@click.argument("page_name")
@click.option("--keep", "keep_count", type=int, default=20, show_default=True)
def prune_command(page_name, keep_count):
    """Delete old versions, keeping the baseline, the latest and checkpoints."""
    deleted = prune_versions(page_name, keep_count)
    click.echo(f"{page_name}: deleted {deleted} versions")


@versions_cli.command("rebuild-snapshots")
@click.argument("page_name")
def rebuild_snapshots_command(page_name):
    """Regenerate cached snapshots from the change log."""
    rebuilt = rebuild_snapshots(page_name)
    click.echo(f"{page_name}: {rebuilt} snapshots were out of date")
