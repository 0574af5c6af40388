# content_history/application/versioning/snapshots.py
from typing import Dict, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from content_history.extensions import db
from content_history.models.content_snapshot import ContentSnapshot
from content_history.models.content_version import ContentVersion
from content_history.domain.exceptions import CacheWriteError, ReconstructionError
from content_history.application.versioning.state_at_version import get_version, replay_state
from content_history.utils.transaction import transactional
from content_history.utils.versioning import content_hash
from content_history.utils.audit import log_action


def _default_checkpoint(version_number: int) -> bool:
    interval = current_app.config.get("CHECKPOINT_INTERVAL", 10)
    return bool(interval) and version_number % interval == 0


def _write_snapshot(
    page_name: str,
    version_number: int,
    content: Optional[Dict[str, str]],
    checkpoint: Optional[bool],
) -> bool:
    # Empty pages are stored as {} so the row always exists
    content = dict(content or {})
    digest = content_hash(content)

    try:
        with transactional():
            snapshot = ContentSnapshot.query.filter_by(
                page_name=page_name,
                version_number=version_number,
            ).first()

            if snapshot is None:
                snapshot = ContentSnapshot()
                snapshot.page_name = page_name
                snapshot.version_number = version_number
                snapshot.is_checkpoint = (
                    _default_checkpoint(version_number) if checkpoint is None else bool(checkpoint)
                )
                db.session.add(snapshot)
            elif (
                snapshot.content_hash == digest
                and snapshot.content == content
                and (not checkpoint or snapshot.is_checkpoint)
            ):
                return False
            elif checkpoint:
                # never downgrade an existing checkpoint
                snapshot.is_checkpoint = True

            snapshot.content = content
            snapshot.content_hash = digest
    except SQLAlchemyError as exc:
        raise CacheWriteError(
            f"Could not write snapshot {page_name}@{version_number}: {exc}"
        ) from exc

    return True


def create_snapshot(page_name: str, version_number: int, checkpoint: Optional[bool] = None) -> bool:
    """
    Materialize the replayed state of a version into the snapshot cache.

    Idempotent: returns False when an identical snapshot already exists.
    """
    get_version(page_name, version_number)
    state = replay_state(page_name, version_number)
    return _write_snapshot(page_name, version_number, state, checkpoint)


def cache_state(page_name: str, version_number: int, state: Dict[str, str]) -> bool:
    """Best-effort cache fill for a state that was just replayed; never a checkpoint."""
    try:
        return _write_snapshot(page_name, version_number, state, False)
    except CacheWriteError as exc:
        current_app.logger.warning("Snapshot cache fill failed: %s", exc)
        return False


def snapshot_after_commit(page_name: str, version_number: int, *, major_change: bool = False) -> bool:
    """
    Auto snapshot every SNAPSHOT_INTERVAL versions and on major changes.
    Failures never reach the commit that triggered them.
    """
    interval = current_app.config.get("SNAPSHOT_INTERVAL", 5)
    due = bool(interval) and version_number % interval == 0

    if not (due or major_change):
        return False

    try:
        return create_snapshot(page_name, version_number)
    except CacheWriteError as exc:
        current_app.logger.warning("Auto snapshot skipped: %s", exc)
    except ReconstructionError as exc:
        current_app.logger.error(
            "Auto snapshot of %s@%s could not replay: %s", page_name, version_number, exc
        )
    return False


def mark_checkpoint(page_name: str, version_number: int, *, actor_id: Optional[str] = None) -> bool:
    created = create_snapshot(page_name, version_number, checkpoint=True)

    with transactional():
        log_action(
            action="snapshot.checkpoint",
            entity_type="page",
            entity_id=page_name,
            actor_id=actor_id,
            payload={"version": version_number},
        )

    return created


def invalidate_snapshots(page_name: str, from_version: Optional[int] = None) -> int:
    """
    Drop non-checkpoint snapshots of a page; they are rebuilt on demand.
    """
    query = ContentSnapshot.query.filter_by(page_name=page_name, is_checkpoint=False)
    if from_version is not None:
        query = query.filter(ContentSnapshot.version_number >= from_version)

    with transactional():
        deleted = query.delete(synchronize_session=False)

    current_app.logger.info("Invalidated %s snapshots of %s", deleted, page_name)
    return deleted


def rebuild_snapshots(page_name: str) -> int:
    """
    Regenerate every cached snapshot of a page from the change log.
    Snapshots whose version is gone are left to retention cleanup.
    Returns how many snapshots were out of date.
    """
    live_versions = set(
        db.session.scalars(
            db.select(ContentVersion.version_number)
            .where(ContentVersion.page_name == page_name, ContentVersion.is_active.is_(True))
        )
    )
    numbers = db.session.scalars(
        db.select(ContentSnapshot.version_number)
        .where(ContentSnapshot.page_name == page_name)
        .order_by(ContentSnapshot.version_number)
    ).all()

    rebuilt = 0
    for number in numbers:
        if number not in live_versions:
            continue
        if _write_snapshot(page_name, number, replay_state(page_name, number), None):
            rebuilt += 1

    return rebuilt
