import hashlib
import json

from sqlalchemy import func


def canonical_json(content):
    return json.dumps(content or {}, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def content_hash(content):
    """SHA-256 of the canonical JSON form, stable across key order."""
    return hashlib.sha256(canonical_json(content).encode("utf-8")).hexdigest()


def latest_version_number(page_name):
    from content_history.extensions import db
    from content_history.models.content_version import ContentVersion

    return db.session.scalar(
        db.select(func.max(ContentVersion.version_number))
        .where(ContentVersion.page_name == page_name)
    )


def next_version(page_name):
    last = latest_version_number(page_name)
    return (last + 1) if last else 1
