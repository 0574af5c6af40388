from content_history.extensions import db
from .base import BaseModel


class ContentSnapshot(BaseModel):
    __tablename__ = "content_snapshots"

    page_name = db.Column(db.String(100), nullable=False)
    version_number = db.Column(db.Integer, nullable=False)

    # Always a map, {} for pages without content
    content = db.Column(db.JSON, nullable=False, default=dict)
    content_hash = db.Column(db.String(64), nullable=False, index=True)

    is_checkpoint = db.Column(db.Boolean, nullable=False, default=False)

    __table_args__ = (
        db.UniqueConstraint("page_name", "version_number", name="uq_snapshot_version"),
        db.Index("idx_content_snapshots_page", "page_name", "version_number"),
    )
