from content_history.extensions import db
from .base import BaseModel


class ContentChange(BaseModel):
    """
    One field-level edit of a content element, owned by a ContentVersion.
    Rows are written together with their version; pruning is the only
    writer that rewrites them, when folding deleted versions forward.
    """
    __tablename__ = "content_changes"

    version_id = db.Column(
        db.String(36),
        db.ForeignKey("content_versions.id", ondelete="CASCADE"),
        nullable=False
    )

    element_id = db.Column(db.String(255), nullable=False)
    change_type = db.Column(db.String(20), nullable=False)
    old_value = db.Column(db.Text, nullable=True)   # null for create
    new_value = db.Column(db.Text, nullable=True)   # null for delete
    content_kind = db.Column(db.String(50), nullable=False, default="text")

    # "metadata" is reserved on declarative classes
    change_metadata = db.Column("metadata", db.JSON, nullable=False, default=dict)

    version = db.relationship("ContentVersion", back_populates="changes")

    __table_args__ = (
        db.Index("idx_content_changes_version_element", "version_id", "element_id"),
        db.Index("idx_content_changes_element", "element_id", "version_id"),
    )
