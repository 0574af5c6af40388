from content_history.extensions import db
from .base import BaseModel

VERSION_KINDS = ("manual", "auto", "restore")


class ContentVersion(BaseModel):
    __tablename__ = "content_versions"

    page_name = db.Column(db.String(100), nullable=False, index=True)
    version_number = db.Column(db.Integer, nullable=False)
    description = db.Column(db.Text, nullable=True)

    kind = db.Column(db.String(20), nullable=False, default="manual")
    # manual | auto | restore

    change_summary = db.Column(db.JSON, nullable=False, default=dict)

    created_by = db.Column(db.String(36), nullable=True)
    parent_version = db.Column(db.Integer, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    changes = db.relationship(
        "ContentChange",
        back_populates="version",
        cascade="all, delete-orphan",
    )
    team_changes = db.relationship(
        "TeamMemberChange",
        back_populates="version",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        db.UniqueConstraint("page_name", "version_number", name="uq_version_page"),
        db.Index("idx_content_versions_page_version", "page_name", "version_number"),
    )

    @property
    def change_count(self):
        return len(self.changes) + len(self.team_changes)

    @property
    def is_baseline(self):
        return self.version_number == 1
