from content_history.extensions import db
from .base import BaseModel


class TeamMemberChange(BaseModel):
    __tablename__ = "team_member_changes"

    version_id = db.Column(
        db.String(36),
        db.ForeignKey("content_versions.id", ondelete="CASCADE"),
        nullable=False
    )

    member_id = db.Column(db.String(36), nullable=False)
    field_name = db.Column(db.String(100), nullable=False)  # name, position, bio, ...
    change_type = db.Column(db.String(20), nullable=False)
    old_value = db.Column(db.Text, nullable=True)
    new_value = db.Column(db.Text, nullable=True)

    version = db.relationship("ContentVersion", back_populates="team_changes")

    __table_args__ = (
        db.Index("idx_team_changes_version_member", "version_id", "member_id"),
        db.Index("idx_team_changes_member", "member_id", "version_id"),
    )
