from content_history.extensions import db
from .base import BaseModel
from .soft_delete_mixin import SoftDeleteMixin

# Fields captured by version control, in display order
TEAM_MEMBER_FIELDS = (
    "name",
    "position",
    "bio",
    "bio_paragraph_2",
    "image_url",
    "image_filename",
    "linkedin_url",
    "email",
    "sort_order",
)


class TeamMember(BaseModel, SoftDeleteMixin):
    __tablename__ = "team_members"

    page_name = db.Column(db.String(100), nullable=False, default="about.html", index=True)

    name = db.Column(db.String(255), nullable=True)
    position = db.Column(db.String(255), nullable=True)
    bio = db.Column(db.Text, nullable=True)
    bio_paragraph_2 = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.Text, nullable=True)
    image_filename = db.Column(db.String(255), nullable=True)
    linkedin_url = db.Column(db.Text, nullable=True)
    email = db.Column(db.Text, nullable=True)
    sort_order = db.Column(db.Integer, nullable=True, index=True)

    def field_values(self):
        """
        Versioned fields as strings; unset fields are omitted.
        """
        values = {}
        for field in TEAM_MEMBER_FIELDS:
            value = getattr(self, field)
            if value is not None:
                values[field] = str(value)
        return values

    def set_field(self, field, value):
        if field not in TEAM_MEMBER_FIELDS:
            raise ValueError(f"Unknown team member field: {field}")
        if field == "sort_order":
            value = int(value) if value is not None else None
        setattr(self, field, value)
