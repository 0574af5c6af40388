from content_history.extensions import db
from .base import BaseModel


class WebsiteContent(BaseModel):
    __tablename__ = "website_content"

    page_name = db.Column(db.String(100), nullable=False, index=True)
    element_id = db.Column(db.String(255), nullable=False)
    content_text = db.Column(db.Text, nullable=True)
    content_type = db.Column(db.String(50), nullable=False, default="text")
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    __table_args__ = (
        db.UniqueConstraint("page_name", "element_id", name="uq_content_page_element"),
    )
