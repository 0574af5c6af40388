import pytest
from flask_jwt_extended import create_access_token

from content_history import create_app
from content_history.extensions import db
from content_history.models.website_content import WebsiteContent
from content_history.models.team_member import TeamMember


@pytest.fixture
def app():
    app = create_app("testing")

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    token = create_access_token(identity="admin-1", additional_claims={"role": "admin"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def editor_headers(app):
    token = create_access_token(identity="editor-1", additional_claims={"role": "editor"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def seed_content(app):
    """Write live content rows directly, bypassing version control."""
    def _seed(page_name, content):
        for element_id, value in content.items():
            row = WebsiteContent()
            row.page_name = page_name
            row.element_id = element_id
            row.content_text = value
            db.session.add(row)
        db.session.commit()
    return _seed


@pytest.fixture
def seed_member(app):
    def _seed(page_name, member_id, **fields):
        member = TeamMember()
        member.id = member_id
        member.page_name = page_name
        for field, value in fields.items():
            member.set_field(field, value)
        db.session.add(member)
        db.session.commit()
        return member
    return _seed
