from content_history.domain.state import PendingEdits
from content_history.application.versioning.save_changes import save_changes


def save(page_name, content=None, team_members=None, **kwargs):
    return save_changes(
        page_name=page_name,
        edits=PendingEdits(content=content or {}, team_members=team_members or {}),
        **kwargs,
    )
