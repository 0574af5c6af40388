from contextlib import contextmanager

from flask import current_app
from content_history.extensions import db


@contextmanager
def transactional():
    """
    Commit the session when the block exits cleanly; roll back and re-raise
    otherwise. A version, its change rows and its audit entry share one block.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.debug("Transaction rolled back", exc_info=True)
        raise
