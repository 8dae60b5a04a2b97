"""Middleware for authentication context."""
from functools import wraps
from flask import session, g, current_app

from fashionhub.database import get_session
from fashionhub.exceptions import UnauthorizedError
from fashionhub.models import AppUser


def load_user():
    """
    Load the current user into g (Flask's per-request global).

    Called before each request. Sets g.user to an active AppUser or None.
    """
    g.user = None

    user_id = session.get('user_id')
    if not user_id:
        return

    db_session = get_session()
    if not db_session:
        return

    user = db_session.query(AppUser).filter_by(id=user_id, active=True).first()
    if user:
        g.user = user
        g.user_id = user.id
    else:
        current_app.logger.info(f"Dropping session of missing or inactive user {user_id}")
        session.pop('user_id', None)


def require_login(f):
    """
    Decorator: Require user to be logged in.

    API routes answer 401 JSON through the FashionHubError handler.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            raise UnauthorizedError()
        return f(*args, **kwargs)

    return decorated_function
