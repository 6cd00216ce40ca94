"""
Persisted authenticated sessions.

The session cookie carries only a session ID under :data:`SESSION_KEY`. A
cookie is honored only while it points at a persisted, unexpired session.
"""

import logging
from datetime import timedelta
from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from .. import domain
from . import util
from .cookies import CookieSession, CookieSessionStorage
from .exceptions import SessionCreationFailed
from .models import DBSession

logger = logging.getLogger(__name__)

SESSION_KEY = 'sessionId'


def _to_domain(db_session: DBSession) -> domain.Session:
    return domain.Session(
        session_id=db_session.id,
        user_id=db_session.user_id,
        expiration_date=util.from_epoch(db_session.expiration_date)
    )


def get_session_duration() -> int:
    """Get the session duration from the config."""
    return int(current_app.config['SESSION_DURATION'])


def create_session(user_id: str) -> domain.Session:
    """Create a new session for an authenticated user."""
    start = util.now()
    end = start + timedelta(seconds=get_session_duration())
    try:
        with util.transaction() as session:
            db_session = DBSession(user_id=user_id,
                                   expiration_date=util.epoch(end),
                                   created_at=util.epoch(start))
            session.add(db_session)
            session.commit()
    except SQLAlchemyError as e:
        raise SessionCreationFailed(f'Failed to create: {e}') from e
    logger.debug('Created session for user %s', user_id)
    return _to_domain(db_session)


def load_session(session_id: str) -> Optional[domain.Session]:
    """Load an unexpired session, or None."""
    with util.transaction() as session:
        db_session = session.get(DBSession, session_id)
        if db_session is None:
            return None
        user_session = _to_domain(db_session)
    if user_session.is_expired(util.now()):
        logger.debug('Session %s has expired', session_id)
        return None
    return user_session


def delete_session(session_id: str) -> None:
    """Delete a session; unknown IDs are ignored."""
    with util.transaction() as session:
        db_session = session.get(DBSession, session_id)
        if db_session is not None:
            session.delete(db_session)


def get_user_id(storage: CookieSessionStorage,
                cookie_header: Optional[str]) -> Optional[str]:
    """Get the ID of the authenticated user, if any."""
    auth_session = storage.get_session(cookie_header)
    session_id = auth_session.get(SESSION_KEY)
    if not isinstance(session_id, str) or not session_id:
        return None
    user_session = load_session(session_id)
    if user_session is None:
        return None
    return user_session.user_id


def commit_auth_session(storage: CookieSessionStorage,
                        auth_session: CookieSession,
                        user_session: domain.Session,
                        remember: bool) -> str:
    """
    Point the auth cookie at ``user_session``.

    The cookie only outlives the browser session when ``remember`` is set.
    """
    auth_session.set(SESSION_KEY, user_session.session_id)
    expires = user_session.expiration_date if remember else None
    return storage.commit_session(auth_session, expires=expires)
