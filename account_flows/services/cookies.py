"""
Cookie-backed key/value sessions.

All state lives in a signed cookie; nothing is stored server-side. Reading a
session never fails: a cookie that is absent, tampered with, or past its
expiry yields an empty session, and callers treat missing keys as "flow not
entered". Writing is explicit: :meth:`CookieSessionStorage.commit_session`
and :meth:`CookieSessionStorage.destroy_session` return ``Set-Cookie`` header
values that the caller must put on its response.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import jwt
from flask import Flask
from werkzeug.http import dump_cookie, parse_cookie

from . import util

logger = logging.getLogger(__name__)

ALGORITHM = 'HS256'


class CookieSession(object):
    """Mutable view of the data carried by one cookie."""

    def __init__(self, data: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = dict(data or {})

    def get(self, key: str, default: Any = None) -> Any:
        """Get the value for ``key``, or ``default``."""
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set ``key``; values must be JSON-serializable."""
        self._data[key] = value

    def unset(self, key: str) -> None:
        """Remove ``key`` if present."""
        self._data.pop(key, None)

    @property
    def data(self) -> Dict[str, Any]:
        """A copy of the session data."""
        return dict(self._data)

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __repr__(self) -> str:
        return f'<CookieSession keys={sorted(self._data)}>'


class CookieSessionStorage(object):
    """
    Encodes :class:`CookieSession` data as a signed JWT cookie.

    Parameters
    ----------
    name : str
        Cookie name.
    secret : str
        Signing secret.
    max_age : int or None
        Default lifetime in seconds. If None, committed cookies are session
        cookies unless an explicit ``expires`` is passed.

    """

    def __init__(self, name: str, secret: str, max_age: Optional[int] = None,
                 secure: bool = False, domain: Optional[str] = None,
                 path: str = '/', samesite: str = 'Lax') -> None:
        self.name = name
        self._secret = secret
        self.max_age = max_age
        self._params: Dict[str, Any] = dict(secure=secure, domain=domain,
                                            path=path, samesite=samesite,
                                            httponly=True)

    def get_session(self, cookie_header: Optional[str] = None) \
            -> CookieSession:
        """Load the session from a ``Cookie`` request header."""
        if not cookie_header:
            return CookieSession()
        value = parse_cookie(cookie_header).get(self.name)
        if not value:
            return CookieSession()
        try:
            payload = jwt.decode(value, self._secret, algorithms=[ALGORITHM])
        except jwt.exceptions.ExpiredSignatureError:
            logger.debug('Cookie %s has expired', self.name)
            return CookieSession()
        except jwt.exceptions.InvalidTokenError as e:
            logger.debug('Cookie %s is malformed: %s', self.name, e)
            return CookieSession()
        data = payload.get('data')
        if not isinstance(data, dict):
            return CookieSession()
        return CookieSession(data)

    def commit_session(self, session: CookieSession,
                       expires: Optional[datetime] = None) -> str:
        """Generate a ``Set-Cookie`` value that stores ``session``."""
        payload: Dict[str, Any] = {'data': session.data}
        params = dict(self._params)
        if expires is not None:
            payload['exp'] = util.epoch(expires)
            params['expires'] = expires
        elif self.max_age is not None:
            payload['exp'] = util.epoch(util.now()
                                        + timedelta(seconds=self.max_age))
            params['max_age'] = self.max_age
        value = jwt.encode(payload, self._secret, algorithm=ALGORITHM)
        return dump_cookie(self.name, value, **params)

    def destroy_session(self, session: CookieSession) -> str:
        """Generate a ``Set-Cookie`` value that clears the cookie."""
        params = dict(self._params)
        return dump_cookie(self.name, '', max_age=0, expires=0, **params)


def init_app(app: Flask) -> None:
    """Create the cookie storages used by the application."""
    config = app.config
    secure = config['AUTH_SESSION_COOKIE_SECURE']
    domain = config['AUTH_SESSION_COOKIE_DOMAIN']
    app.extensions['account_flows.verification'] = CookieSessionStorage(
        config['VERIFICATION_COOKIE_NAME'], config['JWT_SECRET'],
        max_age=int(config['VERIFICATION_COOKIE_DURATION']),
        secure=secure, domain=domain
    )
    app.extensions['account_flows.auth'] = CookieSessionStorage(
        config['AUTH_SESSION_COOKIE_NAME'], config['JWT_SECRET'],
        secure=secure, domain=domain
    )
