"""
Controllers for logging in and out.

Users who have enrolled a second factor are not logged in straight away.
Their new session is parked in the verification cookie, and the ``2fa``
verification completes the login.
"""

import logging
from http import HTTPStatus
from typing import Any, Optional

from flask import current_app
from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import InternalServerError
from wtforms import Form

from ..context import FlowContext
from ..domain import VerificationType
from ..services import accounts, sessions, verification
from ..services.exceptions import SessionCreationFailed
from .forms import password_field, redirect_to_field, remember_field, \
    username_field
from .util import ResponseData, invalid, redirect, safe_redirect

logger = logging.getLogger(__name__)

UNVERIFIED_SESSION_ID_KEY = 'unverifiedSessionId'
REMEMBER_KEY = 'remember'
REDIRECT_TO_KEY = 'redirectTo'


class LoginForm(Form):
    """Log in with username and password."""

    username = username_field()
    password = password_field()
    remember = remember_field()
    redirect_to = redirect_to_field()


def login(method: str, params: MultiDict, ctx: FlowContext) -> ResponseData:
    """
    Handle requests for the login view.

    Parameters
    ----------
    method : str
    params : :class:`MultiDict`
        Query parameters for ``GET``, the form for ``POST``.
    ctx : :class:`.FlowContext`

    Returns
    -------
    dict
        Response data.
    int
        HTTP status code.
    dict
        Headers to add to the response.

    """
    form = LoginForm(params)
    if method in ('GET', 'HEAD'):
        return {'form': form}, HTTPStatus.OK, {}

    if not form.validate():
        logger.debug('Login form not valid')
        return invalid(form, hide_fields=('password',))

    user = accounts.verify_password(form.username.data, form.password.data)
    if user is None:
        logger.debug('Login failed')
        return invalid(form, hide_fields=('password',),
                       form_errors=['Invalid username or password'])

    try:
        user_session = sessions.create_session(user.user_id)
    except SessionCreationFailed as e:
        raise InternalServerError('Cannot log in') from e
    remember = bool(form.remember.data)
    redirect_to = form.redirect_to.data or None

    if verification.get_record(VerificationType.TWO_FACTOR,
                               user.user_id) is not None:
        logger.debug('Second factor required for user %s', user.user_id)
        verify_session = ctx.verify_session()
        verify_session.set(UNVERIFIED_SESSION_ID_KEY, user_session.session_id)
        verify_session.set(REMEMBER_KEY, remember)
        if redirect_to:
            verify_session.set(REDIRECT_TO_KEY, redirect_to)
        return redirect(
            verification.verify_url('', VerificationType.TWO_FACTOR,
                                    user.user_id, redirect_to=redirect_to),
            [ctx.verification.commit_session(verify_session)]
        )

    auth_cookie = sessions.commit_auth_session(
        ctx.auth, ctx.auth_session(), user_session, remember
    )
    default = current_app.config['DEFAULT_LOGIN_REDIRECT_URL']
    return redirect(safe_redirect(redirect_to, default), [auth_cookie])


def handle_verification(verified: Any, form: Form,
                        ctx: FlowContext) -> ResponseData:
    """Promote the parked session once the second factor checks out."""
    verify_session = ctx.verify_session()
    verify_cookie = ctx.verification.destroy_session(verify_session)
    session_id = verify_session.get(UNVERIFIED_SESSION_ID_KEY)
    user_session = None
    if isinstance(session_id, str) and session_id:
        user_session = sessions.load_session(session_id)
    if user_session is None or user_session.user_id != verified.target:
        logger.debug('No parked session for this second factor')
        return redirect('/login', [verify_cookie])

    auth_cookie = sessions.commit_auth_session(
        ctx.auth, ctx.auth_session(), user_session,
        bool(verify_session.get(REMEMBER_KEY))
    )
    redirect_to: Optional[str] = verified.redirect_to \
        or verify_session.get(REDIRECT_TO_KEY)
    default = current_app.config['DEFAULT_LOGIN_REDIRECT_URL']
    return redirect(safe_redirect(redirect_to, default),
                    [auth_cookie, verify_cookie],
                    flash=('Welcome back!', 'success'))


def logout(ctx: FlowContext) -> ResponseData:
    """Log the user out and clear the auth cookie."""
    auth_session = ctx.auth_session()
    session_id = auth_session.get(sessions.SESSION_KEY)
    if isinstance(session_id, str) and session_id:
        sessions.delete_session(session_id)
        logger.debug('Deleted session %s', session_id)
    return redirect(current_app.config['DEFAULT_LOGOUT_REDIRECT_URL'],
                    [ctx.auth.destroy_session(auth_session)])
