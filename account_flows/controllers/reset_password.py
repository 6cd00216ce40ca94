"""Controllers for recovering an account with a forgotten password."""

import logging
import smtplib
from http import HTTPStatus
from typing import Any, Optional

from werkzeug.datastructures import MultiDict
from wtforms import Form, StringField
from wtforms.validators import DataRequired, Length, ValidationError

from ..context import FlowContext
from ..domain import User, VerificationType
from ..services import accounts, mail, verification
from ..services.cookies import CookieSession
from ..services.exceptions import NoSuchUser
from .forms import PasswordAndConfirmForm, redirect_to_field
from .util import ResponseData, invalid, redirect

logger = logging.getLogger(__name__)

RESET_PASSWORD_USERNAME_KEY = 'resetPasswordUsername'


def _lower_strip(value: Optional[str]) -> Optional[str]:
    return value.strip().lower() if isinstance(value, str) else value


class ForgotPasswordForm(Form):
    """Identify the account to recover."""

    username_or_email = StringField(
        'Username or Email', name='usernameOrEmail', filters=[_lower_strip],
        validators=[DataRequired('Username or email is required'),
                    Length(min=3, max=100)]
    )
    redirect_to = redirect_to_field()
    user: Optional[User] = None

    def validate_username_or_email(self, field: StringField) -> None:
        """Look the user up, keeping them on the form for later."""
        self.user = accounts.find_user(field.data) if field.data else None
        if self.user is None:
            raise ValidationError('No user exists with this username or '
                                  'email')


def forgot_password(method: str, params: MultiDict,
                    ctx: FlowContext) -> ResponseData:
    """Handle requests for the forgot-password view."""
    form = ForgotPasswordForm(params)
    if method in ('GET', 'HEAD'):
        return {'form': form}, HTTPStatus.OK, {}

    if not form.validate():
        logger.debug('Forgot-password form not valid')
        return invalid(form)

    target = form.username_or_email.data
    redirect_to = form.redirect_to.data or None
    prepared = verification.prepare_verification(
        VerificationType.RESET_PASSWORD, target, ctx.base_url,
        redirect_to=redirect_to
    )
    try:
        mail.send_verification_email(form.user.email, 'Password Reset',
                                     prepared.code, prepared.link)
    except (smtplib.SMTPException, OSError) as e:
        logger.error('Could not send password reset e-mail: %s', e)
        data, _, headers = invalid(
            form, form_errors=['Could not send the verification e-mail']
        )
        return data, HTTPStatus.INTERNAL_SERVER_ERROR, headers

    return redirect(verification.verify_url(
        '', VerificationType.RESET_PASSWORD, target, redirect_to=redirect_to
    ))


def handle_verification(verified: Any, form: Form,
                        ctx: FlowContext) -> ResponseData:
    """Carry the verified username on to the reset-password page."""
    user = accounts.find_user(verified.target)
    if user is None:
        # The account went away after the code was sent.
        form.code.errors.append('Invalid code')
        return invalid(form)

    verify_session = CookieSession()
    verify_session.set(RESET_PASSWORD_USERNAME_KEY, user.username)
    return redirect('/reset-password', [ctx.verification.commit_session(
        verify_session
    )])


def require_reset_username(ctx: FlowContext) -> Optional[str]:
    """Get the username whose password is being reset, if there is one."""
    username = ctx.verify_session().get(RESET_PASSWORD_USERNAME_KEY)
    return username if isinstance(username, str) and username else None


def reset_password(method: str, params: MultiDict,
                   ctx: FlowContext) -> ResponseData:
    """Handle requests for the reset-password view."""
    username = require_reset_username(ctx)
    if username is None:
        logger.debug('No username to reset; sending to login')
        return redirect('/login')

    form = PasswordAndConfirmForm(params)
    data = {'form': form, 'reset_password_username': username}
    if method in ('GET', 'HEAD'):
        return data, HTTPStatus.OK, {}

    if not form.validate():
        return invalid(form, hide_fields=('password', 'confirmPassword'),
                       reset_password_username=username)

    verify_cookie = ctx.verification.destroy_session(ctx.verify_session())
    try:
        accounts.reset_password(username, form.password.data)
    except NoSuchUser:
        logger.debug('User to reset no longer exists')
        return redirect('/login', [verify_cookie])
    logger.debug('Password was reset')
    return redirect('/login', [verify_cookie],
                    flash=('Your password has been reset.', 'success'))
