"""
Controllers for signing up and onboarding new users.

A new user first proves control of an e-mail address (``signup`` and the
``onboarding`` verification), or arrives from an external provider with an
identity that has already been checked (``begin_provider_onboarding``).
Either way the e-mail address travels to the onboarding page in the
verification cookie, and the account is created there.
"""

import logging
import smtplib
from http import HTTPStatus
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlencode

from flask import current_app
from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import InternalServerError
from wtforms import Form, StringField
from wtforms.validators import ValidationError, optional

from ..context import FlowContext
from ..domain import VerificationType
from ..services import accounts, mail, sessions, verification
from ..services.cookies import CookieSession
from ..services.exceptions import ConnectionTaken, EmailTaken, \
    RegistrationFailed, SessionCreationFailed, UsernameTaken
from .forms import PasswordAndConfirmForm, agree_field, email_field, \
    name_field, redirect_to_field, remember_field, username_field
from .util import ResponseData, invalid, redirect, safe_redirect

logger = logging.getLogger(__name__)

ONBOARDING_EMAIL_KEY = 'onboardingEmail'
PROVIDER_ID_KEY = 'providerId'
PREFILLED_PROFILE_KEY = 'prefilledProfile'
FORM_ERROR_KEY = 'formError'

USERNAME_TAKEN = 'A user already exists with this username'
EMAIL_TAKEN = 'A user already exists with this email'
WELCOME = ('Thanks for signing up!', 'success')

HIDDEN_FIELDS = ('password', 'confirmPassword')


class SignupForm(Form):
    """Start a new account with an e-mail address."""

    email = email_field()
    redirect_to = redirect_to_field()

    def validate_email(self, field: StringField) -> None:
        """Pre-check that the address is not already in use."""
        if field.data and accounts.email_exists(field.data):
            raise ValidationError(EMAIL_TAKEN)


class _UsernameMixin(object):
    def validate_username(self, field: StringField) -> None:
        """Pre-check that the username is free; storage has the last word."""
        if field.data and accounts.username_exists(field.data):
            raise ValidationError(USERNAME_TAKEN)


class OnboardingForm(_UsernameMixin, PasswordAndConfirmForm):
    """Complete an account for a verified e-mail address."""

    username = username_field()
    name = name_field()
    agree = agree_field()
    remember = remember_field()
    redirect_to = redirect_to_field()


class ProviderOnboardingForm(_UsernameMixin, Form):
    """Complete an account for a verified provider identity."""

    image_url = StringField('Image URL', name='imageUrl',
                            validators=[optional()])
    username = username_field()
    name = name_field()
    agree = agree_field()
    remember = remember_field()
    redirect_to = redirect_to_field()


def signup(method: str, params: MultiDict, ctx: FlowContext) -> ResponseData:
    """Handle requests for the signup view."""
    if method in ('GET', 'HEAD'):
        form = SignupForm(params)
        return {'form': form}, HTTPStatus.OK, {}

    form = SignupForm(params)
    if not form.validate():
        logger.debug('Signup form not valid')
        return invalid(form)

    email = form.email.data
    redirect_to = form.redirect_to.data or None
    prepared = verification.prepare_verification(
        VerificationType.ONBOARDING, email, ctx.base_url,
        redirect_to=redirect_to
    )
    try:
        mail.send_verification_email(email, 'Welcome!', prepared.code,
                                     prepared.link)
    except (smtplib.SMTPException, OSError) as e:
        logger.error('Could not send onboarding e-mail: %s', e)
        data, _, headers = invalid(
            form, form_errors=['Could not send the verification e-mail']
        )
        return data, HTTPStatus.INTERNAL_SERVER_ERROR, headers

    logger.debug('Sent onboarding code')
    return redirect(verification.verify_url(
        '', VerificationType.ONBOARDING, email, redirect_to=redirect_to
    ))


def handle_verification(verified: Any, form: Form,
                        ctx: FlowContext) -> ResponseData:
    """Carry a verified e-mail address on to the onboarding page."""
    verify_session = CookieSession()
    verify_session.set(ONBOARDING_EMAIL_KEY, verified.target)
    location = '/onboarding'
    if verified.redirect_to:
        location += '?' + urlencode({'redirectTo': verified.redirect_to})
    return redirect(location, [ctx.verification.commit_session(
        verify_session
    )])


def require_onboarding_email(ctx: FlowContext) -> Optional[str]:
    """Get the e-mail address being onboarded, if there is one."""
    email = ctx.verify_session().get(ONBOARDING_EMAIL_KEY)
    return email if isinstance(email, str) and email else None


def require_provider_data(ctx: FlowContext, provider_name: str) \
        -> Optional[Tuple[str, str]]:
    """Get the e-mail address and provider ID being onboarded."""
    if provider_name not in current_app.config['PROVIDER_NAMES']:
        logger.debug('Unknown provider %s', provider_name)
        return None
    verify_session = ctx.verify_session()
    email = verify_session.get(ONBOARDING_EMAIL_KEY)
    provider_id = verify_session.get(PROVIDER_ID_KEY)
    if not isinstance(email, str) or not email:
        return None
    if not isinstance(provider_id, str) or not provider_id:
        return None
    return email, provider_id


def _log_in(ctx: FlowContext, user_id: str, remember: bool,
            redirect_to: Optional[str]) -> ResponseData:
    try:
        user_session = sessions.create_session(user_id)
    except SessionCreationFailed as e:
        raise InternalServerError('Cannot log in') from e
    auth_cookie = sessions.commit_auth_session(
        ctx.auth, ctx.auth_session(), user_session, remember
    )
    verify_cookie = ctx.verification.destroy_session(ctx.verify_session())
    default = current_app.config['DEFAULT_LOGIN_REDIRECT_URL']
    return redirect(safe_redirect(redirect_to, default),
                    [auth_cookie, verify_cookie], flash=WELCOME)


def onboarding(method: str, params: MultiDict,
               ctx: FlowContext) -> ResponseData:
    """Handle requests for the onboarding view."""
    email = require_onboarding_email(ctx)
    if email is None:
        logger.debug('No onboarding e-mail; starting over')
        return redirect('/signup')

    if method in ('GET', 'HEAD'):
        form = OnboardingForm(params)
        return {'form': form, 'email': email}, HTTPStatus.OK, {}

    form = OnboardingForm(params)
    if not form.validate():
        logger.debug('Onboarding form not valid')
        return invalid(form, hide_fields=HIDDEN_FIELDS, email=email)

    try:
        user = accounts.signup(email, form.username.data, form.name.data,
                               form.password.data)
    except UsernameTaken:
        form.username.errors.append(USERNAME_TAKEN)
        return invalid(form, hide_fields=HIDDEN_FIELDS, email=email)
    except EmailTaken:
        return invalid(form, hide_fields=HIDDEN_FIELDS,
                       form_errors=[EMAIL_TAKEN], email=email)
    except RegistrationFailed as e:
        raise InternalServerError('Registration failed') from e
    return _log_in(ctx, user.user_id, form.remember.data,
                   form.redirect_to.data)


def _prefilled(verify_session: CookieSession) -> Dict[str, Any]:
    profile = verify_session.get(PREFILLED_PROFILE_KEY)
    if not isinstance(profile, dict):
        return {}
    return {
        'username': profile.get('username'),
        'name': profile.get('name'),
        'image_url': profile.get('imageUrl'),
    }


def onboarding_provider(method: str, params: MultiDict, provider_name: str,
                        ctx: FlowContext) -> ResponseData:
    """Handle requests for the onboarding view of a provider identity."""
    provider_data = require_provider_data(ctx, provider_name)
    if provider_data is None:
        return redirect('/signup')
    email, provider_id = provider_data
    data: Dict[str, Any] = {'email': email, 'provider_name': provider_name}

    if method in ('GET', 'HEAD'):
        verify_session = ctx.verify_session()
        form = ProviderOnboardingForm(params, **_prefilled(verify_session))
        data['form'] = form
        form_error = verify_session.get(FORM_ERROR_KEY)
        if isinstance(form_error, str) and form_error:
            data['result'] = {'status': 'error', 'initial_value': {},
                              'error': {'': [form_error]}}
        return data, HTTPStatus.OK, {}

    form = ProviderOnboardingForm(params)
    if not form.validate():
        logger.debug('Provider onboarding form not valid')
        return invalid(form, **data)

    try:
        user = accounts.signup_with_connection(
            email, form.username.data, form.name.data, provider_name,
            provider_id
        )
    except UsernameTaken:
        form.username.errors.append(USERNAME_TAKEN)
        return invalid(form, **data)
    except EmailTaken:
        return invalid(form, form_errors=[EMAIL_TAKEN], **data)
    except ConnectionTaken:
        return invalid(form, form_errors=[
            f'This {provider_name} account is already connected to a user'
        ], **data)
    except RegistrationFailed as e:
        raise InternalServerError('Registration failed') from e
    return _log_in(ctx, user.user_id, form.remember.data,
                   form.redirect_to.data)


def begin_provider_onboarding(ctx: FlowContext, provider_name: str,
                              provider_id: str, email: str,
                              profile: Optional[Dict[str, Any]] = None,
                              redirect_to: Optional[str] = None,
                              form_error: Optional[str] = None) \
        -> ResponseData:
    """
    Hand a provider identity over to the onboarding page.

    Parameters
    ----------
    ctx : :class:`.FlowContext`
    provider_name : str
        Must be one of ``PROVIDER_NAMES``.
    provider_id : str
        The user's ID with the provider.
    email : str
        Address the provider vouches for.
    profile : dict
        May carry ``username``, ``name`` and ``imageUrl`` to prefill.
    redirect_to : str
        Where to go once the account is created.
    form_error : str
        Shown on the onboarding page, e.g. when a previous attempt failed.

    Returns
    -------
    tuple
        A redirect to ``/onboarding/<provider_name>``.

    """
    verify_session = ctx.verify_session()
    verify_session.set(ONBOARDING_EMAIL_KEY, email.lower())
    verify_session.set(PROVIDER_ID_KEY, provider_id)
    prefilled: Dict[str, Any] = {}
    for key, value in (profile or {}).items():
        if key == 'username' and isinstance(value, str):
            value = ''.join(c if c.isalnum() and c.isascii() else '_'
                            for c in value).lower()
        if key in ('username', 'name', 'imageUrl'):
            prefilled[key] = value
    verify_session.set(PREFILLED_PROFILE_KEY, prefilled)
    if form_error:
        verify_session.set(FORM_ERROR_KEY, form_error)
    else:
        verify_session.unset(FORM_ERROR_KEY)

    location = f'/onboarding/{provider_name}'
    if redirect_to:
        location += '?' + urlencode({'redirectTo': redirect_to})
    logger.debug('Handing %s identity to onboarding', provider_name)
    return redirect(location, [ctx.verification.commit_session(
        verify_session
    )])
