"""Provides Flask integration for the account flow pages."""

import logging
from functools import wraps
from http import HTTPStatus
from typing import Any, Callable, Optional
from urllib.parse import urlencode

from flask import Blueprint, Response, current_app, flash, g, jsonify, \
    make_response, redirect, render_template, request

from account_flows import context
from account_flows.controllers import authentication, onboarding, \
    reset_password, settings, theme, two_factor, verification
from account_flows.controllers.util import ResponseData
from account_flows.services import sessions, util

logger = logging.getLogger(__name__)
blueprint = Blueprint('ui', __name__, url_prefix='')


def current_user_id() -> Optional[str]:
    """Get the ID of the authenticated user, if any."""
    if 'user_id' not in g:
        ctx = context.from_request()
        g.user_id = sessions.get_user_id(ctx.auth, ctx.cookie_header)
    user_id: Optional[str] = g.user_id
    return user_id


def anonymous_only(func: Callable) -> Callable:
    """Redirect logged-in users away from pages meant for visitors."""
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        if current_user_id() is not None:
            return redirect('/', code=HTTPStatus.FOUND)
        return func(*args, **kwargs)
    return wrapper


def login_required(func: Callable) -> Callable:
    """Send anonymous users to the login page, then back here."""
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        if current_user_id() is None:
            query = urlencode({'redirectTo': request.full_path.rstrip('?')})
            return redirect(f'/login?{query}', code=HTTPStatus.FOUND)
        return func(*args, **kwargs)
    return wrapper


def set_cookies(response: Response, data: dict) -> None:
    """
    Update a :class:`.Response` with cookies in controller data.

    Controllers seeking to update cookies must include a ``set_cookies`` key
    in their response data, holding ready-made ``Set-Cookie`` values.
    """
    for cookie in data.pop('set_cookies', None) or []:
        response.headers.add('Set-Cookie', cookie)


def _wants_json() -> bool:
    best = request.accept_mimetypes.best_match(['text/html',
                                                'application/json'])
    return best == 'application/json'


def respond(template: str, result: ResponseData) -> Response:
    """
    Turn controller output into a response.

    Redirects carry their cookies and flash message along; everything else
    renders ``template``, or the submission report as JSON when that is what
    the client asked for.
    """
    data, code, headers = result
    if code == HTTPStatus.FOUND:
        response = make_response(redirect(headers['Location'], code=code))
        if 'flash' in data:
            message, category = data.pop('flash')
            flash(message, category)
        set_cookies(response, data)
        return response

    cookies = data.pop('set_cookies', None)
    if _wants_json():
        response = make_response(jsonify({'result': data.get('result')}),
                                 code, headers)
    else:
        response = make_response(render_template(template, **data), code,
                                 headers)
    set_cookies(response, {'set_cookies': cookies})
    return response


@blueprint.after_request
def apply_response_headers(response: Response) -> Response:
    """Prevent UI redress attacks."""
    response.headers['Content-Security-Policy'] = "frame-ancestors 'none'"
    response.headers['X-Frame-Options'] = 'DENY'
    return response


@blueprint.app_context_processor
def inject_theme() -> dict:
    """Make the theme preference and the current user ID available."""
    cookie_header = request.headers.get('Cookie')
    return {
        'theme': theme.get_theme(cookie_header,
                                 current_app.config['THEME_COOKIE_NAME']),
        'user_id': current_user_id(),
    }


def _params() -> Any:
    return request.args if request.method == 'GET' else request.form


@blueprint.route('/', methods=['GET'])
def index() -> Response:
    """Landing page."""
    return make_response(render_template('account_flows/index.html'))


@blueprint.route('/signup', methods=['GET', 'POST'])
@anonymous_only
def signup() -> Response:
    """Start a new account by verifying an e-mail address."""
    result = onboarding.signup(request.method, _params(),
                               context.from_request())
    return respond('account_flows/signup.html', result)


@blueprint.route('/verify', methods=['GET', 'POST'])
def verify() -> Response:
    """Submit a one-time code."""
    result = verification.verify(request.method, request.args, request.form,
                                 context.from_request())
    return respond('account_flows/verify.html', result)


@blueprint.route('/onboarding', methods=['GET', 'POST'])
@anonymous_only
def onboard() -> Response:
    """Complete an account for a verified e-mail address."""
    result = onboarding.onboarding(request.method, _params(),
                                   context.from_request())
    return respond('account_flows/onboarding.html', result)


@blueprint.route('/onboarding/<provider_name>', methods=['GET', 'POST'])
@anonymous_only
def onboard_provider(provider_name: str) -> Response:
    """Complete an account for a verified provider identity."""
    result = onboarding.onboarding_provider(request.method, _params(),
                                            provider_name,
                                            context.from_request())
    return respond('account_flows/onboarding_provider.html', result)


@blueprint.route('/forgot-password', methods=['GET', 'POST'])
@anonymous_only
def forgot_password() -> Response:
    """Ask for a password reset code."""
    result = reset_password.forgot_password(request.method, _params(),
                                            context.from_request())
    return respond('account_flows/forgot_password.html', result)


@blueprint.route('/reset-password', methods=['GET', 'POST'])
@anonymous_only
def reset() -> Response:
    """Choose a new password after verifying a reset code."""
    result = reset_password.reset_password(request.method, _params(),
                                           context.from_request())
    return respond('account_flows/reset_password.html', result)


@blueprint.route('/login', methods=['GET', 'POST'])
@anonymous_only
def login() -> Response:
    """Log in with username and password."""
    result = authentication.login(request.method, _params(),
                                  context.from_request())
    return respond('account_flows/login.html', result)


@blueprint.route('/logout', methods=['POST'])
def logout() -> Response:
    """Log out."""
    result = authentication.logout(context.from_request())
    return respond('account_flows/index.html', result)


@blueprint.route('/settings/profile', methods=['GET'])
@login_required
def profile() -> Response:
    """Show the user's profile settings."""
    result = settings.profile(current_user_id())
    return respond('account_flows/profile.html', result)


@blueprint.route('/settings/profile/password', methods=['GET', 'POST'])
@login_required
def change_password() -> Response:
    """Change an existing password."""
    result = settings.change_password(request.method, request.form,
                                      current_user_id())
    return respond('account_flows/password_change.html', result)


@blueprint.route('/settings/profile/password/create',
                 methods=['GET', 'POST'])
@login_required
def create_password() -> Response:
    """Set a password for a user who signed up through a provider."""
    result = settings.create_password(request.method, request.form,
                                      current_user_id())
    return respond('account_flows/password_create.html', result)


@blueprint.route('/settings/profile/photo', methods=['GET', 'POST'])
@login_required
def photo() -> Response:
    """Replace or delete the profile photo."""
    result = settings.photo(request.method, request.form, request.files,
                            current_user_id())
    return respond('account_flows/photo.html', result)


@blueprint.route('/settings/profile/two-factor', methods=['GET', 'POST'])
@login_required
def two_factor_status() -> Response:
    """Show two-factor status, or start enrollment."""
    if request.method == 'POST':
        result = two_factor.enable(current_user_id(), context.from_request())
    else:
        result = two_factor.status(current_user_id())
    return respond('account_flows/two_factor.html', result)


@blueprint.route('/settings/profile/two-factor/verify',
                 methods=['GET', 'POST'])
@login_required
def two_factor_verify() -> Response:
    """Confirm enrollment with a first code."""
    result = two_factor.verify(request.method, request.form,
                               current_user_id())
    return respond('account_flows/two_factor_verify.html', result)


@blueprint.route('/settings/profile/two-factor/disable', methods=['POST'])
@login_required
def two_factor_disable() -> Response:
    """Leave two-factor authentication."""
    result = two_factor.disable(current_user_id())
    return respond('account_flows/two_factor.html', result)


@blueprint.route('/resources/theme-switch', methods=['POST'])
def theme_switch() -> Response:
    """Store the preferred color scheme."""
    result = theme.switch(request.form,
                          current_app.config['THEME_COOKIE_NAME'])
    data, code, headers = result
    if code == HTTPStatus.FOUND:
        return respond('account_flows/index.html', result)
    response = make_response(jsonify({'result': data['result']}), code,
                             headers)
    set_cookies(response, data)
    return response


@blueprint.route('/resources/user-images/<image_id>', methods=['GET'])
def user_image(image_id: str) -> Response:
    """Serve a profile image."""
    data, code, headers = settings.user_image(image_id)
    response = make_response(data['blob'], code, headers)
    response.headers['Cache-Control'] = 'public, max-age=31536000, immutable'
    return response


@blueprint.route('/healthcheck', methods=['GET'])
def healthcheck() -> Response:
    """Report whether the service can reach its database."""
    if util.is_available():
        return make_response('OK', HTTPStatus.OK)
    return make_response('Database unavailable',
                         HTTPStatus.SERVICE_UNAVAILABLE)
