"""Controller for switching the color scheme."""

import logging
from http import HTTPStatus
from typing import Optional

from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import BadRequest
from werkzeug.http import dump_cookie, parse_cookie
from wtforms import Form, SelectField

from ..domain import Theme
from .forms import redirect_to_field
from .util import ResponseData, redirect, report, safe_redirect

logger = logging.getLogger(__name__)

THEME_COOKIE_MAX_AGE = 60 * 60 * 24 * 365


class ThemeForm(Form):
    theme = SelectField('Theme', choices=[t.value for t in Theme])
    redirect_to = redirect_to_field()


def get_theme(cookie_header: Optional[str], cookie_name: str) \
        -> Optional[Theme]:
    """Read the preferred theme; None means follow the system."""
    if not cookie_header:
        return None
    value = parse_cookie(cookie_header).get(cookie_name)
    if value in (Theme.LIGHT.value, Theme.DARK.value):
        return Theme(value)
    return None


def theme_cookie(theme: Theme, cookie_name: str) -> str:
    """Generate the ``Set-Cookie`` value for ``theme``."""
    if theme is Theme.SYSTEM:
        return dump_cookie(cookie_name, '', max_age=0, expires=0, path='/')
    return dump_cookie(cookie_name, theme.value, max_age=THEME_COOKIE_MAX_AGE,
                       path='/', samesite='Lax')


def switch(params: MultiDict, cookie_name: str) -> ResponseData:
    """
    Handle a theme switch.

    Raises
    ------
    :class:`BadRequest`
        If the theme is missing or not one we know.

    """
    form = ThemeForm(params)
    if not form.validate():
        raise BadRequest('Invalid theme received')

    theme = Theme(form.theme.data)
    cookie = theme_cookie(theme, cookie_name)
    logger.debug('Switched theme to %s', theme.value)
    if form.redirect_to.data:
        return redirect(safe_redirect(form.redirect_to.data), [cookie])
    result = report(form)
    result['status'] = 'success'
    return {'result': result, 'set_cookies': [cookie]}, HTTPStatus.OK, {}
