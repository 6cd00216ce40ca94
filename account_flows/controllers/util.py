"""Helpers for :mod:`account_flows.controllers`."""

import re
from http import HTTPStatus
from typing import Any, Dict, Iterable, List, Optional, Tuple

from flask import current_app
from wtforms import FileField, Form

ResponseData = Tuple[dict, int, dict]


def report(form: Form, hide_fields: Iterable[str] = (),
           form_errors: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Echo a submission back along with its errors.

    Parameters
    ----------
    form : :class:`wtforms.Form`
        A form that has been validated.
    hide_fields : iterable
        Names of fields (e.g. passwords) whose values must not be echoed.
    form_errors : list
        Errors that belong to the form as a whole rather than to a field.

    Returns
    -------
    dict
        ``initial_value`` maps field names to submitted values; ``error``
        maps field names to error messages, with form-level errors under
        the empty string.

    """
    hidden = set(hide_fields)
    initial_value: Dict[str, Any] = {}
    errors: Dict[str, List[str]] = {}
    for field in form:
        if field.name not in hidden and not isinstance(field, FileField):
            initial_value[field.name] = field.data
        if field.errors:
            errors[field.name] = list(field.errors)
    all_form_errors = list(getattr(form, 'form_errors', None) or []) \
        + list(form_errors or [])
    if all_form_errors:
        errors[''] = all_form_errors
    return {'status': 'error', 'initial_value': initial_value,
            'error': errors}


def invalid(form: Form, hide_fields: Iterable[str] = (),
            form_errors: Optional[List[str]] = None,
            **extra: Any) -> ResponseData:
    """Respond with 400 and an error report for ``form``."""
    data = {'form': form,
            'result': report(form, hide_fields=hide_fields,
                             form_errors=form_errors)}
    data.update(extra)
    return data, HTTPStatus.BAD_REQUEST, {}


def redirect(location: str, set_cookies: Iterable[str] = (),
             flash: Optional[Tuple[str, str]] = None) -> ResponseData:
    """
    Respond with a redirect.

    ``set_cookies`` are ``Set-Cookie`` header values; ``flash`` is a
    ``(message, category)`` pair to show on the next page.
    """
    data: Dict[str, Any] = {'set_cookies': list(set_cookies)}
    if flash is not None:
        data['flash'] = flash
    return data, HTTPStatus.FOUND, {'Location': location}


def good_redirect(to: Optional[str]) -> bool:
    """True if ``to`` is a local path that is safe to redirect to."""
    pattern = current_app.config['REDIRECT_REGEX']
    return bool(to) and bool(re.match(pattern, to))


def safe_redirect(to: Optional[str], default: str = '/') -> str:
    """Use ``to`` if it is safe, otherwise ``default``."""
    return to if to and good_redirect(to) else default
