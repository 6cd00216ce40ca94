"""
Controller for the one-time code verification page.

Codes arrive either as query parameters (the link in an e-mail) or as a
submitted form. A valid code is consumed, unless its type is persistent, and
the request is handed to the completion handler registered for the code's
type. Every failure, including a target that does not exist, is reported as
the same ``Invalid code`` error on the ``code`` field.
"""

import logging
from http import HTTPStatus
from typing import Callable, Dict, FrozenSet, Iterable, NamedTuple, \
    Optional, Tuple

from werkzeug.datastructures import MultiDict
from wtforms import Form, SelectField, StringField
from wtforms.validators import DataRequired, Length

from ..context import FlowContext
from ..domain import VerificationType
from ..services import verification
from . import authentication, onboarding, reset_password
from .forms import redirect_to_field
from .util import ResponseData, invalid

logger = logging.getLogger(__name__)

INVALID_CODE = 'Invalid code'


class Verified(NamedTuple):
    """A code that checked out."""

    type: VerificationType
    target: str
    redirect_to: Optional[str] = None


CompletionHandler = Callable[[Verified, 'VerifyForm', FlowContext],
                             ResponseData]

COMPLETION_HANDLERS: Dict[VerificationType, CompletionHandler] = {
    VerificationType.ONBOARDING: onboarding.handle_verification,
    VerificationType.RESET_PASSWORD: reset_password.handle_verification,
    VerificationType.TWO_FACTOR: authentication.handle_verification,
}
"""Completion handler for each type that the verify page accepts."""

VERIFY_TYPES: FrozenSet[VerificationType] = frozenset(COMPLETION_HANDLERS)


def _strip(value: Optional[str]) -> Optional[str]:
    return value.strip() if isinstance(value, str) else value


class VerifyForm(Form):
    """A one-time code for a verification type and target."""

    code = StringField('Code', filters=[_strip], validators=[
        DataRequired(INVALID_CODE),
        Length(min=6, max=6, message=INVALID_CODE),
    ])
    type = SelectField('Type', validators=[DataRequired()])
    target = StringField('Target', validators=[DataRequired()])
    redirect_to = redirect_to_field()

    def __init__(self, *args: object,
                 type_set: Iterable[VerificationType] = VERIFY_TYPES,
                 **kwargs: object) -> None:
        """Restrict ``type`` to ``type_set``."""
        super(VerifyForm, self).__init__(*args, **kwargs)
        self.type.choices = sorted(vtype.value for vtype in type_set)


def validate_request(type_set: Iterable[VerificationType], method: str,
                     args: MultiDict, form_data: MultiDict) \
        -> Tuple[VerifyForm, Optional[Verified]]:
    """
    Check a submitted code.

    Parameters
    ----------
    type_set : iterable
        Verification types that may be submitted.
    method : str
        ``GET`` and ``HEAD`` read the code from ``args``; anything else
        reads it from ``form_data``.

    Returns
    -------
    :class:`VerifyForm`
        Carries field errors when the code did not check out.
    :class:`Verified` or None
        None unless the code checked out.

    """
    params = args if method in ('GET', 'HEAD') else form_data
    form = VerifyForm(params, type_set=type_set)
    if not form.validate():
        logger.debug('Verification submission is malformed')
        return form, None

    vtype = VerificationType(form.type.data)
    target = form.target.data
    if not verification.is_code_valid(vtype, target, form.code.data):
        logger.debug('Code did not check out for %s', vtype.value)
        form.code.errors.append(INVALID_CODE)
        return form, None

    if not vtype.is_persistent:
        verification.delete_verification(vtype, target)
    return form, Verified(type=vtype, target=target,
                          redirect_to=form.redirect_to.data or None)


def verify(method: str, args: MultiDict, form_data: MultiDict,
           ctx: FlowContext) -> ResponseData:
    """Handle requests for the verification page."""
    if method in ('GET', 'HEAD') and not args.get('code'):
        form = VerifyForm(args)
        return {'form': form}, HTTPStatus.OK, {}

    form, verified = validate_request(VERIFY_TYPES, method, args, form_data)
    if verified is None:
        return invalid(form)
    logger.debug('Completing %s verification', verified.type.value)
    return COMPLETION_HANDLERS[verified.type](verified, form, ctx)
