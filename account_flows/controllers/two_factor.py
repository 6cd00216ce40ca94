"""
Controllers for enrolling in and leaving two-factor authentication.

Enrollment issues a pending ``2fa-verify`` record whose secret the user loads
into an authenticator app. Once the app produces a valid code, the pending
record becomes the persistent ``2fa`` record that login checks for.
"""

import logging
from http import HTTPStatus

from werkzeug.datastructures import MultiDict
from wtforms import Form, StringField
from wtforms.validators import DataRequired, Length, ValidationError

from ..context import FlowContext
from ..domain import VerificationType
from ..services import accounts, totp, verification
from .util import ResponseData, invalid, redirect

logger = logging.getLogger(__name__)

TWO_FACTOR_URL = '/settings/profile/two-factor'
TWO_FACTOR_VERIFY_URL = '/settings/profile/two-factor/verify'
ISSUER = 'Account Flows'
ENROLLMENT_DURATION = 60 * 10


def _strip(value: str) -> str:
    return value.strip() if isinstance(value, str) else value


class TwoFactorCodeForm(Form):
    """A code from the user's authenticator app."""

    code = StringField('Code', filters=[_strip], validators=[
        DataRequired('Code is required'),
        Length(min=6, max=6, message='Invalid code'),
    ])

    def __init__(self, *args: object, user_id: str = '',
                 **kwargs: object) -> None:
        super(TwoFactorCodeForm, self).__init__(*args, **kwargs)
        self.user_id = user_id

    def validate_code(self, field: StringField) -> None:
        if not verification.is_code_valid(VerificationType.TWO_FACTOR_VERIFY,
                                          self.user_id, field.data):
            raise ValidationError('Invalid code')


def status(user_id: str) -> ResponseData:
    """Handle requests for the two-factor settings page."""
    enabled = verification.get_record(VerificationType.TWO_FACTOR,
                                      user_id) is not None
    return {'enabled': enabled}, HTTPStatus.OK, {}


def enable(user_id: str, ctx: FlowContext) -> ResponseData:
    """Start enrollment by issuing a pending secret."""
    verification.prepare_verification(
        VerificationType.TWO_FACTOR_VERIFY, user_id, ctx.base_url,
        expires_in=ENROLLMENT_DURATION
    )
    logger.debug('Started two-factor enrollment for user %s', user_id)
    return redirect(TWO_FACTOR_VERIFY_URL)


def verify(method: str, params: MultiDict, user_id: str) -> ResponseData:
    """Handle requests to confirm enrollment with a first code."""
    record = verification.get_record(VerificationType.TWO_FACTOR_VERIFY,
                                     user_id)
    if record is None:
        logger.debug('No pending enrollment for user %s', user_id)
        return redirect(TWO_FACTOR_URL)

    user = accounts.get_user_by_id(user_id)
    otp_uri = totp.provisioning_uri(
        record.secret, user.email, ISSUER, period=record.period,
        digits=record.digits, algorithm=record.algorithm
    )
    form = TwoFactorCodeForm(params, user_id=user_id)
    data = {'form': form, 'otp_uri': otp_uri, 'secret': record.secret}
    if method in ('GET', 'HEAD'):
        return data, HTTPStatus.OK, {}

    if not form.validate():
        return invalid(form, otp_uri=otp_uri, secret=record.secret)

    try:
        verification.change_type(VerificationType.TWO_FACTOR_VERIFY,
                                 VerificationType.TWO_FACTOR, user_id)
    except LookupError:
        # Enrollment was restarted or finished by another request.
        return redirect(TWO_FACTOR_URL)
    logger.debug('Two-factor enabled for user %s', user_id)
    return redirect(TWO_FACTOR_URL,
                    flash=('Two-factor authentication has been enabled.',
                           'success'))


def disable(user_id: str) -> ResponseData:
    """Stop asking the user for a second factor."""
    verification.delete_verification(VerificationType.TWO_FACTOR, user_id)
    logger.debug('Two-factor disabled for user %s', user_id)
    return redirect(TWO_FACTOR_URL,
                    flash=('Two-factor authentication has been disabled.',
                           'success'))
