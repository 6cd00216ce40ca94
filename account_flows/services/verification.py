"""
One-time code verification records.

Each ``(type, target)`` pair has at most one record. Issuing a new code for a
pair replaces the previous record, so the previous code stops working at
once. Records of non-persistent types expire after one period; records of
persistent types (two-factor secrets) have no expiry.
"""

import logging
from datetime import timedelta
from typing import NamedTuple, Optional
from urllib.parse import urlencode

from retry import retry
from sqlalchemy.exc import IntegrityError

from .. import domain
from ..domain import VerificationType
from . import totp, util
from .exceptions import VerificationConflict
from .models import DBVerification

logger = logging.getLogger(__name__)

VALID_WINDOW = 1
"""Number of adjacent time steps accepted on either side of the current one."""

EMAIL_CODE_PERIOD = 60 * 10
TWO_FACTOR_PERIOD = 30


class CodeOptions(NamedTuple):
    """How codes of a verification type are generated."""

    period: int
    digits: int
    algorithm: str
    char_set: str


CODE_OPTIONS = {
    VerificationType.ONBOARDING: CodeOptions(
        EMAIL_CODE_PERIOD, 6, 'SHA256', totp.CODE_CHAR_SET
    ),
    VerificationType.RESET_PASSWORD: CodeOptions(
        EMAIL_CODE_PERIOD, 6, 'SHA256', totp.CODE_CHAR_SET
    ),
    VerificationType.TWO_FACTOR_VERIFY: CodeOptions(
        TWO_FACTOR_PERIOD, 6, 'SHA1', totp.DIGITS
    ),
    VerificationType.TWO_FACTOR: CodeOptions(
        TWO_FACTOR_PERIOD, 6, 'SHA1', totp.DIGITS
    ),
}


class Prepared(NamedTuple):
    """A freshly issued code."""

    code: str
    link: str
    record: domain.VerificationRecord


def _to_domain(db_verification: DBVerification) \
        -> domain.VerificationRecord:
    return domain.VerificationRecord(
        type=VerificationType(db_verification.type),
        target=db_verification.target,
        secret=db_verification.secret,
        algorithm=db_verification.algorithm,
        period=db_verification.period,
        digits=db_verification.digits,
        char_set=db_verification.char_set,
        expires_at=util.from_epoch(db_verification.expires_at)
    )


def _query(session, vtype: VerificationType, target: str):  # type: ignore
    return session.query(DBVerification) \
        .filter(DBVerification.type == vtype.value) \
        .filter(DBVerification.target == target)


def verify_url(base_url: str, vtype: VerificationType, target: str,
               code: Optional[str] = None,
               redirect_to: Optional[str] = None) -> str:
    """Build the link to the verification page."""
    params = {'type': vtype.value, 'target': target}
    if code is not None:
        params['code'] = code
    if redirect_to:
        params['redirectTo'] = redirect_to
    return f'{base_url.rstrip("/")}/verify?{urlencode(params)}'


@retry(VerificationConflict, tries=2)
def _upsert(record: domain.VerificationRecord) -> None:
    try:
        with util.transaction() as session:
            for existing in _query(session, record.type, record.target):
                session.delete(existing)
            session.flush()
            session.add(DBVerification(
                type=record.type.value,
                target=record.target,
                secret=record.secret,
                algorithm=record.algorithm,
                digits=record.digits,
                period=record.period,
                char_set=record.char_set,
                expires_at=(util.epoch(record.expires_at)
                            if record.expires_at is not None else None),
                created_at=util.epoch(util.now())
            ))
            session.commit()
    except IntegrityError as e:
        # Another request inserted a record for the same pair between our
        # delete and insert. Run again so that the newest code wins.
        raise VerificationConflict(str(e)) from e


def prepare_verification(vtype: VerificationType, target: str,
                         base_url: str, period: Optional[int] = None,
                         redirect_to: Optional[str] = None,
                         expires_in: Optional[int] = None) -> Prepared:
    """
    Issue a new code for ``(vtype, target)``.

    Parameters
    ----------
    vtype : :class:`.VerificationType`
    target : str
        What is being verified, e.g. an e-mail address or a user ID.
    base_url : str
        Root URL of the application, used to build the verification link.
    period : int or None
        Lifetime of a time step in seconds; defaults per type.
    redirect_to : str or None
        Carried on the link so that the completion handler can honor it.
    expires_in : int or None
        Seconds until the record expires, when it should outlive a single
        validity window.

    Returns
    -------
    :class:`Prepared`

    """
    options = CODE_OPTIONS[vtype]
    if period is not None:
        options = options._replace(period=period)
    now = util.now()
    expires_at = None
    if not vtype.is_persistent:
        if expires_in is None:
            expires_in = options.period * VALID_WINDOW
        expires_at = now + timedelta(seconds=expires_in)
    record = domain.VerificationRecord(
        type=vtype,
        target=target,
        secret=totp.generate_secret(),
        algorithm=options.algorithm,
        period=options.period,
        digits=options.digits,
        char_set=options.char_set,
        expires_at=expires_at
    )
    _upsert(record)
    code = totp.generate(record.secret, now, period=record.period,
                         digits=record.digits, algorithm=record.algorithm,
                         char_set=record.char_set)
    link = verify_url(base_url, vtype, target, code=code,
                      redirect_to=redirect_to)
    logger.debug('Prepared %s verification', vtype.value)
    return Prepared(code=code, link=link, record=record)


def get_record(vtype: VerificationType, target: str) \
        -> Optional[domain.VerificationRecord]:
    """Get the record for ``(vtype, target)``, expired or not."""
    with util.transaction() as session:
        db_verification = _query(session, vtype, target).first()
        if db_verification is None:
            return None
        return _to_domain(db_verification)


def is_code_valid(vtype: VerificationType, target: str, code: str) -> bool:
    """
    Check ``code`` for ``(vtype, target)``.

    Fails closed when there is no record or the record has expired.
    """
    record = get_record(vtype, target)
    now = util.now()
    if record is None or record.is_expired(now):
        return False
    code = code.strip()
    if record.char_set == record.char_set.upper():
        code = code.upper()
    return totp.verify(code, record.secret, now, period=record.period,
                       digits=record.digits, algorithm=record.algorithm,
                       char_set=record.char_set, window=VALID_WINDOW)


def delete_verification(vtype: VerificationType, target: str) -> None:
    """Delete the record for ``(vtype, target)``, if any."""
    with util.transaction() as session:
        for existing in _query(session, vtype, target):
            session.delete(existing)


def change_type(from_type: VerificationType, to_type: VerificationType,
                target: str) -> None:
    """
    Re-key a record, replacing any record already held under ``to_type``.

    Expiry follows the new type: persistent types never expire.
    """
    with util.transaction() as session:
        db_verification = _query(session, from_type, target).first()
        if db_verification is None:
            raise LookupError(f'No {from_type.value} record')
        for existing in _query(session, to_type, target):
            session.delete(existing)
        session.flush()
        db_verification.type = to_type.value
        if to_type.is_persistent:
            db_verification.expires_at = None
