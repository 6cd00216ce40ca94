"""
Time-based one-time codes.

Codes are derived the way RFC 6238 derives them (HMAC over the time step
counter, then dynamic truncation), except that the truncated value is spelled
out in an arbitrary character set rather than only in decimal digits. With
``char_set='0123456789'`` the output is a standard TOTP code that
authenticator apps will produce.
"""

import hashlib
import hmac
import secrets
import struct
from base64 import b32decode, b32encode
from datetime import datetime
from typing import Iterable
from urllib.parse import quote, urlencode

DIGITS = '0123456789'
CODE_CHAR_SET = 'ABCDEFGHJKLMNPQRSTUVWXYZ123456789'
"""Unambiguous characters for codes that people type from an e-mail."""

ALGORITHMS = {
    'SHA1': hashlib.sha1,
    'SHA256': hashlib.sha256,
    'SHA512': hashlib.sha512,
}


def generate_secret(length: int = 20) -> str:
    """Generate a random base32 secret."""
    return b32encode(secrets.token_bytes(length)).decode('ascii').rstrip('=')


def _decode_secret(secret: str) -> bytes:
    padding = '=' * (-len(secret) % 8)
    return b32decode(secret.upper() + padding)


def counter_at(at: datetime, period: int) -> int:
    """Get the time step counter for ``at``."""
    return int(at.timestamp()) // period


def hotp(secret: str, counter: int, digits: int = 6,
         algorithm: str = 'SHA1', char_set: str = DIGITS) -> str:
    """Generate the code for a single counter value."""
    digest = hmac.new(_decode_secret(secret), struct.pack('>Q', counter),
                      ALGORITHMS[algorithm]).digest()
    offset = digest[-1] & 0x0F
    value = struct.unpack('>I', digest[offset:offset + 4])[0] & 0x7FFFFFFF
    base = len(char_set)
    code = ''
    for _ in range(digits):
        code = char_set[value % base] + code
        value //= base
    return code


def generate(secret: str, at: datetime, period: int = 30, digits: int = 6,
             algorithm: str = 'SHA1', char_set: str = DIGITS) -> str:
    """Generate the code valid at ``at``."""
    return hotp(secret, counter_at(at, period), digits=digits,
                algorithm=algorithm, char_set=char_set)


def verify(code: str, secret: str, at: datetime, period: int = 30,
           digits: int = 6, algorithm: str = 'SHA1',
           char_set: str = DIGITS, window: int = 1) -> bool:
    """
    Check ``code`` against the steps within ``window`` of ``at``.

    Every candidate step is compared, so that the time taken does not depend
    on which step (if any) matched.
    """
    if len(code) != digits:
        return False
    counter = counter_at(at, period)
    matched = False
    for step in _steps(counter, window):
        expected = hotp(secret, step, digits=digits, algorithm=algorithm,
                        char_set=char_set)
        if hmac.compare_digest(expected.encode('utf-8'),
                               code.encode('utf-8')):
            matched = True
    return matched


def _steps(counter: int, window: int) -> Iterable[int]:
    return range(max(counter - window, 0), counter + window + 1)


def provisioning_uri(secret: str, account: str, issuer: str,
                     period: int = 30, digits: int = 6,
                     algorithm: str = 'SHA1') -> str:
    """Build an ``otpauth://`` URI for authenticator apps."""
    label = quote(f'{issuer}:{account}')
    params = urlencode({
        'secret': secret,
        'issuer': issuer,
        'algorithm': algorithm,
        'digits': digits,
        'period': period,
    })
    return f'otpauth://totp/{label}?{params}'
