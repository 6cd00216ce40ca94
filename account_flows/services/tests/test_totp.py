"""Tests for :mod:`account_flows.services.totp`."""

from base64 import b32encode
from datetime import datetime, timedelta
from unittest import TestCase
from urllib.parse import parse_qs, urlparse

from pytz import UTC

from account_flows.services import totp

RFC_SECRET = b32encode(b'12345678901234567890').decode('ascii')


class TestGenerate(TestCase):
    """Code generation."""

    def test_rfc6238_sha1_vectors(self):
        """Decimal codes match the published SHA1 test vectors."""
        vectors = [
            (59, '94287082'),
            (1111111109, '07081804'),
            (1111111111, '14050471'),
            (1234567890, '89005924'),
            (2000000000, '69279037'),
        ]
        for seconds, expected in vectors:
            at = datetime.fromtimestamp(seconds, tz=UTC)
            self.assertEqual(totp.generate(RFC_SECRET, at, period=30,
                                           digits=8), expected)

    def test_char_set(self):
        """Codes only use characters from the requested set."""
        secret = totp.generate_secret()
        at = datetime(2024, 1, 1, tzinfo=UTC)
        code = totp.generate(secret, at, period=600, digits=6,
                             algorithm='SHA256',
                             char_set=totp.CODE_CHAR_SET)
        self.assertEqual(len(code), 6)
        self.assertTrue(set(code) <= set(totp.CODE_CHAR_SET))

    def test_secrets_are_unpadded_base32(self):
        """Secrets are random and carry no padding."""
        first, second = totp.generate_secret(), totp.generate_secret()
        self.assertNotEqual(first, second)
        self.assertNotIn('=', first)


class TestVerify(TestCase):
    """Code verification with a window of one step."""

    def setUp(self):
        self.secret = totp.generate_secret()
        self.at = datetime(2024, 1, 1, 12, 0, 15, tzinfo=UTC)
        self.code = totp.generate(self.secret, self.at)

    def test_same_step(self):
        self.assertTrue(totp.verify(self.code, self.secret, self.at))

    def test_adjacent_steps(self):
        """Codes from the previous or next step are accepted."""
        for delta in (-30, 30):
            at = self.at + timedelta(seconds=delta)
            self.assertTrue(totp.verify(self.code, self.secret, at))

    def test_two_steps_away(self):
        """Codes two steps away are rejected."""
        for delta in (-60, 60):
            at = self.at + timedelta(seconds=delta)
            self.assertFalse(totp.verify(self.code, self.secret, at))

    def test_wrong_length(self):
        self.assertFalse(totp.verify(self.code[:-1], self.secret, self.at))
        self.assertFalse(totp.verify('', self.secret, self.at))

    def test_other_secret(self):
        other = totp.generate_secret()
        self.assertFalse(totp.verify(self.code, other, self.at))


class TestProvisioningURI(TestCase):
    """otpauth:// URIs for authenticator apps."""

    def test_uri(self):
        uri = totp.provisioning_uri('ABCDEFGH', 'alice@example.com',
                                    'Example')
        parsed = urlparse(uri)
        self.assertEqual(parsed.scheme, 'otpauth')
        self.assertEqual(parsed.netloc, 'totp')
        params = parse_qs(parsed.query)
        self.assertEqual(params['secret'], ['ABCDEFGH'])
        self.assertEqual(params['issuer'], ['Example'])
        self.assertEqual(params['digits'], ['6'])
        self.assertEqual(params['period'], ['30'])
        self.assertEqual(params['algorithm'], ['SHA1'])
        self.assertIn('alice%40example.com', parsed.path)
