"""Tests for :mod:`account_flows.controllers.verification`."""

from http import HTTPStatus
from unittest import TestCase
from urllib.parse import parse_qs, urlparse

from werkzeug.datastructures import MultiDict

from account_flows.controllers import verification as controller
from account_flows.domain import VerificationType
from account_flows.services import accounts, verification
from account_flows.tests.util import create_test_app, flow_context


class TestVerify(TestCase):
    """Submitting one-time codes."""

    def setUp(self):
        self.app = create_test_app()
        with self.app.app_context():
            self.user = accounts.signup('alice@example.com', 'alice',
                                        'Alice', 'alicepassword')

    def _prepare(self, vtype, target, **kwargs):
        with self.app.app_context():
            return verification.prepare_verification(vtype, target, '',
                                                     **kwargs)

    def _submit(self, params, method='POST', *cookies):
        with self.app.app_context():
            ctx = flow_context(self.app, *cookies)
            if method in ('GET', 'HEAD'):
                return controller.verify(method, MultiDict(params),
                                         MultiDict(), ctx)
            return controller.verify('POST', MultiDict(), MultiDict(params),
                                     ctx)

    def test_get_without_code(self):
        """The form is shown, prefilled from the link."""
        data, code, _ = self._submit({'type': 'onboarding',
                                      'target': 'bob@example.com'}, 'GET')
        self.assertEqual(code, HTTPStatus.OK)
        self.assertEqual(data['form'].target.data, 'bob@example.com')

    def test_reset_password_code(self):
        """A valid reset code hands the username to the reset page."""
        prepared = self._prepare(VerificationType.RESET_PASSWORD, 'alice')
        data, code, headers = self._submit({
            'type': 'reset-password', 'target': 'alice',
            'code': prepared.code,
        })
        self.assertEqual(code, HTTPStatus.FOUND)
        self.assertEqual(headers['Location'], '/reset-password')
        self.assertEqual(len(data['set_cookies']), 1)

        ctx = flow_context(self.app, *data['set_cookies'])
        self.assertEqual(ctx.verify_session().get('resetPasswordUsername'),
                         'alice')
        with self.app.app_context():
            self.assertIsNone(verification.get_record(
                VerificationType.RESET_PASSWORD, 'alice'
            ))

    def test_code_in_query(self):
        """The link from the e-mail works with a GET."""
        prepared = self._prepare(VerificationType.ONBOARDING,
                                 'bob@example.com')
        link = urlparse(prepared.link)
        params = {k: v[0] for k, v in parse_qs(link.query).items()}
        data, code, headers = self._submit(params, 'GET')
        self.assertEqual(code, HTTPStatus.FOUND)
        self.assertEqual(headers['Location'], '/onboarding')
        ctx = flow_context(self.app, *data['set_cookies'])
        self.assertEqual(ctx.verify_session().get('onboardingEmail'),
                         'bob@example.com')

    def test_head_on_link(self):
        """HEAD requests read the link the same way GET does."""
        data, code, _ = self._submit({'type': 'onboarding',
                                      'target': 'bob@example.com'}, 'HEAD')
        self.assertEqual(code, HTTPStatus.OK)
        self.assertEqual(data['form'].target.data, 'bob@example.com')

        prepared = self._prepare(VerificationType.ONBOARDING,
                                 'bob@example.com')
        link = urlparse(prepared.link)
        params = {k: v[0] for k, v in parse_qs(link.query).items()}
        _, code, headers = self._submit(params, 'HEAD')
        self.assertEqual(code, HTTPStatus.FOUND)
        self.assertEqual(headers['Location'], '/onboarding')

    def test_codes_are_single_use(self):
        prepared = self._prepare(VerificationType.ONBOARDING,
                                 'bob@example.com')
        params = {'type': 'onboarding', 'target': 'bob@example.com',
                  'code': prepared.code}
        _, code, _ = self._submit(params)
        self.assertEqual(code, HTTPStatus.FOUND)
        data, code, _ = self._submit(params)
        self.assertEqual(code, HTTPStatus.BAD_REQUEST)
        self.assertEqual(data['result']['error'], {'code': ['Invalid code']})

    def test_unknown_target_and_wrong_code_look_alike(self):
        """Nothing distinguishes a missing target from a wrong code."""
        prepared = self._prepare(VerificationType.RESET_PASSWORD, 'alice')
        wrong = 'AAAAAA' if prepared.code != 'AAAAAA' else 'BBBBBB'

        unknown, unknown_code, _ = self._submit({
            'type': 'reset-password', 'target': 'nobody',
            'code': prepared.code,
        })
        mismatch, mismatch_code, _ = self._submit({
            'type': 'reset-password', 'target': 'alice', 'code': wrong,
        })
        malformed, malformed_code, _ = self._submit({
            'type': 'reset-password', 'target': 'alice', 'code': 'AB',
        })
        for status in (unknown_code, mismatch_code, malformed_code):
            self.assertEqual(status, HTTPStatus.BAD_REQUEST)
        for data in (unknown, mismatch, malformed):
            self.assertEqual(data['result']['error'],
                             {'code': ['Invalid code']})

    def test_reset_for_deleted_user(self):
        """A record whose user has gone away gives the same error."""
        prepared = self._prepare(VerificationType.RESET_PASSWORD, 'nobody')
        data, code, _ = self._submit({
            'type': 'reset-password', 'target': 'nobody',
            'code': prepared.code,
        })
        self.assertEqual(code, HTTPStatus.BAD_REQUEST)
        self.assertEqual(data['result']['error'], {'code': ['Invalid code']})

    def test_unsupported_type(self):
        """Pending enrollments cannot be completed on the verify page."""
        prepared = self._prepare(VerificationType.TWO_FACTOR_VERIFY,
                                 self.user.user_id, expires_in=600)
        data, code, _ = self._submit({
            'type': '2fa-verify', 'target': self.user.user_id,
            'code': prepared.code,
        })
        self.assertEqual(code, HTTPStatus.BAD_REQUEST)
        self.assertIn('type', data['result']['error'])
        with self.app.app_context():
            self.assertIsNotNone(verification.get_record(
                VerificationType.TWO_FACTOR_VERIFY, self.user.user_id
            ))

    def test_persistent_record_survives(self):
        """A ``2fa`` record is not consumed by a valid code."""
        prepared = self._prepare(VerificationType.TWO_FACTOR,
                                 self.user.user_id)
        _, code, headers = self._submit({
            'type': '2fa', 'target': self.user.user_id,
            'code': prepared.code,
        })
        # Without a parked session there is nobody to log in.
        self.assertEqual(code, HTTPStatus.FOUND)
        self.assertEqual(headers['Location'], '/login')
        with self.app.app_context():
            self.assertIsNotNone(verification.get_record(
                VerificationType.TWO_FACTOR, self.user.user_id
            ))


class TestValidateRequest(TestCase):
    """Code checks restricted to a set of types."""

    def setUp(self):
        self.app = create_test_app()

    def test_type_set(self):
        with self.app.app_context():
            prepared = verification.prepare_verification(
                VerificationType.ONBOARDING, 'bob@example.com', ''
            )
            params = MultiDict({'type': 'onboarding',
                                'target': 'bob@example.com',
                                'code': prepared.code})
            form, verified = controller.validate_request(
                {VerificationType.RESET_PASSWORD}, 'POST', MultiDict(), params
            )
            self.assertIsNone(verified)
            self.assertTrue(form.type.errors)

            form, verified = controller.validate_request(
                {VerificationType.ONBOARDING}, 'POST', MultiDict(), params
            )
            self.assertEqual(verified.type, VerificationType.ONBOARDING)
            self.assertEqual(verified.target, 'bob@example.com')
            self.assertIsNone(verified.redirect_to)
