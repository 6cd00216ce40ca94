"""End-to-end tests of the account flows through the web interface."""

from http import HTTPStatus
from unittest import TestCase, mock
from urllib.parse import urlparse

from account_flows.controllers import onboarding, reset_password
from account_flows.services import accounts
from account_flows.tests.util import create_test_app


class TestAccountFlows(TestCase):
    """Walk through whole journeys with the test client."""

    def setUp(self):
        self.app = create_test_app()
        self.client = self.app.test_client()

    def _set_cookies(self, response):
        return response.headers.getlist('Set-Cookie')

    @mock.patch(f'{onboarding.__name__}.mail')
    def test_signup_to_logout(self, mock_mail):
        """Sign up, verify, onboard, visit the profile, and log out."""
        response = self.client.post('/signup',
                                    data={'email': 'alice@example.com'})
        self.assertEqual(response.status_code, HTTPStatus.FOUND)
        self.assertTrue(urlparse(response.headers['Location']).path
                        .endswith('/verify'))

        _, _, _, link = mock_mail.send_verification_email.call_args[0]
        link = urlparse(link)
        response = self.client.get(f'{link.path}?{link.query}')
        self.assertEqual(response.status_code, HTTPStatus.FOUND)
        self.assertTrue(response.headers['Location'].endswith('/onboarding'))

        response = self.client.get('/onboarding')
        self.assertEqual(response.status_code, HTTPStatus.OK)
        self.assertIn(b'alice@example.com', response.data)

        response = self.client.post('/onboarding', data={
            'username': 'alice',
            'name': 'Alice',
            'password': 'alicepassword',
            'confirmPassword': 'alicepassword',
            'agreeToTermsOfServiceAndPrivacyPolicy': 'y',
        })
        self.assertEqual(response.status_code, HTTPStatus.FOUND)
        cookies = self._set_cookies(response)
        self.assertTrue(any(c.startswith('en_session=') for c in cookies))

        response = self.client.get('/settings/profile')
        self.assertEqual(response.status_code, HTTPStatus.OK)
        self.assertIn(b'alice', response.data)
        self.assertIn(b'Thanks for signing up!', response.data)

        # Logged-in users have no business on the signup pages.
        response = self.client.get('/signup')
        self.assertEqual(response.status_code, HTTPStatus.FOUND)

        response = self.client.post('/logout')
        self.assertEqual(response.status_code, HTTPStatus.FOUND)
        response = self.client.get('/settings/profile')
        self.assertEqual(response.status_code, HTTPStatus.FOUND)

    def test_onboarding_without_verification(self):
        response = self.client.get('/onboarding')
        self.assertEqual(response.status_code, HTTPStatus.FOUND)
        self.assertTrue(response.headers['Location'].endswith('/signup'))

    def test_login_required(self):
        response = self.client.get('/settings/profile/password')
        self.assertEqual(response.status_code, HTTPStatus.FOUND)
        self.assertIn('/login?redirectTo=%2Fsettings%2Fprofile%2Fpassword',
                      response.headers['Location'])

    @mock.patch(f'{reset_password.__name__}.mail')
    def test_forgot_and_reset_password(self, mock_mail):
        with self.app.app_context():
            accounts.signup('alice@example.com', 'alice', 'Alice',
                            'alicepassword')

        response = self.client.post('/forgot-password',
                                    data={'usernameOrEmail': 'alice'})
        self.assertEqual(response.status_code, HTTPStatus.FOUND)
        _, _, code, _ = mock_mail.send_verification_email.call_args[0]

        response = self.client.post('/verify', data={
            'type': 'reset-password', 'target': 'alice', 'code': code,
        })
        self.assertEqual(response.status_code, HTTPStatus.FOUND)
        self.assertTrue(
            response.headers['Location'].endswith('/reset-password')
        )

        response = self.client.post('/reset-password', data={
            'password': 'newpassword', 'confirmPassword': 'newpassword',
        })
        self.assertEqual(response.status_code, HTTPStatus.FOUND)
        self.assertTrue(response.headers['Location'].endswith('/login'))

        # The verification cookie is gone, so the page cannot be reused.
        response = self.client.get('/reset-password')
        self.assertEqual(response.status_code, HTTPStatus.FOUND)
        self.assertTrue(response.headers['Location'].endswith('/login'))

        response = self.client.post('/login', data={
            'username': 'alice', 'password': 'newpassword',
        })
        self.assertEqual(response.status_code, HTTPStatus.FOUND)

    def test_invalid_code_as_json(self):
        response = self.client.post(
            '/verify',
            data={'type': 'onboarding', 'target': 'bob@example.com',
                  'code': 'ABCDEF'},
            headers={'Accept': 'application/json'}
        )
        self.assertEqual(response.status_code, HTTPStatus.BAD_REQUEST)
        self.assertEqual(response.get_json()['result']['error'],
                         {'code': ['Invalid code']})

    def test_head_verify_link(self):
        response = self.client.head(
            '/verify?type=onboarding&target=bob%40example.com'
        )
        self.assertEqual(response.status_code, HTTPStatus.OK)

    def test_security_headers(self):
        response = self.client.get('/login')
        self.assertEqual(response.status_code, HTTPStatus.OK)
        self.assertEqual(response.headers['X-Frame-Options'], 'DENY')
        self.assertEqual(response.headers['Content-Security-Policy'],
                         "frame-ancestors 'none'")

    def test_theme_switch(self):
        response = self.client.post('/resources/theme-switch',
                                    data={'theme': 'dark'})
        self.assertEqual(response.status_code, HTTPStatus.OK)
        self.assertEqual(response.get_json()['result']['status'], 'success')
        self.assertTrue(any(c.startswith('en_theme=dark')
                            for c in self._set_cookies(response)))

        response = self.client.get('/')
        self.assertIn(b'class="dark"', response.data)

        response = self.client.post('/resources/theme-switch',
                                    data={'theme': 'neon'})
        self.assertEqual(response.status_code, HTTPStatus.BAD_REQUEST)

    def test_user_image(self):
        response = self.client.get('/resources/user-images/nope')
        self.assertEqual(response.status_code, HTTPStatus.NOT_FOUND)

    def test_healthcheck(self):
        response = self.client.get('/healthcheck')
        self.assertEqual(response.status_code, HTTPStatus.OK)
