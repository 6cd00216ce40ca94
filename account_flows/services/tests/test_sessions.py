"""Tests for :mod:`account_flows.services.sessions`."""

from datetime import timedelta
from unittest import TestCase, mock

from account_flows.services import accounts, sessions, util
from account_flows.services.cookies import CookieSession
from account_flows.tests.util import cookie_header, create_test_app


class TestSessionStore(TestCase):
    """Persisted authenticated sessions."""

    def setUp(self):
        self.app = create_test_app(SESSION_DURATION=3600)
        with self.app.app_context():
            self.user = accounts.signup('alice@example.com', 'alice',
                                        'Alice', 'alicepassword')

    def test_create_and_load(self):
        with self.app.app_context():
            start = util.now()
            user_session = sessions.create_session(self.user.user_id)
            self.assertEqual(user_session.user_id, self.user.user_id)
            self.assertGreaterEqual(user_session.expiration_date,
                                    start + timedelta(seconds=3599))
            loaded = sessions.load_session(user_session.session_id)
            self.assertEqual(loaded, user_session)

    def test_load_expired(self):
        """An expired session is as good as none."""
        with self.app.app_context():
            user_session = sessions.create_session(self.user.user_id)
            later = util.now() + timedelta(seconds=3601)
            with mock.patch.object(util, 'now', return_value=later):
                self.assertIsNone(
                    sessions.load_session(user_session.session_id)
                )

    def test_delete(self):
        with self.app.app_context():
            user_session = sessions.create_session(self.user.user_id)
            sessions.delete_session(user_session.session_id)
            self.assertIsNone(sessions.load_session(user_session.session_id))
            sessions.delete_session(user_session.session_id)
            sessions.delete_session('nope')

    def test_get_user_id(self):
        """The auth cookie resolves to a user only while its record lives."""
        storage = self.app.extensions['account_flows.auth']
        with self.app.app_context():
            user_session = sessions.create_session(self.user.user_id)
            set_cookie = sessions.commit_auth_session(
                storage, CookieSession(), user_session, remember=False
            )
            header = cookie_header(set_cookie)
            self.assertEqual(sessions.get_user_id(storage, header),
                             self.user.user_id)

            sessions.delete_session(user_session.session_id)
            self.assertIsNone(sessions.get_user_id(storage, header))
            self.assertIsNone(sessions.get_user_id(storage, None))

    def test_commit_remember(self):
        """Only remembered sessions get a persistent cookie."""
        storage = self.app.extensions['account_flows.auth']
        with self.app.app_context():
            user_session = sessions.create_session(self.user.user_id)
            remembered = sessions.commit_auth_session(
                storage, CookieSession(), user_session, remember=True
            )
            forgotten = sessions.commit_auth_session(
                storage, CookieSession(), user_session, remember=False
            )
        self.assertIn('Expires=', remembered)
        self.assertNotIn('Expires=', forgotten)
        self.assertNotIn('Max-Age', forgotten)
