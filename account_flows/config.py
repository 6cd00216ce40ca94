"""Flask configuration."""
import os
import secrets

#################### General config for app ####################
DEFAULT_LOGIN_REDIRECT_URL = os.environ.get('DEFAULT_LOGIN_REDIRECT_URL', '/')
"""URL to redirect the user to on a successful login, if they have not provided
a `redirectTo` param."""

DEFAULT_LOGOUT_REDIRECT_URL = os.environ.get('DEFAULT_LOGOUT_REDIRECT_URL', '/')
"""URL to redirect the user to on a logout."""

REDIRECT_REGEX = os.environ.get('REDIRECT_REGEX', r"^/(?![/\\])[^\s]*$")
"""Regex to check `redirectTo` values.

Only values that match this regex will be followed. All others go to the
default page for the flow. The default allows relative URLs only.
"""

#################### Cookies and sessions ####################
JWT_SECRET = os.environ.get('JWT_SECRET', secrets.token_urlsafe(16))
"""Secret used to sign the session and verification cookies."""

AUTH_SESSION_COOKIE_NAME = os.environ.get('AUTH_SESSION_COOKIE_NAME',
                                          'en_session')
AUTH_SESSION_COOKIE_DOMAIN = os.environ.get('AUTH_SESSION_COOKIE_DOMAIN',
                                            None)
AUTH_SESSION_COOKIE_SECURE = bool(int(os.environ.get(
    'AUTH_SESSION_COOKIE_SECURE', '0'
)))

SESSION_DURATION = int(os.environ.get('SESSION_DURATION', 60 * 60 * 24 * 30))
"""Lifetime of a persisted authenticated session, in seconds."""

VERIFICATION_COOKIE_NAME = os.environ.get('VERIFICATION_COOKIE_NAME',
                                          'en_verification')
VERIFICATION_COOKIE_DURATION = int(os.environ.get(
    'VERIFICATION_COOKIE_DURATION', 60 * 10
))
"""Lifetime of the verification cookie, in seconds."""

THEME_COOKIE_NAME = os.environ.get('THEME_COOKIE_NAME', 'en_theme')


#################### Database ####################
SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI',
                                         'sqlite:///account_flows.db')
SQLALCHEMY_TRACK_MODIFICATIONS = False

CREATE_DB = bool(int(os.environ.get('CREATE_DB', 0)))


#################### Uploads ####################
MAX_PHOTO_SIZE = 1024 * 1024 * 3
"""Profile photos larger than this are rejected."""

MAX_CONTENT_LENGTH = MAX_PHOTO_SIZE + 1024 * 64
"""Leaves room for the multipart envelope around a maximum-size photo."""


#################### Identity providers ####################
PROVIDER_NAMES = tuple(
    name.strip() for name in
    os.environ.get('PROVIDER_NAMES', 'github').split(',') if name.strip()
)
"""Identity providers that may hand a user off to onboarding."""


#################### Mail ####################
MAIL_ENABLED = bool(int(os.environ.get('MAIL_ENABLED', '0')))
"""When disabled, outgoing messages are logged instead of sent."""

SMTP_HOST = os.environ.get('SMTP_HOST', 'localhost')
SMTP_PORT = int(os.environ.get('SMTP_PORT', '25'))
MAIL_FROM = os.environ.get('MAIL_FROM', 'hello@localhost')


#################### Minor configs ##############################
SECRET_KEY = os.environ.get('SECRET_KEY', secrets.token_urlsafe(16))
"""Sets the `Flask` secret key, used for flashed messages."""

LOGLEVEL = int(os.environ.get('LOGLEVEL', 20))
