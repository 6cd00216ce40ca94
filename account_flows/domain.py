"""Core data structures for account flows."""

from typing import NamedTuple, Optional
from datetime import datetime
from enum import Enum


class VerificationType(str, Enum):
    """Kinds of one-time code verification."""

    ONBOARDING = 'onboarding'
    """Target is the e-mail address being onboarded."""

    RESET_PASSWORD = 'reset-password'
    """Target is the username or e-mail whose password is being reset."""

    TWO_FACTOR_VERIFY = '2fa-verify'
    """Pending two-factor enrollment; target is the user ID."""

    TWO_FACTOR = '2fa'
    """Enrolled two-factor secret; target is the user ID."""

    @property
    def is_persistent(self) -> bool:
        """Persistent records survive successful verification."""
        return self is VerificationType.TWO_FACTOR


class Theme(str, Enum):
    """Color scheme preferences."""

    SYSTEM = 'system'
    LIGHT = 'light'
    DARK = 'dark'


class User(NamedTuple):
    """A registered user."""

    user_id: str
    username: str
    email: str
    name: Optional[str] = None
    image_id: Optional[str] = None


class Session(NamedTuple):
    """A persisted authenticated session."""

    session_id: str
    user_id: str
    expiration_date: datetime

    def is_expired(self, now: datetime) -> bool:
        """Whether the session has lapsed as of ``now``."""
        return self.expiration_date <= now


class VerificationRecord(NamedTuple):
    """A pending or persistent one-time code secret."""

    type: VerificationType
    target: str
    secret: str
    algorithm: str
    period: int
    digits: int
    char_set: str
    expires_at: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        """Records without an expiry never lapse."""
        return self.expires_at is not None and self.expires_at <= now


class ImageUpload(NamedTuple):
    """A profile image about to be stored."""

    content_type: str
    blob: bytes
    alt_text: Optional[str] = None
