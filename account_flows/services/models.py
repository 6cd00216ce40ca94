"""Database models."""

import uuid

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import Column, ForeignKey, Integer, LargeBinary, String, \
    UniqueConstraint, text
from sqlalchemy.orm import relationship

db = SQLAlchemy()


def _uuid() -> str:
    return str(uuid.uuid4())


class DBUser(db.Model):  # type: ignore
    """
    Registered users.

    +------------+--------------+------+-----+
    | Field      | Type         | Null | Key |
    +------------+--------------+------+-----+
    | id         | varchar(36)  | NO   | PRI |
    | email      | varchar(255) | NO   | UNI |
    | username   | varchar(20)  | NO   | UNI |
    | name       | varchar(40)  | YES  |     |
    | created_at | int(11)      | NO   |     |
    | updated_at | int(11)      | NO   |     |
    +------------+--------------+------+-----+
    """

    __tablename__ = 'users'

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), nullable=False, unique=True)
    username = Column(String(20), nullable=False, unique=True)
    name = Column(String(40))
    created_at = Column(Integer, nullable=False, server_default=text("'0'"))
    updated_at = Column(Integer, nullable=False, server_default=text("'0'"))

    password = relationship('DBPassword', uselist=False,
                            back_populates='user',
                            cascade='all, delete-orphan')
    image = relationship('DBUserImage', uselist=False, back_populates='user',
                         cascade='all, delete-orphan')


class DBPassword(db.Model):  # type: ignore
    """A user's password hash; at most one per user."""

    __tablename__ = 'passwords'

    user_id = Column(ForeignKey('users.id', ondelete='CASCADE'),
                     primary_key=True)
    hash = Column(String(255), nullable=False)

    user = relationship('DBUser', back_populates='password')


class DBUserImage(db.Model):  # type: ignore
    """A user's profile photo; at most one per user."""

    __tablename__ = 'user_images'

    id = Column(String(36), primary_key=True, default=_uuid)
    alt_text = Column(String(255))
    content_type = Column(String(255), nullable=False)
    blob = Column(LargeBinary, nullable=False)
    user_id = Column(ForeignKey('users.id', ondelete='CASCADE'),
                     nullable=False, unique=True)
    created_at = Column(Integer, nullable=False, server_default=text("'0'"))

    user = relationship('DBUser', back_populates='image')


class DBSession(db.Model):  # type: ignore
    """
    Authenticated sessions.

    The session cookie carries only :attr:`id`; this row decides whether the
    session is still valid.
    """

    __tablename__ = 'sessions'

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(ForeignKey('users.id', ondelete='CASCADE'),
                     nullable=False, index=True)
    expiration_date = Column(Integer, nullable=False, index=True)
    """Epoch time."""
    created_at = Column(Integer, nullable=False, server_default=text("'0'"))

    user = relationship('DBUser')


class DBVerification(db.Model):  # type: ignore
    """
    One-time code secrets, one per ``(type, target)``.

    +------------+--------------+------+-----+
    | Field      | Type         | Null | Key |
    +------------+--------------+------+-----+
    | id         | varchar(36)  | NO   | PRI |
    | type       | varchar(32)  | NO   | UNI |
    | target     | varchar(255) | NO   | UNI |
    | secret     | varchar(64)  | NO   |     |
    | algorithm  | varchar(16)  | NO   |     |
    | digits     | int(11)      | NO   |     |
    | period     | int(11)      | NO   |     |
    | char_set   | varchar(64)  | NO   |     |
    | expires_at | int(11)      | YES  |     |
    | created_at | int(11)      | NO   |     |
    +------------+--------------+------+-----+
    """

    __tablename__ = 'verifications'
    __table_args__ = (
        UniqueConstraint('type', 'target', name='uq_verification_target'),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    type = Column(String(32), nullable=False)
    target = Column(String(255), nullable=False)
    secret = Column(String(64), nullable=False)
    algorithm = Column(String(16), nullable=False)
    digits = Column(Integer, nullable=False)
    period = Column(Integer, nullable=False)
    char_set = Column(String(64), nullable=False)
    expires_at = Column(Integer, nullable=True)
    """Epoch time; null for records that never expire."""
    created_at = Column(Integer, nullable=False, server_default=text("'0'"))


class DBConnection(db.Model):  # type: ignore
    """Links an external provider identity to a user."""

    __tablename__ = 'connections'
    __table_args__ = (
        UniqueConstraint('provider_name', 'provider_id',
                         name='uq_connection_provider'),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    provider_name = Column(String(64), nullable=False)
    provider_id = Column(String(255), nullable=False)
    user_id = Column(ForeignKey('users.id', ondelete='CASCADE'),
                     nullable=False, index=True)
    created_at = Column(Integer, nullable=False, server_default=text("'0'"))

    user = relationship('DBUser')
