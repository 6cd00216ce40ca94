"""Provide methods for working with user accounts."""

import logging
from typing import Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from .. import domain
from . import util
from .exceptions import ConnectionTaken, EmailTaken, NoSuchUser, \
    RegistrationFailed, UsernameTaken
from .models import DBConnection, DBPassword, DBUser, DBUserImage

logger = logging.getLogger(__name__)

HASH_METHOD = 'pbkdf2:sha256'


def _to_domain(db_user: DBUser) -> domain.User:
    return domain.User(
        user_id=db_user.id,
        username=db_user.username,
        email=db_user.email,
        name=db_user.name,
        image_id=db_user.image.id if db_user.image is not None else None
    )


def hash_password(password: str) -> str:
    """Generate a secure hash of a password."""
    return generate_password_hash(password, method=HASH_METHOD)


def username_exists(username: str) -> bool:
    """
    Determine whether a user with a particular username already exists.

    The answer is advisory: a concurrent signup may claim the username before
    ours is written. The unique constraint on ``users.username`` decides.
    """
    with util.transaction() as session:
        data = session.query(DBUser.id) \
            .filter(DBUser.username == username.lower()) \
            .first()
        return data is not None


def email_exists(email: str) -> bool:
    """Determine whether a user with a particular address already exists."""
    with util.transaction() as session:
        data = session.query(DBUser.id) \
            .filter(DBUser.email == email.lower()) \
            .first()
        return data is not None


def get_user_by_id(user_id: str) -> domain.User:
    """Load user data from the database."""
    with util.transaction() as session:
        db_user = session.get(DBUser, user_id)
        if db_user is None:
            raise NoSuchUser(f'No user with id {user_id}')
        return _to_domain(db_user)


def find_user(username_or_email: str) -> Optional[domain.User]:
    """Find a user by either username or e-mail address."""
    value = username_or_email.lower()
    with util.transaction() as session:
        db_user = session.query(DBUser) \
            .filter(or_(DBUser.email == value, DBUser.username == value)) \
            .first()
        if db_user is None:
            return None
        return _to_domain(db_user)


def _conflict(username: str, email: str) -> RegistrationFailed:
    """Work out which unique field a failed insert collided on."""
    if username_exists(username):
        return UsernameTaken(f'Username {username} is taken')
    if email_exists(email):
        return EmailTaken('E-mail address is taken')
    return RegistrationFailed('Could not create user')


def _create_user(email: str, username: str, name: Optional[str],
                 password: Optional[str] = None,
                 connection: Optional[Tuple[str, str]] = None) \
        -> domain.User:
    now = util.epoch(util.now())
    db_user = DBUser(email=email.lower(), username=username.lower(),
                     name=name, created_at=now, updated_at=now)
    try:
        with util.transaction() as session:
            session.add(db_user)
            if password is not None:
                session.add(DBPassword(user=db_user,
                                       hash=hash_password(password)))
            if connection is not None:
                provider_name, provider_id = connection
                session.add(DBConnection(user=db_user,
                                         provider_name=provider_name,
                                         provider_id=provider_id,
                                         created_at=now))
            session.commit()
            user = _to_domain(db_user)
    except IntegrityError as e:
        logger.debug('Signup collided with an existing row: %s', e)
        if connection is not None and _connection_exists(*connection):
            raise ConnectionTaken('Provider identity already linked') from e
        raise _conflict(username, email) from e
    logger.debug('Created user %s', user.user_id)
    return user


def signup(email: str, username: str, name: Optional[str],
           password: str) -> domain.User:
    """
    Create a new user with a password.

    Raises
    ------
    :class:`.UsernameTaken`
    :class:`.EmailTaken`
    :class:`.RegistrationFailed`

    """
    return _create_user(email, username, name, password=password)


def signup_with_connection(email: str, username: str, name: Optional[str],
                           provider_name: str, provider_id: str) \
        -> domain.User:
    """Create a new user linked to an external provider identity."""
    return _create_user(email, username, name,
                        connection=(provider_name, provider_id))


def _connection_exists(provider_name: str, provider_id: str) -> bool:
    with util.transaction() as session:
        data = session.query(DBConnection.id) \
            .filter(DBConnection.provider_name == provider_name) \
            .filter(DBConnection.provider_id == provider_id) \
            .first()
        return data is not None


def verify_password(username_or_id: str, password: str,
                    by_id: bool = False) -> Optional[domain.User]:
    """
    Check a password, returning the user on success.

    Users without a password (e.g. who signed up through a provider) never
    authenticate this way.
    """
    with util.transaction() as session:
        query = session.query(DBUser)
        if by_id:
            query = query.filter(DBUser.id == username_or_id)
        else:
            query = query.filter(DBUser.username == username_or_id.lower())
        db_user = query.first()
        if db_user is None or db_user.password is None:
            return None
        if not check_password_hash(db_user.password.hash, password):
            return None
        return _to_domain(db_user)


def has_password(user_id: str) -> bool:
    """Whether the user has a password set."""
    with util.transaction() as session:
        return session.get(DBPassword, user_id) is not None


def set_password(user_id: str, password: str) -> None:
    """Create or replace the user's password."""
    with util.transaction() as session:
        db_password = session.get(DBPassword, user_id)
        if db_password is None:
            session.add(DBPassword(user_id=user_id,
                                   hash=hash_password(password)))
        else:
            db_password.hash = hash_password(password)
        db_user = session.get(DBUser, user_id)
        if db_user is not None:
            db_user.updated_at = util.epoch(util.now())


def reset_password(username: str, password: str) -> None:
    """Replace the password of the user with ``username``."""
    with util.transaction() as session:
        db_user = session.query(DBUser) \
            .filter(DBUser.username == username.lower()) \
            .first()
        if db_user is None:
            raise NoSuchUser(f'No user named {username}')
        user_id = db_user.id
    set_password(user_id, password)


def replace_image(user_id: str, image: domain.ImageUpload) -> str:
    """
    Replace the user's profile image in a single transaction.

    Returns the ID of the new image.
    """
    with util.transaction() as session:
        existing = session.query(DBUserImage) \
            .filter(DBUserImage.user_id == user_id) \
            .first()
        if existing is not None:
            session.delete(existing)
            session.flush()
        db_image = DBUserImage(user_id=user_id,
                               content_type=image.content_type,
                               blob=image.blob,
                               alt_text=image.alt_text,
                               created_at=util.epoch(util.now()))
        session.add(db_image)
        session.flush()
        image_id: str = db_image.id
        session.commit()
    return image_id


def delete_image(user_id: str) -> None:
    """Delete the user's profile image; a no-op if there is none."""
    with util.transaction() as session:
        existing = session.query(DBUserImage) \
            .filter(DBUserImage.user_id == user_id) \
            .first()
        if existing is not None:
            session.delete(existing)


def get_image(image_id: str) -> Optional[Tuple[str, bytes]]:
    """Get the content type and bytes of an image."""
    with util.transaction() as session:
        db_image = session.get(DBUserImage, image_id)
        if db_image is None:
            return None
        return db_image.content_type, db_image.blob
