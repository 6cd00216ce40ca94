"""
Controllers for the logged-in user's profile settings.

Every controller here takes the ID of the authenticated user; routes are
responsible for making sure there is one.
"""

import logging
from http import HTTPStatus
from typing import Any, Dict, Optional

from flask import current_app
from werkzeug.datastructures import CombinedMultiDict, FileStorage, MultiDict
from werkzeug.exceptions import NotFound
from wtforms import FileField, Form, PasswordField, StringField
from wtforms.validators import AnyOf, DataRequired, ValidationError

from ..domain import ImageUpload, User, VerificationType
from ..services import accounts, verification
from ..services.exceptions import NoSuchUser
from .forms import PasswordAndConfirmForm, password_field
from .util import ResponseData, invalid, redirect

logger = logging.getLogger(__name__)

PROFILE_URL = '/settings/profile'
CHANGE_PASSWORD_URL = '/settings/profile/password'
CREATE_PASSWORD_URL = '/settings/profile/password/create'


def _get_user(user_id: str) -> User:
    try:
        return accounts.get_user_by_id(user_id)
    except NoSuchUser as e:
        raise NotFound('User not found') from e


def profile(user_id: str) -> ResponseData:
    """Handle requests to view the profile settings page."""
    user = _get_user(user_id)
    data = {
        'user': user,
        'has_password': accounts.has_password(user_id),
        'two_factor_enabled': verification.get_record(
            VerificationType.TWO_FACTOR, user_id
        ) is not None,
    }
    return data, HTTPStatus.OK, {}


class ChangePasswordForm(Form):
    """Replace an existing password."""

    current_password = password_field('Current Password',
                                      name='currentPassword')
    new_password = password_field('New Password', name='newPassword')
    confirm_new_password = password_field('Confirm New Password',
                                          name='confirmNewPassword')

    def __init__(self, *args: Any, user_id: str = '', **kwargs: Any) -> None:
        super(ChangePasswordForm, self).__init__(*args, **kwargs)
        self.user_id = user_id

    def validate_current_password(self, field: PasswordField) -> None:
        """Check the current password against the stored hash."""
        if not field.data or not self.new_password.data:
            return
        if accounts.verify_password(self.user_id, field.data,
                                    by_id=True) is None:
            raise ValidationError('Incorrect password.')

    def validate_confirm_new_password(self, field: PasswordField) -> None:
        if self.new_password.data and field.data != self.new_password.data:
            raise ValidationError('The passwords must match')


CHANGE_PASSWORD_HIDDEN = ('currentPassword', 'newPassword',
                          'confirmNewPassword')


def change_password(method: str, params: MultiDict,
                    user_id: str) -> ResponseData:
    """Handle requests to change the user's password."""
    if not accounts.has_password(user_id):
        return redirect(CREATE_PASSWORD_URL)

    form = ChangePasswordForm(params, user_id=user_id)
    if method in ('GET', 'HEAD'):
        return {'form': form}, HTTPStatus.OK, {}

    if not form.validate():
        logger.debug('Change-password form not valid')
        return invalid(form, hide_fields=CHANGE_PASSWORD_HIDDEN)

    accounts.set_password(user_id, form.new_password.data)
    logger.debug('Password changed for user %s', user_id)
    return redirect(PROFILE_URL,
                    flash=('Your password has been changed.', 'success'))


def create_password(method: str, params: MultiDict,
                    user_id: str) -> ResponseData:
    """Handle requests to set a password for a user who has none."""
    if accounts.has_password(user_id):
        return redirect(CHANGE_PASSWORD_URL)

    form = PasswordAndConfirmForm(params)
    if method in ('GET', 'HEAD'):
        return {'form': form}, HTTPStatus.OK, {}

    if not form.validate():
        return invalid(form, hide_fields=('password', 'confirmPassword'))

    accounts.set_password(user_id, form.password.data)
    logger.debug('Password created for user %s', user_id)
    return redirect(PROFILE_URL,
                    flash=('Your password has been created.', 'success'))


class PhotoForm(Form):
    """Replace or delete the profile photo."""

    intent = StringField('Intent', validators=[
        DataRequired(), AnyOf(['submit', 'delete'], message='Invalid intent')
    ])
    photo_file = FileField('Change', name='photoFile')

    blob: Optional[bytes] = None

    def __init__(self, *args: Any, max_size: Optional[int] = None,
                 **kwargs: Any) -> None:
        super(PhotoForm, self).__init__(*args, **kwargs)
        if max_size is None:
            max_size = current_app.config['MAX_PHOTO_SIZE']
        self.max_size = max_size

    def validate_photo_file(self, field: FileField) -> None:
        """A non-empty image under the size limit is required to submit."""
        if self.intent.data != 'submit':
            return
        upload = field.data
        if not isinstance(upload, FileStorage) or not upload.filename:
            raise ValidationError('Image is required')
        blob = upload.read()
        if not blob:
            raise ValidationError('Image is required')
        if len(blob) > self.max_size:
            raise ValidationError('Image size must be less than 3MB')
        self.blob = blob


def photo(method: str, params: MultiDict, files: MultiDict, user_id: str,
          max_size: Optional[int] = None) -> ResponseData:
    """
    Handle requests to change the user's profile photo.

    Parameters
    ----------
    method : str
    params : :class:`MultiDict`
        Submitted form fields, including ``intent``.
    files : :class:`MultiDict`
        Uploaded files, keyed by field name.
    user_id : str
    max_size : int
        Largest accepted upload, in bytes. Defaults to ``MAX_PHOTO_SIZE``
        from the application config.

    Raises
    ------
    :class:`NotFound`
        If the user does not exist.

    """
    user = _get_user(user_id)
    if method in ('GET', 'HEAD'):
        return {'user': user, 'form': PhotoForm()}, HTTPStatus.OK, {}

    form = PhotoForm(CombinedMultiDict([files, params]), max_size=max_size)
    if not form.validate():
        logger.debug('Photo form not valid')
        return invalid(form, user=user)

    if form.intent.data == 'delete':
        accounts.delete_image(user_id)
        logger.debug('Deleted photo for user %s', user_id)
        return redirect(PROFILE_URL)

    upload = form.photo_file.data
    accounts.replace_image(user_id, ImageUpload(
        content_type=upload.mimetype or 'application/octet-stream',
        blob=form.blob or b''
    ))
    logger.debug('Replaced photo for user %s', user_id)
    return redirect(PROFILE_URL)


def user_image(image_id: str) -> ResponseData:
    """Get a stored profile image."""
    image = accounts.get_image(image_id)
    if image is None:
        raise NotFound('Image not found')
    content_type, blob = image
    data: Dict[str, Any] = {'content_type': content_type, 'blob': blob}
    return data, HTTPStatus.OK, {'Content-Type': content_type}
