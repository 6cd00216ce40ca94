"""Field definitions shared by the account forms."""

from typing import Any, Optional

from wtforms import BooleanField, Form, PasswordField, StringField
from wtforms.validators import DataRequired, Email, InputRequired, Length, \
    Regexp, ValidationError, optional


def _lower(value: Optional[str]) -> Optional[str]:
    return value.lower() if isinstance(value, str) else value


def _strip(value: Optional[str]) -> Optional[str]:
    return value.strip() if isinstance(value, str) else value


def username_field(label: str = 'Username') -> StringField:
    """Usernames are stored and compared in lower case."""
    return StringField(label, filters=[_strip, _lower], validators=[
        DataRequired('Username is required'),
        Length(min=3, message='Username is too short'),
        Length(max=20, message='Username is too long'),
        Regexp(r'^[a-zA-Z0-9_]+$',
               message='Username can only include letters, numbers, '
                       'and underscores'),
    ])


def password_field(label: str = 'Password',
                   name: Optional[str] = None) -> PasswordField:
    """Passwords are never stripped or echoed back."""
    kwargs: Any = {'name': name} if name else {}
    return PasswordField(label, validators=[
        InputRequired('Password is required'),
        Length(min=6, message='Password is too short'),
        Length(max=100, message='Password is too long'),
    ], **kwargs)


def name_field(label: str = 'Name') -> StringField:
    return StringField(label, filters=[_strip], validators=[
        DataRequired('Name is required'),
        Length(min=3, message='Name is too short'),
        Length(max=40, message='Name is too long'),
    ])


def email_field(label: str = 'Email') -> StringField:
    return StringField(label, filters=[_strip, _lower], validators=[
        DataRequired('Email is required'),
        Length(min=3, message='Email is too short'),
        Length(max=100, message='Email is too long'),
        Email(message='Email is invalid'),
    ])


def redirect_to_field() -> StringField:
    """The ``redirectTo`` parameter carried through a flow."""
    return StringField('Redirect to', name='redirectTo',
                       validators=[optional()])


def remember_field() -> BooleanField:
    return BooleanField('Remember me', default=False)


def agree_field() -> BooleanField:
    return BooleanField(
        'Do you agree to our Terms of Service and Privacy Policy?',
        name='agreeToTermsOfServiceAndPrivacyPolicy',
        validators=[DataRequired('You must agree to the terms of service and '
                                 'privacy policy')]
    )


class PasswordAndConfirmForm(Form):
    """A new password, entered twice."""

    password = password_field()
    confirm_password = password_field('Confirm password',
                                      name='confirmPassword')

    def validate_confirm_password(self, field: PasswordField) -> None:
        """Verify that the password is the same in both fields."""
        if self.password.data and field.data != self.password.data:
            raise ValidationError('The passwords must match')
