"""Exceptions raised by the service layer."""


class RegistrationFailed(RuntimeError):
    """Could not create a new user."""


class UsernameTaken(RegistrationFailed):
    """Another user already holds the requested username."""


class EmailTaken(RegistrationFailed):
    """Another user already holds the requested e-mail address."""


class ConnectionTaken(RegistrationFailed):
    """The provider identity is already linked to a user."""


class NoSuchUser(RuntimeError):
    """User does not exist."""


class SessionCreationFailed(RuntimeError):
    """Failed to create a session in the session store."""


class VerificationConflict(RuntimeError):
    """A concurrent request wrote a record for the same type and target."""
