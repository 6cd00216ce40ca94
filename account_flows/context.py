"""Request-scoped collaborators passed into controllers."""

from typing import NamedTuple, Optional

from flask import current_app, request

from .services.cookies import CookieSession, CookieSessionStorage


class FlowContext(NamedTuple):
    """
    Everything a controller needs to read and write cookie state.

    Controllers never reach for the request or the application themselves;
    routes build one of these per request with :func:`from_request`.
    """

    verification: CookieSessionStorage
    auth: CookieSessionStorage
    cookie_header: Optional[str] = None
    base_url: str = ''

    def verify_session(self) -> CookieSession:
        """Read the verification cookie sent with the request."""
        return self.verification.get_session(self.cookie_header)

    def auth_session(self) -> CookieSession:
        """Read the auth session cookie sent with the request."""
        return self.auth.get_session(self.cookie_header)


def from_request() -> FlowContext:
    """Build a :class:`FlowContext` for the current request."""
    return FlowContext(
        verification=current_app.extensions['account_flows.verification'],
        auth=current_app.extensions['account_flows.auth'],
        cookie_header=request.headers.get('Cookie'),
        base_url=request.url_root
    )
