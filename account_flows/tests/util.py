"""Helpers shared by the account flows tests."""

from typing import Any, List, Optional

from flask import Flask
from werkzeug.http import parse_cookie

from account_flows.context import FlowContext
from account_flows.factory import create_web_app

TEST_CONFIG = {
    'SQLALCHEMY_DATABASE_URI': 'sqlite://',
    'CREATE_DB': True,
    'JWT_SECRET': 'foosecret',
    'SECRET_KEY': 'barsecret',
    'MAIL_ENABLED': False,
    'TESTING': True,
}


def create_test_app(**overrides: Any) -> Flask:
    """Create an app backed by a fresh in-memory database."""
    config = dict(TEST_CONFIG)
    config.update(overrides)
    return create_web_app(config)


def flow_context(app: Flask, *set_cookies: str,
                 base_url: str = 'http://localhost/') -> FlowContext:
    """Build a context whose request carries the given cookies."""
    return FlowContext(
        verification=app.extensions['account_flows.verification'],
        auth=app.extensions['account_flows.auth'],
        cookie_header=cookie_header(*set_cookies),
        base_url=base_url
    )


def cookie_header(*set_cookies: str) -> Optional[str]:
    """Turn ``Set-Cookie`` values into the ``Cookie`` header a browser sends."""
    pairs: List[str] = []
    for set_cookie in set_cookies:
        name_value = set_cookie.split(';', 1)[0]
        name, value = name_value.split('=', 1)
        if value.strip('"'):
            pairs.append(name_value)
    return '; '.join(pairs) or None


def cookie_value(set_cookie: str) -> str:
    """Get the value from a ``Set-Cookie`` string."""
    name = set_cookie.split('=', 1)[0]
    return parse_cookie(set_cookie.split(';', 1)[0]).get(name, '')
