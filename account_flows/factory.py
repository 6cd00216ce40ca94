"""Application factory for the account flows app."""

from typing import Any, Mapping, Optional

from flask import Flask

from account_flows.app_logging import setup_logger
from account_flows.routes import ui
from account_flows.services import cookies, util


def create_web_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    """
    Initialize and configure the account flows application.

    Parameters
    ----------
    config : mapping
        Settings that take precedence over those in ``config.py``. They
        are applied before any extension reads the configuration.

    """
    app = Flask('account_flows')
    app.config.from_pyfile('config.py')
    if config:
        app.config.update(config)

    # Don't set SERVER_NAME; it makes blueprints subdomain aware, and the
    # app must answer for every host name that it is deployed under.
    app.config['SERVER_NAME'] = None

    setup_logger(app.config['LOGLEVEL'])
    util.init_app(app)
    cookies.init_app(app)

    app.register_blueprint(ui.blueprint)

    if app.config['CREATE_DB']:
        with app.app_context():
            util.create_all()

    return app
