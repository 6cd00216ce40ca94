"""Provides a unified API for sending account e-mail."""

import logging
import smtplib
from email.message import EmailMessage

from flask import current_app

logger = logging.getLogger(__name__)


class MailSession(object):
    """An open session with an SMTP service."""

    def __init__(self, host: str = "", port: int = 0) -> None:
        self._host = host
        self._port = port

    def _new_connection(self) -> smtplib.SMTP:
        return smtplib.SMTP(host=self._host, port=self._port)

    def send_message(self, message: EmailMessage) -> None:
        """Deliver ``message`` over a fresh connection."""
        with self._new_connection() as conn:
            conn.send_message(message)


def get_session() -> MailSession:
    """Get a mail session configured for the current application."""
    config = current_app.config
    return MailSession(config['SMTP_HOST'], int(config['SMTP_PORT']))


def send_email(to: str, subject: str, text: str) -> None:
    """
    Send a plain-text message.

    When ``MAIL_ENABLED`` is off, the message is logged instead of sent.
    """
    if not current_app.config['MAIL_ENABLED']:
        logger.info('Mail is disabled; not sending "%s"', subject)
        logger.debug('Unsent message', extra={'to': to, 'body': text})
        return
    message = EmailMessage()
    message['From'] = current_app.config['MAIL_FROM']
    message['To'] = to
    message['Subject'] = subject
    message.set_content(text)
    get_session().send_message(message)
    logger.debug('Sent "%s"', subject)


def send_verification_email(to: str, subject: str, code: str,
                            link: str) -> None:
    """Send a one-time code and the link that submits it."""
    text = (
        f'Here is your verification code: {code}\n\n'
        f'Or click the link to get started:\n{link}\n'
    )
    send_email(to, subject, text)
