"""SMTP delivery for transactional emails."""

from __future__ import annotations

import logging
import smtplib
import uuid
from email.message import EmailMessage
from email.utils import make_msgid

from kinetoflow.core.config import settings

logger = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 15


def _mock_send(message: EmailMessage) -> str:
    message_id = f"mocked-{uuid.uuid4()}"
    logger.info(
        "mock email delivery",
        extra={"to": message["To"], "subject": message["Subject"], "message_id": message_id},
    )
    return message_id


def build_message(to: str, subject: str, body: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = settings.mail_from
    message["To"] = to
    message["Subject"] = subject
    message["Message-ID"] = make_msgid(domain=settings.mail_from.split("@")[-1])
    message.set_content(body)
    return message


def send_email(to: str, subject: str, body: str) -> str:
    """Deliver a plain-text email and return its message id.

    Raises:
        smtplib.SMTPException or OSError when the transport fails.
    """

    message = build_message(to, subject, body)
    if settings.mail_mock_mode:
        return _mock_send(message)

    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=_TIMEOUT_SECONDS) as smtp:
        if settings.smtp_use_tls:
            smtp.starttls()
        if settings.smtp_username:
            smtp.login(settings.smtp_username, settings.smtp_password)
        smtp.send_message(message)

    logger.info("email delivered", extra={"to": to, "subject": subject})
    return str(message["Message-ID"])
