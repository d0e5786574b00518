"""
Transactional email.

Two messages only:
- submission notice: public link + validation code, sent to the brief's client
- account verification: link carrying an externally issued token

Delivery failures raise NotificationError so the caller can roll back.
"""

import logging
import smtplib
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional
from uuid import UUID

from ..config import Settings, get_settings
from ..errors import NotificationError
from ..models import Owner


logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "fr"

TEMPLATES = {
    "fr": {
        "submission_subject": "Un brief attend votre validation",
        "submission_body": (
            "<p>Bonjour,</p>"
            "<p>Un brief vous a été transmis. Consultez-le ici : "
            "<a href=\"{link}\">{link}</a></p>"
            "<p>Votre code de validation : <strong>{code}</strong></p>"
        ),
        "verify_subject": "Confirmez votre adresse email",
        "verify_body": (
            "<p>Bienvenue !</p>"
            "<p>Confirmez votre adresse en cliquant sur ce lien : "
            "<a href=\"{link}\">{link}</a></p>"
        ),
    },
    "en": {
        "submission_subject": "A brief is awaiting your approval",
        "submission_body": (
            "<p>Hello,</p>"
            "<p>A brief has been shared with you. Review it here: "
            "<a href=\"{link}\">{link}</a></p>"
            "<p>Your validation code: <strong>{code}</strong></p>"
        ),
        "verify_subject": "Confirm your email address",
        "verify_body": (
            "<p>Welcome!</p>"
            "<p>Confirm your address by following this link: "
            "<a href=\"{link}\">{link}</a></p>"
        ),
    },
}


def _templates(locale: Optional[str]) -> dict:
    return TEMPLATES.get((locale or DEFAULT_LOCALE).lower()[:2], TEMPLATES[DEFAULT_LOCALE])


class Notifier(ABC):
    """Mail collaborator."""

    @abstractmethod
    def send_submission_notice(
        self, client_email: str, public_uuid: UUID, code: str, locale: Optional[str]
    ) -> None:
        """Send the public link and code. Raise NotificationError on failure."""

    @abstractmethod
    def send_account_verification(self, owner: Owner, token: str) -> None:
        """Send the verification link. Raise NotificationError on failure."""


class SMTPNotifier(Notifier):
    """Notifier over SMTP."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def public_link(self, public_uuid: UUID) -> str:
        return f"{self.settings.frontend_base_url}/public/briefs/{public_uuid}"

    def send_submission_notice(
        self, client_email: str, public_uuid: UUID, code: str, locale: Optional[str]
    ) -> None:
        templates = _templates(locale)
        link = self.public_link(public_uuid)
        self._send(
            to_email=client_email,
            subject=templates["submission_subject"],
            html_body=templates["submission_body"].format(link=link, code=code),
        )

    def send_account_verification(self, owner: Owner, token: str) -> None:
        templates = _templates(owner.language)
        link = f"{self.settings.frontend_base_url}/verify?token={token}"
        self._send(
            to_email=owner.email,
            subject=templates["verify_subject"],
            html_body=templates["verify_body"].format(link=link),
        )

    def _send(self, to_email: str, subject: str, html_body: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.settings.from_name} <{self.settings.from_email}>"
        msg["To"] = to_email
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, timeout=30) as server:
                if self.settings.smtp_use_tls:
                    server.starttls()
                if self.settings.smtp_username and self.settings.smtp_password:
                    server.login(self.settings.smtp_username, self.settings.smtp_password)
                server.sendmail(self.settings.from_email, [to_email], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error(
                "Failed to send email via SMTP",
                extra={"to_email": to_email, "subject": subject, "error": str(e)},
                exc_info=True,
            )
            raise NotificationError("Could not deliver the email, please retry later.") from e

        logger.info("Email sent via SMTP", extra={"to_email": to_email, "subject": subject})


def get_notifier() -> Notifier:
    """Notifier for the current deployment (FastAPI dependency)."""
    return SMTPNotifier()
