"""
Smoke Test: Notifications and Owner Accounts

Validates:
1. Submission emails carry the public link and code, in the owner's language
2. SMTP failures surface as NotificationError
3. Profile, language and account deletion
"""

import smtplib
import uuid
from unittest.mock import MagicMock, patch

import pytest

from briefmate.errors import NotFoundError, NotificationError
from briefmate.lib import OwnerService, SMTPNotifier
from briefmate.lib.notifier import TEMPLATES
from briefmate.models import ClientRequest, ResourceKind

from conftest import make_settings


def test_submission_email_contains_link_and_code():
    notifier = SMTPNotifier(make_settings())
    public_uuid = uuid.uuid4()

    with patch.object(SMTPNotifier, "_send") as send:
        notifier.send_submission_notice("client@acme.example.com", public_uuid, "042042", "en")

    kwargs = send.call_args.kwargs
    assert kwargs["to_email"] == "client@acme.example.com"
    assert kwargs["subject"] == TEMPLATES["en"]["submission_subject"]
    assert f"https://app.brief-mate.test/public/briefs/{public_uuid}" in kwargs["html_body"]
    assert "042042" in kwargs["html_body"]


def test_unknown_locale_falls_back_to_french():
    notifier = SMTPNotifier(make_settings())

    with patch.object(SMTPNotifier, "_send") as send:
        notifier.send_submission_notice("client@acme.example.com", uuid.uuid4(), "123456", "de")

    assert send.call_args.kwargs["subject"] == TEMPLATES["fr"]["submission_subject"]


def test_smtp_delivery_uses_configured_sender():
    notifier = SMTPNotifier(make_settings())
    server = MagicMock()
    smtp = MagicMock()
    smtp.return_value.__enter__.return_value = server

    with patch("briefmate.lib.notifier.smtplib.SMTP", smtp):
        notifier.send_submission_notice("client@acme.example.com", uuid.uuid4(), "123456", "fr")

    smtp.assert_called_once_with("localhost", 25, timeout=30)
    from_email, recipients, _ = server.sendmail.call_args[0]
    assert from_email == "no-reply@brief-mate.example.com"
    assert recipients == ["client@acme.example.com"]
    server.starttls.assert_not_called()


def test_smtp_failure_raises_notification_error():
    notifier = SMTPNotifier(make_settings())
    smtp = MagicMock(side_effect=smtplib.SMTPConnectError(421, "unavailable"))

    with patch("briefmate.lib.notifier.smtplib.SMTP", smtp):
        with pytest.raises(NotificationError):
            notifier.send_submission_notice("client@acme.example.com", uuid.uuid4(), "123456", "fr")


def test_ensure_owner_is_idempotent(repo):
    service = OwnerService(repo)

    first = service.ensure_owner("auth-1", "a@brief-mate.example.com")
    second = service.ensure_owner("auth-1", "a@brief-mate.example.com")

    assert first.id == second.id
    assert first.language == "fr"
    assert first.subscription.active is False


def test_profile_counts_resources(repo, brief_service, client_service, owner, brief_request):
    client_service.create_client(owner.id, ClientRequest(name="Acme", email="ops@acme.example.com"))
    brief_service.create_brief(owner.id, brief_request())

    profile = OwnerService(repo).get_profile(owner.id)

    assert profile.briefs == 1
    assert profile.clients == 1
    assert profile.subscription.active is False


def test_update_language(repo, owner):
    updated = OwnerService(repo).update_language(owner.id, "en")
    assert updated.language == "en"
    assert repo.get_owner(owner.id).language == "en"


def test_delete_owner_cascades(repo, brief_service, client_service, owner, brief_request):
    client_service.create_client(owner.id, ClientRequest(name="Acme", email="ops@acme.example.com"))
    brief = brief_service.create_brief(owner.id, brief_request())

    OwnerService(repo).delete_owner(owner.id)

    with pytest.raises(NotFoundError):
        repo.get_owner(owner.id)
    with pytest.raises(NotFoundError):
        repo.get_brief(brief.id)
    assert repo.count_by_owner(owner.id, ResourceKind.CLIENT) == 0


def test_send_verification_uses_notifier(repo, notifier, owner):
    OwnerService(repo, notifier).send_verification(owner.id, "tok_123")

    assert notifier.sent == [{"to": owner.email, "token": "tok_123"}]
