"""
Shared fixtures.

Mock collaborators stand in for SMTP and Stripe; the repository is the
real in-memory backend so locking and rollback behave as in production.
"""

import dataclasses
from typing import Optional

import pytest

from briefmate.config import CLIENT_MODE_EMBEDDED, CLIENT_MODE_REFERENCE, DEADLINE_UNIT_DATE, Settings
from briefmate.db import MemoryRepository
from briefmate.errors import NotificationError, UpstreamFailureError
from briefmate.lib import BriefService, ClientService, SubscriptionService
from briefmate.lib.notifier import Notifier
from briefmate.models import BriefRequest, SubscriptionState


def make_settings(**overrides) -> Settings:
    """Settings for tests; never reads the environment."""
    base = Settings(
        app_env="test",
        client_mode=CLIENT_MODE_REFERENCE,
        deadline_unit=DEADLINE_UNIT_DATE,
        free_tier_limit=1,
        frontend_base_url="https://app.brief-mate.test",
        repository_backend="memory",
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret="whsec_test_secret",
        stripe_success_url="https://app.brief-mate.test/subscription/success",
        stripe_cancel_url="https://app.brief-mate.test/subscription/cancel",
        billing_fetch_timeout_seconds=1.0,
        smtp_host="localhost",
        smtp_port=25,
        smtp_username=None,
        smtp_password=None,
        smtp_use_tls=False,
        from_email="no-reply@brief-mate.example.com",
        from_name="BriefMate",
        log_level="INFO",
    )
    return dataclasses.replace(base, **overrides)


class MockNotifier(Notifier):
    """Records every email instead of sending it."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send_submission_notice(self, client_email, public_uuid, code, locale):
        if self.fail:
            raise NotificationError("Could not deliver the email, please retry later.")
        self.sent.append({
            "to": client_email,
            "public_uuid": public_uuid,
            "code": code,
            "locale": locale,
        })

    def send_account_verification(self, owner, token):
        if self.fail:
            raise NotificationError("Could not deliver the email, please retry later.")
        self.sent.append({"to": owner.email, "token": token})


class MockStripe:
    """Simulates the Stripe fetch API used by the webhook fallback."""

    def __init__(self):
        self.sessions = {}
        self.subscriptions = {}
        self.fetches = []
        self.fail = False
        self.checkouts = []
        self.portals = []

    def add_subscription(
        self,
        subscription_id: str,
        customer: str,
        status: str = "active",
        price_id: str = "price_monthly",
        cancel_at_period_end: bool = False,
        current_period_end: Optional[int] = 1767225600,
    ) -> dict:
        subscription = {
            "object": "subscription",
            "id": subscription_id,
            "customer": customer,
            "status": status,
            "cancel_at_period_end": cancel_at_period_end,
            "current_period_end": current_period_end,
            "items": {"data": [{"price": {"id": price_id}}]},
        }
        self.subscriptions[subscription_id] = subscription
        return subscription

    def add_session(self, session_id: str, customer: str, email: str, subscription: str) -> dict:
        session = {
            "object": "checkout.session",
            "id": session_id,
            "customer": customer,
            "customer_email": email,
            "subscription": subscription,
        }
        self.sessions[session_id] = session
        return session

    def fetch_checkout_session(self, session_id):
        self.fetches.append(session_id)
        if self.fail:
            raise UpstreamFailureError("Billing provider unavailable")
        return self.sessions[session_id]

    def fetch_subscription(self, subscription_id):
        self.fetches.append(subscription_id)
        if self.fail:
            raise UpstreamFailureError("Billing provider unavailable")
        return self.subscriptions[subscription_id]

    def create_checkout_session(self, price_id, success_url, cancel_url, customer_email=None, customer_ref=None):
        self.checkouts.append({"price_id": price_id, "email": customer_email, "customer": customer_ref})
        return "https://checkout.stripe.test/session"

    def create_portal_session(self, customer_ref, return_url):
        self.portals.append({"customer": customer_ref, "return_url": return_url})
        return "https://billing.stripe.test/portal"


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def embedded_settings():
    return make_settings(client_mode=CLIENT_MODE_EMBEDDED)


@pytest.fixture
def repo():
    return MemoryRepository()


@pytest.fixture
def notifier():
    return MockNotifier()


@pytest.fixture
def mock_stripe():
    return MockStripe()


@pytest.fixture
def owner(repo):
    """Free-plan owner."""
    return repo.upsert_owner("owner-free", "free@brief-mate.example.com")


@pytest.fixture
def paid_owner(repo):
    repo.upsert_owner("owner-paid", "paid@brief-mate.example.com")
    return repo.save_subscription("owner-paid", SubscriptionState(
        active=True,
        price_id="price_monthly",
        billing_customer_ref="cus_paid",
        billing_subscription_ref="sub_paid",
    ))


@pytest.fixture
def other_owner(repo):
    return repo.upsert_owner("owner-other", "other@brief-mate.example.com")


@pytest.fixture
def brief_service(repo, notifier, settings):
    return BriefService(repo, notifier, settings)


@pytest.fixture
def embedded_brief_service(repo, notifier, embedded_settings):
    return BriefService(repo, notifier, embedded_settings)


@pytest.fixture
def client_service(repo, settings):
    return ClientService(repo, settings)


@pytest.fixture
def subscription_service(repo, mock_stripe):
    return SubscriptionService(repo, mock_stripe)


@pytest.fixture
def brief_request():
    def build(**overrides) -> BriefRequest:
        fields = {
            "title": "Website redesign",
            "description": "New marketing site for the spring launch",
            "objectives": ["More sign-ups", "Clearer pricing page"],
            "target_audience": "Small agencies",
            "budget": "5k-10k EUR",
            "deliverables": ["Figma mockups", "Landing page"],
        }
        fields.update(overrides)
        return BriefRequest(**fields)
    return build
