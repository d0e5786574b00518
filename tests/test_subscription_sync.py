"""
Smoke Test: Stripe Subscription Sync

Validates:
1. Checkout activation by email, subscription updates by customer reference
2. Replaying an event leaves the same state
3. Incomplete payloads are fetched from Stripe (fallback)
4. Fetch failures leave stored state untouched and propagate
5. Unknown or unmatched events are acknowledged without writes
6. A free owner hitting the limit can create again after upgrading
7. Stripe event objects decode like plain payloads
8. Stripe globals are set once per configuration
"""

from datetime import datetime
from unittest.mock import patch

import pytest
import pytz
import stripe

from briefmate.errors import BadRequestError, CapacityExceededError, UpstreamFailureError
from briefmate.lib.billing import (
    BillingEventDecoder,
    BillingEventKind,
    BillingProviderClient,
    configure_stripe,
)
from briefmate.models import SubscriptionState

from conftest import make_settings


def _event(event_type, obj, event_id="evt_1"):
    return {"id": event_id, "type": event_type, "data": {"object": obj}}


def _checkout_event(mock_stripe, email, customer="cus_new", subscription="sub_new", event_id="evt_checkout"):
    mock_stripe.add_subscription(subscription, customer)
    session = mock_stripe.add_session("cs_1", customer, email, subscription)
    return _event("checkout.session.completed", session, event_id)


def _link_customer(repo, owner_id, customer="cus_new"):
    repo.save_subscription(owner_id, SubscriptionState(billing_customer_ref=customer))


# =============================================================================
# Checkout
# =============================================================================

def test_checkout_completed_activates_owner(subscription_service, repo, mock_stripe, owner):
    result = subscription_service.handle_event(_checkout_event(mock_stripe, owner.email))

    assert result.processed
    assert result.owner_id == owner.id
    subscription = repo.get_owner(owner.id).subscription
    assert subscription.active is True
    assert subscription.billing_customer_ref == "cus_new"
    assert subscription.billing_subscription_ref == "sub_new"
    assert subscription.price_id == "price_monthly"


def test_checkout_email_from_customer_details(subscription_service, repo, mock_stripe, owner):
    mock_stripe.add_subscription("sub_new", "cus_new")
    session = {
        "object": "checkout.session",
        "id": "cs_2",
        "customer": "cus_new",
        "customer_email": None,
        "customer_details": {"email": owner.email},
        "subscription": "sub_new",
    }

    assert subscription_service.handle_event(_event("checkout.session.completed", session)).processed
    assert repo.get_owner(owner.id).subscription.active is True


def test_checkout_unknown_email_not_processed(subscription_service, repo, mock_stripe, owner):
    result = subscription_service.handle_event(_checkout_event(mock_stripe, "stranger@elsewhere.example.com"))

    assert not result.processed
    assert repo.get_owner(owner.id).subscription.active is False


def test_checkout_incomplete_payload_fetches_session(subscription_service, repo, mock_stripe, owner):
    _checkout_event(mock_stripe, owner.email)
    event = _event("checkout.session.completed", {"id": "cs_1"})

    result = subscription_service.handle_event(event)

    assert result.processed
    assert "cs_1" in mock_stripe.fetches
    assert repo.get_owner(owner.id).subscription.active is True


# =============================================================================
# Subscription updates
# =============================================================================

def test_subscription_updated_overwrites_all_fields(subscription_service, repo, mock_stripe, owner):
    _link_customer(repo, owner.id)
    subscription = mock_stripe.add_subscription(
        "sub_new", "cus_new",
        status="active",
        price_id="price_yearly",
        cancel_at_period_end=True,
        current_period_end=1798761600,
    )

    subscription_service.handle_event(_event("customer.subscription.updated", subscription))

    state = repo.get_owner(owner.id).subscription
    assert state.active is True
    assert state.cancel_at_period_end is True
    assert state.price_id == "price_yearly"
    assert state.current_period_end == datetime.fromtimestamp(1798761600, tz=pytz.utc)
    assert state.billing_customer_ref == "cus_new"
    assert state.billing_subscription_ref == "sub_new"


def test_non_active_status_deactivates(subscription_service, repo, mock_stripe, paid_owner):
    subscription = mock_stripe.add_subscription("sub_paid", "cus_paid", status="past_due")

    subscription_service.handle_event(_event("customer.subscription.updated", subscription))

    assert repo.get_owner(paid_owner.id).subscription.active is False


def test_replayed_event_is_idempotent(subscription_service, repo, mock_stripe, owner):
    _link_customer(repo, owner.id)
    event = _event("customer.subscription.updated", mock_stripe.add_subscription("sub_new", "cus_new"))

    subscription_service.handle_event(event)
    first = repo.get_owner(owner.id).subscription
    subscription_service.handle_event(event)
    second = repo.get_owner(owner.id).subscription

    assert first == second


def test_period_end_read_from_item_on_newer_payloads(subscription_service, repo, mock_stripe, owner):
    _link_customer(repo, owner.id)
    subscription = mock_stripe.add_subscription("sub_new", "cus_new", current_period_end=None)
    subscription["items"]["data"][0]["current_period_end"] = 1798761600

    subscription_service.handle_event(_event("customer.subscription.updated", subscription))

    assert repo.get_owner(owner.id).subscription.current_period_end == datetime.fromtimestamp(
        1798761600, tz=pytz.utc
    )


def test_incomplete_subscription_payload_fetched(subscription_service, repo, mock_stripe, owner):
    _link_customer(repo, owner.id)
    mock_stripe.add_subscription("sub_new", "cus_new", price_id="price_yearly")

    subscription_service.handle_event(_event("customer.subscription.updated", {"id": "sub_new"}))

    assert mock_stripe.fetches == ["sub_new"]
    assert repo.get_owner(owner.id).subscription.price_id == "price_yearly"


def test_fetch_failure_leaves_state_untouched(subscription_service, repo, mock_stripe, paid_owner):
    before = repo.get_owner(paid_owner.id).subscription
    mock_stripe.fail = True

    with pytest.raises(UpstreamFailureError):
        subscription_service.handle_event(_event("customer.subscription.deleted", {"id": "sub_paid"}))

    assert repo.get_owner(paid_owner.id).subscription == before


def test_payload_without_reference_rejected(subscription_service):
    with pytest.raises(BadRequestError):
        subscription_service.handle_event(_event("customer.subscription.updated", {}))


# =============================================================================
# Deletion
# =============================================================================

def test_subscription_deleted_returns_owner_to_free(subscription_service, repo, mock_stripe, paid_owner):
    subscription = mock_stripe.add_subscription("sub_paid", "cus_paid", status="canceled")

    result = subscription_service.handle_event(_event("customer.subscription.deleted", subscription))

    assert result.processed
    state = repo.get_owner(paid_owner.id).subscription
    assert state.active is False
    assert state.price_id is None
    assert state.billing_subscription_ref is None
    assert state.billing_customer_ref == "cus_paid"


def test_deleted_for_unknown_customer_acknowledged(subscription_service, repo, mock_stripe, paid_owner):
    subscription = mock_stripe.add_subscription("sub_x", "cus_unknown", status="canceled")

    result = subscription_service.handle_event(_event("customer.subscription.deleted", subscription))

    assert not result.processed
    assert repo.get_owner(paid_owner.id).subscription.active is True


# =============================================================================
# Routing and decoding
# =============================================================================

def test_unknown_event_type_ignored(subscription_service, repo, paid_owner):
    result = subscription_service.handle_event(_event("invoice.paid", {"id": "in_1"}))

    assert not result.processed
    assert result.message == "ignored"
    assert repo.get_owner(paid_owner.id).subscription.active is True


def test_decoder_produces_canonical_event(mock_stripe):
    subscription = mock_stripe.add_subscription("sub_1", "cus_1", price_id="price_monthly")

    decoded = BillingEventDecoder(mock_stripe).decode(_event("customer.subscription.updated", subscription, "evt_9"))

    assert decoded.kind == BillingEventKind.SUBSCRIPTION_UPDATED
    assert decoded.event_id == "evt_9"
    assert decoded.customer_ref == "cus_1"
    assert decoded.status == "active"
    assert decoded.price_id == "price_monthly"
    assert mock_stripe.fetches == []


def _stripe_event(event_type, obj, event_id="evt_live"):
    return stripe.Event.construct_from(
        {"id": event_id, "object": "event", "type": event_type, "data": {"object": obj}},
        "sk_test_123",
    )


def test_stripe_event_object_is_decoded(subscription_service, repo, mock_stripe, paid_owner):
    subscription = {
        "object": "subscription",
        "id": "sub_paid",
        "customer": "cus_paid",
        "status": "active",
        "cancel_at_period_end": True,
        "current_period_end": 1798761600,
        "items": {
            "object": "list",
            "data": [{"object": "subscription_item", "price": {"object": "price", "id": "price_yearly"}}],
        },
    }
    event = _stripe_event("customer.subscription.updated", subscription)
    assert isinstance(event, stripe.StripeObject)

    result = subscription_service.handle_event(event)

    assert result.processed
    assert mock_stripe.fetches == []
    state = repo.get_owner(paid_owner.id).subscription
    assert state.price_id == "price_yearly"
    assert state.cancel_at_period_end is True
    assert state.current_period_end == datetime.fromtimestamp(1798761600, tz=pytz.utc)


def test_stripe_event_object_through_decoder(mock_stripe):
    session = {
        "object": "checkout.session",
        "id": "cs_live",
        "customer": "cus_1",
        "customer_email": None,
        "customer_details": {"email": "buyer@example.com"},
        "subscription": "sub_1",
    }
    mock_stripe.add_subscription("sub_1", "cus_1")

    decoded = BillingEventDecoder(mock_stripe).decode(_stripe_event("checkout.session.completed", session))

    assert decoded.kind == BillingEventKind.CHECKOUT_COMPLETED
    assert decoded.customer_email == "buyer@example.com"
    assert decoded.subscription_ref == "sub_1"


def test_unknown_stripe_event_object_ignored(subscription_service):
    result = subscription_service.handle_event(_stripe_event("invoice.paid", {"object": "invoice", "id": "in_1"}))

    assert not result.processed
    assert result.message == "ignored"


# =============================================================================
# Owner-facing
# =============================================================================

def test_upgrade_lifts_capacity_limit(
    subscription_service, brief_service, repo, mock_stripe, owner, brief_request
):
    brief_service.create_brief(owner.id, brief_request())
    with pytest.raises(CapacityExceededError):
        brief_service.create_brief(owner.id, brief_request(title="Second"))

    subscription_service.handle_event(_checkout_event(mock_stripe, owner.email))

    second = brief_service.create_brief(owner.id, brief_request(title="Second"))
    assert second.title == "Second"


def test_status_reads_stored_snapshot(subscription_service, mock_stripe, paid_owner):
    status = subscription_service.get_subscription_status(paid_owner.id)

    assert status.active is True
    assert status.price_id == "price_monthly"
    assert mock_stripe.fetches == []


def test_checkout_reuses_existing_customer(subscription_service, mock_stripe, paid_owner):
    url = subscription_service.create_checkout_session(
        paid_owner.id, "price_yearly", "https://ok.test", "https://cancel.test"
    )

    assert url.startswith("https://checkout.stripe.test")
    assert mock_stripe.checkouts[0]["customer"] == "cus_paid"


def test_portal_requires_billing_account(subscription_service, owner):
    with pytest.raises(BadRequestError):
        subscription_service.get_billing_portal_url(owner.id, "https://app.test/account")


# =============================================================================
# Provider client
# =============================================================================

def test_stripe_globals_configured_once():
    saved = (stripe.api_key, stripe.default_http_client)
    configure_stripe.cache_clear()
    try:
        with patch("briefmate.lib.billing.stripe.RequestsClient") as requests_client:
            BillingProviderClient(make_settings())
            BillingProviderClient(make_settings())

        assert requests_client.call_count == 1
        assert stripe.api_key == "sk_test_123"
    finally:
        configure_stripe.cache_clear()
        stripe.api_key, stripe.default_http_client = saved
