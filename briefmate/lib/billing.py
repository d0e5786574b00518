"""
Stripe integration: webhook verification, fallback fetches, event decoding.

Webhook ingestion is a two-stage pipeline:
1. verify + decode: a raw Stripe event becomes one canonical BillingEvent.
   Embedded payloads are used when complete; otherwise the object is
   fetched from Stripe by id (the fallback).
2. reconcile: see subscriptions.py. It never looks at payload shape.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from functools import lru_cache
from typing import Any, Optional

import pytz
import stripe

from ..config import Settings, get_settings
from ..errors import BadRequestError, BriefMateError, SignatureInvalidError, UpstreamFailureError


logger = logging.getLogger(__name__)


class BillingEventKind(str, Enum):
    """Stripe event types the reconciler acts on."""
    CHECKOUT_COMPLETED = "checkout.session.completed"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"


@dataclass(frozen=True)
class BillingEvent:
    """Canonical billing event, independent of how Stripe delivered it."""
    kind: BillingEventKind
    event_id: Optional[str]
    customer_ref: Optional[str]
    customer_email: Optional[str] = None
    subscription_ref: Optional[str] = None
    status: Optional[str] = None
    cancel_at_period_end: bool = False
    current_period_end: Optional[datetime] = None
    price_id: Optional[str] = None


def to_plain(value: Any) -> Any:
    """
    Stripe objects -> plain dicts and lists, recursively.
    StripeObject is not a dict on current stripe-python releases.
    """
    if isinstance(value, stripe.StripeObject):
        value = value.to_dict()
    if isinstance(value, dict):
        return {key: to_plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [to_plain(item) for item in value]
    return value


def _from_timestamp(value: Optional[int]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=pytz.utc)


def _first_item(subscription: Any) -> Optional[Any]:
    items = subscription.get("items") or {}
    data = items.get("data") or []
    return data[0] if data else None


def first_price_id(subscription: Any) -> Optional[str]:
    item = _first_item(subscription)
    if not item:
        return None
    price = item.get("price") or {}
    return price.get("id")


def period_end(subscription: Any) -> Optional[datetime]:
    """Subscription period end; newer API versions only carry it per item."""
    value = subscription.get("current_period_end")
    if value is None:
        item = _first_item(subscription)
        value = item.get("current_period_end") if item else None
    return _from_timestamp(value)


class BillingEventVerifier:
    """Checks the Stripe-Signature header before anything else runs."""

    def __init__(self, webhook_secret: Optional[str] = None, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.webhook_secret = webhook_secret or settings.stripe_webhook_secret

    def verify(self, payload: bytes, sig_header: Optional[str]) -> stripe.Event:
        if not self.webhook_secret:
            raise BriefMateError("Webhook secret not configured")

        if not sig_header:
            raise SignatureInvalidError("Invalid signature")

        try:
            return stripe.Webhook.construct_event(payload, sig_header, self.webhook_secret)
        except ValueError:
            raise BadRequestError("Invalid payload")
        except stripe.SignatureVerificationError:
            raise SignatureInvalidError("Invalid signature")


@lru_cache()
def configure_stripe(api_key: Optional[str], timeout_seconds: float) -> None:
    """Set the process-wide Stripe key and HTTP client once per configuration."""
    stripe.api_key = api_key
    stripe.default_http_client = stripe.RequestsClient(timeout=timeout_seconds)


class BillingProviderClient:
    """
    Thin Stripe wrapper.
    Every call is bounded by the configured timeout; any Stripe error
    (including timeouts) surfaces as UpstreamFailureError.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        configure_stripe(self.settings.stripe_secret_key, self.settings.billing_fetch_timeout_seconds)

    def fetch_checkout_session(self, session_id: str) -> Any:
        try:
            return to_plain(stripe.checkout.Session.retrieve(session_id))
        except stripe.StripeError as e:
            logger.warning("Stripe session fetch failed", extra={"session_id": session_id, "error": str(e)})
            raise UpstreamFailureError("Billing provider unavailable") from e

    def fetch_subscription(self, subscription_id: str) -> Any:
        try:
            return to_plain(stripe.Subscription.retrieve(subscription_id))
        except stripe.StripeError as e:
            logger.warning(
                "Stripe subscription fetch failed",
                extra={"subscription_id": subscription_id, "error": str(e)},
            )
            raise UpstreamFailureError("Billing provider unavailable") from e

    def create_checkout_session(
        self,
        price_id: str,
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str] = None,
        customer_ref: Optional[str] = None,
    ) -> str:
        """Start a subscription checkout; returns the hosted page URL."""
        params = {
            "mode": "subscription",
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": success_url + "?session_id={CHECKOUT_SESSION_ID}",
            "cancel_url": cancel_url,
        }
        # Stripe accepts one or the other, not both
        if customer_ref:
            params["customer"] = customer_ref
        else:
            params["customer_email"] = customer_email

        try:
            session = stripe.checkout.Session.create(**params)
        except stripe.StripeError as e:
            raise UpstreamFailureError("Billing provider unavailable") from e
        return session.url

    def create_portal_session(self, customer_ref: str, return_url: str) -> str:
        try:
            session = stripe.billing_portal.Session.create(
                customer=customer_ref,
                return_url=return_url,
            )
        except stripe.StripeError as e:
            raise UpstreamFailureError("Billing provider unavailable") from e
        return session.url


class BillingEventDecoder:
    """Stage 1: verified Stripe event -> BillingEvent (or None if not handled)."""

    def __init__(self, provider: BillingProviderClient):
        self.provider = provider

    def decode(self, event: Any) -> Optional[BillingEvent]:
        event = to_plain(event)
        event_type = event.get("type")
        try:
            kind = BillingEventKind(event_type)
        except ValueError:
            return None

        data = event.get("data") or {}
        obj = data.get("object")
        event_id = event.get("id")

        if kind == BillingEventKind.CHECKOUT_COMPLETED:
            return self._decode_checkout(event_id, obj)
        return self._decode_subscription(kind, event_id, obj)

    def _reference_id(self, event_id: Optional[str], obj: Any) -> str:
        reference = obj.get("id") if obj else None
        if not reference:
            logger.error("Billing event unprocessed: no object reference", extra={"event_id": event_id})
            raise BadRequestError("Event payload could not be decoded")
        return reference

    def _decode_checkout(self, event_id: Optional[str], obj: Any) -> BillingEvent:
        session = obj if self._is_complete_session(obj) else None
        if session is None:
            session_id = self._reference_id(event_id, obj)
            session = self.provider.fetch_checkout_session(session_id)
            logger.info("Checkout session fetched via fallback", extra={"session_id": session_id})

        customer_details = session.get("customer_details") or {}
        email = session.get("customer_email") or customer_details.get("email")

        subscription = session.get("subscription")
        subscription_ref = subscription.get("id") if isinstance(subscription, dict) else subscription

        price_id = None
        if subscription_ref:
            if not isinstance(subscription, dict) or not first_price_id(subscription):
                subscription = self.provider.fetch_subscription(subscription_ref)
            price_id = first_price_id(subscription)

        return BillingEvent(
            kind=BillingEventKind.CHECKOUT_COMPLETED,
            event_id=event_id,
            customer_ref=session.get("customer"),
            customer_email=email,
            subscription_ref=subscription_ref,
            price_id=price_id,
        )

    def _decode_subscription(self, kind: BillingEventKind, event_id: Optional[str], obj: Any) -> BillingEvent:
        subscription = obj if self._is_complete_subscription(obj) else None
        if subscription is None:
            subscription_id = self._reference_id(event_id, obj)
            subscription = self.provider.fetch_subscription(subscription_id)
            logger.info(
                "Subscription fetched via fallback",
                extra={"subscription_id": subscription_id, "kind": kind.value},
            )

        return BillingEvent(
            kind=kind,
            event_id=event_id,
            customer_ref=subscription.get("customer"),
            subscription_ref=subscription.get("id"),
            status=subscription.get("status"),
            cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
            current_period_end=period_end(subscription),
            price_id=first_price_id(subscription),
        )

    @staticmethod
    def _is_complete_session(obj: Any) -> bool:
        return bool(
            obj
            and obj.get("object") == "checkout.session"
            and obj.get("id")
            and "subscription" in obj
            and "customer" in obj
        )

    @staticmethod
    def _is_complete_subscription(obj: Any) -> bool:
        return bool(
            obj
            and obj.get("object") == "subscription"
            and obj.get("id")
            and obj.get("customer")
            and obj.get("status")
            and _first_item(obj) is not None
        )


def get_event_verifier() -> BillingEventVerifier:
    """FastAPI dependency."""
    return BillingEventVerifier()


@lru_cache()
def get_billing_provider() -> BillingProviderClient:
    """FastAPI dependency. One client per process."""
    return BillingProviderClient()
