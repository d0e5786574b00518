"""
Subscription management service.
Handles Stripe integration for billing.

Key design:
- Webhooks are the only writer of subscription state
- Every event is an authoritative snapshot: fields are overwritten, never merged
  from deltas, so replaying an event is harmless
- Writes for one owner happen under the owner lock, in a single update
- Unmatched events are acknowledged and logged; Stripe owns redelivery
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..db import Repository
from ..errors import BadRequestError
from ..models import Owner, SubscriptionState, SubscriptionStatusResponse
from .billing import BillingEvent, BillingEventDecoder, BillingEventKind, BillingProviderClient, to_plain


logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of one webhook event."""
    processed: bool
    message: str
    owner_id: Optional[str] = None


class SubscriptionService:
    """Handles all subscription and billing logic."""

    def __init__(self, repository: Repository, provider: Optional[BillingProviderClient] = None):
        self.repository = repository
        self._provider = provider

    @property
    def provider(self) -> BillingProviderClient:
        if self._provider is None:
            self._provider = BillingProviderClient()
        return self._provider

    # -------------------------------------------------------------------------
    # Owner-facing
    # -------------------------------------------------------------------------

    def get_subscription_status(self, owner_id: str) -> SubscriptionStatusResponse:
        """Stored snapshot; never calls Stripe."""
        subscription = self.repository.get_owner(owner_id).subscription
        return SubscriptionStatusResponse(
            active=subscription.active,
            cancel_at_period_end=subscription.cancel_at_period_end,
            current_period_end=subscription.current_period_end,
            price_id=subscription.price_id,
        )

    def create_checkout_session(self, owner_id: str, price_id: str, success_url: str, cancel_url: str) -> str:
        owner = self.repository.get_owner(owner_id)
        return self.provider.create_checkout_session(
            price_id=price_id,
            success_url=success_url,
            cancel_url=cancel_url,
            customer_email=owner.email,
            customer_ref=owner.subscription.billing_customer_ref,
        )

    def get_billing_portal_url(self, owner_id: str, return_url: str) -> str:
        owner = self.repository.get_owner(owner_id)
        if not owner.subscription.billing_customer_ref:
            raise BadRequestError("No billing account found")
        return self.provider.create_portal_session(owner.subscription.billing_customer_ref, return_url)

    # -------------------------------------------------------------------------
    # Webhook reconciliation
    # -------------------------------------------------------------------------

    def handle_event(self, event: Any) -> ReconcileResult:
        """
        Decode a verified Stripe event and apply it.

        UpstreamFailureError from the fallback fetch propagates untouched so
        the webhook answers non-2xx and Stripe redelivers.
        """
        event = to_plain(event)
        billing_event = BillingEventDecoder(self.provider).decode(event)
        if billing_event is None:
            logger.info("Billing event ignored", extra={"event_type": event.get("type"), "event_id": event.get("id")})
            return ReconcileResult(processed=False, message="ignored")
        return self.apply_event(billing_event)

    def apply_event(self, event: BillingEvent) -> ReconcileResult:
        """Stage 2: merge a canonical event into owner state."""
        if event.kind == BillingEventKind.CHECKOUT_COMPLETED:
            return self.handle_checkout_completed(event)
        if event.kind == BillingEventKind.SUBSCRIPTION_UPDATED:
            return self.handle_subscription_updated(event)
        return self.handle_subscription_deleted(event)

    def handle_checkout_completed(self, event: BillingEvent) -> ReconcileResult:
        """Activate the owner who paid, found by email. Never creates owners."""
        if not event.customer_email:
            return self._unmatched(event, "checkout session has no customer email")
        if not event.subscription_ref:
            return self._unmatched(event, "checkout session has no subscription")

        owner = self.repository.find_owner_by_email(event.customer_email)
        if owner is None:
            return self._unmatched(event, "no owner with this email")

        return self._write(owner, event, lambda current: current.model_copy(update={
            "active": True,
            "billing_customer_ref": event.customer_ref,
            "billing_subscription_ref": event.subscription_ref,
            "price_id": event.price_id,
        }))

    def handle_subscription_updated(self, event: BillingEvent) -> ReconcileResult:
        """Full overwrite of the subscription fields from the event snapshot."""
        owner = self._owner_for_customer(event)
        if owner is None:
            return self._unmatched(event, "no owner with this customer reference")

        return self._write(owner, event, lambda current: SubscriptionState(
            active=event.status == "active",
            cancel_at_period_end=event.cancel_at_period_end,
            current_period_end=event.current_period_end,
            price_id=event.price_id,
            billing_customer_ref=current.billing_customer_ref,
            billing_subscription_ref=event.subscription_ref,
        ))

    def handle_subscription_deleted(self, event: BillingEvent) -> ReconcileResult:
        """Definitive end: back to the free tier. cancel_at_period_end is left as is."""
        owner = self._owner_for_customer(event)
        if owner is None:
            return self._unmatched(event, "no owner with this customer reference")

        return self._write(owner, event, lambda current: current.model_copy(update={
            "active": False,
            "price_id": None,
            "billing_subscription_ref": None,
        }))

    def _owner_for_customer(self, event: BillingEvent) -> Optional[Owner]:
        if not event.customer_ref:
            return None
        return self.repository.find_owner_by_customer_ref(event.customer_ref)

    def _write(self, owner: Owner, event: BillingEvent, build) -> ReconcileResult:
        with self.repository.owner_lock(owner.id) as locked:
            updated = self.repository.save_subscription(locked.id, build(locked.subscription))

        logger.info(
            "Subscription reconciled",
            extra={
                "event_id": event.event_id,
                "kind": event.kind.value,
                "owner_id": updated.id,
                "active": updated.subscription.active,
            },
        )
        return ReconcileResult(processed=True, message="applied", owner_id=updated.id)

    def _unmatched(self, event: BillingEvent, reason: str) -> ReconcileResult:
        logger.warning(
            "Billing event unprocessed: %s",
            reason,
            extra={
                "event_id": event.event_id,
                "kind": event.kind.value,
                "customer_ref": event.customer_ref,
            },
        )
        return ReconcileResult(processed=False, message=reason)
