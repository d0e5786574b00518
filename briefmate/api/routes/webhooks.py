"""
Webhook handlers.
Only Stripe webhooks - no other integrations needed.

Handles:
- checkout.session.completed
- customer.subscription.updated
- customer.subscription.deleted

All subscription state is managed via webhooks.
A 4xx/5xx answer makes Stripe redeliver; every handler is replay-safe.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool

from ...db import Repository, get_repository
from ...lib import BillingEventVerifier, BillingProviderClient, SubscriptionService
from ...lib.billing import get_billing_provider, get_event_verifier


router = APIRouter()


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    verifier: BillingEventVerifier = Depends(get_event_verifier),
    provider: BillingProviderClient = Depends(get_billing_provider),
    repository: Repository = Depends(get_repository),
):
    """
    Handle Stripe webhook events.

    Verifies webhook signature before anything else. Rejected payloads
    (400) never touch stored state.

    All other events are acknowledged but ignored.
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")

    event = verifier.verify(payload, sig_header)

    service = SubscriptionService(repository, provider)
    result = await run_in_threadpool(service.handle_event, event)

    # Acknowledge receipt
    return {"received": True, "processed": result.processed}
