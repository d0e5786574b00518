"""
Subscription management routes.
All self-serve - plan changes and cancellation happen in the Stripe portal.

Endpoints:
- GET /status - Current subscription status
- POST /checkout - Start subscription
- GET /portal - Stripe billing portal URL
"""

from fastapi import APIRouter, Depends

from ...config import get_settings
from ...db import Repository, get_repository
from ...lib import BillingProviderClient, SubscriptionService, get_current_owner
from ...lib.billing import get_billing_provider
from ...models import CheckoutRequest, Owner, SubscriptionStatusResponse


router = APIRouter()


@router.get("/status", response_model=SubscriptionStatusResponse)
def get_subscription_status(
    owner: Owner = Depends(get_current_owner),
    repository: Repository = Depends(get_repository),
):
    """
    Get current subscription status.

    Returns:
    - active: Whether the paid plan is active
    - cancel_at_period_end: Cancellation scheduled
    - current_period_end: End of the paid period
    - price_id: Stripe price of the plan
    """
    return SubscriptionService(repository).get_subscription_status(owner.id)


@router.post("/checkout")
def create_checkout_session(
    body: CheckoutRequest,
    owner: Owner = Depends(get_current_owner),
    repository: Repository = Depends(get_repository),
    provider: BillingProviderClient = Depends(get_billing_provider),
):
    """
    Create Stripe Checkout session for subscription.

    Returns:
    - checkout_url: Redirect user here to complete payment
    """
    settings = get_settings()
    checkout_url = SubscriptionService(repository, provider).create_checkout_session(
        owner_id=owner.id,
        price_id=body.price_id,
        success_url=settings.stripe_success_url,
        cancel_url=settings.stripe_cancel_url,
    )
    return {"checkout_url": checkout_url}


@router.get("/portal")
def get_billing_portal(
    owner: Owner = Depends(get_current_owner),
    repository: Repository = Depends(get_repository),
    provider: BillingProviderClient = Depends(get_billing_provider),
):
    """
    Get Stripe Customer Portal URL.

    Portal allows users to update payment method, switch plan or cancel.
    """
    return_url = f"{get_settings().frontend_base_url}/account"
    portal_url = SubscriptionService(repository, provider).get_billing_portal_url(owner.id, return_url)
    return {"portal_url": portal_url}
