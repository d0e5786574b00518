"""
Owner accounts.
Supabase does signup and login; this mirrors the account locally and
handles the few settings the app keeps itself.
"""

import logging
from typing import Optional

from ..db import Repository
from ..models import Owner, ProfileResponse, ResourceKind, SubscriptionStatusResponse
from .notifier import Notifier


logger = logging.getLogger(__name__)


class OwnerService:
    """Owner directory."""

    def __init__(self, repository: Repository, notifier: Optional[Notifier] = None):
        self.repository = repository
        self.notifier = notifier

    def ensure_owner(self, owner_id: str, email: str) -> Owner:
        """Create the local record on first authenticated request."""
        return self.repository.upsert_owner(owner_id, email)

    def get_owner(self, owner_id: str) -> Owner:
        return self.repository.get_owner(owner_id)

    def get_profile(self, owner_id: str) -> ProfileResponse:
        owner = self.repository.get_owner(owner_id)
        subscription = owner.subscription
        return ProfileResponse(
            id=owner.id,
            email=owner.email,
            language=owner.language,
            subscription=SubscriptionStatusResponse(
                active=subscription.active,
                cancel_at_period_end=subscription.cancel_at_period_end,
                current_period_end=subscription.current_period_end,
                price_id=subscription.price_id,
            ),
            briefs=self.repository.count_by_owner(owner.id, ResourceKind.BRIEF),
            clients=self.repository.count_by_owner(owner.id, ResourceKind.CLIENT),
        )

    def update_language(self, owner_id: str, language: str) -> Owner:
        return self.repository.update_owner_language(owner_id, language)

    def delete_owner(self, owner_id: str) -> None:
        """Account closure. Briefs and clients go with it."""
        self.repository.delete_owner(owner_id)
        logger.info("Owner deleted", extra={"owner_id": owner_id})

    def send_verification(self, owner_id: str, token: str) -> None:
        """Email a verification link for a token issued by the auth provider."""
        if self.notifier is None:
            raise RuntimeError("OwnerService needs a notifier to send verification emails")
        owner = self.repository.get_owner(owner_id)
        self.notifier.send_account_verification(owner, token)
