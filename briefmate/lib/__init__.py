from .briefs import BriefService
from .clients import ClientService
from .owners import OwnerService
from .subscriptions import SubscriptionService, ReconcileResult
from .billing import BillingEventVerifier, BillingProviderClient, BillingEvent, BillingEventKind
from .notifier import Notifier, SMTPNotifier, get_notifier
from .auth import get_current_user, get_current_owner

__all__ = [
    "BriefService",
    "ClientService",
    "OwnerService",
    "SubscriptionService",
    "ReconcileResult",
    "BillingEventVerifier",
    "BillingProviderClient",
    "BillingEvent",
    "BillingEventKind",
    "Notifier",
    "SMTPNotifier",
    "get_notifier",
    "get_current_user",
    "get_current_owner",
]
