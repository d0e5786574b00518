from .schemas import (
    BriefStatus,
    ResourceKind,
    SubscriptionState,
    Owner,
    Client,
    Brief,
    BriefRequest,
    StatusPatchRequest,
    ValidationRequest,
    ClientRequest,
    CheckoutRequest,
    LanguageRequest,
    ClientResponse,
    BriefResponse,
    PublicBriefResponse,
    BriefPage,
    SubscriptionStatusResponse,
    ProfileResponse,
)

__all__ = [
    "BriefStatus",
    "ResourceKind",
    "SubscriptionState",
    "Owner",
    "Client",
    "Brief",
    "BriefRequest",
    "StatusPatchRequest",
    "ValidationRequest",
    "ClientRequest",
    "CheckoutRequest",
    "LanguageRequest",
    "ClientResponse",
    "BriefResponse",
    "PublicBriefResponse",
    "BriefPage",
    "SubscriptionStatusResponse",
    "ProfileResponse",
]
