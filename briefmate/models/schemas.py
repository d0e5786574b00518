"""
Data models for BriefMate.
Entities as stored, request bodies as accepted, responses as returned.
"""

from datetime import datetime, date
from enum import Enum
from typing import List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, EmailStr


class BriefStatus(str, Enum):
    """Brief lifecycle states. VALIDATED is terminal for client approval."""
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    VALIDATED = "VALIDATED"


class ResourceKind(str, Enum):
    """Resources gated by the free tier."""
    BRIEF = "brief"
    CLIENT = "client"


# =============================================================================
# Entities
# =============================================================================

class SubscriptionState(BaseModel):
    """
    Local snapshot of the owner's billing-provider subscription.
    Written only by the subscription reconciler.
    """
    active: bool = False
    cancel_at_period_end: bool = False
    current_period_end: Optional[datetime] = None
    price_id: Optional[str] = None
    billing_customer_ref: Optional[str] = None
    billing_subscription_ref: Optional[str] = None


class Owner(BaseModel):
    """Account that creates and manages briefs."""
    id: str
    email: str
    language: str = "fr"
    created_at: Optional[datetime] = None
    subscription: SubscriptionState = Field(default_factory=SubscriptionState)


class Client(BaseModel):
    """External contact owned by exactly one owner."""
    id: Optional[int] = None
    owner_id: str
    name: str
    email: str
    created_at: Optional[datetime] = None


class Brief(BaseModel):
    """The central entity: a structured project brief."""
    id: Optional[int] = None
    public_uuid: UUID
    owner_id: str
    title: str
    description: Optional[str] = None
    objectives: List[str] = Field(default_factory=list)
    target_audience: Optional[str] = None
    budget: Optional[str] = None
    deadline: Optional[Union[datetime, date]] = None
    deliverables: List[str] = Field(default_factory=list)
    constraints: Optional[str] = None

    # ClientReference mode
    client_id: Optional[int] = None
    # ClientEmbedded mode
    client_name: Optional[str] = None
    client_email: Optional[str] = None

    client_validated: bool = False
    validation_code: Optional[str] = None
    validated_at: Optional[datetime] = None
    status: BriefStatus = BriefStatus.DRAFT
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def frozen(self) -> bool:
        """Client-validated briefs never change again."""
        return self.client_validated


# =============================================================================
# Requests
# =============================================================================

class BriefRequest(BaseModel):
    """Full content of a brief, used for both create and edit."""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    objectives: List[str] = Field(default_factory=list)
    target_audience: Optional[str] = None
    budget: Optional[str] = None
    deadline: Optional[datetime] = None
    deliverables: List[str] = Field(default_factory=list)
    constraints: Optional[str] = None
    client_id: Optional[int] = None
    client_name: Optional[str] = None
    client_email: Optional[EmailStr] = None


class StatusPatchRequest(BaseModel):
    """Administrative status override."""
    status: BriefStatus


class ValidationRequest(BaseModel):
    """Public approval by a client holding the code."""
    code: str = Field(..., pattern=r"^[0-9]{6}$")


class ClientRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr


class CheckoutRequest(BaseModel):
    """Request to start a subscription."""
    price_id: str


class LanguageRequest(BaseModel):
    language: Literal["fr", "en"]


# =============================================================================
# Responses
# =============================================================================

class ClientResponse(BaseModel):
    id: Optional[int] = None
    name: Optional[str] = None
    email: Optional[str] = None


class BriefResponse(BaseModel):
    """What the owner sees. The validation code is never included."""
    id: int
    public_uuid: UUID
    title: str
    description: Optional[str] = None
    objectives: List[str] = Field(default_factory=list)
    target_audience: Optional[str] = None
    budget: Optional[str] = None
    deadline: Optional[Union[datetime, date]] = None
    deliverables: List[str] = Field(default_factory=list)
    constraints: Optional[str] = None
    client: Optional[ClientResponse] = None
    client_validated: bool
    validated_at: Optional[datetime] = None
    status: BriefStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PublicBriefResponse(BaseModel):
    """What a link holder sees. No internal id, no owner, no code."""
    public_uuid: UUID
    title: str
    description: Optional[str] = None
    objectives: List[str] = Field(default_factory=list)
    target_audience: Optional[str] = None
    budget: Optional[str] = None
    deadline: Optional[Union[datetime, date]] = None
    deliverables: List[str] = Field(default_factory=list)
    constraints: Optional[str] = None
    client_name: Optional[str] = None
    client_validated: bool
    validated_at: Optional[datetime] = None
    status: BriefStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BriefPage(BaseModel):
    items: List[BriefResponse]
    page: int
    size: int
    total: int


class SubscriptionStatusResponse(BaseModel):
    active: bool
    cancel_at_period_end: bool
    current_period_end: Optional[datetime] = None
    price_id: Optional[str] = None


class ProfileResponse(BaseModel):
    id: str
    email: str
    language: str
    subscription: SubscriptionStatusResponse
    briefs: int
    clients: int
