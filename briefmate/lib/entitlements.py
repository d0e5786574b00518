"""
Free vs. paid entitlement checks.

Pure decision logic: no reads, no writes. Callers pass the owner snapshot and
the current resource count, both read while holding the owner lock, and then
perform the insert themselves inside that same lock.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..errors import CapacityExceededError
from ..models import Owner, ResourceKind


logger = logging.getLogger(__name__)

DEFAULT_FREE_TIER_LIMIT = 1


@dataclass(frozen=True)
class Decision:
    """Outcome of an entitlement check."""
    allowed: bool
    reason: Optional[str] = None


def may_create(
    owner: Owner,
    kind: ResourceKind,
    current_count: int,
    free_tier_limit: int = DEFAULT_FREE_TIER_LIMIT,
) -> Decision:
    """
    Decide whether the owner may create one more resource of this kind.

    Paid owners are unlimited. Free owners may hold at most free_tier_limit
    resources of each kind at a time; deleting one frees the slot.
    """
    if owner.subscription.active:
        return Decision(allowed=True)

    if current_count < free_tier_limit:
        return Decision(allowed=True)

    return Decision(
        allowed=False,
        reason=f"Free plan limit reached: upgrade to create more than {free_tier_limit} {kind.value}(s).",
    )


def ensure_may_create(
    owner: Owner,
    kind: ResourceKind,
    current_count: int,
    free_tier_limit: int = DEFAULT_FREE_TIER_LIMIT,
) -> None:
    """Raise CapacityExceededError when may_create denies."""
    decision = may_create(owner, kind, current_count, free_tier_limit)
    if not decision.allowed:
        logger.info(
            "Entitlement denied",
            extra={"owner_id": owner.id, "kind": kind.value, "count": current_count},
        )
        raise CapacityExceededError(decision.reason)
