"""
Client-facing routes. No authentication: the public uuid (and, for
validation, the emailed code) is the credential.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from ...db import Repository, get_repository
from ...errors import InvalidCredentialError, NotFoundError
from ...lib import BriefService
from ...models import PublicBriefResponse, ValidationRequest


router = APIRouter()

INVALID_VALIDATION = "Invalid brief or validation code"


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise NotFoundError("Brief not found")


@router.get("/{public_uuid}", response_model=PublicBriefResponse)
def get_public_brief(
    public_uuid: str,
    repository: Repository = Depends(get_repository),
):
    """Read-only view of a brief for its client."""
    return BriefService(repository).get_public_brief(_parse_uuid(public_uuid))


@router.put("/{public_uuid}/validate", response_model=PublicBriefResponse)
def validate_public_brief(
    public_uuid: str,
    body: ValidationRequest,
    repository: Repository = Depends(get_repository),
):
    """
    Client approval with the 6-digit code.

    Unknown brief and wrong code get the same answer, so the endpoint
    cannot be used to discover which uuids exist.
    """
    try:
        return BriefService(repository).public_validate(_parse_uuid(public_uuid), body.code)
    except (NotFoundError, InvalidCredentialError):
        raise HTTPException(status_code=400, detail=INVALID_VALIDATION)
