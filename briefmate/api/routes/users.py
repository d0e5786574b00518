"""
User management routes.
Minimal - profile, language, account deletion.
"""

from fastapi import APIRouter, Depends, Response, status

from ...db import Repository, get_repository
from ...lib import OwnerService, get_current_owner
from ...models import LanguageRequest, Owner, ProfileResponse


router = APIRouter()


@router.get("/profile", response_model=ProfileResponse)
def get_profile(
    owner: Owner = Depends(get_current_owner),
    repository: Repository = Depends(get_repository),
):
    """
    Get user profile.

    Returns account language, subscription snapshot and resource counts.
    """
    return OwnerService(repository).get_profile(owner.id)


@router.put("/language")
def update_language(
    body: LanguageRequest,
    owner: Owner = Depends(get_current_owner),
    repository: Repository = Depends(get_repository),
):
    """
    Update language.

    Used for the emails sent to this owner's clients.
    """
    updated = OwnerService(repository).update_language(owner.id, body.language)
    return {"success": True, "language": updated.language}


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(
    owner: Owner = Depends(get_current_owner),
    repository: Repository = Depends(get_repository),
):
    """Delete the local account with all briefs and clients."""
    OwnerService(repository).delete_owner(owner.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
