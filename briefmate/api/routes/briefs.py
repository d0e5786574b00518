"""
Brief routes for the authenticated owner.

Endpoints:
- GET /            - List own briefs (status filter, pagination)
- POST /           - Create a brief (free plan: one at a time)
- GET /{id}        - Read one brief
- PUT /{id}        - Replace content (back to DRAFT)
- PATCH /{id}      - Administrative status override
- DELETE /{id}     - Delete permanently
- POST /{id}/submit   - Email the public link + code to the client
- PUT /{id}/validate  - Owner self-validation
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ...db import Repository, get_repository
from ...lib import BriefService, get_current_owner, get_notifier
from ...lib.notifier import Notifier
from ...models import BriefPage, BriefRequest, BriefResponse, Owner, StatusPatchRequest


router = APIRouter()


@router.get("", response_model=BriefPage)
def list_briefs(
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = 0,
    size: int = 4,
    owner: Owner = Depends(get_current_owner),
    repository: Repository = Depends(get_repository),
):
    """Newest first. status: DRAFT, SUBMITTED, VALIDATED or ALL."""
    return BriefService(repository).list_briefs(owner.id, status_filter, page, size)


@router.post("", response_model=BriefResponse)
def create_brief(
    body: BriefRequest,
    owner: Owner = Depends(get_current_owner),
    repository: Repository = Depends(get_repository),
):
    """
    Create a DRAFT brief.
    Free plan owners answer 402 once they already hold a brief.
    """
    return BriefService(repository).create_brief(owner.id, body)


@router.get("/{brief_id}", response_model=BriefResponse)
def get_brief(
    brief_id: int,
    owner: Owner = Depends(get_current_owner),
    repository: Repository = Depends(get_repository),
):
    return BriefService(repository).get_brief(owner.id, brief_id)


@router.put("/{brief_id}", response_model=BriefResponse)
def update_brief(
    brief_id: int,
    body: BriefRequest,
    owner: Owner = Depends(get_current_owner),
    repository: Repository = Depends(get_repository),
):
    """Full replace. Client-validated briefs answer 400."""
    return BriefService(repository).update_brief(owner.id, brief_id, body)


@router.patch("/{brief_id}", response_model=BriefResponse)
def update_brief_status(
    brief_id: int,
    body: StatusPatchRequest,
    owner: Owner = Depends(get_current_owner),
    repository: Repository = Depends(get_repository),
):
    return BriefService(repository).update_status(owner.id, brief_id, body.status)


@router.delete("/{brief_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_brief(
    brief_id: int,
    owner: Owner = Depends(get_current_owner),
    repository: Repository = Depends(get_repository),
):
    BriefService(repository).delete_brief(owner.id, brief_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{brief_id}/submit", response_model=BriefResponse)
def submit_brief(
    brief_id: int,
    owner: Owner = Depends(get_current_owner),
    repository: Repository = Depends(get_repository),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Send the brief to its client.
    If the email cannot be delivered the brief stays in DRAFT.
    """
    return BriefService(repository, notifier).submit_to_client(owner.id, brief_id)


@router.put("/{brief_id}/validate", response_model=BriefResponse)
def validate_brief(
    brief_id: int,
    owner: Owner = Depends(get_current_owner),
    repository: Repository = Depends(get_repository),
):
    """Owner-side validation, e.g. for briefs approved offline."""
    return BriefService(repository).validate_brief(owner.id, brief_id)
