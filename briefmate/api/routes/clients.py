"""
Client registry routes.
Only available when CLIENT_MODE=reference; otherwise every call answers 400.
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status

from ...db import Repository, get_repository
from ...lib import ClientService, get_current_owner
from ...models import ClientRequest, ClientResponse, Owner


router = APIRouter()


@router.get("", response_model=List[ClientResponse])
def list_clients(
    owner: Owner = Depends(get_current_owner),
    repository: Repository = Depends(get_repository),
):
    return ClientService(repository).list_clients(owner.id)


@router.post("", response_model=ClientResponse)
def create_client(
    body: ClientRequest,
    owner: Owner = Depends(get_current_owner),
    repository: Repository = Depends(get_repository),
):
    """Free plan owners may keep one client."""
    return ClientService(repository).create_client(owner.id, body)


@router.get("/{client_id}", response_model=ClientResponse)
def get_client(
    client_id: int,
    owner: Owner = Depends(get_current_owner),
    repository: Repository = Depends(get_repository),
):
    return ClientService(repository).get_client(owner.id, client_id)


@router.put("/{client_id}", response_model=ClientResponse)
def update_client(
    client_id: int,
    body: ClientRequest,
    owner: Owner = Depends(get_current_owner),
    repository: Repository = Depends(get_repository),
):
    return ClientService(repository).update_client(owner.id, client_id, body)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_client(
    client_id: int,
    owner: Owner = Depends(get_current_owner),
    repository: Repository = Depends(get_repository),
):
    """Briefs that referenced the client keep existing, without a client."""
    ClientService(repository).delete_client(owner.id, client_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
