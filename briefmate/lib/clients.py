"""
Client contacts, scoped to their owner.
Only available when the deployment runs in ClientReference mode.
"""

import logging
from typing import List, Optional

from ..config import Settings, get_settings
from ..db import Repository
from ..errors import BadRequestError, ForbiddenError
from ..models import Client, ClientRequest, ClientResponse, ResourceKind
from .entitlements import ensure_may_create


logger = logging.getLogger(__name__)


def to_response(client: Client) -> ClientResponse:
    return ClientResponse(id=client.id, name=client.name, email=client.email)


class ClientService:
    """Owner-scoped CRUD over client contacts."""

    def __init__(self, repository: Repository, settings: Optional[Settings] = None):
        self.repository = repository
        self.settings = settings or get_settings()

    def _ensure_enabled(self) -> None:
        if not self.settings.uses_client_registry:
            raise BadRequestError("Client contacts are not enabled on this deployment.")

    def _owned_client(self, owner_id: str, client_id: int) -> Client:
        client = self.repository.get_client(client_id)
        if client.owner_id != owner_id:
            raise ForbiddenError("Unauthorized")
        return client

    def list_clients(self, owner_id: str) -> List[ClientResponse]:
        self._ensure_enabled()
        return [to_response(c) for c in self.repository.list_clients(owner_id)]

    def get_client(self, owner_id: str, client_id: int) -> ClientResponse:
        self._ensure_enabled()
        return to_response(self._owned_client(owner_id, client_id))

    def create_client(self, owner_id: str, request: ClientRequest) -> ClientResponse:
        """Gated like briefs: one contact on the free plan."""
        self._ensure_enabled()
        with self.repository.owner_lock(owner_id) as owner:
            count = self.repository.count_by_owner(owner.id, ResourceKind.CLIENT)
            ensure_may_create(owner, ResourceKind.CLIENT, count, self.settings.free_tier_limit)
            saved = self.repository.save_client(
                Client(owner_id=owner.id, name=request.name, email=str(request.email))
            )

        logger.info("Client created", extra={"client_id": saved.id, "owner_id": owner_id})
        return to_response(saved)

    def update_client(self, owner_id: str, client_id: int, request: ClientRequest) -> ClientResponse:
        self._ensure_enabled()
        client = self._owned_client(owner_id, client_id)
        saved = self.repository.save_client(
            client.model_copy(update={"name": request.name, "email": str(request.email)})
        )
        return to_response(saved)

    def delete_client(self, owner_id: str, client_id: int) -> None:
        self._ensure_enabled()
        with self.repository.owner_lock(owner_id):
            self._owned_client(owner_id, client_id)
            self.repository.delete_client(client_id)

        logger.info("Client deleted", extra={"client_id": client_id, "owner_id": owner_id})
