"""
Repository contract used by every service.

Two backends implement it:
- PostgresRepository: production, row locks and transactions in Postgres
- MemoryRepository: local development and tests, same guarantees in-process

Atomicity guarantees the services rely on:
- owner_lock(owner_id) serializes gated creations for one owner. Counting,
  deciding and inserting inside the block is one unit.
- brief_lock(brief_id) serializes read-modify-write transitions on one brief.
  Any exception inside the block rolls back every write made in it.
- save_subscription() writes all subscription fields in one step.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, List, Optional, Tuple
from uuid import UUID

from ..models import Brief, BriefStatus, Client, Owner, ResourceKind, SubscriptionState


CLIENT_HAS_VALIDATED_BRIEFS = "Client is attached to a brief validated by the client and cannot be deleted."


class Repository(ABC):
    """Persistence for owners, clients and briefs."""

    # -------------------------------------------------------------------------
    # Owners
    # -------------------------------------------------------------------------

    @abstractmethod
    def get_owner(self, owner_id: str) -> Owner:
        """Return the owner or raise NotFoundError."""

    @abstractmethod
    def find_owner_by_email(self, email: str) -> Optional[Owner]:
        pass

    @abstractmethod
    def find_owner_by_customer_ref(self, customer_ref: str) -> Optional[Owner]:
        pass

    @abstractmethod
    def upsert_owner(self, owner_id: str, email: str) -> Owner:
        """Create the owner on first sight; return the stored record otherwise."""

    @abstractmethod
    def update_owner_language(self, owner_id: str, language: str) -> Owner:
        pass

    @abstractmethod
    def save_subscription(self, owner_id: str, subscription: SubscriptionState) -> Owner:
        """Overwrite every subscription field of the owner in one write."""

    @abstractmethod
    def delete_owner(self, owner_id: str) -> None:
        """Delete the owner with its briefs and clients."""

    @abstractmethod
    def list_owners(self, limit: int = 20) -> List[Owner]:
        """Most recent owners first."""

    # -------------------------------------------------------------------------
    # Briefs
    # -------------------------------------------------------------------------

    @abstractmethod
    def get_brief(self, brief_id: int) -> Brief:
        """Return the brief or raise NotFoundError."""

    @abstractmethod
    def find_brief_by_public_uuid(self, public_uuid: UUID) -> Optional[Brief]:
        pass

    @abstractmethod
    def list_briefs(
        self,
        owner_id: str,
        status: Optional[BriefStatus] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Brief], int]:
        """Newest first. Returns (page, total matching)."""

    @abstractmethod
    def save_brief(self, brief: Brief) -> Brief:
        """
        Insert when brief.id is None, update otherwise.
        Updates never touch public_uuid or validation_code.
        """

    @abstractmethod
    def delete_brief(self, brief_id: int) -> None:
        pass

    # -------------------------------------------------------------------------
    # Clients
    # -------------------------------------------------------------------------

    @abstractmethod
    def get_client(self, client_id: int) -> Client:
        """Return the client or raise NotFoundError."""

    @abstractmethod
    def list_clients(self, owner_id: str) -> List[Client]:
        pass

    @abstractmethod
    def save_client(self, client: Client) -> Client:
        pass

    @abstractmethod
    def delete_client(self, client_id: int) -> None:
        """
        Delete the client. Briefs referencing it lose the reference.

        Raises BadRequestError when a referencing brief was validated by the
        client; frozen briefs keep their client.
        """

    # -------------------------------------------------------------------------
    # Counting and locking
    # -------------------------------------------------------------------------

    @abstractmethod
    def count_by_owner(self, owner_id: str, kind: ResourceKind) -> int:
        pass

    @abstractmethod
    @contextmanager
    def owner_lock(self, owner_id: str) -> Iterator[Owner]:
        """Hold the owner row for the duration of the block; yields a fresh read."""

    @abstractmethod
    @contextmanager
    def brief_lock(self, brief_id: int) -> Iterator[Brief]:
        """Hold the brief row for the duration of the block; yields a fresh read."""

    def close(self) -> None:
        """Release backend resources."""
