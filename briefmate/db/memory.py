"""
In-process repository for local development and tests.

Keeps the Postgres backend's guarantees inside a single process:
- per-owner and per-brief re-entrant locks stand in for row locks
- writes inside a locked block are journaled and undone on error
- stored records are copies, so callers never mutate shared state
"""

import itertools
import threading
from collections import defaultdict
from contextlib import ExitStack, contextmanager
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Tuple
from uuid import UUID

import pytz

from ..errors import BadRequestError, NotFoundError
from ..models import Brief, BriefStatus, Client, Owner, ResourceKind, SubscriptionState
from .repository import CLIENT_HAS_VALIDATED_BRIEFS, Repository


class MemoryRepository(Repository):
    """Dict-backed repository. Safe to share between threads."""

    def __init__(self):
        self._owners: Dict[str, Owner] = {}
        self._briefs: Dict[int, Brief] = {}
        self._clients: Dict[int, Client] = {}
        self._brief_ids = itertools.count(1)
        self._client_ids = itertools.count(1)

        self._guard = threading.RLock()
        self._owner_locks: Dict[str, threading.RLock] = defaultdict(threading.RLock)
        self._brief_locks: Dict[int, threading.RLock] = defaultdict(threading.RLock)
        self._local = threading.local()

    # -------------------------------------------------------------------------
    # Journal
    # -------------------------------------------------------------------------

    def _now(self) -> datetime:
        return datetime.now(pytz.utc)

    def _record(self, table: dict, key) -> None:
        """Remember the previous value of table[key] if a transaction is open."""
        journal = getattr(self._local, "journal", None)
        if journal is not None:
            previous = table.get(key)
            if previous is not None:
                previous = previous.model_copy(deep=True)
            journal.append((table, key, previous))

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        if getattr(self._local, "journal", None) is not None:
            yield
            return

        self._local.journal = []
        self._local.on_commit = []
        try:
            yield
        except BaseException:
            with self._guard:
                for table, key, previous in reversed(self._local.journal):
                    if previous is None:
                        table.pop(key, None)
                    else:
                        table[key] = previous
            raise
        else:
            for callback in self._local.on_commit:
                callback()
        finally:
            self._local.journal = None
            self._local.on_commit = None

    def _after_commit(self, callback) -> None:
        """Run callback once the open transaction commits, or now if none is open."""
        pending = getattr(self._local, "on_commit", None)
        if pending is None:
            callback()
        else:
            pending.append(callback)

    def _evict_locks(self, owner_id: Optional[str] = None, brief_ids: tuple = ()) -> None:
        with self._guard:
            if owner_id is not None:
                self._owner_locks.pop(owner_id, None)
            for brief_id in brief_ids:
                self._brief_locks.pop(brief_id, None)

    def _lock_for(self, locks: dict, key) -> threading.RLock:
        with self._guard:
            return locks[key]

    # -------------------------------------------------------------------------
    # Owners
    # -------------------------------------------------------------------------

    def get_owner(self, owner_id: str) -> Owner:
        with self._guard:
            owner = self._owners.get(owner_id)
            if owner is None:
                raise NotFoundError("Owner not found")
            return owner.model_copy(deep=True)

    def find_owner_by_email(self, email: str) -> Optional[Owner]:
        with self._guard:
            for owner in self._owners.values():
                if owner.email.lower() == email.lower():
                    return owner.model_copy(deep=True)
        return None

    def find_owner_by_customer_ref(self, customer_ref: str) -> Optional[Owner]:
        with self._guard:
            for owner in self._owners.values():
                if owner.subscription.billing_customer_ref == customer_ref:
                    return owner.model_copy(deep=True)
        return None

    def upsert_owner(self, owner_id: str, email: str) -> Owner:
        with self._guard:
            if owner_id not in self._owners:
                self._record(self._owners, owner_id)
                self._owners[owner_id] = Owner(id=owner_id, email=email, created_at=self._now())
            return self._owners[owner_id].model_copy(deep=True)

    def update_owner_language(self, owner_id: str, language: str) -> Owner:
        with self._guard:
            owner = self.get_owner(owner_id)
            owner.language = language
            self._record(self._owners, owner_id)
            self._owners[owner_id] = owner
            return owner.model_copy(deep=True)

    def save_subscription(self, owner_id: str, subscription: SubscriptionState) -> Owner:
        with self._guard:
            owner = self.get_owner(owner_id)
            owner.subscription = subscription.model_copy(deep=True)
            self._record(self._owners, owner_id)
            self._owners[owner_id] = owner
            return owner.model_copy(deep=True)

    def delete_owner(self, owner_id: str) -> None:
        with self._guard:
            if owner_id not in self._owners:
                raise NotFoundError("Owner not found")
            brief_ids = tuple(b.id for b in self._briefs.values() if b.owner_id == owner_id)
            for brief_id in brief_ids:
                self._record(self._briefs, brief_id)
                del self._briefs[brief_id]
            for client_id in [c.id for c in self._clients.values() if c.owner_id == owner_id]:
                self._record(self._clients, client_id)
                del self._clients[client_id]
            self._record(self._owners, owner_id)
            del self._owners[owner_id]
        self._after_commit(lambda: self._evict_locks(owner_id, brief_ids))

    def list_owners(self, limit: int = 20) -> List[Owner]:
        with self._guard:
            owners = sorted(self._owners.values(), key=lambda o: o.created_at, reverse=True)
            return [o.model_copy(deep=True) for o in owners[:limit]]

    # -------------------------------------------------------------------------
    # Briefs
    # -------------------------------------------------------------------------

    def get_brief(self, brief_id: int) -> Brief:
        with self._guard:
            brief = self._briefs.get(brief_id)
            if brief is None:
                raise NotFoundError("Brief not found")
            return brief.model_copy(deep=True)

    def find_brief_by_public_uuid(self, public_uuid: UUID) -> Optional[Brief]:
        with self._guard:
            for brief in self._briefs.values():
                if brief.public_uuid == public_uuid:
                    return brief.model_copy(deep=True)
        return None

    def list_briefs(
        self,
        owner_id: str,
        status: Optional[BriefStatus] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Brief], int]:
        with self._guard:
            matching = [
                b for b in self._briefs.values()
                if b.owner_id == owner_id and (status is None or b.status == status)
            ]
        matching.sort(key=lambda b: (b.created_at, b.id), reverse=True)
        page = matching[offset:offset + limit]
        return [b.model_copy(deep=True) for b in page], len(matching)

    def save_brief(self, brief: Brief) -> Brief:
        now = self._now()
        with self._guard:
            if brief.id is None:
                stored = brief.model_copy(
                    deep=True,
                    update={"id": next(self._brief_ids), "created_at": now, "updated_at": now},
                )
            else:
                existing = self._briefs.get(brief.id)
                if existing is None:
                    raise NotFoundError("Brief not found")
                stored = brief.model_copy(
                    deep=True,
                    update={
                        "public_uuid": existing.public_uuid,
                        "validation_code": existing.validation_code,
                        "owner_id": existing.owner_id,
                        "created_at": existing.created_at,
                        "updated_at": now,
                    },
                )
            self._record(self._briefs, stored.id)
            self._briefs[stored.id] = stored
            return stored.model_copy(deep=True)

    def delete_brief(self, brief_id: int) -> None:
        with self._guard:
            if brief_id not in self._briefs:
                raise NotFoundError("Brief not found")
            self._record(self._briefs, brief_id)
            del self._briefs[brief_id]
        self._after_commit(lambda: self._evict_locks(brief_ids=(brief_id,)))

    # -------------------------------------------------------------------------
    # Clients
    # -------------------------------------------------------------------------

    def get_client(self, client_id: int) -> Client:
        with self._guard:
            client = self._clients.get(client_id)
            if client is None:
                raise NotFoundError("Client not found")
            return client.model_copy(deep=True)

    def list_clients(self, owner_id: str) -> List[Client]:
        with self._guard:
            clients = [c for c in self._clients.values() if c.owner_id == owner_id]
        clients.sort(key=lambda c: (c.name, c.id))
        return [c.model_copy(deep=True) for c in clients]

    def save_client(self, client: Client) -> Client:
        with self._guard:
            if client.id is None:
                stored = client.model_copy(
                    deep=True, update={"id": next(self._client_ids), "created_at": self._now()}
                )
            else:
                existing = self._clients.get(client.id)
                if existing is None:
                    raise NotFoundError("Client not found")
                stored = existing.model_copy(
                    deep=True, update={"name": client.name, "email": client.email}
                )
            self._record(self._clients, stored.id)
            self._clients[stored.id] = stored
            return stored.model_copy(deep=True)

    def delete_client(self, client_id: int) -> None:
        with self._guard:
            referencing = sorted(b.id for b in self._briefs.values() if b.client_id == client_id)

        # Hold the referencing briefs so a concurrent public validation settles first.
        with ExitStack() as stack:
            for brief_id in referencing:
                stack.enter_context(self._lock_for(self._brief_locks, brief_id))

            with self._guard:
                if client_id not in self._clients:
                    raise NotFoundError("Client not found")
                briefs = [b for b in self._briefs.values() if b.client_id == client_id]
                if any(b.client_validated for b in briefs):
                    raise BadRequestError(CLIENT_HAS_VALIDATED_BRIEFS)
                for brief in briefs:
                    self._record(self._briefs, brief.id)
                    self._briefs[brief.id] = brief.model_copy(update={"client_id": None})
                self._record(self._clients, client_id)
                del self._clients[client_id]

    # -------------------------------------------------------------------------
    # Counting and locking
    # -------------------------------------------------------------------------

    def count_by_owner(self, owner_id: str, kind: ResourceKind) -> int:
        table = self._briefs if kind == ResourceKind.BRIEF else self._clients
        with self._guard:
            return sum(1 for record in table.values() if record.owner_id == owner_id)

    @contextmanager
    def owner_lock(self, owner_id: str) -> Iterator[Owner]:
        with self._lock_for(self._owner_locks, owner_id):
            with self._transaction():
                yield self.get_owner(owner_id)

    @contextmanager
    def brief_lock(self, brief_id: int) -> Iterator[Brief]:
        with self._lock_for(self._brief_locks, brief_id):
            with self._transaction():
                yield self.get_brief(brief_id)
