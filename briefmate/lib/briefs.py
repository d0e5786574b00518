"""
Brief lifecycle.

One state machine, two entry points:
- owner operations (authenticated, ownership-checked, some gated by plan)
- public validation (anonymous, credential = public uuid + validation code)

    DRAFT --submit--> SUBMITTED --public validate--> VALIDATED (client_validated)
      |                   |
      +---- owner self-validate / status patch ----> any status
    edit: any non-frozen brief -> DRAFT

A client-validated brief is frozen: no edit, no transition, no status patch.
"""

import logging
import uuid
from datetime import date, datetime
from typing import Optional, Union
from uuid import UUID

import pytz

from ..config import DEADLINE_UNIT_DATE, Settings, get_settings
from ..db import Repository
from ..errors import BadRequestError, ForbiddenError, InvalidCredentialError, NotFoundError
from ..models import (
    Brief,
    BriefPage,
    BriefRequest,
    BriefResponse,
    BriefStatus,
    ClientResponse,
    PublicBriefResponse,
    ResourceKind,
)
from . import validation_codes
from .entitlements import ensure_may_create
from .notifier import Notifier


logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 4
MAX_PAGE_SIZE = 50


def _now() -> datetime:
    return datetime.now(pytz.utc)


class BriefService:
    """Handles all brief logic."""

    def __init__(
        self,
        repository: Repository,
        notifier: Optional[Notifier] = None,
        settings: Optional[Settings] = None,
    ):
        self.repository = repository
        self.notifier = notifier
        self.settings = settings or get_settings()

    # -------------------------------------------------------------------------
    # Owner operations
    # -------------------------------------------------------------------------

    def create_brief(self, owner_id: str, request: BriefRequest) -> BriefResponse:
        """
        Create a DRAFT brief.
        The plan check, count and insert run under the owner lock.
        """
        with self.repository.owner_lock(owner_id) as owner:
            count = self.repository.count_by_owner(owner.id, ResourceKind.BRIEF)
            ensure_may_create(owner, ResourceKind.BRIEF, count, self.settings.free_tier_limit)

            brief = Brief(
                public_uuid=uuid.uuid4(),
                owner_id=owner.id,
                validation_code=validation_codes.issue(),
                client_validated=False,
                status=BriefStatus.DRAFT,
                **self._content_fields(owner.id, request),
            )
            saved = self.repository.save_brief(brief)

        logger.info("Brief created", extra={"brief_id": saved.id, "owner_id": owner_id})
        return self.to_response(saved)

    def update_brief(self, owner_id: str, brief_id: int, request: BriefRequest) -> BriefResponse:
        """Full replace of content. Always sends the brief back to DRAFT."""
        with self.repository.brief_lock(brief_id) as brief:
            self._ensure_owner(brief, owner_id)
            self._ensure_not_frozen(brief)

            updated = brief.model_copy(update={
                **self._content_fields(owner_id, request),
                "status": BriefStatus.DRAFT,
            })
            saved = self.repository.save_brief(updated)

        return self.to_response(saved)

    def submit_to_client(self, owner_id: str, brief_id: int) -> BriefResponse:
        """
        Send the public link and code to the client and mark SUBMITTED.

        The status write and the email form one unit: if delivery fails the
        exception rolls the write back. The brief lock makes a concurrent
        second submit wait and then see SUBMITTED.
        """
        with self.repository.brief_lock(brief_id) as brief:
            self._ensure_owner(brief, owner_id)
            self._ensure_not_frozen(brief)

            if brief.status == BriefStatus.SUBMITTED:
                raise BadRequestError("Brief already submitted to the client.")
            if brief.status != BriefStatus.DRAFT:
                raise BadRequestError(f"Cannot submit a brief in status {brief.status.value}.")

            client_email = self._client_email(brief)
            if not client_email:
                raise BadRequestError("Brief has no client contact to submit to.")

            saved = self.repository.save_brief(brief.model_copy(update={"status": BriefStatus.SUBMITTED}))

            owner = self.repository.get_owner(owner_id)
            self._require_notifier().send_submission_notice(
                client_email, saved.public_uuid, brief.validation_code, owner.language
            )

        logger.info("Brief submitted to client", extra={"brief_id": brief_id, "owner_id": owner_id})
        return self.to_response(saved)

    def validate_brief(self, owner_id: str, brief_id: int) -> BriefResponse:
        """Owner self-validation (e.g. approved offline). Does not set client_validated."""
        with self.repository.brief_lock(brief_id) as brief:
            self._ensure_owner(brief, owner_id)
            self._ensure_not_frozen(brief)

            if brief.status == BriefStatus.VALIDATED:
                raise BadRequestError("Brief already validated.")

            saved = self.repository.save_brief(brief.model_copy(update={
                "status": BriefStatus.VALIDATED,
                "validated_at": _now(),
            }))

        return self.to_response(saved)

    def update_status(self, owner_id: str, brief_id: int, status: BriefStatus) -> BriefResponse:
        """Administrative override: no code check, no email, no timestamp."""
        with self.repository.brief_lock(brief_id) as brief:
            self._ensure_owner(brief, owner_id)
            self._ensure_not_frozen(brief)
            saved = self.repository.save_brief(brief.model_copy(update={"status": status}))

        return self.to_response(saved)

    def delete_brief(self, owner_id: str, brief_id: int) -> None:
        """Permanent delete, any status. Frees a free-tier slot."""
        with self.repository.owner_lock(owner_id):
            brief = self.repository.get_brief(brief_id)
            self._ensure_owner(brief, owner_id)
            self.repository.delete_brief(brief_id)

        logger.info("Brief deleted", extra={"brief_id": brief_id, "owner_id": owner_id})

    def get_brief(self, owner_id: str, brief_id: int) -> BriefResponse:
        brief = self.repository.get_brief(brief_id)
        if brief.owner_id != owner_id:
            raise NotFoundError("Brief not found")
        return self.to_response(brief)

    def list_briefs(
        self,
        owner_id: str,
        status: Optional[str] = None,
        page: int = 0,
        size: int = DEFAULT_PAGE_SIZE,
    ) -> BriefPage:
        """Newest first. status=None or "ALL" lists everything."""
        status_filter = None
        if status and status.upper() != "ALL":
            try:
                status_filter = BriefStatus(status.upper())
            except ValueError:
                raise BadRequestError(f"Unknown status filter: {status}")

        if page < 0 or size < 1:
            raise BadRequestError("page must be >= 0 and size >= 1")
        size = min(size, MAX_PAGE_SIZE)

        briefs, total = self.repository.list_briefs(
            owner_id, status=status_filter, offset=page * size, limit=size
        )
        return BriefPage(
            items=[self.to_response(b) for b in briefs],
            page=page,
            size=size,
            total=total,
        )

    # -------------------------------------------------------------------------
    # Public operations
    # -------------------------------------------------------------------------

    def get_public_brief(self, public_uuid: UUID) -> PublicBriefResponse:
        brief = self.repository.find_brief_by_public_uuid(public_uuid)
        if brief is None:
            raise NotFoundError("Brief not found")
        return self.to_public_response(brief)

    def public_validate(self, public_uuid: UUID, code: str) -> PublicBriefResponse:
        """
        Client approval with the emailed code. No ownership check: the uuid
        and the code together are the credential.

        Order matters: the already-validated answer is only reachable with a
        correct code, so it reveals nothing to a guesser.
        """
        found = self.repository.find_brief_by_public_uuid(public_uuid)
        if found is None:
            raise NotFoundError("Brief not found")

        with self.repository.brief_lock(found.id) as brief:
            if not validation_codes.verify(brief, code):
                logger.warning("Public validation rejected", extra={"brief_id": brief.id})
                raise InvalidCredentialError("Invalid validation code")

            if brief.client_validated:
                logger.warning("Repeated public validation", extra={"brief_id": brief.id})
                raise BadRequestError("Brief already validated by the client.")

            saved = self.repository.save_brief(brief.model_copy(update={
                "status": BriefStatus.VALIDATED,
                "client_validated": True,
                "validated_at": _now(),
            }))

        logger.info("Brief validated by client", extra={"brief_id": saved.id})
        return self.to_public_response(saved)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require_notifier(self) -> Notifier:
        if self.notifier is None:
            raise RuntimeError("BriefService needs a notifier to submit briefs")
        return self.notifier

    @staticmethod
    def _ensure_owner(brief: Brief, owner_id: str) -> None:
        if brief.owner_id != owner_id:
            raise ForbiddenError("You are not allowed to access this brief.")

    @staticmethod
    def _ensure_not_frozen(brief: Brief) -> None:
        if brief.frozen:
            raise BadRequestError("Brief was validated by the client and can no longer be modified.")

    def _coerce_deadline(self, value: Optional[datetime]) -> Optional[Union[date, datetime]]:
        if value is None:
            return None
        if self.settings.deadline_unit == DEADLINE_UNIT_DATE:
            return value.date()
        if value.tzinfo is None:
            return pytz.utc.localize(value)
        return value

    def _content_fields(self, owner_id: str, request: BriefRequest) -> dict:
        """Content columns from a request, with the client contact per mode."""
        fields = {
            "title": request.title,
            "description": request.description,
            "objectives": list(request.objectives),
            "target_audience": request.target_audience,
            "budget": request.budget,
            "deadline": self._coerce_deadline(request.deadline),
            "deliverables": list(request.deliverables),
            "constraints": request.constraints,
            "client_id": None,
            "client_name": None,
            "client_email": None,
        }

        if self.settings.uses_client_registry:
            if request.client_id is not None:
                try:
                    client = self.repository.get_client(request.client_id)
                except NotFoundError:
                    raise ForbiddenError("Client not found or unauthorized")
                if client.owner_id != owner_id:
                    raise ForbiddenError("Client not found or unauthorized")
                fields["client_id"] = client.id
        else:
            fields["client_name"] = request.client_name
            fields["client_email"] = str(request.client_email) if request.client_email else None

        return fields

    def _client_email(self, brief: Brief) -> Optional[str]:
        if self.settings.uses_client_registry:
            if brief.client_id is None:
                return None
            return self.repository.get_client(brief.client_id).email
        return brief.client_email

    def _client_contact(self, brief: Brief) -> Optional[ClientResponse]:
        if self.settings.uses_client_registry:
            if brief.client_id is None:
                return None
            try:
                client = self.repository.get_client(brief.client_id)
            except NotFoundError:
                return None
            return ClientResponse(id=client.id, name=client.name, email=client.email)

        if not brief.client_name and not brief.client_email:
            return None
        return ClientResponse(name=brief.client_name, email=brief.client_email)

    def to_response(self, brief: Brief) -> BriefResponse:
        return BriefResponse(
            id=brief.id,
            public_uuid=brief.public_uuid,
            title=brief.title,
            description=brief.description,
            objectives=brief.objectives,
            target_audience=brief.target_audience,
            budget=brief.budget,
            deadline=brief.deadline,
            deliverables=brief.deliverables,
            constraints=brief.constraints,
            client=self._client_contact(brief),
            client_validated=brief.client_validated,
            validated_at=brief.validated_at,
            status=brief.status,
            created_at=brief.created_at,
            updated_at=brief.updated_at,
        )

    def to_public_response(self, brief: Brief) -> PublicBriefResponse:
        contact = self._client_contact(brief)
        return PublicBriefResponse(
            public_uuid=brief.public_uuid,
            title=brief.title,
            description=brief.description,
            objectives=brief.objectives,
            target_audience=brief.target_audience,
            budget=brief.budget,
            deadline=brief.deadline,
            deliverables=brief.deliverables,
            constraints=brief.constraints,
            client_name=contact.name if contact else None,
            client_validated=brief.client_validated,
            validated_at=brief.validated_at,
            status=brief.status,
            created_at=brief.created_at,
            updated_at=brief.updated_at,
        )
