from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from uuid import UUID

from opentelemetry import trace

from helpdesk.metrics import MetricsRegistry, metrics_registry, track_duration
from helpdesk.metrics.definitions import (
    TICKET_CREATION_DURATION,
    TICKET_CREATION_FAILURES,
    TICKET_NUMBER_COLLISIONS,
    TICKETS_CREATED,
)

from .members import ProjectMemberResolver
from .models import Ticket, TicketCreationResult, TicketDraft, TicketPriority, TicketStatus
from .numbering import TicketNumberAllocator
from .stores import DuplicateTicketNumberError, TicketStore

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DEFAULT_PROJECT = "General"
REQUIRED_FIELDS = ("subject", "email", "description")


class TicketServiceError(RuntimeError):
    """Base error for ticket service issues."""


class TicketValidationError(TicketServiceError):
    """Raised when a required ticket field is missing."""

    def __init__(self, field: str) -> None:
        super().__init__(f"Field '{field}' is required")
        self.field = field


class TicketPersistenceError(TicketServiceError):
    """Raised when storing a ticket fails for a reason other than a number collision."""


class TicketCreationError(TicketServiceError):
    """Raised when every insert attempt collided on the ticket number."""

    def __init__(self, last_error: Exception | None) -> None:
        super().__init__(str(last_error) if last_error is not None else "Failed to create ticket")
        self.last_error = last_error


class TicketNotFoundError(TicketServiceError):
    """Raised when a ticket could not be located."""


def _clean(value: str | None) -> str:
    return (value or "").strip()


class TicketService:
    """Ticket creation and lookups.

    Creation allocates a display number and inserts the ticket under the
    store's unique ticket number constraint. A collision discards the number
    and retries with a fresh one, up to ``max_attempts`` times; any other
    storage error aborts. Numbers consumed by failed attempts are not reused.
    """

    def __init__(
        self,
        tickets: TicketStore,
        allocator: TicketNumberAllocator,
        members: ProjectMemberResolver,
        *,
        max_attempts: int = 3,
        duplicate_window: timedelta = timedelta(hours=24),
        registry: MetricsRegistry | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._tickets = tickets
        self._allocator = allocator
        self._members = members
        self._max_attempts = max_attempts
        self._duplicate_window = duplicate_window
        registry = registry or metrics_registry
        self._collisions = registry.counter(TICKET_NUMBER_COLLISIONS)
        self._failures = registry.counter(TICKET_CREATION_FAILURES, label_names=("reason",))
        self._created = registry.counter(TICKETS_CREATED)
        self._duration = registry.distribution(TICKET_CREATION_DURATION)

    @staticmethod
    def validate(draft: TicketDraft) -> None:
        for name in REQUIRED_FIELDS:
            if not _clean(getattr(draft, name)):
                raise TicketValidationError(name)

    async def create_ticket(self, draft: TicketDraft, *, requester_id: str) -> TicketCreationResult:
        self.validate(draft)

        with tracer.start_as_current_span("tickets.create") as span, track_duration(self._duration):
            project_name = _clean(draft.project) or DEFAULT_PROJECT
            project_id = await self._members.resolve_project_id(project_name)
            base = self._build_ticket(draft, project=project_name, project_id=project_id, requester_id=requester_id)

            ticket = await self._insert_with_fresh_number(base, draft.type_of_issue)
            span.set_attribute("ticket.number", ticket.ticket_number)
            self._created.inc()
            logger.info("Created ticket %s (%s) in project %s", ticket.ticket_number, ticket.id, ticket.project)

        recipients = await self._members.emails_for_project(ticket.project)
        return TicketCreationResult(ticket=ticket, notify_recipients=recipients)

    async def _insert_with_fresh_number(self, base: Ticket, type_of_issue: str | None) -> Ticket:
        last_error: Exception | None = None
        for attempt in range(1, self._max_attempts + 1):
            ticket_number = await self._allocator.allocate(type_of_issue)
            try:
                return await self._tickets.insert_ticket(replace(base, ticket_number=ticket_number))
            except DuplicateTicketNumberError as exc:
                logger.warning(
                    "Duplicate ticket number %s on attempt %d/%d, retrying with a new number",
                    ticket_number,
                    attempt,
                    self._max_attempts,
                )
                self._collisions.inc()
                last_error = exc
            except Exception as exc:
                logger.exception("Failed to persist ticket %s", ticket_number)
                self._failures.inc(labels={"reason": "persistence"})
                raise TicketPersistenceError(str(exc) or type(exc).__name__) from exc

        logger.error("Giving up on ticket creation after %d attempts: %s", self._max_attempts, last_error)
        self._failures.inc(labels={"reason": "retries_exhausted"})
        raise TicketCreationError(last_error)

    @staticmethod
    def _build_ticket(draft: TicketDraft, *, project: str, project_id: str, requester_id: str) -> Ticket:
        now = datetime.now(timezone.utc)
        return Ticket(
            id=uuid.uuid4(),
            ticket_number="",
            subject=_clean(draft.subject),
            email=_clean(draft.email),
            description=draft.description or "",
            customer=_clean(draft.customer),
            project=project,
            project_id=project_id,
            module=_clean(draft.module),
            category=_clean(draft.category),
            sub_category=_clean(draft.sub_category),
            type_of_issue=_clean(draft.type_of_issue),
            priority=draft.priority or TicketPriority.MEDIUM,
            status=TicketStatus.OPEN,
            starred=False,
            user_id=requester_id,
            reported_by=_clean(draft.reported_by),
            created=now,
            last_updated=now,
            attachments=list(draft.attachments),
        )

    async def get_ticket(self, ticket_id: UUID) -> Ticket:
        ticket = await self._tickets.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    async def get_ticket_by_number(self, ticket_number: str) -> Ticket:
        ticket = await self._tickets.get_ticket_by_number(ticket_number.strip().upper())
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_number} not found")
        return ticket

    async def list_tickets(
        self,
        *,
        email: str | None = None,
        project: str | None = None,
        status: TicketStatus | None = None,
    ) -> list[Ticket]:
        return await self._tickets.list_tickets(email=email, project=project, status=status)

    async def check_duplicate(
        self, subject: str | None, email: str | None, *, window: timedelta | None = None
    ) -> bool:
        """Whether ``email`` already filed a ticket with this subject within ``window``."""

        subject, email = _clean(subject), _clean(email)
        if not subject or not email:
            return False
        since = datetime.now(timezone.utc) - (self._duplicate_window if window is None else window)
        subjects = await self._tickets.find_subjects_since(email, since)
        return subject in subjects

    async def project_member_emails(self, project_name: str) -> list[str]:
        return await self._members.emails_for_project(project_name)
