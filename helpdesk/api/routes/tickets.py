from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from helpdesk.dependencies.auth import CurrentUser
from helpdesk.dependencies.tickets import StaffUser, get_notifier, get_ticket_service
from helpdesk.notifications import TicketNotifier, dispatch_ticket_created
from helpdesk.tickets.models import Ticket, TicketDraft, TicketPriority, TicketStatus
from helpdesk.tickets.service import (
    TicketCreationError,
    TicketNotFoundError,
    TicketPersistenceError,
    TicketService,
    TicketValidationError,
)

router = APIRouter(prefix="/tickets", tags=["tickets"])


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class TicketCreateRequest(_CamelModel):
    # Required fields are checked by the service so the error names the field.
    subject: str | None = None
    email: str | None = None
    description: str | None = None
    customer: str | None = None
    project: str | None = None
    module: str | None = None
    category: str | None = None
    sub_category: str | None = None
    type_of_issue: str | None = None
    priority: TicketPriority | None = None
    attachments: list[Any] | None = None
    reported_by: str | None = None

    def to_draft(self) -> TicketDraft:
        return TicketDraft(
            subject=self.subject,
            email=self.email,
            description=self.description,
            customer=self.customer,
            project=self.project,
            module=self.module,
            category=self.category,
            sub_category=self.sub_category,
            type_of_issue=self.type_of_issue,
            priority=self.priority,
            attachments=list(self.attachments or []),
            reported_by=self.reported_by,
        )


class TicketCommentResponse(_CamelModel):
    message: str
    author_email: str
    author_name: str
    author_role: str
    timestamp: datetime
    attachments: list[dict[str, Any]]
    edited_at: datetime | None = None
    edited_by: str | None = None


class TicketAssigneeResponse(_CamelModel):
    email: str
    name: str


class TicketResponse(_CamelModel):
    id: UUID
    ticket_number: str
    subject: str
    email: str
    description: str
    customer: str
    project: str
    project_id: str
    module: str
    category: str
    sub_category: str
    type_of_issue: str
    priority: TicketPriority
    status: TicketStatus
    starred: bool
    user_id: str
    reported_by: str
    created: datetime
    last_updated: datetime
    attachments: list[Any]
    comments: list[TicketCommentResponse]
    assigned_to: TicketAssigneeResponse | None = None


class TicketCreatedResponse(_CamelModel):
    ticket: TicketResponse
    notify_recipients: list[str]


class DuplicateCheckResponse(_CamelModel):
    is_duplicate: bool


class MemberEmailsResponse(_CamelModel):
    emails: list[str]


TicketServiceDep = Annotated[TicketService, Depends(get_ticket_service)]
NotifierDep = Annotated[TicketNotifier, Depends(get_notifier)]


def _to_response(ticket: Ticket) -> TicketResponse:
    return TicketResponse.model_validate(ticket)


@router.post("", response_model=TicketCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    payload: TicketCreateRequest,
    background_tasks: BackgroundTasks,
    user: CurrentUser,
    service: TicketServiceDep,
    notifier: NotifierDep,
) -> TicketCreatedResponse:
    try:
        result = await service.create_ticket(payload.to_draft(), requester_id=user.id)
    except TicketValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except (TicketPersistenceError, TicketCreationError) as exc:
        raise HTTPException(status_code=500, detail=str(exc) or "Failed to create ticket") from exc

    background_tasks.add_task(dispatch_ticket_created, notifier, result.ticket, result.notify_recipients)
    return TicketCreatedResponse(ticket=_to_response(result.ticket), notify_recipients=result.notify_recipients)


@router.get("", response_model=list[TicketResponse])
async def list_tickets(
    _: StaffUser,
    service: TicketServiceDep,
    email: str | None = Query(default=None),
    project: str | None = Query(default=None),
    status_filter: TicketStatus | None = Query(default=None, alias="status"),
) -> list[TicketResponse]:
    tickets = await service.list_tickets(email=email, project=project, status=status_filter)
    return [_to_response(ticket) for ticket in tickets]


@router.get("/check-duplicate", response_model=DuplicateCheckResponse)
async def check_duplicate(
    _: CurrentUser,
    service: TicketServiceDep,
    subject: str | None = Query(default=None),
    email: str | None = Query(default=None),
) -> DuplicateCheckResponse:
    return DuplicateCheckResponse(is_duplicate=await service.check_duplicate(subject, email))


@router.get("/projects/{project_name}/member-emails", response_model=MemberEmailsResponse)
async def project_member_emails(project_name: str, _: CurrentUser, service: TicketServiceDep) -> MemberEmailsResponse:
    return MemberEmailsResponse(emails=await service.project_member_emails(project_name))


@router.get("/number/{ticket_number}", response_model=TicketResponse)
async def get_ticket_by_number(ticket_number: str, _: CurrentUser, service: TicketServiceDep) -> TicketResponse:
    try:
        ticket = await service.get_ticket_by_number(ticket_number)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _to_response(ticket)


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(ticket_id: UUID, _: CurrentUser, service: TicketServiceDep) -> TicketResponse:
    try:
        ticket = await service.get_ticket(ticket_id)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _to_response(ticket)
