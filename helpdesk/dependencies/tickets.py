from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from helpdesk.dependencies.auth import Role, User, role_required
from helpdesk.notifications import LoggingTicketNotifier, TicketNotifier
from helpdesk.tickets.service import TicketService

require_staff = role_required(Role.ADMIN, Role.EMPLOYEE, Role.PROJECT_MANAGER)

StaffUser = Annotated[User, Depends(require_staff)]


async def get_ticket_service(request: Request) -> TicketService:
    service = getattr(request.app.state, "ticket_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Ticket service is not configured")
    return service


async def get_notifier(request: Request) -> TicketNotifier:
    notifier = getattr(request.app.state, "notifier", None)
    return notifier if notifier is not None else LoggingTicketNotifier()
