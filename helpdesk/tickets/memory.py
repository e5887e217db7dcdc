"""In-process store implementations.

Used by the ``memory`` storage backend and as test doubles. They honour
the same contracts as the PostgreSQL stores: atomic counter increments and
a unique ticket number.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime
from typing import Iterable
from uuid import UUID

from .models import DirectoryUser, Project, Ticket, TicketStatus
from .stores import DuplicateTicketNumberError


class InMemoryCounterStore:
    def __init__(self, initial: dict[str, int] | None = None) -> None:
        self._values: dict[str, int] = dict(initial or {})
        self._lock = asyncio.Lock()

    async def increment(self, key: str, *, start: int) -> int:
        async with self._lock:
            value = self._values.get(key, start) + 1
            self._values[key] = value
            return value

    def peek(self, key: str) -> int | None:
        return self._values.get(key)


class InMemoryTicketStore:
    def __init__(self) -> None:
        self._tickets: dict[UUID, Ticket] = {}
        self._by_number: dict[str, UUID] = {}
        self._lock = asyncio.Lock()

    async def insert_ticket(self, ticket: Ticket) -> Ticket:
        async with self._lock:
            if ticket.ticket_number in self._by_number:
                raise DuplicateTicketNumberError(ticket.ticket_number)
            if ticket.id in self._tickets:
                raise ValueError(f"Ticket {ticket.id} already exists")
            stored = replace(ticket, attachments=list(ticket.attachments), comments=list(ticket.comments))
            self._tickets[ticket.id] = stored
            self._by_number[ticket.ticket_number] = ticket.id
            return replace(stored)

    async def get_ticket(self, ticket_id: UUID) -> Ticket | None:
        ticket = self._tickets.get(ticket_id)
        return None if ticket is None else replace(ticket)

    async def get_ticket_by_number(self, ticket_number: str) -> Ticket | None:
        ticket_id = self._by_number.get(ticket_number)
        return None if ticket_id is None else await self.get_ticket(ticket_id)

    async def list_tickets(
        self,
        *,
        email: str | None = None,
        project: str | None = None,
        status: TicketStatus | None = None,
    ) -> list[Ticket]:
        matches = [
            replace(ticket)
            for ticket in self._tickets.values()
            if (email is None or ticket.email == email)
            and (project is None or ticket.project == project)
            and (status is None or ticket.status == status)
        ]
        matches.sort(key=lambda ticket: ticket.created, reverse=True)
        return matches

    async def find_subjects_since(self, email: str, since: datetime) -> list[str]:
        return [ticket.subject for ticket in self._tickets.values() if ticket.email == email and ticket.created >= since]

    def ticket_numbers(self) -> list[str]:
        return list(self._by_number)


class InMemoryProjectDirectory:
    def __init__(self, projects: Iterable[Project] = (), users: Iterable[DirectoryUser] = ()) -> None:
        self._projects = {project.name: project for project in projects}
        self._users = list(users)

    def add_project(self, project: Project) -> None:
        self._projects[project.name] = project

    def add_user(self, user: DirectoryUser) -> None:
        self._users.append(user)

    async def find_project(self, name: str) -> Project | None:
        return self._projects.get(name)

    async def list_project_users(self, project_name: str) -> list[DirectoryUser]:
        return [user for user in self._users if project_name in user.projects]
