"""Storage interfaces the ticketing core depends on."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from .models import DirectoryUser, Project, Ticket, TicketStatus


class CounterStoreError(RuntimeError):
    """Raised when a counter cannot be advanced."""


class DuplicateTicketNumberError(RuntimeError):
    """Raised when a ticket insert violates the unique ticket number constraint."""

    def __init__(self, ticket_number: str) -> None:
        super().__init__(f"Ticket number {ticket_number} already exists")
        self.ticket_number = ticket_number


class CounterStore(Protocol):
    async def increment(self, key: str, *, start: int) -> int:
        """Atomically advance ``key`` and return the new value.

        A missing key is created with ``start + 1``.
        """
        ...


class TicketStore(Protocol):
    async def insert_ticket(self, ticket: Ticket) -> Ticket:
        """Persist a new ticket, raising :class:`DuplicateTicketNumberError` on collision."""
        ...

    async def get_ticket(self, ticket_id: UUID) -> Ticket | None:
        ...

    async def get_ticket_by_number(self, ticket_number: str) -> Ticket | None:
        ...

    async def list_tickets(
        self,
        *,
        email: str | None = None,
        project: str | None = None,
        status: TicketStatus | None = None,
    ) -> list[Ticket]:
        ...

    async def find_subjects_since(self, email: str, since: datetime) -> list[str]:
        """Return subjects of tickets filed by ``email`` at or after ``since``."""
        ...


class ProjectDirectory(Protocol):
    async def find_project(self, name: str) -> Project | None:
        ...

    async def list_project_users(self, project_name: str) -> list[DirectoryUser]:
        """Return users whose project membership includes ``project_name``."""
        ...
