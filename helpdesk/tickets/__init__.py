"""Ticket numbering, creation and lookups."""

from .members import ProjectMemberResolver
from .memory import InMemoryCounterStore, InMemoryProjectDirectory, InMemoryTicketStore
from .models import (
    DirectoryUser,
    Project,
    ProjectMember,
    Ticket,
    TicketAssignee,
    TicketComment,
    TicketCreationResult,
    TicketDraft,
    TicketPriority,
    TicketStatus,
)
from .numbering import IssueFamily, TicketNumberAllocator, resolve_family
from .repository import PostgresCounterStore, PostgresProjectDirectory, PostgresTicketRepository, ensure_schema
from .service import (
    TicketCreationError,
    TicketNotFoundError,
    TicketPersistenceError,
    TicketService,
    TicketServiceError,
    TicketValidationError,
)
from .stores import CounterStore, CounterStoreError, DuplicateTicketNumberError, ProjectDirectory, TicketStore

__all__ = [
    "CounterStore",
    "CounterStoreError",
    "DirectoryUser",
    "DuplicateTicketNumberError",
    "InMemoryCounterStore",
    "InMemoryProjectDirectory",
    "InMemoryTicketStore",
    "IssueFamily",
    "PostgresCounterStore",
    "PostgresProjectDirectory",
    "PostgresTicketRepository",
    "Project",
    "ProjectDirectory",
    "ProjectMember",
    "ProjectMemberResolver",
    "Ticket",
    "TicketAssignee",
    "TicketComment",
    "TicketCreationError",
    "TicketCreationResult",
    "TicketDraft",
    "TicketNotFoundError",
    "TicketNumberAllocator",
    "TicketPersistenceError",
    "TicketPriority",
    "TicketService",
    "TicketServiceError",
    "TicketStatus",
    "TicketStore",
    "TicketValidationError",
    "ensure_schema",
    "resolve_family",
]
