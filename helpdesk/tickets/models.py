from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


class TicketStatus(str, Enum):
    """Lifecycle states; tickets are never deleted, only closed."""

    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"
    CLOSED = "Closed"


class TicketPriority(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


@dataclass(slots=True)
class TicketComment:
    """Entry in a ticket's comment thread."""

    message: str
    author_email: str
    timestamp: datetime
    author_name: str = ""
    author_role: str = "employee"
    attachments: list[dict[str, Any]] = field(default_factory=list)
    edited_at: datetime | None = None
    edited_by: str | None = None


@dataclass(slots=True)
class TicketAssignee:
    email: str
    name: str = ""


@dataclass(slots=True)
class TicketDraft:
    """Caller supplied fields for a new ticket."""

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
    attachments: list[Any] = field(default_factory=list)
    reported_by: str | None = None


@dataclass(slots=True)
class Ticket:
    """Support ticket record."""

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
    attachments: list[Any] = field(default_factory=list)
    comments: list[TicketComment] = field(default_factory=list)
    assigned_to: TicketAssignee | None = None


@dataclass(slots=True)
class TicketCreationResult:
    """A persisted ticket plus the people to notify about it."""

    ticket: Ticket
    notify_recipients: list[str]


@dataclass(slots=True)
class ProjectMember:
    email: str
    role: str
    user_id: str | None = None


@dataclass(slots=True)
class Project:
    id: UUID
    name: str
    members: list[ProjectMember] = field(default_factory=list)


@dataclass(slots=True)
class DirectoryUser:
    """User record as seen by the project directory."""

    email: str | None
    role: str
    projects: list[str] = field(default_factory=list)
