from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

import asyncpg

from .models import (
    DirectoryUser,
    Project,
    ProjectMember,
    Ticket,
    TicketAssignee,
    TicketComment,
    TicketPriority,
    TicketStatus,
)
from .stores import CounterStoreError, DuplicateTicketNumberError

TICKET_NUMBER_CONSTRAINT = "tickets_ticket_number_key"

# Stand-in for comments stored without a timestamp.
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS ticket_counters (
        key TEXT PRIMARY KEY,
        value BIGINT NOT NULL CHECK (value >= 0)
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS tickets (
        id UUID PRIMARY KEY,
        ticket_number TEXT NOT NULL,
        subject TEXT NOT NULL,
        email TEXT NOT NULL,
        description TEXT NOT NULL,
        customer TEXT NOT NULL DEFAULT '',
        project TEXT NOT NULL,
        project_id TEXT NOT NULL DEFAULT '',
        module TEXT NOT NULL DEFAULT '',
        category TEXT NOT NULL DEFAULT '',
        sub_category TEXT NOT NULL DEFAULT '',
        type_of_issue TEXT NOT NULL DEFAULT '',
        priority TEXT NOT NULL,
        status TEXT NOT NULL,
        starred BOOLEAN NOT NULL DEFAULT FALSE,
        user_id TEXT NOT NULL,
        reported_by TEXT NOT NULL DEFAULT '',
        attachments JSONB NOT NULL DEFAULT '[]'::jsonb,
        comments JSONB NOT NULL DEFAULT '[]'::jsonb,
        assigned_to JSONB NULL,
        created TIMESTAMPTZ NOT NULL,
        last_updated TIMESTAMPTZ NOT NULL,
        CONSTRAINT {TICKET_NUMBER_CONSTRAINT} UNIQUE (ticket_number)
    )
    """,
    "CREATE INDEX IF NOT EXISTS tickets_email_idx ON tickets (email)",
    "CREATE INDEX IF NOT EXISTS tickets_project_idx ON tickets (project)",
    "CREATE INDEX IF NOT EXISTS tickets_status_idx ON tickets (status)",
    "CREATE INDEX IF NOT EXISTS tickets_created_idx ON tickets (created DESC)",
    """
    CREATE TABLE IF NOT EXISTS projects (
        id UUID PRIMARY KEY,
        name TEXT NOT NULL UNIQUE,
        members JSONB NOT NULL DEFAULT '[]'::jsonb
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id UUID PRIMARY KEY,
        email TEXT UNIQUE,
        role TEXT NOT NULL,
        projects TEXT[] NOT NULL DEFAULT '{}'
    )
    """,
    "CREATE INDEX IF NOT EXISTS users_projects_idx ON users USING GIN (projects)",
)


async def ensure_schema(pool: asyncpg.Pool) -> None:
    """Create the tables used by the ticketing core if they are missing."""

    async with pool.acquire() as connection:
        for statement in SCHEMA_STATEMENTS:
            await connection.execute(statement)


class PostgresCounterStore:
    """Counters advanced with a single upsert so concurrent callers never share a value."""

    _INCREMENT_SQL = """
    INSERT INTO ticket_counters (key, value)
    VALUES ($1, $2::bigint + 1)
    ON CONFLICT (key) DO UPDATE SET value = ticket_counters.value + 1
    RETURNING value
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def increment(self, key: str, *, start: int) -> int:
        async with self._pool.acquire() as connection:
            value = await connection.fetchval(self._INCREMENT_SQL, key, start)
        if value is None:
            raise CounterStoreError(f"Counter {key} did not return a value")
        return int(value)


class PostgresTicketRepository:
    """Data access layer for ticket records."""

    _COLUMNS = (
        "id, ticket_number, subject, email, description, customer, project, project_id, module, "
        "category, sub_category, type_of_issue, priority, status, starred, user_id, reported_by, "
        "attachments, comments, assigned_to, created, last_updated"
    )

    _INSERT_TICKET_SQL = f"""
    INSERT INTO tickets ({_COLUMNS})
    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, $16, $17, $18, $19, $20, $21, $22)
    RETURNING {_COLUMNS}
    """

    _SELECT_TICKET_SQL = f"SELECT {_COLUMNS} FROM tickets WHERE id = $1"

    _SELECT_BY_NUMBER_SQL = f"SELECT {_COLUMNS} FROM tickets WHERE ticket_number = $1"

    _SELECT_SUBJECTS_SINCE_SQL = """
    SELECT subject FROM tickets WHERE email = $1 AND created >= $2
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def insert_ticket(self, ticket: Ticket) -> Ticket:
        async with self._pool.acquire() as connection:
            try:
                row = await connection.fetchrow(
                    self._INSERT_TICKET_SQL,
                    ticket.id,
                    ticket.ticket_number,
                    ticket.subject,
                    ticket.email,
                    ticket.description,
                    ticket.customer,
                    ticket.project,
                    ticket.project_id,
                    ticket.module,
                    ticket.category,
                    ticket.sub_category,
                    ticket.type_of_issue,
                    ticket.priority.value,
                    ticket.status.value,
                    ticket.starred,
                    ticket.user_id,
                    ticket.reported_by,
                    list(ticket.attachments),
                    [_comment_to_json(comment) for comment in ticket.comments],
                    _assignee_to_json(ticket.assigned_to),
                    ticket.created,
                    ticket.last_updated,
                )
            except asyncpg.UniqueViolationError as exc:
                if getattr(exc, "constraint_name", None) == TICKET_NUMBER_CONSTRAINT:
                    raise DuplicateTicketNumberError(ticket.ticket_number) from exc
                raise
        if row is None:
            raise RuntimeError("Failed to insert ticket")
        return self._row_to_ticket(row)

    async def get_ticket(self, ticket_id: UUID) -> Ticket | None:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(self._SELECT_TICKET_SQL, ticket_id)
        return None if row is None else self._row_to_ticket(row)

    async def get_ticket_by_number(self, ticket_number: str) -> Ticket | None:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(self._SELECT_BY_NUMBER_SQL, ticket_number)
        return None if row is None else self._row_to_ticket(row)

    async def list_tickets(
        self,
        *,
        email: str | None = None,
        project: str | None = None,
        status: TicketStatus | None = None,
    ) -> list[Ticket]:
        clauses: list[str] = []
        params: list[Any] = []
        for column, value in (("email", email), ("project", project), ("status", status)):
            if value is None:
                continue
            params.append(value.value if isinstance(value, TicketStatus) else value)
            clauses.append(f"{column} = ${len(params)}")
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        query = f"SELECT {self._COLUMNS} FROM tickets{where} ORDER BY created DESC"
        async with self._pool.acquire() as connection:
            rows = await connection.fetch(query, *params)
        return [self._row_to_ticket(row) for row in rows]

    async def find_subjects_since(self, email: str, since: datetime) -> list[str]:
        async with self._pool.acquire() as connection:
            rows = await connection.fetch(self._SELECT_SUBJECTS_SINCE_SQL, email, since)
        return [str(row["subject"]) for row in rows]

    @staticmethod
    def _row_to_ticket(row: Any) -> Ticket:
        return Ticket(
            id=_to_uuid(row["id"]),
            ticket_number=str(row["ticket_number"]),
            subject=str(row["subject"]),
            email=str(row["email"]),
            description=str(row["description"]),
            customer=str(row["customer"] or ""),
            project=str(row["project"]),
            project_id=str(row["project_id"] or ""),
            module=str(row["module"] or ""),
            category=str(row["category"] or ""),
            sub_category=str(row["sub_category"] or ""),
            type_of_issue=str(row["type_of_issue"] or ""),
            priority=TicketPriority(str(row["priority"])),
            status=TicketStatus(str(row["status"])),
            starred=bool(row["starred"]),
            user_id=str(row["user_id"]),
            reported_by=str(row["reported_by"] or ""),
            created=row["created"],
            last_updated=row["last_updated"],
            attachments=list(row["attachments"] or []),
            comments=[_comment_from_json(item) for item in row["comments"] or []],
            assigned_to=_assignee_from_json(row["assigned_to"]),
        )


class PostgresProjectDirectory:
    """Read-only view over the projects and users tables."""

    _SELECT_PROJECT_SQL = "SELECT id, name, members FROM projects WHERE name = $1"

    _SELECT_PROJECT_USERS_SQL = """
    SELECT email, role, projects FROM users WHERE $1 = ANY(projects) ORDER BY email
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def find_project(self, name: str) -> Project | None:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(self._SELECT_PROJECT_SQL, name)
        if row is None:
            return None
        members = [
            ProjectMember(email=str(item.get("email", "")), role=str(item.get("role", "")), user_id=item.get("userId"))
            for item in row["members"] or []
        ]
        return Project(id=_to_uuid(row["id"]), name=str(row["name"]), members=members)

    async def list_project_users(self, project_name: str) -> list[DirectoryUser]:
        async with self._pool.acquire() as connection:
            rows = await connection.fetch(self._SELECT_PROJECT_USERS_SQL, project_name)
        return [
            DirectoryUser(email=row["email"], role=str(row["role"]), projects=list(row["projects"] or []))
            for row in rows
        ]


def _comment_to_json(comment: TicketComment) -> dict[str, Any]:
    return {
        "message": comment.message,
        "authorEmail": comment.author_email,
        "authorName": comment.author_name,
        "authorRole": comment.author_role,
        "timestamp": comment.timestamp.isoformat(),
        "attachments": list(comment.attachments),
        "editedAt": comment.edited_at.isoformat() if comment.edited_at else None,
        "editedBy": comment.edited_by,
    }


def _comment_from_json(data: dict[str, Any]) -> TicketComment:
    timestamp = data.get("timestamp")
    edited_at = data.get("editedAt")
    return TicketComment(
        message=str(data.get("message", "")),
        author_email=str(data.get("authorEmail", "")),
        author_name=str(data.get("authorName", "")),
        author_role=str(data.get("authorRole", "employee")),
        timestamp=datetime.fromisoformat(timestamp) if timestamp else _EPOCH,
        attachments=list(data.get("attachments") or []),
        edited_at=datetime.fromisoformat(edited_at) if edited_at else None,
        edited_by=data.get("editedBy"),
    )


def _assignee_to_json(assignee: TicketAssignee | None) -> dict[str, str] | None:
    if assignee is None:
        return None
    return {"email": assignee.email, "name": assignee.name}


def _assignee_from_json(data: dict[str, Any] | None) -> TicketAssignee | None:
    if not data:
        return None
    return TicketAssignee(email=str(data.get("email", "")), name=str(data.get("name", "")))


def _to_uuid(value: Any) -> UUID:
    if isinstance(value, UUID):
        return value
    return UUID(str(value))
