from __future__ import annotations

import asyncio
import re
from datetime import timedelta
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from helpdesk.tickets import (
    DuplicateTicketNumberError,
    Project,
    ProjectMemberResolver,
    TicketCreationError,
    TicketDraft,
    TicketNotFoundError,
    TicketPersistenceError,
    TicketPriority,
    TicketService,
    TicketStatus,
    TicketValidationError,
)


class ScriptedCounterStore:
    """Returns the scripted values in order, repeating the last one."""

    def __init__(self, *values: int):
        self._values = list(values)
        self.calls = 0

    async def increment(self, key: str, *, start: int) -> int:
        self.calls += 1
        if len(self._values) > 1:
            return self._values.pop(0)
        return self._values[0]


class FailingCounterStore:
    async def increment(self, key: str, *, start: int) -> int:
        raise TimeoutError("counter store timed out")


class BrokenDirectory:
    async def find_project(self, name: str):
        raise ConnectionError("directory down")

    async def list_project_users(self, project_name: str):
        raise ConnectionError("directory down")


def _draft(**overrides) -> TicketDraft:
    values = {
        "subject": "VPN drops every hour",
        "email": "client@example.com",
        "description": "Connection resets at the top of every hour.",
        "project": "Apollo",
        "type_of_issue": "Incident",
    }
    values.update(overrides)
    return TicketDraft(**values)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"subject": ""}, "subject"),
        ({"subject": "   "}, "subject"),
        ({"email": None}, "email"),
        ({"description": ""}, "description"),
    ],
)
async def test_missing_required_field_fails_without_allocation(ticket_store, directory, overrides, field):
    allocator = AsyncMock()
    service = TicketService(ticket_store, allocator, ProjectMemberResolver(directory))

    with pytest.raises(TicketValidationError) as exc:
        await service.create_ticket(_draft(**overrides), requester_id="user-1")

    assert exc.value.field == field
    allocator.allocate.assert_not_awaited()
    assert await ticket_store.list_tickets() == []


@pytest.mark.asyncio
async def test_create_ticket_fills_defaults_and_recipients(make_service, counters, directory):
    project = Project(id=uuid4(), name="Apollo")
    directory.add_project(project)
    service = make_service(counters)

    result = await service.create_ticket(_draft(), requester_id="user-1")

    ticket = result.ticket
    assert ticket.ticket_number == "IN100001"
    assert ticket.status == TicketStatus.OPEN
    assert ticket.priority == TicketPriority.MEDIUM
    assert ticket.starred is False
    assert ticket.project == "Apollo"
    assert ticket.project_id == str(project.id)
    assert ticket.user_id == "user-1"
    assert ticket.created == ticket.last_updated
    assert ticket.comments == []
    assert ticket.assigned_to is None
    assert result.notify_recipients == ["pm@example.com", "dev@example.com"]


@pytest.mark.asyncio
async def test_unknown_project_leaves_ticket_unlinked(make_service, counters):
    service = make_service(counters)

    result = await service.create_ticket(_draft(project="Nowhere"), requester_id="user-1")

    assert result.ticket.project == "Nowhere"
    assert result.ticket.project_id == ""
    assert result.notify_recipients == []


@pytest.mark.asyncio
async def test_missing_project_defaults_to_general(make_service, counters):
    service = make_service(counters)

    result = await service.create_ticket(_draft(project=None), requester_id="user-1")

    assert result.ticket.project == "General"
    assert result.ticket.project_id == ""


@pytest.mark.asyncio
async def test_collision_retries_with_fresh_number(make_service, ticket_store, registry):
    counters = ScriptedCounterStore(100001, 100001, 100002)
    service = make_service(counters)

    first = await service.create_ticket(_draft(), requester_id="user-1")
    second = await service.create_ticket(_draft(subject="Printer jam"), requester_id="user-2")

    assert first.ticket.ticket_number == "IN100001"
    assert second.ticket.ticket_number == "IN100002"
    assert counters.calls == 3
    assert sorted(ticket_store.ticket_numbers()) == ["IN100001", "IN100002"]
    assert registry.counter("ticket_number_collisions_total").value() == 1


@pytest.mark.asyncio
async def test_exhausted_retries_surface_last_collision(make_service, ticket_store):
    counters = ScriptedCounterStore(100001)
    service = make_service(counters)
    await service.create_ticket(_draft(), requester_id="user-1")

    with pytest.raises(TicketCreationError) as exc:
        await service.create_ticket(_draft(subject="Another"), requester_id="user-1")

    assert isinstance(exc.value.last_error, DuplicateTicketNumberError)
    assert "IN100001" in str(exc.value)
    assert counters.calls == 4
    assert len(ticket_store.ticket_numbers()) == 1


@pytest.mark.asyncio
async def test_non_collision_failure_is_not_retried(make_service, counters):
    tickets = AsyncMock()
    tickets.insert_ticket = AsyncMock(side_effect=OSError("disk full"))
    service = make_service(counters, tickets=tickets)

    with pytest.raises(TicketPersistenceError, match="disk full"):
        await service.create_ticket(_draft(), requester_id="user-1")

    tickets.insert_ticket.assert_awaited_once()
    assert counters.peek("incident_counter") == 100001


@pytest.mark.asyncio
async def test_counter_outage_still_creates_ticket(make_service):
    service = make_service(FailingCounterStore())

    result = await service.create_ticket(_draft(type_of_issue="Service Request"), requester_id="user-1")

    match = re.fullmatch(r"SR(\d+)", result.ticket.ticket_number)
    assert match is not None
    assert int(match.group(1)) > 1_600_000_000_000


@pytest.mark.asyncio
async def test_directory_outage_yields_no_recipients(make_service, counters):
    service = make_service(counters, members_directory=BrokenDirectory())

    result = await service.create_ticket(_draft(), requester_id="user-1")

    assert result.ticket.ticket_number == "IN100001"
    assert result.ticket.project_id == ""
    assert result.notify_recipients == []


@pytest.mark.asyncio
async def test_concurrent_creations_get_distinct_numbers(make_service, counters, ticket_store):
    service = make_service(counters)
    issue_types = ["Incident", "Service Request", "Change Request"]

    results = await asyncio.gather(
        *(
            service.create_ticket(_draft(subject=f"Ticket {i}", type_of_issue=issue_types[i % 3]), requester_id="u")
            for i in range(30)
        )
    )

    numbers = [result.ticket.ticket_number for result in results]
    assert len(set(numbers)) == 30
    assert sorted(n for n in numbers if n.startswith("SR")) == [f"SR{200001 + i}" for i in range(10)]
    assert len(ticket_store.ticket_numbers()) == 30


@pytest.mark.asyncio
async def test_check_duplicate_matches_recent_subject(make_service, counters):
    service = make_service(counters)
    await service.create_ticket(_draft(), requester_id="user-1")

    assert await service.check_duplicate("VPN drops every hour", "client@example.com") is True
    assert await service.check_duplicate("Something else", "client@example.com") is False
    assert await service.check_duplicate("VPN drops every hour", "someone@example.com") is False
    assert await service.check_duplicate(None, "client@example.com") is False


@pytest.mark.asyncio
async def test_lookups_by_id_and_number(make_service, counters):
    service = make_service(counters)
    created = (await service.create_ticket(_draft(), requester_id="user-1")).ticket

    assert (await service.get_ticket(created.id)).ticket_number == "IN100001"
    assert (await service.get_ticket_by_number(" in100001 ")).id == created.id
    with pytest.raises(TicketNotFoundError):
        await service.get_ticket(uuid4())
    with pytest.raises(TicketNotFoundError):
        await service.get_ticket_by_number("CR300001")


@pytest.mark.asyncio
async def test_list_tickets_filters_by_project(make_service, counters):
    service = make_service(counters)
    await service.create_ticket(_draft(project="Apollo"), requester_id="user-1")
    await service.create_ticket(_draft(project="Gemini"), requester_id="user-1")

    tickets = await service.list_tickets(project="Gemini")

    assert [ticket.project for ticket in tickets] == ["Gemini"]
    assert len(await service.list_tickets(status=TicketStatus.OPEN)) == 2


def test_max_attempts_must_be_positive(ticket_store, directory):
    with pytest.raises(ValueError):
        TicketService(ticket_store, AsyncMock(), ProjectMemberResolver(directory), max_attempts=0)


@pytest.mark.asyncio
async def test_check_duplicate_honours_window(make_service, counters):
    service = make_service(counters)
    await service.create_ticket(_draft(), requester_id="user-1")

    assert await service.check_duplicate("VPN drops every hour", "client@example.com", window=timedelta(0)) is False


@pytest.mark.asyncio
async def test_padded_project_name_links_project(make_service, counters, directory):
    project = Project(id=uuid4(), name="Apollo")
    directory.add_project(project)
    service = make_service(counters)

    result = await service.create_ticket(_draft(project=" Apollo "), requester_id="user-1")

    assert result.ticket.project == "Apollo"
    assert result.ticket.project_id == str(project.id)
    assert result.notify_recipients == ["pm@example.com", "dev@example.com"]


@pytest.mark.asyncio
async def test_opaque_attachments_and_missing_priority(make_service, counters):
    service = make_service(counters)

    result = await service.create_ticket(
        _draft(attachments=["https://files/x.png", {"name": "log.txt"}], priority=None), requester_id="user-1"
    )

    assert result.ticket.attachments == ["https://files/x.png", {"name": "log.txt"}]
    assert result.ticket.priority == TicketPriority.MEDIUM
