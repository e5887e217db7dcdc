from __future__ import annotations

import pytest

from helpdesk.metrics import MetricsRegistry
from helpdesk.tickets import (
    DirectoryUser,
    InMemoryCounterStore,
    InMemoryProjectDirectory,
    InMemoryTicketStore,
    ProjectMemberResolver,
    TicketNumberAllocator,
    TicketService,
)


@pytest.fixture
def registry() -> MetricsRegistry:
    return MetricsRegistry()


@pytest.fixture
def counters() -> InMemoryCounterStore:
    return InMemoryCounterStore()


@pytest.fixture
def ticket_store() -> InMemoryTicketStore:
    return InMemoryTicketStore()


@pytest.fixture
def directory() -> InMemoryProjectDirectory:
    return InMemoryProjectDirectory(
        users=[
            DirectoryUser(email="pm@example.com", role="project_manager", projects=["Apollo"]),
            DirectoryUser(email="dev@example.com", role="employee", projects=["Apollo", "Gemini"]),
            DirectoryUser(email=None, role="client", projects=["Apollo"]),
            DirectoryUser(email="other@example.com", role="client", projects=["Gemini"]),
        ]
    )


@pytest.fixture
def make_service(ticket_store, directory, registry):
    def factory(counter_store, *, tickets=None, members_directory=None, max_attempts: int = 3) -> TicketService:
        return TicketService(
            tickets or ticket_store,
            TicketNumberAllocator(counter_store, registry=registry),
            ProjectMemberResolver(members_directory or directory),
            max_attempts=max_attempts,
            registry=registry,
        )

    return factory
