"""Metrics emitted by the ticketing core."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MetricDefinition:
    """Describe a metric that should exist in the registry."""

    name: str
    metric_type: str
    description: str
    label_names: tuple[str, ...] = ()


TICKET_NUMBERS_ALLOCATED = "ticket_numbers_allocated_total"
TICKET_NUMBER_FALLBACKS = "ticket_number_fallbacks_total"
TICKET_NUMBER_COLLISIONS = "ticket_number_collisions_total"
TICKET_CREATION_FAILURES = "ticket_creation_failures_total"
TICKETS_CREATED = "tickets_created_total"
TICKET_CREATION_DURATION = "ticket_creation_duration_seconds"


DEFAULT_METRIC_DEFINITIONS: tuple[MetricDefinition, ...] = (
    MetricDefinition(
        name=TICKET_NUMBERS_ALLOCATED,
        metric_type="counter",
        description="Ticket numbers issued from the counter store.",
        label_names=("family",),
    ),
    MetricDefinition(
        name=TICKET_NUMBER_FALLBACKS,
        metric_type="counter",
        description="Ticket numbers generated from the clock because the counter store failed.",
        label_names=("family",),
    ),
    MetricDefinition(
        name=TICKET_NUMBER_COLLISIONS,
        metric_type="counter",
        description="Ticket inserts rejected because the ticket number already existed.",
    ),
    MetricDefinition(
        name=TICKET_CREATION_FAILURES,
        metric_type="counter",
        description="Ticket creations that failed after validation.",
        label_names=("reason",),
    ),
    MetricDefinition(
        name=TICKETS_CREATED,
        metric_type="counter",
        description="Tickets persisted successfully.",
    ),
    MetricDefinition(
        name=TICKET_CREATION_DURATION,
        metric_type="distribution",
        description="Time spent allocating and persisting a ticket, in seconds.",
    ),
)
