"""Ticket display number allocation.

Every issue type belongs to a family with its own counter, prefix and
numeric range. Numbers come from an atomic increment on the counter store;
if the store fails, a clock based number is issued instead so that ticket
creation keeps working.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import Callable

from helpdesk.metrics import MetricsRegistry, metrics_registry
from helpdesk.metrics.definitions import TICKET_NUMBER_FALLBACKS, TICKET_NUMBERS_ALLOCATED

from .stores import CounterStore

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True, slots=True)
class IssueFamily:
    name: str
    prefix: str
    counter_key: str
    start_value: int

    def format(self, value: int) -> str:
        return f"{self.prefix}{value}"


INCIDENT = IssueFamily(name="incident", prefix="IN", counter_key="incident_counter", start_value=100000)
SERVICE_REQUEST = IssueFamily(name="service_request", prefix="SR", counter_key="service_counter", start_value=200000)
CHANGE_REQUEST = IssueFamily(name="change_request", prefix="CR", counter_key="change_counter", start_value=300000)

DEFAULT_FAMILY = INCIDENT

_FAMILIES_BY_ISSUE_TYPE: dict[str, IssueFamily] = {
    "incident": INCIDENT,
    "servicerequest": SERVICE_REQUEST,
    "changerequest": CHANGE_REQUEST,
}


def normalize_issue_type(type_of_issue: str | None) -> str:
    return _WHITESPACE_RE.sub("", type_of_issue or "").lower()


def resolve_family(type_of_issue: str | None) -> IssueFamily:
    """Map a free-form issue type onto its family; unknown values use the default."""

    return _FAMILIES_BY_ISSUE_TYPE.get(normalize_issue_type(type_of_issue), DEFAULT_FAMILY)


class TicketNumberAllocator:
    """Issue the next display number for an issue type."""

    def __init__(
        self,
        counters: CounterStore,
        *,
        clock: Callable[[], float] = time.time,
        registry: MetricsRegistry | None = None,
    ) -> None:
        self._counters = counters
        self._clock = clock
        registry = registry or metrics_registry
        self._allocated = registry.counter(TICKET_NUMBERS_ALLOCATED, label_names=("family",))
        self._fallbacks = registry.counter(TICKET_NUMBER_FALLBACKS, label_names=("family",))

    async def allocate(self, type_of_issue: str | None) -> str:
        family = resolve_family(type_of_issue)
        try:
            value = await self._counters.increment(family.counter_key, start=family.start_value)
        except Exception:
            logger.warning(
                "Counter %s unavailable, issuing clock based %s ticket number",
                family.counter_key,
                family.name,
                exc_info=True,
            )
            self._fallbacks.inc(labels={"family": family.name})
            return family.format(self._fallback_value())

        self._allocated.inc(labels={"family": family.name})
        return family.format(value)

    def _fallback_value(self) -> int:
        # Milliseconds since the epoch; well above every counter range.
        return int(self._clock() * 1000)
