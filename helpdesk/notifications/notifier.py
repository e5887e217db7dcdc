from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from typing import Protocol, Sequence

from helpdesk.tickets.models import Ticket

logger = logging.getLogger(__name__)


class TicketNotifier(Protocol):
    async def ticket_created(self, ticket: Ticket, recipients: Sequence[str]) -> None:
        ...


class LoggingTicketNotifier:
    """Notifier that only records what would have been sent."""

    async def ticket_created(self, ticket: Ticket, recipients: Sequence[str]) -> None:
        logger.info(
            "Ticket %s created in %s; notifying %d recipient(s): %s",
            ticket.ticket_number,
            ticket.project,
            len(recipients),
            ", ".join(recipients),
        )


class SmtpTicketNotifier:
    """Send a plain-text "ticket created" mail to the project members.

    ``smtplib`` is blocking, so delivery runs in a worker thread.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        *,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._timeout = timeout

    def build_message(self, ticket: Ticket, recipients: Sequence[str]) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = f"[{ticket.ticket_number}] New ticket in {ticket.project}: {ticket.subject}"
        message["From"] = self._sender
        message["To"] = ", ".join(recipients)
        message.set_content(
            "\n".join(
                [
                    f"A new ticket was raised in project {ticket.project}.",
                    "",
                    f"Ticket number: {ticket.ticket_number}",
                    f"Subject: {ticket.subject}",
                    f"Type: {ticket.type_of_issue or 'Incident'}",
                    f"Priority: {ticket.priority.value}",
                    f"Raised by: {ticket.email}",
                    "",
                    ticket.description,
                ]
            )
        )
        return message

    async def ticket_created(self, ticket: Ticket, recipients: Sequence[str]) -> None:
        message = self.build_message(ticket, recipients)
        await asyncio.to_thread(self._send, message)
        logger.info("Sent ticket %s notification to %d recipient(s)", ticket.ticket_number, len(recipients))

    def _send(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as server:
            if self._use_tls:
                server.starttls()
            if self._username:
                server.login(self._username, self._password or "")
            server.send_message(message)


async def dispatch_ticket_created(notifier: TicketNotifier, ticket: Ticket, recipients: Sequence[str]) -> None:
    """Fire-and-forget delivery; failures are logged and never raised."""

    if not recipients:
        return
    try:
        await notifier.ticket_created(ticket, list(recipients))
    except Exception:
        logger.exception("Failed to send notifications for ticket %s", ticket.ticket_number)
