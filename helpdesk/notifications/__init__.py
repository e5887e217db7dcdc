"""Delivery of ticket notifications."""

from .notifier import LoggingTicketNotifier, SmtpTicketNotifier, TicketNotifier, dispatch_ticket_created

__all__ = ["LoggingTicketNotifier", "SmtpTicketNotifier", "TicketNotifier", "dispatch_ticket_created"]
