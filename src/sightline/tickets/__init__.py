"""Ticket extraction and storage.

Tickets are parsed from the change-planning output (FEATURE.md) when a
session completes and stored next to it in ``tickets.json``. Export
formats live in ``sightline.tickets.exporters``.
"""

from sightline.tickets.models import (
    ESTIMATE_POINTS,
    Priority,
    Ticket,
    TicketsData,
    TicketStatus,
    TicketType,
    compute_summary,
)
from sightline.tickets.parser import count_risks, parse_tickets, summarize_plan
from sightline.tickets.store import load_tickets, save_tickets

__all__ = [
    "ESTIMATE_POINTS",
    "Priority",
    "Ticket",
    "TicketStatus",
    "TicketType",
    "TicketsData",
    "compute_summary",
    "count_risks",
    "load_tickets",
    "parse_tickets",
    "save_tickets",
    "summarize_plan",
]
