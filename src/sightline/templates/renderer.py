"""Template renderer for ticket exports.

Renders tickets to markdown using Jinja2 templates shipped in this
package. Output is deterministic: the same tickets always render to the
same text.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from jinja2 import Environment, PackageLoader, select_autoescape

from sightline.tickets.models import Priority, Ticket, TicketStatus, compute_summary

logger = logging.getLogger(__name__)

_STATUS_CHECKBOXES = {
    TicketStatus.COMPLETED: "[x]",
    TicketStatus.IN_PROGRESS: "[~]",
    TicketStatus.PENDING: "[ ]",
}

_PRIORITY_BADGES = {
    Priority.URGENT: "🔴",
    Priority.HIGH: "🟠",
    Priority.MEDIUM: "🟡",
    Priority.LOW: "🟢",
    Priority.NONE: "⚪",
}


def format_datetime(dt: datetime | str | None) -> str:
    """Format a datetime for display.

    Args:
        dt: Datetime object or ISO string

    Returns:
        Formatted date string
    """
    if dt is None:
        return "N/A"

    if isinstance(dt, str):
        try:
            dt = datetime.fromisoformat(dt)
        except ValueError:
            return dt

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC).strftime("%Y-%m-%d %H:%M:%S UTC")


def status_checkbox(status: TicketStatus) -> str:
    return _STATUS_CHECKBOXES.get(status, "[ ]")


def priority_badge(priority: Priority) -> str:
    return _PRIORITY_BADGES.get(priority, "⚪")


class TicketRenderer:
    """Renders tickets to markdown.

    Usage:
        renderer = TicketRenderer()
        markdown = renderer.render(tickets, session_id="...", title="Add CSV export")
    """

    def __init__(self) -> None:
        self._env = Environment(
            loader=PackageLoader("sightline", "templates"),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

        self._env.filters["format_datetime"] = format_datetime
        self._env.filters["status_checkbox"] = status_checkbox
        self._env.filters["priority_badge"] = priority_badge

    def render(
        self,
        tickets: list[Ticket],
        session_id: str,
        title: str | None = None,
        project_name: str | None = None,
        template_name: str = "tickets.md.j2",
    ) -> str:
        """Render tickets to markdown.

        Args:
            tickets: Tickets to render (already filtered)
            session_id: Owning session id
            title: Document title (defaults to "Tickets")
            project_name: Optional project name
            template_name: Template file to use

        Returns:
            Rendered markdown string

        Raises:
            ValueError: If the template cannot be loaded or rendered
        """
        try:
            template = self._env.get_template(template_name)
        except Exception as e:
            logger.error("Failed to load template %s: %s", template_name, e)
            raise ValueError(f"Template not found: {template_name}") from e

        context: dict[str, Any] = {
            "title": title or "Tickets",
            "session_id": session_id,
            "project_name": project_name,
            "summary": compute_summary(tickets),
            "tickets": tickets,
        }

        try:
            rendered = template.render(**context)
        except Exception as e:
            logger.error("Template rendering failed: %s", e)
            raise ValueError(f"Template rendering failed: {e}") from e

        logger.debug("Rendered %d tickets (%d characters)", len(tickets), len(rendered))
        return rendered
