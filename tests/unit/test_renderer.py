"""Unit tests for the ticket template renderer."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from sightline.templates import TicketRenderer, format_datetime
from sightline.tickets.models import Ticket
from sightline.tickets.parser import parse_tickets


class TestFormatDatetime:
    """Tests for format_datetime."""

    def test_none(self) -> None:
        """Test missing timestamps."""
        assert format_datetime(None) == "N/A"

    def test_converted_to_utc(self) -> None:
        """Test aware datetimes are shown in UTC."""
        dt = datetime(2026, 3, 1, 14, 30, 0, tzinfo=timezone(timedelta(hours=2)))

        assert format_datetime(dt) == "2026-03-01 12:30:00 UTC"

    def test_naive_assumed_utc(self) -> None:
        """Test naive datetimes are treated as UTC."""
        assert format_datetime(datetime(2026, 3, 1, 9, 0, 0)) == "2026-03-01 09:00:00 UTC"

    def test_iso_string(self) -> None:
        """Test ISO strings are parsed; other strings pass through."""
        assert format_datetime("2026-03-01T09:00:00+00:00") == "2026-03-01 09:00:00 UTC"
        assert format_datetime("yesterday") == "yesterday"


class TestTicketRenderer:
    """Tests for TicketRenderer."""

    @pytest.fixture
    def renderer(self) -> TicketRenderer:
        """Create a renderer instance."""
        return TicketRenderer()

    @pytest.fixture
    def tickets(self, feature_md: str) -> list[Ticket]:
        """Return the parsed sample tickets."""
        return parse_tickets(feature_md)

    def test_header_and_summary(self, renderer: TicketRenderer, tickets: list[Ticket]) -> None:
        """Test title, session and the status table."""
        content = renderer.render(tickets, session_id="s-1", title="Add CSV export")

        assert content.startswith("# Add CSV export\n")
        assert "**Session:** s-1" in content
        assert "| Pending | 2 |" in content
        assert "| **Total** | **2** |" in content

    def test_ticket_sections(self, renderer: TicketRenderer, tickets: list[Ticket]) -> None:
        """Test each ticket's heading, labels and dependencies."""
        content = renderer.render(tickets, session_id="s-1")

        assert "### [ ] #1: Add CSV serializer" in content
        assert "🟠 **feature** (2 pts)" in content
        assert "**Labels:** `frontend` `auth`" in content
        assert "  - `reports/csv_export.py`" in content
        assert "**Blocks:** #2" in content
        assert "**Blocked by:** #1" in content
        assert "- [ ] Button downloads a CSV file" in content

    def test_completed_ticket_checked(
        self,
        renderer: TicketRenderer,
        tickets: list[Ticket],
    ) -> None:
        """Test completed tickets and their criteria are checked off."""
        content = renderer.render([tickets[0].complete()], session_id="s-1")

        assert "### [x] #1: Add CSV serializer" in content
        assert "- [x] Header row matches column names" in content
        assert "| Completed | 1 |" in content

    def test_default_title_and_project(self, renderer: TicketRenderer) -> None:
        """Test the fallback title and optional project line."""
        content = renderer.render([], session_id="s-1", project_name="reports")

        assert content.startswith("# Tickets\n")
        assert "**Project:** reports" in content

    def test_deterministic(self, renderer: TicketRenderer, tickets: list[Ticket]) -> None:
        """Test identical input renders identical output."""
        first = renderer.render(tickets, session_id="s-1", title="t")
        second = TicketRenderer().render(tickets, session_id="s-1", title="t")

        assert first == second

    def test_missing_template(self, renderer: TicketRenderer) -> None:
        """Test an unknown template raises ValueError."""
        with pytest.raises(ValueError, match="Template not found"):
            renderer.render([], session_id="s-1", template_name="missing.md.j2")
