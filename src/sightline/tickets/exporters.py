"""Ticket exporters.

Every exporter filters tickets by status first, so summary counts always
describe exactly the tickets that were exported. Exporters return
``Ok(text)`` or ``Err(reason)`` and never raise for rendering problems.
"""

import csv
import io
import json
import logging
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from pathlib import Path
from types import MappingProxyType
from typing import ClassVar

from sightline.result import Err, Ok, Result
from sightline.templates import TicketRenderer
from sightline.tickets.models import Ticket, TicketsData, TicketStatus, compute_summary

logger = logging.getLogger(__name__)

ExportResult = Result[str, str]


def filter_by_status(tickets: list[Ticket], status: TicketStatus | None) -> list[Ticket]:
    """Keep tickets with ``status``; no filter when status is None."""
    if status is None:
        return list(tickets)
    return [t for t in tickets if t.status == status]


class Exporter(ABC):
    """Base class for ticket export formats."""

    format_name: ClassVar[str]
    file_extension: ClassVar[str]

    def export(self, data: TicketsData, status: TicketStatus | None = None) -> ExportResult:
        """Export tickets, optionally only those with ``status``."""
        return self.render(data, filter_by_status(data.tickets, status))

    @abstractmethod
    def render(self, data: TicketsData, tickets: list[Ticket]) -> ExportResult:
        """Render already-filtered tickets."""
        ...


class JSONExporter(Exporter):
    """Machine-readable export, the default format."""

    format_name = "JSON"
    file_extension = ".json"

    def render(self, data: TicketsData, tickets: list[Ticket]) -> ExportResult:
        output = {
            "version": data.version,
            "session_id": data.session_id,
            "project_name": data.project_name,
            "task_description": data.task_description,
            "exported_at": datetime.now(UTC).isoformat(),
            "summary": compute_summary(tickets),
            "tickets": [t.to_dict() for t in tickets],
        }
        try:
            return Ok(json.dumps(output, indent=2, ensure_ascii=False))
        except (TypeError, ValueError) as e:
            return Err(f"json_encode: {e}")


class MarkdownExporter(Exporter):
    """Human-readable checklist export."""

    format_name = "Markdown"
    file_extension = ".md"

    def __init__(self, renderer: TicketRenderer | None = None) -> None:
        self._renderer = renderer or TicketRenderer()

    def render(self, data: TicketsData, tickets: list[Ticket]) -> ExportResult:
        try:
            content = self._renderer.render(
                tickets,
                session_id=data.session_id,
                title=data.task_description,
                project_name=data.project_name,
            )
        except ValueError as e:
            return Err(str(e))
        return Ok(content.strip() + "\n")


class CSVExporter(Exporter):
    """Spreadsheet-friendly export; list fields are joined with ';'."""

    format_name = "CSV"
    file_extension = ".csv"

    HEADERS = (
        "id",
        "title",
        "type",
        "status",
        "priority",
        "estimate",
        "labels",
        "description",
        "files_create",
        "files_modify",
        "blocked_by",
        "blocks",
    )

    def render(self, data: TicketsData, tickets: list[Ticket]) -> ExportResult:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(self.HEADERS)
        for t in tickets:
            writer.writerow(
                [
                    t.id,
                    t.title,
                    t.type.value,
                    t.status.value,
                    t.priority.value,
                    t.estimate if t.estimate is not None else "",
                    ";".join(t.labels),
                    t.description or "",
                    ";".join(t.files_create),
                    ";".join(t.files_modify),
                    ";".join(t.blocked_by),
                    ";".join(t.blocks),
                ]
            )
        return Ok(buffer.getvalue())


EXPORTERS: MappingProxyType[str, type[Exporter]] = MappingProxyType(
    {
        "json": JSONExporter,
        "markdown": MarkdownExporter,
        "csv": CSVExporter,
    }
)


def export_tickets(
    data: TicketsData,
    fmt: str = "json",
    status: TicketStatus | None = None,
) -> ExportResult:
    """Export tickets in the named format.

    Args:
        data: Tickets to export
        fmt: One of ``EXPORTERS``
        status: Only export tickets with this status

    Returns:
        Ok(text) or Err(reason) (including unknown formats)
    """
    exporter_class = EXPORTERS.get(fmt.lower())
    if exporter_class is None:
        return Err(f"unknown_format: {fmt}")

    result = exporter_class().export(data, status)
    if isinstance(result, Err):
        logger.error("%s export failed: %s", exporter_class.format_name, result.error)
    return result


def default_filename(session_id: str, fmt: str) -> str:
    exporter_class = EXPORTERS.get(fmt.lower())
    extension = exporter_class.file_extension if exporter_class else ".txt"
    return f"{session_id}_tickets{extension}"


def export_to_file(
    data: TicketsData,
    output_path: Path,
    fmt: str = "json",
    status: TicketStatus | None = None,
) -> Result[Path, str]:
    """Export tickets and write them to ``output_path``."""
    result = export_tickets(data, fmt, status)
    if isinstance(result, Err):
        return result
    try:
        Path(output_path).write_text(result.value, encoding="utf-8")
    except OSError as e:
        return Err(f"file_write: {e}")
    return Ok(Path(output_path))
