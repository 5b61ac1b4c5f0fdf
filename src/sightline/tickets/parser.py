"""Ticket extraction from change-planning markdown (FEATURE.md).

Expected layout per ticket:

    ### Ticket #1: Add status column

    **Type:** Feature
    **Priority:** High
    **Estimate:** Small
    **Depends On:** None
    **Blocks:** #2, #3

    #### Description
    ...
    #### Files to Create
    | File | Purpose |
    |------|---------|
    | `src/app/status.py` | ... |
    #### Acceptance Criteria
    - [ ] ...

Parsing is lenient: missing fields fall back to defaults and malformed
sections are skipped rather than raising.
"""

import logging
import re

from sightline.tickets.models import (
    Ticket,
    parse_estimate,
    parse_priority,
    parse_type,
)

logger = logging.getLogger(__name__)

TICKET_SECTION_PATTERN = re.compile(
    r"^###\s+Ticket\s+#(\d+):[ \t]*([^\n]*)(.*?)(?=^###\s+Ticket\s+#\d+:|^##\s|\Z)",
    re.DOTALL | re.MULTILINE,
)
TICKET_REF_PATTERN = re.compile(r"#(\d+)")
TRAILING_RULE_PATTERN = re.compile(r"\n*-{3,}\s*\Z")
RISK_TABLE_PATTERN = re.compile(
    r"^##\s+Risk Summary\s*\n\s*\|[^\n]*\n\|[^\n]*\n((?:\|[^\n]*\n?)*)",
    re.MULTILINE,
)
TOTAL_POINTS_PATTERN = re.compile(r"\*\*Total\*\*.*?(\d+)\**\s*\|\s*$", re.MULTILINE)

# Label -> file path pattern
_FILE_LABEL_RULES: list[tuple[str, re.Pattern[str]]] = [
    ("test", re.compile(r"(^|/)tests?/|(^|/)test_[^/]*$|_test\.\w+$|\.(spec|test)\.\w+$")),
    ("database", re.compile(r"migrations?/|(^|/)(schema|models?)\.\w+$|\.sql$")),
    ("frontend", re.compile(r"\.(html|jsx|tsx|vue|svelte|css|scss)$|templates?/")),
    ("docs", re.compile(r"\.(md|rst)$|(^|/)docs/")),
]
_AUTH_PATTERN = re.compile(r"\b(auth\w*|login|password|token|permission\w*)\b", re.IGNORECASE)


def parse_tickets(markdown: str) -> list[Ticket]:
    """Extract tickets from change-planning markdown.

    Args:
        markdown: FEATURE.md content

    Returns:
        Tickets in document order (empty when none are found)
    """
    tickets = []
    for match in TICKET_SECTION_PATTERN.finditer(markdown):
        number, title, body = match.group(1), match.group(2).strip(), match.group(3)
        body = TRAILING_RULE_PATTERN.sub("", body.strip())
        ticket = _parse_ticket_section(number, title, body)
        if ticket.title:
            tickets.append(ticket)
        else:
            logger.debug("Skipping ticket #%s without a title", number)

    logger.debug("Parsed %d tickets", len(tickets))
    return tickets


def _parse_ticket_section(ticket_id: str, title: str, section: str) -> Ticket:
    description = _extract_subsection(section, "Description")
    files_create = _extract_table_files(section, "Files to Create")
    files_modify = _extract_table_files(section, "Files to Modify")

    return Ticket(
        id=ticket_id,
        title=title,
        description=description,
        type=parse_type(_extract_field(section, "Type")),
        priority=parse_priority(_extract_field(section, "Priority")),
        estimate=parse_estimate(_extract_field(section, "Estimate")),
        labels=infer_labels(title, description, files_create + files_modify),
        acceptance_criteria=_extract_criteria(section),
        implementation_notes=_extract_subsection(section, "Implementation Notes"),
        files_create=files_create,
        files_modify=files_modify,
        blocked_by=_parse_refs(_extract_field(section, "Depends On")),
        blocks=_parse_refs(_extract_field(section, "Blocks")),
    )


def _extract_field(section: str, name: str) -> str | None:
    match = re.search(
        rf"\*\*{re.escape(name)}:\*\*[ \t]*(.+?)[ \t]*$",
        section,
        re.IGNORECASE | re.MULTILINE,
    )
    return match.group(1) if match else None


def _extract_subsection(section: str, name: str) -> str | None:
    """Text under a ``#### name`` heading; tables are not text."""
    match = re.search(
        rf"^####\s*{re.escape(name)}\s*\n(.*?)(?=^####|\Z)",
        section,
        re.IGNORECASE | re.MULTILINE | re.DOTALL,
    )
    if not match:
        return None
    content = match.group(1).strip()
    if not content or content.startswith("|"):
        return None
    return content


def _extract_table_files(section: str, name: str) -> tuple[str, ...]:
    match = re.search(
        rf"^####\s*{re.escape(name)}\s*\n\|[^\n]*\n\|[^\n]*\n((?:\|[^\n]*\n?)*)",
        section,
        re.IGNORECASE | re.MULTILINE,
    )
    if not match:
        return ()

    files = []
    for row in match.group(1).splitlines():
        cells = [c.strip() for c in row.strip().strip("|").split("|")]
        path = cells[0].strip("`").strip() if cells else ""
        if path and not path.startswith("-"):
            files.append(path)
    return tuple(files)


def _extract_criteria(section: str) -> tuple[str, ...]:
    match = re.search(
        r"^####\s*Acceptance Criteria\s*\n(.*?)(?=^####|\Z)",
        section,
        re.IGNORECASE | re.MULTILINE | re.DOTALL,
    )
    if not match:
        return ()

    criteria = []
    for line in match.group(1).splitlines():
        line = line.strip()
        if not line.startswith("-"):
            continue
        text = re.sub(r"^-\s*(\[[ xX]\]\s*)?", "", line).strip()
        if text:
            criteria.append(text)
    return tuple(criteria)


def _parse_refs(value: str | None) -> tuple[str, ...]:
    if not value or value.strip().lower() == "none":
        return ()
    return tuple(TICKET_REF_PATTERN.findall(value))


def infer_labels(title: str, description: str | None, files: tuple[str, ...]) -> tuple[str, ...]:
    """Infer labels from touched file paths and ticket text."""
    labels = [
        label
        for label, pattern in _FILE_LABEL_RULES
        if any(pattern.search(path) for path in files)
    ]
    if _AUTH_PATTERN.search(f"{title} {description or ''}"):
        labels.append("auth")
    return tuple(labels)


def count_risks(markdown: str) -> int:
    """Count rows of the ``## Risk Summary`` table (0 when absent)."""
    match = RISK_TABLE_PATTERN.search(markdown)
    if not match:
        return 0
    return sum(1 for row in match.group(1).splitlines() if row.strip().startswith("|"))


def summarize_plan(markdown: str, tickets: list[Ticket]) -> dict[str, int]:
    """Compute the session summary for a change plan.

    Points come from ticket estimates; when no ticket has an estimate the
    plan's ``**Total**`` effort row is used instead.

    Returns:
        Dict with tickets_count, total_points, files_to_create,
        files_to_modify and risks_identified
    """
    total_points = sum(t.estimate or 0 for t in tickets)
    if total_points == 0:
        match = TOTAL_POINTS_PATTERN.search(markdown)
        if match:
            total_points = int(match.group(1))

    return {
        "tickets_count": len(tickets),
        "total_points": total_points,
        "files_to_create": sum(len(t.files_create) for t in tickets),
        "files_to_modify": sum(len(t.files_modify) for t in tickets),
        "risks_identified": count_risks(markdown),
    }
