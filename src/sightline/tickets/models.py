"""Ticket entities.

Tickets are the actionable work items extracted from the change-planning
output (FEATURE.md). They are stored per session in ``tickets.json`` and
can be exported to JSON, Markdown, or CSV.
"""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any

TICKETS_VERSION = "1.0"

# Story points for estimate words
ESTIMATE_POINTS: dict[str, int] = {
    "trivial": 1,
    "small": 2,
    "medium": 3,
    "large": 5,
    "extra large": 8,
    "epic": 13,
}


class TicketType(Enum):
    FEATURE = "feature"
    ENHANCEMENT = "enhancement"
    BUGFIX = "bugfix"
    CHORE = "chore"
    DOCS = "docs"
    TEST = "test"


class TicketStatus(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Priority(Enum):
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


# Free-text type words the planner may use
_TYPE_ALIASES: dict[str, TicketType] = {
    "task": TicketType.FEATURE,
    "story": TicketType.FEATURE,
    "feature": TicketType.FEATURE,
    "enhancement": TicketType.ENHANCEMENT,
    "bug": TicketType.BUGFIX,
    "bugfix": TicketType.BUGFIX,
    "chore": TicketType.CHORE,
    "docs": TicketType.DOCS,
    "documentation": TicketType.DOCS,
    "test": TicketType.TEST,
}


def parse_type(value: str | TicketType | None) -> TicketType:
    """Map a type word to a TicketType (unknown words -> feature)."""
    if isinstance(value, TicketType):
        return value
    if not value:
        return TicketType.FEATURE
    return _TYPE_ALIASES.get(value.strip().lower(), TicketType.FEATURE)


def parse_priority(value: str | Priority | None) -> Priority:
    """Map a priority word to a Priority (unknown words -> medium)."""
    if isinstance(value, Priority):
        return value
    if not value:
        return Priority.MEDIUM
    try:
        return Priority(value.strip().lower())
    except ValueError:
        return Priority.MEDIUM


def parse_status(value: str | TicketStatus | None) -> TicketStatus:
    """Map a status word to a TicketStatus (unknown words -> pending)."""
    if isinstance(value, TicketStatus):
        return value
    if not value:
        return TicketStatus.PENDING
    try:
        return TicketStatus(value.strip().lower())
    except ValueError:
        return TicketStatus.PENDING


def parse_estimate(value: str | int | None) -> int | None:
    """Convert an estimate word or number to story points."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    text = value.strip().lower()
    if text.isdigit():
        return int(text) or None
    return ESTIMATE_POINTS.get(text)


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class Ticket:
    """A single work item.

    Attributes:
        id: Ticket number as a string ("1", "2", ...)
        title: Short action-oriented title
        description: Detailed description
        type: Ticket type
        status: Workflow status
        priority: Priority
        estimate: Story points
        labels: Inferred or assigned labels
        acceptance_criteria: Conditions that define "done"
        implementation_notes: Technical guidance
        files_create: Files the ticket creates
        files_modify: Files the ticket modifies
        blocked_by: Ids of tickets this one depends on
        blocks: Ids of tickets that depend on this one
        created_at: Creation timestamp
        started_at: When work started
        completed_at: When work completed
    """

    id: str
    title: str
    description: str | None = None
    type: TicketType = TicketType.FEATURE
    status: TicketStatus = TicketStatus.PENDING
    priority: Priority = Priority.MEDIUM
    estimate: int | None = None
    labels: tuple[str, ...] = ()
    acceptance_criteria: tuple[str, ...] = ()
    implementation_notes: str | None = None
    files_create: tuple[str, ...] = ()
    files_modify: tuple[str, ...] = ()
    blocked_by: tuple[str, ...] = ()
    blocks: tuple[str, ...] = ()
    created_at: datetime = field(default_factory=_now)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    def start(self) -> "Ticket":
        """Move a pending ticket to in_progress; other statuses are unchanged."""
        if self.status != TicketStatus.PENDING:
            return self
        return replace(self, status=TicketStatus.IN_PROGRESS, started_at=_now())

    def complete(self) -> "Ticket":
        now = _now()
        return replace(
            self,
            status=TicketStatus.COMPLETED,
            started_at=self.started_at or now,
            completed_at=now,
        )

    def reset(self) -> "Ticket":
        return replace(self, status=TicketStatus.PENDING, started_at=None, completed_at=None)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "type": self.type.value,
            "status": self.status.value,
            "priority": self.priority.value,
            "estimate": self.estimate,
            "labels": list(self.labels),
            "acceptance_criteria": list(self.acceptance_criteria),
            "implementation_notes": self.implementation_notes,
            "files": {"create": list(self.files_create), "modify": list(self.files_modify)},
            "dependencies": {"blocked_by": list(self.blocked_by), "blocks": list(self.blocks)},
            "timestamps": {
                "created_at": self.created_at.isoformat(),
                "started_at": self.started_at.isoformat() if self.started_at else None,
                "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Ticket":
        """Create a Ticket from its serialized form."""
        files = data.get("files") or {}
        deps = data.get("dependencies") or {}
        timestamps = data.get("timestamps") or {}

        return cls(
            id=str(data["id"]),
            title=data.get("title") or "",
            description=data.get("description"),
            type=parse_type(data.get("type")),
            status=parse_status(data.get("status")),
            priority=parse_priority(data.get("priority")),
            estimate=parse_estimate(data.get("estimate")),
            labels=tuple(data.get("labels") or ()),
            acceptance_criteria=tuple(data.get("acceptance_criteria") or ()),
            implementation_notes=data.get("implementation_notes"),
            files_create=tuple(files.get("create") or ()),
            files_modify=tuple(files.get("modify") or ()),
            blocked_by=tuple(str(i) for i in deps.get("blocked_by") or ()),
            blocks=tuple(str(i) for i in deps.get("blocks") or ()),
            created_at=_parse_datetime(timestamps.get("created_at")) or _now(),
            started_at=_parse_datetime(timestamps.get("started_at")),
            completed_at=_parse_datetime(timestamps.get("completed_at")),
        )


def compute_summary(tickets: list[Ticket]) -> dict[str, int]:
    """Count tickets by status and sum their points."""
    return {
        "total": len(tickets),
        "pending": sum(1 for t in tickets if t.status == TicketStatus.PENDING),
        "in_progress": sum(1 for t in tickets if t.status == TicketStatus.IN_PROGRESS),
        "completed": sum(1 for t in tickets if t.status == TicketStatus.COMPLETED),
        "total_points": sum(t.estimate or 0 for t in tickets),
        "completed_points": sum(
            t.estimate or 0 for t in tickets if t.status == TicketStatus.COMPLETED
        ),
    }


@dataclass
class TicketsData:
    """Tickets of one session plus descriptive metadata.

    Attributes:
        session_id: Owning session
        task_description: Task the tickets implement
        tickets: Tickets in plan order
        project_name: Optional project name
        version: File format version
        created_at: When the tickets were first written
        updated_at: When the tickets were last saved
    """

    session_id: str
    task_description: str
    tickets: list[Ticket] = field(default_factory=list)
    project_name: str | None = None
    version: str = TICKETS_VERSION
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    @property
    def summary(self) -> dict[str, int]:
        return compute_summary(self.tickets)

    def get(self, ticket_id: str) -> Ticket | None:
        return next((t for t in self.tickets if t.id == str(ticket_id)), None)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "version": self.version,
            "session_id": self.session_id,
            "project_name": self.project_name,
            "task_description": self.task_description,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "summary": self.summary,
            "tickets": [t.to_dict() for t in self.tickets],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TicketsData":
        return cls(
            session_id=data["session_id"],
            task_description=data.get("task_description") or "",
            tickets=[Ticket.from_dict(t) for t in data.get("tickets") or []],
            project_name=data.get("project_name"),
            version=data.get("version") or TICKETS_VERSION,
            created_at=_parse_datetime(data.get("created_at")) or _now(),
            updated_at=_parse_datetime(data.get("updated_at")) or _now(),
        )


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None
