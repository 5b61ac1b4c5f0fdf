"""Session and phase entities.

A ``Session`` is an immutable snapshot of one pipeline run. Every
transition (start, complete, fail, ...) returns a new snapshot with
``updated_at`` refreshed; the orchestrator persists the latest one after
each step.

Phase order is fixed and encodes the dependency chain: each phase may use
the output of any phase before it.
"""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from sightline.errors import PhaseError

# Fixed phase order
PHASES: tuple[str, ...] = (
    "domain_research",
    "tech_stack",
    "architecture",
    "conventions",
    "feature_location",
    "impact_analysis",
    "change_planning",
)

# Output file written for each completed phase
PHASE_OUTPUT_FILES: dict[str, str] = {
    "domain_research": "00_domain_research.md",
    "tech_stack": "01_tech_stack.md",
    "architecture": "02_architecture.md",
    "conventions": "03_conventions.md",
    "feature_location": "04_feature_location.md",
    "impact_analysis": "05_impact_analysis.md",
    "change_planning": "FEATURE.md",
}

# Phases whose output may raise clarifying questions
QUESTION_PHASES = frozenset({"domain_research", "tech_stack", "architecture", "conventions"})


class SessionState(Enum):
    """Overall state of a session."""

    CREATED = "created"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class PhaseStatus(Enum):
    """Status of a single phase."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class InvalidTransitionError(ValueError):
    """Raised when a phase transition is not allowed from its current status."""

    def __init__(self, phase: str, current: PhaseStatus, action: str) -> None:
        self.phase = phase
        self.current = current
        super().__init__(f"Cannot {action} phase '{phase}' from status '{current.value}'")


def phase_title(phase: str) -> str:
    """Format a phase name for display ("tech_stack" -> "Tech stack")."""
    return phase.replace("_", " ").capitalize()


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class PhaseRecord:
    """Execution record of one phase.

    Attributes:
        status: Current status
        started_at: When the phase last started
        completed_at: When the phase completed
        duration_ms: Run time of the last attempt in milliseconds
        output_file: Output file name within the session directory (completed only)
        error: Failure details (failed only)
    """

    status: PhaseStatus = PhaseStatus.PENDING
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int | None = None
    output_file: str | None = None
    error: PhaseError | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "status": self.status.value,
            "started_at": _format_datetime(self.started_at),
            "completed_at": _format_datetime(self.completed_at),
            "duration_ms": self.duration_ms,
            "output_file": self.output_file,
            "error": self.error.to_dict() if self.error else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PhaseRecord":
        error = data.get("error")
        return cls(
            status=PhaseStatus(data.get("status", "pending")),
            started_at=_parse_datetime(data.get("started_at")),
            completed_at=_parse_datetime(data.get("completed_at")),
            duration_ms=data.get("duration_ms"),
            output_file=data.get("output_file"),
            error=PhaseError.from_dict(error) if isinstance(error, dict) else None,
        )


@dataclass(frozen=True)
class Session:
    """Immutable snapshot of one pipeline run.

    Attributes:
        id: Unique session identifier
        codebase_path: Path of the codebase under analysis
        task: Task description
        session_dir: Directory owned exclusively by this session
        state: Overall session state
        config: Resolved LLM options (provider, model, temperature, ...)
        phases: Phase records in pipeline order
        context: Output text of each completed phase
        clarifying_questions: Questions raised by early phases, in order
        summary: Final statistics, set once every phase has completed
        created_at: Creation timestamp (UTC)
        updated_at: Last transition timestamp (UTC)
    """

    id: str
    codebase_path: str
    task: str
    session_dir: Path
    state: SessionState = SessionState.CREATED
    config: dict[str, Any] = field(default_factory=dict)
    phases: dict[str, PhaseRecord] = field(
        default_factory=lambda: {phase: PhaseRecord() for phase in PHASES}
    )
    context: dict[str, str] = field(default_factory=dict)
    clarifying_questions: tuple[dict[str, Any], ...] = ()
    summary: dict[str, Any] | None = None
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def new(
        cls,
        session_id: str,
        codebase_path: str | Path,
        task: str,
        session_dir: Path,
        config: dict[str, Any] | None = None,
    ) -> "Session":
        """Create a session with every phase pending."""
        now = _now()
        return cls(
            id=session_id,
            codebase_path=str(codebase_path),
            task=task,
            session_dir=Path(session_dir),
            config=dict(config or {}),
            created_at=now,
            updated_at=now,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def phase(self, name: str) -> PhaseRecord:
        return self.phases[name]

    def first_incomplete_phase(self) -> str | None:
        """Get the first phase in order that has not completed."""
        for name in PHASES:
            if self.phases[name].status != PhaseStatus.COMPLETED:
                return name
        return None

    def completed_phases(self) -> list[str]:
        return [n for n in PHASES if self.phases[n].status == PhaseStatus.COMPLETED]

    def earlier_phases(self, name: str) -> tuple[str, ...]:
        """Get the phases that come before ``name`` in pipeline order."""
        return PHASES[: PHASES.index(name)]

    def output_path(self, name: str) -> Path | None:
        """Absolute path of a completed phase's output file."""
        record = self.phases[name]
        if record.output_file is None:
            return None
        return self.session_dir / record.output_file

    @property
    def is_complete(self) -> bool:
        return self.state == SessionState.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self.state == SessionState.FAILED

    @property
    def all_phases_completed(self) -> bool:
        return all(record.status == PhaseStatus.COMPLETED for record in self.phases.values())

    # =========================================================================
    # Transitions
    # =========================================================================

    def start_phase(self, name: str, now: datetime | None = None) -> "Session":
        """Mark a phase running.

        A failed phase, or one left running by an interrupted process, may
        be started again when a session is resumed.

        Raises:
            InvalidTransitionError: If the phase is completed or skipped
        """
        record = self.phases[name]
        if record.status not in (PhaseStatus.PENDING, PhaseStatus.FAILED, PhaseStatus.RUNNING):
            raise InvalidTransitionError(name, record.status, "start")

        now = now or _now()
        started = PhaseRecord(status=PhaseStatus.RUNNING, started_at=now)
        return self._with_phase(name, started, state=SessionState.RUNNING, now=now)

    def complete_phase(
        self,
        name: str,
        output: str,
        now: datetime | None = None,
    ) -> "Session":
        """Mark a running phase completed and record its output in the context.

        The session becomes completed when this was the last incomplete phase.

        Raises:
            InvalidTransitionError: If the phase is not running
        """
        record = self._require_running(name, "complete")
        now = now or _now()

        completed = replace(
            record,
            status=PhaseStatus.COMPLETED,
            completed_at=now,
            duration_ms=_elapsed_ms(record.started_at, now),
            output_file=PHASE_OUTPUT_FILES[name],
            error=None,
        )
        phases = {**self.phases, name: completed}
        state = (
            SessionState.COMPLETED
            if all(r.status == PhaseStatus.COMPLETED for r in phases.values())
            else SessionState.RUNNING
        )
        return replace(
            self,
            phases=phases,
            context={**self.context, name: output},
            state=state,
            updated_at=now,
        )

    def fail_phase(
        self,
        name: str,
        error: PhaseError,
        now: datetime | None = None,
    ) -> "Session":
        """Mark a running phase failed; the session fails with it.

        Raises:
            InvalidTransitionError: If the phase is not running
        """
        record = self._require_running(name, "fail")
        now = now or _now()

        failed = replace(
            record,
            status=PhaseStatus.FAILED,
            duration_ms=_elapsed_ms(record.started_at, now),
            output_file=None,
            error=error,
        )
        return self._with_phase(name, failed, state=SessionState.FAILED, now=now)

    def add_clarifying_questions(self, phase: str, questions: list[str]) -> "Session":
        """Append questions raised by a phase."""
        if not questions:
            return self
        now = _now()
        added = tuple(
            {"phase": phase, "question": q, "asked_at": now.isoformat(), "answer": None}
            for q in questions
        )
        return replace(
            self,
            clarifying_questions=self.clarifying_questions + added,
            updated_at=now,
        )

    def answer_question(self, index: int, answer: str) -> "Session":
        """Record the answer to a clarifying question.

        Raises:
            IndexError: If no question exists at ``index``
        """
        questions = list(self.clarifying_questions)
        questions[index] = {**questions[index], "answer": answer}
        return replace(self, clarifying_questions=tuple(questions), updated_at=_now())

    def with_summary(self, summary: dict[str, Any]) -> "Session":
        """Attach the final summary.

        Raises:
            ValueError: If not every phase has completed
        """
        if not self.all_phases_completed:
            raise ValueError("Summary can only be set once every phase has completed")
        return replace(self, summary=dict(summary), updated_at=_now())

    def with_context(self, context: dict[str, str]) -> "Session":
        return replace(self, context=dict(context))

    def with_config(self, config: dict[str, Any]) -> "Session":
        """Record the LLM options used from now on."""
        return replace(self, config=dict(config), updated_at=_now())

    def _require_running(self, name: str, action: str) -> PhaseRecord:
        record = self.phases[name]
        if record.status != PhaseStatus.RUNNING:
            raise InvalidTransitionError(name, record.status, action)
        return record

    def _with_phase(
        self,
        name: str,
        record: PhaseRecord,
        state: SessionState,
        now: datetime,
    ) -> "Session":
        return replace(
            self,
            phases={**self.phases, name: record},
            state=state,
            updated_at=now,
        )

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "codebase_path": self.codebase_path,
            "task": self.task,
            "state": self.state.value,
            "created_at": _format_datetime(self.created_at),
            "updated_at": _format_datetime(self.updated_at),
            "config": self.config,
            "phases": {name: self.phases[name].to_dict() for name in PHASES},
            "context": {name: self.context[name] for name in PHASES if name in self.context},
            "clarifying_questions": list(self.clarifying_questions),
            "summary": self.summary,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], session_dir: Path) -> "Session":
        """Create a Session from its serialized form.

        Phases missing from ``data`` load as pending; unknown phase names
        are ignored.
        """
        raw_phases = data.get("phases") or {}
        phases = {
            name: PhaseRecord.from_dict(raw_phases[name]) if name in raw_phases else PhaseRecord()
            for name in PHASES
        }
        created_at = _parse_datetime(data.get("created_at")) or _now()

        return cls(
            id=data["id"],
            codebase_path=data["codebase_path"],
            task=data["task"],
            session_dir=Path(session_dir),
            state=SessionState(data.get("state", "created")),
            config=data.get("config") or {},
            phases=phases,
            context=dict(data.get("context") or {}),
            clarifying_questions=tuple(data.get("clarifying_questions") or ()),
            summary=data.get("summary"),
            created_at=created_at,
            updated_at=_parse_datetime(data.get("updated_at")) or created_at,
        )


def _elapsed_ms(started_at: datetime | None, now: datetime) -> int:
    if started_at is None:
        return 0
    return max(0, int((now - started_at).total_seconds() * 1000))


def _format_datetime(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt
