"""Unit tests for the Session and PhaseRecord entities."""

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from sightline.errors import ErrorKind, LLMFailure, PhaseError
from sightline.models.session import (
    PHASE_OUTPUT_FILES,
    PHASES,
    InvalidTransitionError,
    PhaseRecord,
    PhaseStatus,
    Session,
    SessionState,
    phase_title,
)

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def session(tmp_path: Path) -> Session:
    """Return a fresh session."""
    return Session.new("2026-03-01_add-export_0001", "/srv/app", "Add export", tmp_path)


def _complete(session: Session, phase: str, output: str = "out") -> Session:
    return session.start_phase(phase).complete_phase(phase, output)


def _error(phase: str) -> PhaseError:
    return PhaseError(phase=phase, failure=LLMFailure(ErrorKind.RATE_LIMITED), occurred_at=T0)


class TestNewSession:
    """Tests for session creation."""

    def test_all_phases_pending_in_order(self, session: Session) -> None:
        """Test a new session has every phase pending in fixed order."""
        assert tuple(session.phases) == PHASES
        assert all(r.status == PhaseStatus.PENDING for r in session.phases.values())
        assert session.state == SessionState.CREATED
        assert session.first_incomplete_phase() == "domain_research"

    def test_timestamps_are_utc(self, session: Session) -> None:
        """Test creation timestamps are timezone-aware and equal."""
        assert session.created_at.tzinfo is not None
        assert session.created_at == session.updated_at

    def test_output_file_names(self) -> None:
        """Test numbered output files with FEATURE.md last."""
        assert [PHASE_OUTPUT_FILES[p] for p in PHASES] == [
            "00_domain_research.md",
            "01_tech_stack.md",
            "02_architecture.md",
            "03_conventions.md",
            "04_feature_location.md",
            "05_impact_analysis.md",
            "FEATURE.md",
        ]

    def test_phase_title(self) -> None:
        """Test display titles."""
        assert phase_title("impact_analysis") == "Impact analysis"


class TestTransitions:
    """Tests for phase transitions."""

    def test_start_marks_running(self, session: Session) -> None:
        """Test starting a phase sets status, start time and session state."""
        started = session.start_phase("domain_research", now=T0)

        record = started.phase("domain_research")
        assert record.status == PhaseStatus.RUNNING
        assert record.started_at == T0
        assert record.completed_at is None
        assert started.state == SessionState.RUNNING
        assert started.updated_at == T0

    def test_transitions_do_not_mutate(self, session: Session) -> None:
        """Test the original snapshot is unchanged."""
        session.start_phase("domain_research")

        assert session.phase("domain_research").status == PhaseStatus.PENDING

    def test_complete_records_output(self, session: Session) -> None:
        """Test completion sets output file, duration and context."""
        running = session.start_phase("domain_research", now=T0)

        done = running.complete_phase("domain_research", "# Domain", now=T0 + timedelta(seconds=2))

        record = done.phase("domain_research")
        assert record.status == PhaseStatus.COMPLETED
        assert record.output_file == "00_domain_research.md"
        assert record.completed_at == T0 + timedelta(seconds=2)
        assert record.duration_ms == 2000
        assert done.context == {"domain_research": "# Domain"}
        assert done.state == SessionState.RUNNING

    def test_fail_records_error(self, session: Session) -> None:
        """Test failure sets error, duration and fails the session."""
        running = session.start_phase("tech_stack", now=T0)

        later = T0 + timedelta(seconds=1)
        failed = running.fail_phase("tech_stack", _error("tech_stack"), now=later)

        record = failed.phase("tech_stack")
        assert record.status == PhaseStatus.FAILED
        assert record.error == _error("tech_stack")
        assert record.output_file is None
        assert record.duration_ms == 1000
        assert failed.state == SessionState.FAILED
        assert failed.is_failed

    def test_failed_phase_can_restart(self, session: Session) -> None:
        """Test a failed phase may be started again and loses its error."""
        failed = session.start_phase("tech_stack").fail_phase("tech_stack", _error("tech_stack"))

        restarted = failed.start_phase("tech_stack")

        assert restarted.phase("tech_stack").status == PhaseStatus.RUNNING
        assert restarted.phase("tech_stack").error is None
        assert restarted.state == SessionState.RUNNING

    def test_completed_phase_cannot_restart(self, session: Session) -> None:
        """Test completed phases are final."""
        done = _complete(session, "domain_research")

        with pytest.raises(InvalidTransitionError, match="from status 'completed'"):
            done.start_phase("domain_research")

    @pytest.mark.parametrize("action", ["complete", "fail"])
    def test_pending_phase_cannot_finish(self, session: Session, action: str) -> None:
        """Test only running phases complete or fail."""
        with pytest.raises(InvalidTransitionError):
            if action == "complete":
                session.complete_phase("domain_research", "x")
            else:
                session.fail_phase("domain_research", _error("domain_research"))

    def test_completed_iff_every_phase_completed(self, session: Session) -> None:
        """Test the session completes only with the last phase."""
        for phase in PHASES[:-1]:
            session = _complete(session, phase)
            assert session.state == SessionState.RUNNING

        session = _complete(session, PHASES[-1])

        assert session.state == SessionState.COMPLETED
        assert session.is_complete
        assert session.all_phases_completed
        assert session.first_incomplete_phase() is None
        assert session.completed_phases() == list(PHASES)

    def test_context_grows_monotonically(self, session: Session) -> None:
        """Test completing phases only adds context entries."""
        session = _complete(session, "domain_research", "A")
        session = _complete(session, "tech_stack", "B")

        assert session.context == {"domain_research": "A", "tech_stack": "B"}


class TestQuestionsAndSummary:
    """Tests for clarifying questions and the summary."""

    def test_add_and_answer_questions(self, session: Session) -> None:
        """Test questions are appended in order and can be answered."""
        session = session.add_clarifying_questions("domain_research", ["Q1?", "Q2?"])
        session = session.add_clarifying_questions("tech_stack", ["Q3?"])

        answered = session.answer_question(1, "Yes")

        assert [q["question"] for q in answered.clarifying_questions] == ["Q1?", "Q2?", "Q3?"]
        assert answered.clarifying_questions[1]["answer"] == "Yes"
        assert answered.clarifying_questions[0]["answer"] is None
        assert answered.clarifying_questions[2]["phase"] == "tech_stack"

    def test_no_questions_is_noop(self, session: Session) -> None:
        """Test adding nothing returns the same snapshot."""
        assert session.add_clarifying_questions("domain_research", []) is session

    def test_answer_unknown_question_raises(self, session: Session) -> None:
        """Test answering a missing question raises IndexError."""
        with pytest.raises(IndexError):
            session.answer_question(0, "x")

    def test_summary_requires_completion(self, session: Session) -> None:
        """Test the summary cannot be set early."""
        with pytest.raises(ValueError):
            session.with_summary({"tickets_count": 0})

    def test_summary_after_completion(self, session: Session) -> None:
        """Test the summary is attached once every phase completed."""
        for phase in PHASES:
            session = _complete(session, phase)

        with_summary = session.with_summary({"tickets_count": 3})

        assert with_summary.summary == {"tickets_count": 3}

    def test_with_config(self, session: Session) -> None:
        """Test replacing the LLM options leaves the phases alone."""
        session = _complete(session, "domain_research")

        updated = session.with_config({"provider": "claude", "model": None})

        assert updated.config == {"provider": "claude", "model": None}
        assert updated.phases == session.phases
        assert session.config == {}


class TestSerialization:
    """Tests for to_dict / from_dict."""

    def test_round_trip(self, session: Session, tmp_path: Path) -> None:
        """Test a session with every kind of record survives serialization."""
        session = _complete(session, "domain_research", "DOMAIN")
        session = session.add_clarifying_questions("domain_research", ["Why?"])
        session = session.start_phase("tech_stack").fail_phase("tech_stack", _error("tech_stack"))

        restored = Session.from_dict(session.to_dict(), tmp_path)

        assert restored == session

    def test_enums_serialized_as_values(self, session: Session) -> None:
        """Test states and statuses are plain strings."""
        data = session.start_phase("domain_research").to_dict()

        assert data["state"] == "running"
        assert data["phases"]["domain_research"]["status"] == "running"
        assert list(data["phases"]) == list(PHASES)

    def test_missing_phases_load_as_pending(self, tmp_path: Path) -> None:
        """Test older files without some phases still load."""
        data = {
            "id": "s",
            "codebase_path": "/app",
            "task": "t",
            "phases": {
                "domain_research": {"status": "completed", "output_file": "00_domain_research.md"},
            },
        }

        session = Session.from_dict(data, tmp_path)

        assert session.phase("domain_research").status == PhaseStatus.COMPLETED
        assert session.phase("change_planning").status == PhaseStatus.PENDING
        assert session.state == SessionState.CREATED

    def test_phase_record_round_trip(self) -> None:
        """Test PhaseRecord serialization."""
        record = PhaseRecord(
            status=PhaseStatus.COMPLETED,
            started_at=T0,
            completed_at=T0 + timedelta(seconds=5),
            duration_ms=5000,
            output_file="01_tech_stack.md",
        )

        assert PhaseRecord.from_dict(record.to_dict()) == record
