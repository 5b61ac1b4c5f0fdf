"""Phase orchestrator.

Runs the fixed phase sequence for a session:

    domain_research -> tech_stack -> architecture -> conventions
        -> feature_location -> impact_analysis -> change_planning

Each phase is prompted with the task, the codebase path and every earlier
phase's output. The full session snapshot is persisted after every
transition, before the next phase begins. Completed phases are never re-run,
so running a session again resumes it where it stopped. The first failed
phase halts the run; earlier progress stays on disk.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from sightline.errors import PhaseError
from sightline.llm.client import LLMClient
from sightline.llm.prompts import build_phase_prompt
from sightline.models.llm_config import ChatOptions
from sightline.models.session import (
    PHASE_OUTPUT_FILES,
    PHASES,
    QUESTION_PHASES,
    PhaseStatus,
    Session,
    phase_title,
)
from sightline.result import Err
from sightline.session_store import SessionStore
from sightline.tickets.models import TicketsData
from sightline.tickets.parser import parse_tickets, summarize_plan
from sightline.tickets.store import save_tickets

logger = logging.getLogger(__name__)

# Progress events passed to the on_progress callback
PHASE_STARTED = "phase_started"
PHASE_COMPLETED = "phase_completed"
PHASE_FAILED = "phase_failed"
SESSION_COMPLETED = "session_completed"

ProgressCallback = Callable[[str, str | None, Session], None]

QUESTIONS_SECTION_PATTERN = re.compile(
    r"^##\s+Clarifying Questions\s*\n(.*?)(?=^#{1,2}\s|\Z)",
    re.IGNORECASE | re.MULTILINE | re.DOTALL,
)
QUESTION_LINE_PATTERN = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+(.+?)\s*$")


def extract_clarifying_questions(text: str) -> list[str]:
    """Get the bullet items of a ``## Clarifying Questions`` section.

    Args:
        text: Phase output

    Returns:
        Questions in order (empty when the section is absent)
    """
    match = QUESTIONS_SECTION_PATTERN.search(text)
    if not match:
        return []

    questions = []
    for line in match.group(1).splitlines():
        item = QUESTION_LINE_PATTERN.match(line)
        if item:
            questions.append(item.group(1))
    return questions


@dataclass
class PipelineOptions:
    """Options for controlling pipeline execution.

    Attributes:
        chat: Per-call LLM overrides (provider, model, temperature, ...)
        verbose_llm: Log full prompts and responses at debug level
    """

    chat: ChatOptions | None = None
    verbose_llm: bool = False


class PhaseOrchestrator:
    """Runs a session's phases in order, persisting after every step.

    Usage:
        orchestrator = PhaseOrchestrator(client, store, on_progress=print_event)
        session = orchestrator.run(store.load(session_dir))
    """

    def __init__(
        self,
        client: LLMClient,
        store: SessionStore,
        options: PipelineOptions | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            client: LLM client used for every phase
            store: Session persistence
            options: Pipeline execution options
            on_progress: Called as ``on_progress(event, phase, session)``
        """
        self.client = client
        self.store = store
        self.options = options or PipelineOptions()
        self.on_progress = on_progress

    def run(self, session: Session) -> Session:
        """Run every phase that has not completed yet.

        Args:
            session: Session to run or resume

        Returns:
            The latest session snapshot (completed or failed)

        Raises:
            OSError: If a session file cannot be written
        """
        if session.is_complete and session.summary is not None:
            logger.info("Session %s is already complete", session.id)
            return session

        logger.info("Running session %s (%s)", session.id, session.task)

        for phase in PHASES:
            if session.phase(phase).status == PhaseStatus.COMPLETED:
                logger.debug("Skipping completed phase %s", phase)
                continue

            session = self._run_phase(session, phase)
            if session.is_failed:
                logger.error(
                    "Session %s halted at phase %s",
                    session.id,
                    phase,
                )
                return session

        return self._finalize(session)

    def _run_phase(self, session: Session, phase: str) -> Session:
        """Run one phase and persist its outcome."""
        if session.phase(phase).status == PhaseStatus.RUNNING:
            logger.warning("Restarting interrupted phase %s", phase)

        session = session.start_phase(phase)
        self.store.save(session)
        self._notify(PHASE_STARTED, phase, session)
        logger.info("Phase started: %s", phase_title(phase))

        prompt = build_phase_prompt(phase, session.task, session.codebase_path, session.context)
        if self.options.verbose_llm:
            logger.debug("Prompt for %s:\n%s", phase, prompt)

        result = self.client.chat(prompt, self.options.chat)

        if isinstance(result, Err):
            error = PhaseError(phase=phase, failure=result.error)
            session = session.fail_phase(phase, error, now=error.occurred_at)
            self.store.save(session)
            self._notify(PHASE_FAILED, phase, session)
            logger.error("%s", error.message)
            return session

        text = result.value
        if self.options.verbose_llm:
            logger.debug("Response for %s:\n%s", phase, text)

        self.store.write_output(session, PHASE_OUTPUT_FILES[phase], text)
        session = session.complete_phase(phase, text)

        if phase in QUESTION_PHASES:
            session = session.add_clarifying_questions(phase, extract_clarifying_questions(text))

        self.store.save(session)
        self._notify(PHASE_COMPLETED, phase, session)
        logger.info(
            "Phase completed: %s (%d ms)",
            phase_title(phase),
            session.phase(phase).duration_ms or 0,
        )
        return session

    def _finalize(self, session: Session) -> Session:
        """Extract tickets from the plan and attach the summary."""
        plan = session.context.get("change_planning", "")
        tickets = parse_tickets(plan)
        save_tickets(
            session.session_dir,
            TicketsData(session_id=session.id, task_description=session.task, tickets=tickets),
        )

        session = session.with_summary(summarize_plan(plan, tickets))
        self.store.save(session)
        self._notify(SESSION_COMPLETED, None, session)

        logger.info(
            "Session %s complete: %d tickets, %d points",
            session.id,
            session.summary["tickets_count"],
            session.summary["total_points"],
        )
        return session

    def _notify(self, event: str, phase: str | None, session: Session) -> None:
        if self.on_progress is not None:
            self.on_progress(event, phase, session)
