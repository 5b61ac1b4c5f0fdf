"""sightline CLI interface.

Commands:
- analyze: Create a session and run every analysis phase
- resume: Continue a stopped or failed session
- status: Show a session's phases and questions
- sessions: List sessions in the sessions directory
- answer: Record the answer to a clarifying question
- providers: List LLM providers and whether they are configured
- check: Validate prerequisites before analysis
- init: Write a default configuration file
- tickets: Export a completed session's tickets
- ticket: Start, complete or reset a single ticket

Global options:
- --config: Path to configuration file
- --verbose: Enable verbose output with timestamps
- --quiet: Suppress info messages
- --ci: JSON log lines
- --version: Show version and exit
"""

import json
import logging
from pathlib import Path
from typing import Annotated

import typer

from sightline import __version__
from sightline.config import SightlineConfig, create_default_config, load_config
from sightline.errors import ConfigError, SessionCorruptError, SessionNotFoundError
from sightline.llm.client import create_client
from sightline.llm.registry import get_provider_class, provider_names
from sightline.llm.transport import HttpxTransport
from sightline.models.llm_config import PROVIDER_ENV_VARS, LLMSettings
from sightline.models.session import PHASES, PhaseStatus, Session, phase_title
from sightline.pipeline import (
    PHASE_COMPLETED,
    PHASE_FAILED,
    PHASE_STARTED,
    SESSION_COMPLETED,
    PhaseOrchestrator,
    PipelineOptions,
)
from sightline.result import Err
from sightline.session_store import SessionStore
from sightline.tickets.exporters import EXPORTERS, default_filename, export_tickets, export_to_file
from sightline.tickets.models import TicketStatus
from sightline.tickets.store import load_tickets, save_tickets
from sightline.utils.logging import configure_from_cli
from sightline.utils.preflight import PreflightChecker

# Create Typer app
app = typer.Typer(
    name="sightline",
    help="Multi-phase LLM analysis of a codebase for a planned change",
    add_completion=False,
    no_args_is_help=True,
)

# Global state
_config: SightlineConfig | None = None
_verbose = False
_logger = logging.getLogger(__name__)

STATUS_ICONS = {
    PhaseStatus.PENDING: "⏳",
    PhaseStatus.RUNNING: "🔄",
    PhaseStatus.COMPLETED: "✅",
    PhaseStatus.FAILED: "❌",
    PhaseStatus.SKIPPED: "⏭️",
}

TICKET_ACTIONS = ("start", "done", "reset")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"sightline {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output with timestamps, prompts and responses",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress info messages (warnings and errors only)",
        ),
    ] = False,
    ci: Annotated[
        bool,
        typer.Option(
            "--ci",
            help="Enable CI mode with JSON log output",
        ),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """sightline - understand a codebase before you change it.

    Runs domain research, tech stack, architecture, conventions, feature
    location, impact analysis and change planning phases against an LLM,
    saving every step so an interrupted run can be resumed.
    """
    global _config, _verbose

    configure_from_cli(verbose=verbose, quiet=quiet, ci=ci)
    _verbose = verbose

    try:
        _config = load_config(config_path=config)
        if _config.config_path:
            _logger.debug(f"Loaded config from: {_config.config_path}")
    except FileNotFoundError as e:
        _logger.error(str(e))
        raise typer.Exit(1)
    except ConfigError as e:
        _logger.error(f"Failed to load config: {e}")
        raise typer.Exit(1)


def _get_config() -> SightlineConfig:
    return _config or SightlineConfig()


def _llm_settings(provider: str | None = None, model: str | None = None) -> LLMSettings:
    try:
        return _get_config().llm_settings(provider=provider, model=model)
    except ConfigError as e:
        _logger.error(str(e))
        raise typer.Exit(1)


def _load_session(store: SessionStore, session_dir: Path) -> Session:
    try:
        return store.load(session_dir)
    except (SessionNotFoundError, SessionCorruptError) as e:
        _logger.error(str(e))
        raise typer.Exit(1)


def _print_progress(event: str, phase: str | None, session: Session) -> None:
    """Echo orchestrator events to the terminal."""
    if event == PHASE_STARTED and phase is not None:
        position = PHASES.index(phase) + 1
        typer.echo(f"▶  [{position}/{len(PHASES)}] {phase_title(phase)}...")
    elif event == PHASE_COMPLETED and phase is not None:
        record = session.phase(phase)
        typer.echo(f"   ✅ {record.output_file} ({(record.duration_ms or 0) / 1000:.1f}s)")
    elif event == PHASE_FAILED and phase is not None:
        record = session.phase(phase)
        message = record.error.message if record.error else "unknown error"
        typer.echo(f"   ❌ {message}")
    elif event == SESSION_COMPLETED:
        typer.echo(f"\n✅ Analysis complete: {session.session_dir}")


def _run_session(store: SessionStore, session: Session, settings: LLMSettings) -> Session:
    """Run a session to completion or first failure and report the outcome."""
    options = PipelineOptions(verbose_llm=_verbose)

    with HttpxTransport() as transport:
        client = create_client(settings, transport=transport)
        orchestrator = PhaseOrchestrator(client, store, options, on_progress=_print_progress)
        session = orchestrator.run(session)

    if session.is_failed:
        typer.echo(f"\nSession stopped. Resume with: sightline resume {session.session_dir}")
        raise typer.Exit(1)

    _print_summary(session)
    return session


def _print_summary(session: Session) -> None:
    if not session.summary:
        return
    summary = session.summary
    typer.echo(
        f"   {summary['tickets_count']} tickets, {summary['total_points']} points, "
        f"{summary['files_to_create']} files to create, "
        f"{summary['files_to_modify']} files to modify, "
        f"{summary['risks_identified']} risks"
    )
    typer.echo(f"   Plan: {session.session_dir / 'FEATURE.md'}")


def _check_prerequisites(
    codebase_path: Path | None,
    settings: LLMSettings,
    sessions_dir: Path,
) -> None:
    """Run preflight checks, exiting on any required failure."""
    result = PreflightChecker().check_all(codebase_path, settings, sessions_dir)

    for warning in result.warnings:
        _logger.debug(f"Preflight: {warning}")

    if not result.success:
        _logger.error("Preflight checks failed:")
        for error in result.errors:
            _logger.error(f"  {error}")
        raise typer.Exit(1)


# =============================================================================
# analyze / resume
# =============================================================================


@app.command()
def analyze(
    codebase: Annotated[
        Path,
        typer.Argument(
            help="Path to the codebase to analyze",
            exists=True,
            file_okay=False,
        ),
    ],
    task: Annotated[
        str,
        typer.Argument(help="Description of the change you plan to make"),
    ],
    provider: Annotated[
        str | None,
        typer.Option("--provider", "-p", help="LLM provider: gemini, claude, openai"),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="Model identifier (provider default if omitted)"),
    ] = None,
    name: Annotated[
        str | None,
        typer.Option("--name", "-n", help="Session name (generated from the task if omitted)"),
    ] = None,
) -> None:
    """Create a new session and run every analysis phase.

    Exit codes:
        0: All phases completed
        1: A phase failed or prerequisites are missing
    """
    if not task.strip():
        _logger.error("Task description cannot be empty")
        raise typer.Exit(1)

    settings = _llm_settings(provider, model)
    sessions_dir = _get_config().output.sessions_path
    _check_prerequisites(codebase, settings, sessions_dir)

    store = SessionStore(sessions_dir)
    try:
        session = store.create(codebase, task, config=settings.to_dict(), name=name)
    except FileExistsError as e:
        _logger.error(f"Cannot create session: {e}")
        raise typer.Exit(1)

    typer.echo(f"📁 Session {session.id}")
    typer.echo(f"   {session.session_dir}\n")
    _run_session(store, session, settings)


@app.command()
def resume(
    session_dir: Annotated[
        Path,
        typer.Argument(help="Session directory to continue", file_okay=False),
    ],
    provider: Annotated[
        str | None,
        typer.Option("--provider", "-p", help="Switch to another LLM provider"),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="Model identifier"),
    ] = None,
) -> None:
    """Continue a session from its first incomplete phase.

    Completed phases are never re-run. Without --provider the session's
    recorded provider and model are used.
    """
    store = SessionStore(session_dir.expanduser().parent)
    session = _load_session(store, session_dir)

    if session.is_complete and session.summary is not None:
        typer.echo(f"✅ Session {session.id} is already complete")
        _print_summary(session)
        return

    if provider is None:
        provider = session.config.get("provider")
        model = model or session.config.get("model")

    settings = _llm_settings(provider, model)
    _check_prerequisites(Path(session.codebase_path), settings, store.sessions_dir)

    next_phase = session.first_incomplete_phase()
    if next_phase is not None:
        typer.echo(f"📁 Resuming {session.id} at {phase_title(next_phase)}\n")
    session = session.with_config(settings.to_dict())
    store.save(session)
    _run_session(store, session, settings)


# =============================================================================
# status / sessions / answer
# =============================================================================


@app.command()
def status(
    session_dir: Annotated[
        Path,
        typer.Argument(help="Session directory", file_okay=False),
    ],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output status as JSON"),
    ] = False,
) -> None:
    """Show the phases, questions and summary of a session."""
    store = SessionStore(session_dir.expanduser().parent)
    session = _load_session(store, session_dir)

    if json_output:
        data = session.to_dict()
        data.pop("context", None)
        typer.echo(json.dumps(data, indent=2))
        return

    typer.echo(f"\n📁 {session.id} [{session.state.value}]")
    typer.echo(f"   Task: {session.task}")
    typer.echo(f"   Codebase: {session.codebase_path}\n")

    for name in PHASES:
        record = session.phase(name)
        icon = STATUS_ICONS[record.status]
        detail = ""
        if record.status == PhaseStatus.COMPLETED:
            detail = f" -> {record.output_file}"
        elif record.status == PhaseStatus.FAILED and record.error is not None:
            detail = f" ({record.error.failure.describe()})"
        typer.echo(f"  {icon} {phase_title(name)}{detail}")

    if session.clarifying_questions:
        typer.echo("\nClarifying questions:")
        for index, question in enumerate(session.clarifying_questions, start=1):
            typer.echo(f"  {index}. {question['question']}")
            if question.get("answer"):
                typer.echo(f"     └─ {question['answer']}")

    if session.summary:
        typer.echo()
        _print_summary(session)


@app.command()
def sessions(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output sessions as JSON"),
    ] = False,
) -> None:
    """List sessions, newest first."""
    store = SessionStore(_get_config().output.sessions_path)
    found = store.list_sessions()

    if json_output:
        rows = [
            {
                "id": s.id,
                "state": s.state.value,
                "task": s.task,
                "completed_phases": len(s.completed_phases()),
                "session_dir": str(s.session_dir),
            }
            for s in found
        ]
        typer.echo(json.dumps(rows, indent=2))
        return

    if not found:
        typer.echo(f"No sessions in {store.sessions_dir}")
        return

    for session in found:
        progress = f"{len(session.completed_phases())}/{len(PHASES)}"
        typer.echo(f"  {session.id}  [{session.state.value} {progress}]  {session.task}")


@app.command()
def answer(
    session_dir: Annotated[
        Path,
        typer.Argument(help="Session directory", file_okay=False),
    ],
    number: Annotated[
        int,
        typer.Argument(help="Question number as shown by 'sightline status'", min=1),
    ],
    text: Annotated[
        str,
        typer.Argument(help="Your answer"),
    ],
) -> None:
    """Record the answer to a clarifying question."""
    store = SessionStore(session_dir.expanduser().parent)
    session = _load_session(store, session_dir)

    if number > len(session.clarifying_questions):
        _logger.error(f"No question #{number} (session has {len(session.clarifying_questions)})")
        raise typer.Exit(1)

    session = session.answer_question(number - 1, text)
    store.save(session)
    typer.echo(f"✅ Answer recorded for question #{number}")


# =============================================================================
# providers / check (preflight)
# =============================================================================


@app.command()
def providers() -> None:
    """List LLM providers and whether an API key is configured."""
    settings = _llm_settings()

    for name in provider_names():
        provider_class = get_provider_class(name)
        configured = settings.api_key_for(name) is not None
        icon = "✅" if configured else "⚪"
        default = " (default)" if name == settings.provider else ""
        model = settings.model_for(name) or (provider_class.default_model if provider_class else "")
        typer.echo(f"  {icon} {name}{default}  model: {model}  key: {PROVIDER_ENV_VARS[name]}")


@app.command()
def check(
    codebase: Annotated[
        Path | None,
        typer.Argument(help="Codebase path to validate", file_okay=False),
    ] = None,
    provider: Annotated[
        str | None,
        typer.Option("--provider", "-p", help="LLM provider to validate"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results as JSON",
        ),
    ] = False,
) -> None:
    """Validate prerequisites without contacting any provider.

    Exit codes:
        0: All checks passed
        1: A required check failed
        2: Only optional checks failed (warnings)
    """
    settings = _llm_settings(provider)
    checker = PreflightChecker()
    result = checker.check_all(codebase, settings, _get_config().output.sessions_path)

    if json_output:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        typer.echo("\n🔍 Preflight Check Results\n")

        for check_result in result.checks:
            icon = "✅" if check_result.passed else "❌"
            required_str = " [required]" if check_result.required else " [optional]"
            typer.echo(f"  {icon} {check_result.name}{required_str}")
            typer.echo(f"     └─ {check_result.message}")

        typer.echo()

    if result.errors:
        if not json_output:
            typer.echo("❌ Preflight check FAILED")
        raise typer.Exit(1)
    elif result.warnings:
        if not json_output:
            typer.echo("⚠️  Preflight check passed with WARNINGS")
        raise typer.Exit(2)
    elif not json_output:
        typer.echo("✅ All preflight checks passed")


# =============================================================================
# init command
# =============================================================================


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            help="Overwrite existing config",
        ),
    ] = False,
) -> None:
    """Write a default configuration to ./.sightline/config.yaml."""
    config_dir = Path(".sightline")
    config_file = config_dir / "config.yaml"

    if config_file.exists() and not force:
        _logger.error(f"Config already exists: {config_file}")
        _logger.info("Use --force to overwrite")
        raise typer.Exit(1)

    config_dir.mkdir(exist_ok=True)
    config_file.write_text(create_default_config(), encoding="utf-8")

    typer.echo("✅ sightline configuration initialized")
    typer.echo(f"   Config: {config_file}")


# =============================================================================
# tickets
# =============================================================================


def _parse_status(value: str | None) -> TicketStatus | None:
    if value is None:
        return None
    try:
        return TicketStatus(value.lower())
    except ValueError:
        choices = ", ".join(s.value for s in TicketStatus)
        _logger.error(f"Invalid status: {value}. Use one of: {choices}")
        raise typer.Exit(1)


@app.command()
def tickets(
    session_dir: Annotated[
        Path,
        typer.Argument(help="Session directory", file_okay=False),
    ],
    format: Annotated[
        str,
        typer.Option("--format", "-f", help=f"Export format: {', '.join(EXPORTERS)}"),
    ] = "json",
    status: Annotated[
        str | None,
        typer.Option("--status", "-s", help="Only export tickets with this status"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Output file or directory (stdout if omitted)"),
    ] = None,
) -> None:
    """Export the tickets of a completed session."""
    status_filter = _parse_status(status)

    try:
        data = load_tickets(session_dir.expanduser())
    except FileNotFoundError:
        _logger.error(f"No tickets in {session_dir}. Has the session completed?")
        raise typer.Exit(1)
    except SessionCorruptError as e:
        _logger.error(str(e))
        raise typer.Exit(1)

    if output is None:
        result = export_tickets(data, format, status_filter)
        if isinstance(result, Err):
            _logger.error(f"Export failed: {result.error}")
            raise typer.Exit(1)
        typer.echo(result.value)
        return

    if output.is_dir():
        output = output / default_filename(data.session_id, format)

    written = export_to_file(data, output, format, status_filter)
    if isinstance(written, Err):
        _logger.error(f"Export failed: {written.error}")
        raise typer.Exit(1)
    typer.echo(f"📄 Tickets written to: {written.value}")


@app.command()
def ticket(
    session_dir: Annotated[
        Path,
        typer.Argument(help="Session directory", file_okay=False),
    ],
    ticket_id: Annotated[
        str,
        typer.Argument(help="Ticket number"),
    ],
    action: Annotated[
        str,
        typer.Argument(help="start, done or reset"),
    ],
) -> None:
    """Move a ticket through pending, in_progress and completed."""
    if action not in TICKET_ACTIONS:
        _logger.error(f"Invalid action: {action}. Use one of: {', '.join(TICKET_ACTIONS)}")
        raise typer.Exit(1)

    session_dir = session_dir.expanduser()
    try:
        data = load_tickets(session_dir)
    except FileNotFoundError:
        _logger.error(f"No tickets in {session_dir}. Has the session completed?")
        raise typer.Exit(1)
    except SessionCorruptError as e:
        _logger.error(str(e))
        raise typer.Exit(1)

    current = data.get(ticket_id.lstrip("#"))
    if current is None:
        _logger.error(f"Ticket #{ticket_id} not found")
        raise typer.Exit(1)

    if action == "start":
        updated = current.start()
    elif action == "done":
        updated = current.complete()
    else:
        updated = current.reset()

    data.tickets = [updated if t.id == current.id else t for t in data.tickets]
    save_tickets(session_dir, data)
    typer.echo(f"#{updated.id} {updated.title}: {updated.status.value}")


if __name__ == "__main__":
    app()
