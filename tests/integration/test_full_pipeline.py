"""Integration tests for a full analysis session.

Every layer is real (client, providers, response handling, orchestrator,
session store, ticket extraction) except the network, which is replaced
by a recording transport.
"""

import json
from pathlib import Path

from conftest import FEATURE_MD, RecordingTransport, gemini_ok, http_status, transport_error
from sightline.llm.client import create_client
from sightline.models.llm_config import ChatOptions, LLMSettings
from sightline.models.session import PHASES, PhaseStatus, SessionState
from sightline.pipeline import PhaseOrchestrator, PipelineOptions
from sightline.session_store import SessionStore
from sightline.tickets.store import load_tickets


def _orchestrator(
    settings: LLMSettings,
    transport: RecordingTransport,
    store: SessionStore,
    options: PipelineOptions | None = None,
) -> PhaseOrchestrator:
    return PhaseOrchestrator(create_client(settings, transport=transport), store, options)


class TestCompleteSession:
    """A session that runs start to finish."""

    def test_outputs_tickets_and_summary(
        self,
        settings: LLMSettings,
        store: SessionStore,
        codebase_dir: Path,
    ) -> None:
        """Test every phase output, tickets.json and the summary are written."""
        transport = RecordingTransport().queue(
            *[gemini_ok(f"# {phase}\n\nFindings.") for phase in PHASES[:-1]],
            gemini_ok(FEATURE_MD),
        )
        session = store.create(codebase_dir, "Add CSV export", settings.to_dict())

        session = _orchestrator(settings, transport, store).run(session)

        assert session.state == SessionState.COMPLETED
        assert len(transport.calls) == len(PHASES)
        assert sorted(p.name for p in session.session_dir.iterdir()) == [
            "00_domain_research.md",
            "01_tech_stack.md",
            "02_architecture.md",
            "03_conventions.md",
            "04_feature_location.md",
            "05_impact_analysis.md",
            "FEATURE.md",
            "session.json",
            "tickets.json",
        ]
        assert session.summary == {
            "tickets_count": 2,
            "total_points": 5,
            "files_to_create": 2,
            "files_to_modify": 2,
            "risks_identified": 2,
        }

        tickets = load_tickets(session.session_dir)
        assert tickets.session_id == session.id
        assert [t.title for t in tickets.tickets] == ["Add CSV serializer", "Add export button"]

    def test_session_file_is_plain_json(
        self,
        settings: LLMSettings,
        store: SessionStore,
        codebase_dir: Path,
    ) -> None:
        """Test session.json holds the state, phases and config without keys."""
        transport = RecordingTransport(default=gemini_ok(FEATURE_MD))
        session = store.create(codebase_dir, "Add CSV export", settings.to_dict())

        _orchestrator(settings, transport, store).run(session)

        data = json.loads((session.session_dir / "session.json").read_text())
        assert data["state"] == "completed"
        assert data["config"]["provider"] == "gemini"
        assert all(p["status"] == "completed" for p in data["phases"].values())
        assert "gemini-test-key" not in json.dumps(data)

    def test_later_prompts_include_earlier_outputs(
        self,
        settings: LLMSettings,
        store: SessionStore,
        codebase_dir: Path,
    ) -> None:
        """Test the prompt sent for a phase carries each earlier output."""
        transport = RecordingTransport().queue(
            *[gemini_ok(f"MARKER-{phase}") for phase in PHASES]
        )
        session = store.create(codebase_dir, "Add CSV export")

        _orchestrator(settings, transport, store).run(session)

        last_prompt = transport.calls[-1]["json_body"]["contents"][0]["parts"][0]["text"]
        for phase in PHASES[:-1]:
            assert f"MARKER-{phase}" in last_prompt
        assert "MARKER-change_planning" not in last_prompt


class TestFailureAndResume:
    """A session that fails and is resumed."""

    def test_failure_persisted_with_kind(
        self,
        settings: LLMSettings,
        store: SessionStore,
        codebase_dir: Path,
    ) -> None:
        """Test a transport failure is recorded on the phase and halts the run."""
        transport = RecordingTransport().queue(
            gemini_ok("domain"),
            transport_error("timeout: read timed out"),
        )
        session = store.create(codebase_dir, "Add CSV export")

        session = _orchestrator(settings, transport, store).run(session)

        assert session.state == SessionState.FAILED
        assert len(transport.calls) == 2
        data = json.loads((session.session_dir / "session.json").read_text())
        error = data["phases"]["tech_stack"]["error"]
        assert error["kind"] == "request_failed"
        assert error["reason"] == "timeout: read timed out"
        assert data["phases"]["architecture"]["status"] == "pending"

    def test_resume_with_other_provider(
        self,
        settings: LLMSettings,
        store: SessionStore,
        codebase_dir: Path,
    ) -> None:
        """Test a rate-limited session finishes on another provider."""
        first = RecordingTransport().queue(
            gemini_ok("domain"),
            gemini_ok("stack"),
            http_status(429, {"error": {"code": 429}}),
        )
        session = store.create(codebase_dir, "Add CSV export")
        failed = _orchestrator(settings, first, store).run(session)
        assert failed.phase("architecture").error.failure.retryable
        domain_before = failed.phase("domain_research")
        domain_bytes = (failed.session_dir / domain_before.output_file).read_bytes()

        claude_ok = http_status(200, {"content": [{"type": "text", "text": FEATURE_MD}]})
        second = RecordingTransport(default=claude_ok)
        options = PipelineOptions(chat=ChatOptions(provider="claude"))

        resumed = _orchestrator(settings, second, store, options).run(
            store.load(failed.session_dir)
        )

        assert resumed.state == SessionState.COMPLETED
        assert len(second.calls) == len(PHASES) - 2
        assert all(c["url"] == "https://api.anthropic.com/v1/messages" for c in second.calls)
        assert resumed.context["domain_research"] == "domain"
        assert resumed.phase("architecture").status == PhaseStatus.COMPLETED
        assert resumed.phase("domain_research") == domain_before
        assert (resumed.session_dir / domain_before.output_file).read_bytes() == domain_bytes

    def test_resume_restores_context_from_files(
        self,
        settings: LLMSettings,
        store: SessionStore,
        codebase_dir: Path,
    ) -> None:
        """Test outputs on disk feed later prompts after a reload."""
        first = RecordingTransport().queue(gemini_ok("DOMAIN-TEXT"), http_status(503, "down"))
        session = store.create(codebase_dir, "Add CSV export")
        failed = _orchestrator(settings, first, store).run(session)
        store.save(failed.with_context({}))

        second = RecordingTransport(default=gemini_ok(FEATURE_MD))
        _orchestrator(settings, second, store).run(store.load(failed.session_dir))

        first_prompt = second.calls[0]["json_body"]["contents"][0]["parts"][0]["text"]
        assert "DOMAIN-TEXT" in first_prompt

    def test_missing_key_fails_without_network(
        self,
        store: SessionStore,
        codebase_dir: Path,
    ) -> None:
        """Test a keyless provider fails the first phase with no request."""
        transport = RecordingTransport()
        settings = LLMSettings.from_env(environ={"GEMINI_API_KEY": "k"}, provider="openai")
        session = store.create(codebase_dir, "Add CSV export")

        session = _orchestrator(settings, transport, store).run(session)

        assert transport.calls == []
        assert session.phase("domain_research").error.failure.kind.value == "missing_api_key"
